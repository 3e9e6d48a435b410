from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from sop_compiler.compiler import type_maps
from sop_compiler.compiler.forward import compile as compile_document
from sop_compiler.compiler.reverse import decompile as decompile_graph
from sop_compiler.graph.validator import validate
from sop_compiler.markup.parser import parse_markup
from sop_compiler.markup.serializer import serialize_to_markup
from sop_compiler.models.graph import WorkflowGraph
from sop_compiler.models.procedure import ProcedureDocument
from sop_compiler.utils.exceptions import CompilationError

router = APIRouter(prefix="/api/sop")


class MarkupBody(BaseModel):
    markup: str


def _compilation_failed(e: CompilationError) -> HTTPException:
    return HTTPException(
        422,
        {
            "message": str(e),
            "errors": [err.model_dump(mode="json", by_alias=True) for err in e.errors],
        },
    )


@router.post("/validate")
def validate_document(document: ProcedureDocument):
    return validate(document).model_dump(mode="json", by_alias=True)


@router.post("/compile")
def compile_to_workflow(document: ProcedureDocument, request: Request):
    try:
        graph = compile_document(document, request.app.state.settings)
    except CompilationError as e:
        raise _compilation_failed(e)
    return graph.to_engine_json()


@router.post("/decompile")
def decompile_workflow(graph: WorkflowGraph, request: Request):
    try:
        document = decompile_graph(graph, request.app.state.settings)
    except CompilationError as e:
        raise _compilation_failed(e)
    return document.model_dump(mode="json", by_alias=True)


@router.post("/parse")
def parse(body: MarkupBody):
    return parse_markup(body.markup).model_dump(mode="json", by_alias=True)


@router.post("/markup")
def render_markup(document: ProcedureDocument):
    return {"markup": serialize_to_markup(document)}


@router.get("/action-types")
def list_action_types():
    return {
        action: {"type": kind.type, "typeVersion": kind.type_version}
        for action, kind in type_maps.ACTION_TYPE_MAP.items()
    }

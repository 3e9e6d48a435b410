import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from sop_compiler.compiler.forward import compile as compile_document
from sop_compiler.compiler.reverse import decompile as decompile_graph
from sop_compiler.config.settings import load_settings
from sop_compiler.graph.validator import validate
from sop_compiler.markup.parser import parse_markup
from sop_compiler.markup.serializer import serialize_to_markup
from sop_compiler.models.graph import WorkflowGraph
from sop_compiler.models.procedure import ProcedureDocument
from sop_compiler.utils.exceptions import CompilationError

_MARKUP_SUFFIXES = {".md", ".markdown", ".txt"}


def load_document(path: str) -> ProcedureDocument:
    """Read a procedure document from markup, JSON, or YAML."""
    p = Path(path)
    text = p.read_text()
    if p.suffix.lower() in _MARKUP_SUFFIXES:
        return parse_markup(text)
    if p.suffix.lower() in (".yaml", ".yml"):
        return ProcedureDocument.model_validate(yaml.safe_load(text) or {})
    return ProcedureDocument.model_validate(json.loads(text))


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def cmd_validate(args, settings) -> int:
    result = validate(load_document(args.file))
    _print_json(result.model_dump(mode="json", by_alias=True))
    return 0 if result.valid else 1


def cmd_compile(args, settings) -> int:
    try:
        graph = compile_document(load_document(args.file), settings)
    except CompilationError as e:
        print(f"Compilation failed: {e}", file=sys.stderr)
        return 1
    _print_json(graph.to_engine_json())
    return 0


def cmd_decompile(args, settings) -> int:
    graph = WorkflowGraph.model_validate(json.loads(Path(args.file).read_text()))
    try:
        document = decompile_graph(graph, settings)
    except CompilationError as e:
        print(f"Decompilation failed: {e}", file=sys.stderr)
        return 1
    if args.markup:
        print(serialize_to_markup(document))
    else:
        _print_json(document.model_dump(mode="json", by_alias=True))
    return 0


def cmd_render(args, settings) -> int:
    print(serialize_to_markup(load_document(args.file)))
    return 0


def cmd_parse(args, settings) -> int:
    document = parse_markup(Path(args.file).read_text())
    _print_json(document.model_dump(mode="json", by_alias=True))
    return 0


def cmd_serve(args, settings) -> int:
    import uvicorn
    from sop_compiler.api.app import create_app

    app = create_app(settings=settings)
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="sopc", description="SOP <-> workflow graph compiler")
    parser.add_argument("--config", help="Path to a YAML config file")
    sub = parser.add_subparsers(dest="command")

    val_p = sub.add_parser("validate", help="Check a procedure document")
    val_p.add_argument("file", help="Procedure document (.md, .json, .yaml)")

    comp_p = sub.add_parser("compile", help="Compile a procedure document to workflow JSON")
    comp_p.add_argument("file", help="Procedure document (.md, .json, .yaml)")

    dec_p = sub.add_parser("decompile", help="Recover a procedure document from workflow JSON")
    dec_p.add_argument("file", help="Workflow JSON file")
    dec_p.add_argument("--markup", action="store_true", help="Print markup instead of JSON")

    ren_p = sub.add_parser("render", help="Render a procedure document as markup")
    ren_p.add_argument("file", help="Procedure document (.json, .yaml)")

    par_p = sub.add_parser("parse", help="Parse markup into procedure JSON")
    par_p.add_argument("file", help="Markup file")

    serve_p = sub.add_parser("serve", help="Start the HTTP API")
    serve_p.add_argument("--host", default="127.0.0.1")
    serve_p.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    commands = {
        "validate": cmd_validate,
        "compile": cmd_compile,
        "decompile": cmd_decompile,
        "render": cmd_render,
        "parse": cmd_parse,
        "serve": cmd_serve,
    }
    if args.command not in commands:
        parser.print_help()
        return 1

    settings = load_settings(args.config)
    logging.basicConfig(level=settings.log_level.upper(), stream=sys.stderr)
    return commands[args.command](args, settings)


if __name__ == "__main__":
    sys.exit(main())

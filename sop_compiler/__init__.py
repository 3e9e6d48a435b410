"""Compile standard operating procedures to workflow graphs and back."""

from sop_compiler.compiler.forward import compile
from sop_compiler.compiler.reverse import decompile
from sop_compiler.graph.validator import validate
from sop_compiler.markup.parser import parse_markup
from sop_compiler.markup.serializer import serialize_to_markup
from sop_compiler.models.graph import Connection, Node, WorkflowGraph
from sop_compiler.models.procedure import (
    Condition,
    ConditionOperator,
    ProcedureDocument,
    Step,
    StepType,
    Trigger,
    TriggerType,
)
from sop_compiler.models.validation import ValidationIssue, ValidationResult
from sop_compiler.utils.exceptions import CompilationError, MarkupParseError, SOPCompilerError

__all__ = [
    "CompilationError",
    "Condition",
    "ConditionOperator",
    "Connection",
    "MarkupParseError",
    "Node",
    "ProcedureDocument",
    "SOPCompilerError",
    "Step",
    "StepType",
    "Trigger",
    "TriggerType",
    "ValidationIssue",
    "ValidationResult",
    "WorkflowGraph",
    "compile",
    "decompile",
    "parse_markup",
    "serialize_to_markup",
    "validate",
]

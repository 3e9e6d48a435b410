import json
import re
from typing import Any

from sop_compiler.models.procedure import ProcedureDocument, Step

TITLE_PREFIX = "SOP:"

# Description lines starting with these would read back as headings or escapes.
ESCAPE_CHAR = "\\"
_ESCAPED_LINE_STARTS = ("#", ESCAPE_CHAR)

_BARE_FIELD_RE = re.compile(r'^[^\s"]+$')


def serialize_to_markup(document: ProcedureDocument) -> str:
    """Render a procedure document in the heading/property-list markup.

    ``parse_markup`` reads the result back into an equal document. Free text
    that the line grammar cannot carry as written (multi-line step
    descriptions, field names with spaces, keys containing ``:``) is written
    as a JSON string.
    """
    lines: list[str] = [f"# {TITLE_PREFIX} {document.title}".rstrip(), ""]

    lines.append(f"## Version: {document.version}".rstrip())
    if document.author is not None:
        lines.append(f"## Author: {document.author}".rstrip())
    lines.append("")

    lines.append("## Description")
    if document.description:
        lines.extend(escape_description_line(line) for line in document.description.splitlines())
    lines.append("")

    if document.triggers:
        lines.append("## Trigger")
        for trigger in document.triggers:
            lines.append(f"- Type: {trigger.type}")
            if trigger.config:
                lines.append(f"- Config: {_dump(trigger.config)}")
        lines.append("")

    lines.append("## Steps")
    lines.append("")
    for step in document.steps:
        lines.extend(_step_lines(step))
        lines.append("")

    return "\n".join(lines)


def escape_description_line(line: str) -> str:
    if line.startswith(_ESCAPED_LINE_STARTS):
        return ESCAPE_CHAR + line
    return line


def _step_lines(step: Step) -> list[str]:
    lines = [f"### {step.order}. {step.title}".rstrip(), f"- ID: {step.id}", f"- Type: {step.type}"]

    if step.action_type is not None:
        lines.append(f"- Action: {step.action_type}")
    if step.description:
        lines.append(f"- Description: {_text(step.description)}")

    if step.parameters:
        lines.append("- Parameters:")
        for key, value in step.parameters.items():
            lines.append(f"  - {_key(key)}: {_dump(value)}")

    for condition in step.conditions:
        field = condition.field if _BARE_FIELD_RE.match(condition.field) else _dump(condition.field)
        lines.append(f"- Condition: {field} {condition.operator.value} {_dump(condition.value)}")
        if condition.next_step:
            lines.append(f"  - If true: {condition.next_step}")

    if step.next_steps:
        lines.append(f"- Next: {', '.join(step.next_steps)}")

    return lines


def _text(value: str) -> str:
    if "\n" in value or "\r" in value or value.startswith('"') or value != value.strip():
        return _dump(value)
    return value


def _key(key: str) -> str:
    if not key or ":" in key or key.startswith('"') or key != key.strip() or key.lower() == "if true":
        return _dump(key)
    return key


def _dump(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)

"""Line-oriented parser for the procedure markup.

The parser is a small state machine over document sections::

    none -> description -> trigger -> steps

``#`` sets the title, ``##`` switches section (or carries the version and
author), ``###`` opens a step inside the steps section. Property lines
``- Key: Value`` fill the open step or trigger; indented ``  - key: value``
lines belong to the preceding ``Parameters`` or ``Condition`` line. A
leading backslash escapes a description line that starts with ``#``; keys,
field names and step descriptions may be written as JSON strings.
"""

import json
import logging
import re
from enum import Enum
from typing import Any

from sop_compiler.markup.serializer import ESCAPE_CHAR, TITLE_PREFIX
from sop_compiler.models.procedure import (
    Condition,
    ConditionOperator,
    ProcedureDocument,
    Step,
    StepType,
    Trigger,
)
from sop_compiler.utils.exceptions import MarkupParseError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled SOP"
DEFAULT_VERSION = "1.0.0"

_STEP_HEADING_RE = re.compile(r"^###\s*(?:(\d+)\.)?\s*(.*)$")
_CONDITION_RE = re.compile(
    r'^("(?:[^"\\]|\\.)*"|\S+)\s+(equals|contains|greater|less|==|>|<)\s*(.*)$', re.IGNORECASE
)
_JSON_DECODER = json.JSONDecoder()

_OPERATOR_SYMBOLS: dict[str, ConditionOperator] = {
    "==": ConditionOperator.EQUALS,
    ">": ConditionOperator.GREATER,
    "<": ConditionOperator.LESS,
}


class _Section(str, Enum):
    NONE = "none"
    DESCRIPTION = "description"
    TRIGGER = "trigger"
    STEPS = "steps"


def parse_markup(text: str) -> ProcedureDocument:
    """Parse procedure markup into a ProcedureDocument.

    Malformed property lines are skipped with a warning; only non-text input
    raises MarkupParseError.
    """
    if not isinstance(text, str):
        raise MarkupParseError(f"Markup must be text, got {type(text).__name__}")

    logger.info("Parsing procedure markup")
    document = _MarkupParser().parse(text)
    logger.info(f"Parsed procedure '{document.title}' ({len(document.steps)} steps)")
    return document


class _MarkupParser:
    def __init__(self) -> None:
        self.section = _Section.NONE
        self.title: str | None = None
        self.version = DEFAULT_VERSION
        self.author: str | None = None
        self.description_lines: list[str] = []
        self.triggers: list[dict[str, Any]] = []
        self.steps: list[Step] = []
        self.current_step: dict[str, Any] | None = None
        self.sub_list: str | None = None  # "parameters" or "condition"

    def parse(self, text: str) -> ProcedureDocument:
        for raw in text.splitlines():
            self._feed(raw.rstrip())
        self._close_step()

        return ProcedureDocument(
            title=DEFAULT_TITLE if self.title is None else self.title,
            description="\n".join(_trim_blank(self.description_lines)),
            version=self.version,
            author=self.author,
            steps=self.steps,
            triggers=[Trigger(type=t["type"], config=t["config"]) for t in self.triggers if t["type"]],
        )

    def _feed(self, line: str) -> None:
        stripped = line.strip()

        if line.startswith("### "):
            if self.section is _Section.STEPS:
                self._open_step(line)
            return
        if line.startswith("## ") or line == "##":
            self._close_step()
            self._enter_section(line[2:].strip())
            return
        if line.startswith("# ") or line == "#":
            self._close_step()
            self.title = _strip_title_prefix(line[1:].strip())
            return

        if self.section is _Section.DESCRIPTION:
            self.description_lines.append(_unescape(line))
        elif self.section is _Section.TRIGGER and stripped.startswith("- "):
            self._trigger_property(stripped)
        elif self.section is _Section.STEPS and self.current_step is not None and stripped.startswith("- "):
            indented = len(line) - len(line.lstrip()) > 0
            self._step_property(stripped, indented)

    def _enter_section(self, heading: str) -> None:
        key, _, value = heading.partition(":")
        name = key.strip().lower()
        if name == "version":
            self.version = value.strip()
        elif name == "author":
            self.author = value.strip()
        elif name == "description":
            self.section = _Section.DESCRIPTION
        elif name in ("trigger", "triggers"):
            self.section = _Section.TRIGGER
        elif name == "steps":
            self.section = _Section.STEPS
        else:
            self.section = _Section.NONE

    # Triggers

    def _trigger_property(self, content: str) -> None:
        name, value = _split_property(content)
        key = name.lower()
        if key == "type":
            if not self.triggers or self.triggers[-1]["type"]:
                self.triggers.append({"type": None, "config": {}})
            self.triggers[-1]["type"] = value.lower()
            return

        if not self.triggers:
            self.triggers.append({"type": None, "config": {}})
        trigger = self.triggers[-1]
        if key == "config":
            config = _load_value(value)
            trigger["config"] = config if isinstance(config, dict) else {"raw": value}
        else:
            trigger["config"][name] = _load_value(value)

    # Steps

    def _open_step(self, line: str) -> None:
        self._close_step()
        m = _STEP_HEADING_RE.match(line)
        number, title = (m.group(1), m.group(2).strip()) if m else (None, line[3:].strip())
        position = len(self.steps) + 1
        self.current_step = {
            "position": position,
            "order": int(number) if number else position,
            "title": title,
            "parameters": {},
            "next_steps": [],
            "conditions": [],
        }

    def _close_step(self) -> None:
        if self.current_step is not None:
            self.steps.append(_finalize_step(self.current_step))
        self.current_step = None
        self.sub_list = None

    def _step_property(self, content: str, indented: bool) -> None:
        step = self.current_step
        name, value = _split_property(content)
        key = name.lower()

        if key == "if true" and not content[2:].startswith('"'):
            if step["conditions"]:
                step["conditions"][-1].next_step = value
            else:
                logger.warning(f"'If true' without a preceding condition in step '{step['title']}'; skipping")
            return

        if indented:
            if self.sub_list == "parameters":
                step["parameters"][name] = _load_value(value)
            return

        self.sub_list = None
        if key == "id":
            step["id"] = value
        elif key == "type":
            step["type"] = value.lower()
        elif key == "action":
            step["action_type"] = value.lower()
        elif key == "description":
            step["description"] = _load_text(value)
        elif key == "next":
            step["next_steps"] = [s.strip() for s in value.split(",") if s.strip()]
        elif key == "parameters":
            self.sub_list = "parameters"
        elif key == "condition":
            condition = _parse_condition(value)
            if condition is None:
                logger.warning(f"Unreadable condition '{value}' in step '{step['title']}'; skipping")
            else:
                step["conditions"].append(condition)
                self.sub_list = "condition"
        else:
            logger.warning(f"Unknown step property '{key}' in step '{step['title']}'; skipping")


def _finalize_step(partial: dict[str, Any]) -> Step:
    position = partial["position"]
    return Step(
        id=partial.get("id") or f"step_{position}",
        order=partial["order"],
        title=partial["title"] or f"Step {position}",
        description=partial.get("description", ""),
        type=partial.get("type") or StepType.ACTION.value,
        action_type=partial.get("action_type"),
        parameters=partial["parameters"],
        next_steps=partial["next_steps"],
        conditions=partial["conditions"],
    )


def _parse_condition(text: str) -> Condition | None:
    m = _CONDITION_RE.match(text.strip())
    if not m:
        return None
    field, op, value = m.groups()
    if field.startswith('"'):
        field = _load_text(field)
    op = op.lower()
    operator = _OPERATOR_SYMBOLS.get(op) or ConditionOperator(op)
    return Condition(field=field, operator=operator, value=_load_value(value))


def _split_property(content: str) -> tuple[str, str]:
    """Split ``- Key: Value`` into its stripped key and value.

    A key written as a JSON string may itself contain ``:``.
    """
    body = content[2:]
    if body.startswith('"'):
        try:
            key, end = _JSON_DECODER.raw_decode(body)
        except ValueError:
            key, end = None, 0
        rest = body[end:].lstrip()
        if isinstance(key, str) and rest.startswith(":"):
            return key, rest[1:].strip()
    key, _, value = body.partition(":")
    return key.strip(), value.strip()


def _load_text(text: str) -> str:
    if text.startswith('"'):
        try:
            value = json.loads(text)
        except ValueError:
            return text
        if isinstance(value, str):
            return value
    return text


def _unescape(line: str) -> str:
    return line[1:] if line.startswith(ESCAPE_CHAR) else line


def _load_value(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def _strip_title_prefix(heading: str) -> str:
    if heading.startswith(TITLE_PREFIX):
        return heading[len(TITLE_PREFIX):].strip()
    return heading


def _trim_blank(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]

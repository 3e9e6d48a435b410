import json

import yaml

from sop_compiler.cli import load_document, main

MARKUP = """\
# SOP: Daily report

## Description
Send the daily numbers.

## Trigger
- Type: schedule

## Steps

### 1. Gather numbers
- ID: gather
- Action: http_request
- Next: send

### 2. Send report
- ID: send
- Action: send_email
"""


def _write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_load_document_formats(tmp_path):
    from_markup = load_document(_write(tmp_path, "sop.md", MARKUP))
    doc_dict = from_markup.model_dump(mode="json", by_alias=True)
    from_json = load_document(_write(tmp_path, "sop.json", json.dumps(doc_dict)))
    from_yaml = load_document(_write(tmp_path, "sop.yaml", yaml.dump(doc_dict)))

    assert from_markup.title == "Daily report"
    assert from_json == from_markup
    assert from_yaml == from_markup


def test_validate_command(tmp_path, capsys):
    assert main(["validate", _write(tmp_path, "sop.md", MARKUP)]) == 0
    assert json.loads(capsys.readouterr().out)["valid"] is True


def test_validate_command_invalid(tmp_path, capsys):
    path = _write(tmp_path, "bad.json", json.dumps({"title": "", "steps": []}))
    assert main(["validate", path]) == 1
    result = json.loads(capsys.readouterr().out)
    assert [e["field"] for e in result["errors"]] == ["title", "steps"]


def test_compile_then_decompile(tmp_path, capsys):
    assert main(["compile", _write(tmp_path, "sop.md", MARKUP)]) == 0
    workflow = json.loads(capsys.readouterr().out)
    assert workflow["nodes"][0]["type"] == "n8n-nodes-base.scheduleTrigger"
    assert workflow["connections"]["Gather numbers"]["main"][0][0]["node"] == "Send report"

    workflow_path = _write(tmp_path, "workflow.json", json.dumps(workflow))
    assert main(["decompile", workflow_path]) == 0
    document = json.loads(capsys.readouterr().out)
    assert [s["id"] for s in document["steps"]] == ["gather", "send"]

    assert main(["decompile", "--markup", workflow_path]) == 0
    markup = capsys.readouterr().out
    assert markup.startswith("# SOP: Daily report")
    assert "- Next: send" in markup


def test_compile_command_failure(tmp_path, capsys):
    path = _write(tmp_path, "bad.json", json.dumps({"title": "Broken", "steps": []}))
    assert main(["compile", path]) == 1
    assert "Compilation failed" in capsys.readouterr().err


def test_render_and_parse_commands(tmp_path, capsys):
    doc = load_document(_write(tmp_path, "sop.md", MARKUP))
    json_path = _write(tmp_path, "sop.json", doc.model_dump_json(by_alias=True))

    assert main(["render", json_path]) == 0
    rendered = capsys.readouterr().out
    assert "### 2. Send report" in rendered

    markup_path = _write(tmp_path, "rendered.md", rendered)
    assert main(["parse", markup_path]) == 0
    parsed = json.loads(capsys.readouterr().out)
    assert parsed["steps"][1]["actionType"] == "send_email"


def test_config_flag(tmp_path, capsys):
    config_path = _write(tmp_path, "config.yaml", yaml.dump({"compiler": {"node_id_prefix": "daily"}}))
    assert main(["--config", config_path, "compile", _write(tmp_path, "sop.md", MARKUP)]) == 0
    workflow = json.loads(capsys.readouterr().out)
    assert workflow["nodes"][0]["id"] == "daily-1"


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out

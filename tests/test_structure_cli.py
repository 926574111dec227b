import logging

import pytest

from structure.structure_cli import parse_path, run
from structure.structure_selector import Selector


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("STRUCTURE_TRACE", raising=False)
    monkeypatch.delenv("STRUCTURE_MAX_SCOPE_DEPTH", raising=False)


@pytest.fixture
def doc(tmp_path):
    path = tmp_path / "doc.json"
    path.write_text('{"a": {"b": 42}, "items": [1, 2]}')
    return path


def test_parse_path():
    assert parse_path("a.b.0") == Selector.get("a").get("b").get_item(0)
    assert parse_path("@tag.x") == Selector.get_attr("tag").get("x")
    assert parse_path("") == Selector.identity()


def test_select_prints_debug_form(doc, capsys):
    assert run([str(doc), "--select", "a.b"]) == 0
    assert capsys.readouterr().out == "Num.of(42)\n"


def test_select_list_item(doc, capsys):
    assert run([str(doc), "--select", "items.1"]) == 0
    assert capsys.readouterr().out == "Num.of(2)\n"


def test_whole_document(tmp_path, capsys):
    path = tmp_path / "small.json"
    path.write_text('{"a": 1}')
    assert run([str(path)]) == 0
    assert capsys.readouterr().out == "Record.of(Slot.of('a', 1))\n"


def test_render_as_json(doc, capsys):
    assert run([str(doc), "--select", "a.b", "--to", "json"]) == 0
    assert capsys.readouterr().out == "42\n"


def test_missing_file(tmp_path, capsys):
    assert run([str(tmp_path / "nope.json")]) == 1
    assert "file not found" in capsys.readouterr().err


def test_yml_suffix_is_yaml(tmp_path, capsys):
    path = tmp_path / "conf.yml"
    path.write_text("a: 1\n")
    assert run([str(path), "--select", "a"]) == 0
    assert capsys.readouterr().out == "Num.of(1)\n"


def test_explicit_format(tmp_path, capsys):
    path = tmp_path / "conf.txt"
    path.write_text("x = 1\n")
    assert run([str(path), "--format", "toml", "--select", "x"]) == 0
    assert capsys.readouterr().out == "Num.of(1)\n"


def test_trace_logs_selection_steps(doc, capsys, caplog):
    with caplog.at_level(logging.DEBUG, logger="structure.structure_interpreter"):
        assert run([str(doc), "--select", "a", "--trace"]) == 0
    assert any(record.getMessage().startswith("select ") for record in caplog.records)

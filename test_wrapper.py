"""Tests for hl_wrapper.py"""

import json
import threading

import pytest

from hl import LEGACY_INPUT_WARNING, line_hash
from hl_wrapper import EditResponse, Hashline


@pytest.fixture
def hl():
    return Hashline()


@pytest.fixture
def tmp_file(tmp_path):
    f = tmp_path / "test.py"
    f.write_text("def hello():\n    print('hello world')\n\ndef goodbye():\n    print('goodbye')\n")
    return str(f)


def anchor(n, text):
    return f"{n}:{line_hash(text)}"


class TestRead:
    def test_anchored_lines(self, hl, tmp_file):
        text = hl.read(tmp_file)
        first = text.split("\n")[0]
        assert first == f"{anchor(1, 'def hello():')}|def hello():"

    def test_window(self, hl, tmp_file):
        text = hl.read(tmp_file, offset=2, limit=1)
        assert text.startswith("2:")
        assert "Use offset=3 to continue." in text

    def test_missing_file(self, hl, tmp_path):
        with pytest.raises(OSError):
            hl.read(str(tmp_path / "missing.py"))


class TestEdit:
    def test_set_line(self, hl, tmp_file):
        result = hl.edit(tmp_file, [
            {"set_line": {"anchor": anchor(1, "def hello():"), "new_text": "def greet():"}},
        ])
        assert result.success
        assert result.status == "applied"
        assert result.first_changed_line == 1
        assert "+1 def greet():" in result.diff
        with open(tmp_file) as f:
            assert f.read().startswith("def greet():\n")

    def test_indentation_recovered(self, hl, tmp_file):
        result = hl.edit(tmp_file, [
            {"set_line": {"anchor": anchor(5, "    print('goodbye')"), "new_text": "return None"}},
        ])
        assert result.success
        with open(tmp_file) as f:
            assert "    return None\n" in f.read()

    def test_stale_anchor(self, hl, tmp_file):
        hashes = {line_hash(line) for line in open(tmp_file).read().split("\n")}
        stale = next(format(i, "02x") for i in range(256) if format(i, "02x") not in hashes)
        result = hl.edit(tmp_file, [{"set_line": {"anchor": f"2:{stale}", "new_text": "x"}}])
        assert not result.success
        assert result.status == "mismatch"
        assert ">>> 2:" in result.error

    def test_no_diff_when_disabled(self, tmp_file):
        quiet = Hashline(show_diff=False)
        result = quiet.edit(tmp_file, [
            {"replace": {"old_text": "goodbye", "new_text": "farewell", "all": True}},
        ])
        assert result.success
        assert result.diff is None

    def test_file_not_found(self, hl):
        result = hl.edit("/nonexistent/file.py", [{"replace": {"old_text": "a", "new_text": "b"}}])
        assert not result.success
        assert result.status == "error"

    def test_cancelled(self, hl, tmp_file):
        cancel = threading.Event()
        cancel.set()
        result = hl.edit(tmp_file, [{"replace": {"old_text": "hello", "new_text": "hi"}}], cancel=cancel)
        assert result.status == "cancelled"


class TestPreview:
    def test_does_not_write(self, hl, tmp_file):
        before = open(tmp_file).read()
        result = hl.preview(tmp_file, [
            {"insert_after": {"anchor": anchor(2, "    print('hello world')"), "text": "    return 1"}},
        ])
        assert result.success
        assert "+3     return 1" in result.diff
        assert open(tmp_file).read() == before


class TestApplyRequest:
    def test_edits_form(self, hl, tmp_file):
        result = hl.apply_request({"file": tmp_file, "edits": [
            {"replace": {"old_text": "hello world", "new_text": "hi"}},
        ]})
        assert result.success
        assert result.warnings == []

    def test_legacy_form_warns(self, hl, tmp_file):
        result = hl.apply_request({"file": tmp_file, "old_text": "hello world", "new_text": "hi"})
        assert result.success
        assert LEGACY_INPUT_WARNING in result.warnings

    def test_missing_file_field(self, hl):
        result = hl.apply_request({"edits": []})
        assert not result.success
        assert "file" in result.error

    def test_malformed_edit(self, hl, tmp_file):
        result = hl.apply_request({"file": tmp_file, "edits": [{"diff": "x"}]})
        assert result.status == "error"


class TestEditResponse:
    def test_to_dict_skips_empty(self):
        d = EditResponse(success=True, file="a.py").to_dict()
        assert d == {"success": True, "file": "a.py", "status": "applied"}

    def test_to_json(self):
        resp = EditResponse(success=False, file="a.py", status="mismatch", error="stale")
        assert json.loads(resp.to_json())["error"] == "stale"


class TestSchemas:
    def test_hash_line(self):
        assert Hashline.hash_line("a  b") == line_hash("ab")

    def test_anthropic_schema(self):
        schema = Hashline.anthropic_tool_schema()
        assert schema["name"] == "edit_file"
        assert schema["input_schema"]["required"] == ["file", "edits"]
        items = schema["input_schema"]["properties"]["edits"]["items"]
        assert set(items["properties"]) == {"set_line", "replace_lines", "insert_after", "replace"}

    def test_openai_schema(self):
        schema = Hashline.openai_function_schema()
        assert schema["type"] == "function"
        assert "edits" in schema["function"]["parameters"]["properties"]

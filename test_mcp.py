"""Tests for hl_mcp.py — MCP server for Hashline."""

import json
import os
import subprocess
import sys

from hl import line_hash


def mcp_call(*messages, raw_lines=()):
    """Send JSON-RPC messages to MCP server, return parsed responses."""
    input_str = "\n".join([json.dumps(m) for m in messages] + list(raw_lines)) + "\n"
    proc = subprocess.run(
        [sys.executable, "hl_mcp.py"],
        input=input_str, capture_output=True, text=True,
        cwd=os.path.dirname(os.path.abspath(__file__)),
    )
    lines = [l for l in proc.stdout.strip().split("\n") if l.strip()]
    return [json.loads(l) for l in lines]


def init_msg(id=1):
    return {"jsonrpc": "2.0", "id": id, "method": "initialize", "params": {}}


def tool_call(id, name, arguments):
    return {"jsonrpc": "2.0", "id": id, "method": "tools/call",
            "params": {"name": name, "arguments": arguments}}


def tool_text(resp):
    return resp["result"]["content"][0]["text"]


class TestInitialize:
    def test_returns_server_info(self):
        [resp] = mcp_call(init_msg())
        assert resp["result"]["serverInfo"]["name"] == "hashline"
        assert resp["result"]["protocolVersion"] == "2024-11-05"

    def test_has_tools_capability(self):
        [resp] = mcp_call(init_msg())
        assert "tools" in resp["result"]["capabilities"]

    def test_initialized_notification_silent(self):
        resps = mcp_call(init_msg(), {"jsonrpc": "2.0", "method": "notifications/initialized"})
        assert len(resps) == 1


class TestToolsList:
    def test_lists_tools(self):
        resps = mcp_call(init_msg(), {"jsonrpc": "2.0", "id": 2, "method": "tools/list", "params": {}})
        names = {t["name"] for t in resps[1]["result"]["tools"]}
        assert names == {"hashline_read", "hashline_edit", "hashline_preview"}


class TestRead:
    def test_anchored_output(self, tmp_path):
        f = tmp_path / "test.txt"
        f.write_text("hello\nworld")
        resps = mcp_call(init_msg(), tool_call(2, "hashline_read", {"file": str(f)}))
        assert tool_text(resps[1]) == f"1:{line_hash('hello')}|hello\n2:{line_hash('world')}|world"
        assert resps[1]["result"]["isError"] is False

    def test_missing_file(self, tmp_path):
        resps = mcp_call(init_msg(), tool_call(2, "hashline_read", {"file": str(tmp_path / "nope")}))
        assert resps[1]["result"]["isError"] is True
        assert json.loads(tool_text(resps[1]))["status"] == "error"

    def test_non_integer_offset_keeps_server_alive(self, tmp_path):
        f = tmp_path / "test.txt"
        f.write_text("a\nb\nc")
        resps = mcp_call(
            init_msg(),
            tool_call(2, "hashline_read", {"file": str(f), "offset": "2"}),
            {"jsonrpc": "2.0", "id": 3, "method": "tools/list", "params": {}},
        )
        assert len(resps) == 3
        assert resps[1]["id"] == 2
        assert resps[1]["result"]["isError"] is True
        assert "offset" in json.loads(tool_text(resps[1]))["error"]
        assert resps[2]["id"] == 3
        assert "tools" in resps[2]["result"]

    def test_zero_limit_is_error(self, tmp_path):
        f = tmp_path / "test.txt"
        f.write_text("a\nb\nc")
        resps = mcp_call(init_msg(), tool_call(2, "hashline_read", {"file": str(f), "limit": 0}))
        assert resps[1]["result"]["isError"] is True
        assert "limit" in json.loads(tool_text(resps[1]))["error"]

    def test_window(self, tmp_path):
        f = tmp_path / "test.txt"
        f.write_text("a\nb\nc")
        resps = mcp_call(init_msg(), tool_call(2, "hashline_read", {"file": str(f), "offset": 2, "limit": 1}))
        assert resps[1]["result"]["isError"] is False
        assert tool_text(resps[1]).startswith(f"2:{line_hash('b')}|b")
        assert "Use offset=3 to continue." in tool_text(resps[1])

    def test_missing_file_argument(self):
        resps = mcp_call(init_msg(), tool_call(2, "hashline_read", {}))
        assert resps[1]["result"]["isError"] is True


class TestEdit:
    def test_set_line(self, tmp_path):
        f = tmp_path / "test.txt"
        f.write_text("hello\nworld\n")
        resps = mcp_call(init_msg(), tool_call(2, "hashline_edit", {
            "file": str(f),
            "edits": [{"set_line": {"anchor": f"2:{line_hash('world')}", "new_text": "there"}}],
        }))
        result = json.loads(tool_text(resps[1]))
        assert result["status"] == "applied"
        assert result["first_changed_line"] == 2
        assert f.read_text() == "hello\nthere\n"

    def test_stale_anchor(self, tmp_path):
        f = tmp_path / "test.txt"
        f.write_text("hello\nworld\n")
        used = {line_hash("hello"), line_hash("world"), line_hash("")}
        stale = next(format(i, "02x") for i in range(256) if format(i, "02x") not in used)
        resps = mcp_call(init_msg(), tool_call(2, "hashline_edit", {
            "file": str(f),
            "edits": [{"set_line": {"anchor": f"1:{stale}", "new_text": "x"}}],
        }))
        assert resps[1]["result"]["isError"] is True
        result = json.loads(tool_text(resps[1]))
        assert result["status"] == "mismatch"
        assert f">>> 1:{line_hash('hello')}|hello" in result["error"]
        assert f.read_text() == "hello\nworld\n"

    def test_legacy_arguments(self, tmp_path):
        f = tmp_path / "test.txt"
        f.write_text("hello world")
        resps = mcp_call(init_msg(), tool_call(2, "hashline_edit", {
            "file": str(f), "old_text": "hello", "new_text": "goodbye",
        }))
        result = json.loads(tool_text(resps[1]))
        assert result["status"] == "applied"
        assert result["warnings"]
        assert f.read_text() == "goodbye world"

    def test_missing_file_argument(self):
        resps = mcp_call(init_msg(), tool_call(2, "hashline_edit", {"edits": []}))
        assert resps[1]["result"]["isError"] is True


class TestPreview:
    def test_dry_run(self, tmp_path):
        f = tmp_path / "test.txt"
        f.write_text("hello\nworld\n")
        resps = mcp_call(init_msg(), tool_call(2, "hashline_preview", {
            "file": str(f),
            "edits": [{"insert_after": {"anchor": f"1:{line_hash('hello')}", "text": "there"}}],
        }))
        result = json.loads(tool_text(resps[1]))
        assert result["dry_run"] is True
        assert "+2 there" in result["diff"]
        assert f.read_text() == "hello\nworld\n"


class TestErrors:
    def test_unknown_tool(self):
        resps = mcp_call(init_msg(), tool_call(2, "nonexistent_tool", {}))
        assert resps[1]["error"]["code"] == -32601

    def test_unknown_method(self):
        resps = mcp_call(init_msg(), {"jsonrpc": "2.0", "id": 2, "method": "resources/list"})
        assert resps[1]["error"]["code"] == -32601

    def test_parse_error(self):
        resps = mcp_call(init_msg(), raw_lines=["{not json"])
        assert resps[1]["error"]["code"] == -32700

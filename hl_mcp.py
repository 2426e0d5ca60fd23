#!/usr/bin/env python3
"""Hashline MCP Server — Model Context Protocol server for anchor-based editing.

Exposes Hashline's read/edit capabilities as MCP tools that any compatible
AI agent can use. Runs over stdio using JSON-RPC 2.0.

Tools provided:
  - hashline_read: Read a file as LINE:HASH|content lines
  - hashline_edit: Apply a batch of anchor edits atomically
  - hashline_preview: Show the diff an edit batch would produce (dry run)

Usage:
  python hl_mcp.py          # stdio mode
  HASHLINE_DEBUG=1 python hl_mcp.py   # debug logs on stderr
"""

import json
import logging
import sys
from typing import Any

from hl import (
    EDIT_DESCRIPTION,
    EDIT_ITEM_SCHEMA,
    HashlineError,
    configure_logging,
    edit_file,
    edits_from_request,
    read_file,
    result_to_dict,
)

logger = logging.getLogger(__name__)

# MCP Protocol version
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "hashline"
SERVER_VERSION = "0.1.0"

_EDIT_INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "file": {
            "type": "string",
            "description": "Path to the file to edit",
        },
        "edits": {
            "type": "array",
            "description": "Edit operations using LINE:HASH anchors from hashline_read",
            "items": EDIT_ITEM_SCHEMA,
        },
    },
    "required": ["file", "edits"],
}

TOOLS = [
    {
        "name": "hashline_read",
        "description": (
            "Read a file. Every line is prefixed with LINE:HASH| so it can be "
            "referenced by hashline_edit. Use offset/limit for large files."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "file": {
                    "type": "string",
                    "description": "Path to the file to read",
                },
                "offset": {
                    "type": "integer",
                    "description": "Line number to start from (1-indexed)",
                },
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of lines to read",
                },
            },
            "required": ["file"],
        },
    },
    {
        "name": "hashline_edit",
        "description": EDIT_DESCRIPTION,
        "inputSchema": _EDIT_INPUT_SCHEMA,
    },
    {
        "name": "hashline_preview",
        "description": (
            "Validate an edit batch and return the diff it would produce, "
            "without modifying the file."
        ),
        "inputSchema": _EDIT_INPUT_SCHEMA,
    },
]


def make_response(id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": id, "result": result}


def make_error(id: Any, code: int, message: str, data: Any = None) -> dict:
    err = {"code": code, "message": message}
    if data is not None:
        err["data"] = data
    return {"jsonrpc": "2.0", "id": id, "error": err}


def tool_result(id: Any, payload: Any, is_error: bool = False) -> dict:
    text = payload if isinstance(payload, str) else json.dumps(payload, indent=2)
    return make_response(id, {
        "content": [{"type": "text", "text": text}],
        "isError": is_error,
    })


def handle_initialize(id: Any, params: dict) -> dict:
    return make_response(id, {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": {
            "tools": {},
        },
        "serverInfo": {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
        },
    })


def handle_tools_list(id: Any, params: dict) -> dict:
    return make_response(id, {"tools": TOOLS})


def _run_edit(id: Any, args: dict, dry_run: bool) -> dict:
    file_path = args.get("file")
    if not isinstance(file_path, str) or not file_path:
        return tool_result(id, {"status": "error", "error": "Missing required field: file"}, True)
    try:
        edits, warnings = edits_from_request(args)
    except HashlineError as e:
        return tool_result(id, {"status": "error", "file": file_path, "error": str(e)}, True)

    result = edit_file(file_path, edits, dry_run=dry_run)
    result.warnings = warnings + result.warnings
    rd = result_to_dict(result)
    if dry_run:
        rd["dry_run"] = True
    return tool_result(id, rd, result.status != "applied")


def handle_tool_call(id: Any, params: dict) -> dict:
    name = params.get("name", "")
    args = params.get("arguments", {}) or {}
    logger.debug("tools/call %s", name)

    if name == "hashline_read":
        file_path = args.get("file")
        if not isinstance(file_path, str) or not file_path:
            return tool_result(id, {"status": "error", "error": "Missing required field: file"}, True)
        try:
            text = read_file(file_path, offset=args.get("offset"), limit=args.get("limit"))
        except (OSError, ValueError) as e:
            return tool_result(id, {"status": "error", "file": file_path, "error": str(e)}, True)
        return tool_result(id, text)

    elif name == "hashline_edit":
        return _run_edit(id, args, dry_run=False)

    elif name == "hashline_preview":
        return _run_edit(id, args, dry_run=True)

    else:
        return make_error(id, -32601, f"Unknown tool: {name}")


HANDLERS = {
    "initialize": handle_initialize,
    "notifications/initialized": None,  # notification, no response
    "tools/list": handle_tools_list,
    "tools/call": handle_tool_call,
}


def run_stdio():
    """Main stdio loop — read JSON-RPC messages, dispatch, respond."""
    configure_logging()
    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            resp = make_error(None, -32700, "Parse error")
            sys.stdout.write(json.dumps(resp) + "\n")
            sys.stdout.flush()
            continue

        method = msg.get("method", "")
        id = msg.get("id")
        params = msg.get("params", {})

        handler = HANDLERS.get(method)
        if handler is None:
            if id is not None and method not in HANDLERS:
                resp = make_error(id, -32601, f"Method not found: {method}")
                sys.stdout.write(json.dumps(resp) + "\n")
                sys.stdout.flush()
            # notifications (no id) or known notification methods → no response
            continue

        resp = handler(id, params)
        sys.stdout.write(json.dumps(resp) + "\n")
        sys.stdout.flush()


if __name__ == "__main__":
    run_stdio()

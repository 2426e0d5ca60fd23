"""
Hashline Python Wrapper — importable API for anchor-based file editing.

Zero dependencies (like hl.py itself). Import and use directly:

    from hl_wrapper import Hashline

    hl = Hashline()
    print(hl.read("app.py"))                      # 1:3f|def hello(): ...
    result = hl.edit("app.py", [{"set_line": {"anchor": "1:3f", "new_text": "def greet():"}}])
    print(result.success, result.first_changed_line)
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import List, Optional

from hl import (
    DIFF_CONTEXT_LINES,
    EDIT_DESCRIPTION,
    EDIT_ITEM_SCHEMA,
    RELOCATION_WINDOW,
    HashlineError,
    edit_file,
    edits_from_request,
    line_hash,
    read_file,
)


@dataclass
class EditResponse:
    """Result of an edit batch."""
    success: bool
    file: str
    status: str = "applied"  # applied, mismatch, no_change, not_found, cancelled, error
    first_changed_line: Optional[int] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None
    diff: Optional[str] = None

    def to_dict(self) -> dict:
        d = {"success": self.success, "file": self.file, "status": self.status}
        if self.first_changed_line is not None:
            d["first_changed_line"] = self.first_changed_line
        if self.warnings:
            d["warnings"] = self.warnings
        if self.error:
            d["error"] = self.error
        if self.diff:
            d["diff"] = self.diff
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


class Hashline:
    """
    Hash-anchored file editing toolkit.

    Usage:
        hl = Hashline(window=20)
        text = hl.read("file.py")               # LINE:HASH|content lines
        result = hl.edit("file.py", edits)      # edits use anchors from text
        preview = hl.preview("file.py", edits)  # same, without writing
    """

    def __init__(self, window: int = RELOCATION_WINDOW, context_lines: int = DIFF_CONTEXT_LINES,
                 show_diff: bool = True):
        self.window = window
        self.context_lines = context_lines
        self.show_diff = show_diff

    def read(self, file: str, offset: Optional[int] = None, limit: Optional[int] = None) -> str:
        """
        Read a file as anchored lines.

        Args:
            file: Path to the file.
            offset: 1-based first line to show.
            limit: Maximum number of lines to show.

        Returns:
            ``LINE:HASH|content`` text, with a continuation hint if truncated.
        """
        return read_file(file, offset=offset, limit=limit)

    def edit(self, file: str, edits: List[dict], dry_run: bool = False, cancel=None,
             show_diff: Optional[bool] = None) -> EditResponse:
        """
        Apply a batch of anchor edits to a file atomically.

        Args:
            file: Path to the file to edit.
            edits: Edit operations, e.g. ``{"set_line": {"anchor": "4:1c", "new_text": "x"}}``.
            dry_run: Compute the result without writing it.
            cancel: Optional object with ``is_set()`` (e.g. threading.Event).
            show_diff: Include the rendered diff. Default from constructor.

        Returns:
            EditResponse; on a stale anchor ``status`` is "mismatch" and
            ``error`` holds refreshed anchors.
        """
        do_diff = show_diff if show_diff is not None else self.show_diff
        result = edit_file(file, edits, dry_run=dry_run, cancel=cancel,
                           window=self.window, context_lines=self.context_lines)
        ok = result.status == "applied"
        return EditResponse(
            success=ok,
            file=file,
            status=result.status,
            first_changed_line=result.first_changed_line,
            warnings=list(result.warnings),
            error=result.error,
            diff=result.diff if ok and do_diff else None,
        )

    def preview(self, file: str, edits: List[dict]) -> EditResponse:
        """Show the diff an edit batch would produce, without writing."""
        return self.edit(file, edits, dry_run=True, show_diff=True)

    def apply_request(self, request: dict, dry_run: bool = False) -> EditResponse:
        """
        Apply a tool-call style request: ``{"file": ..., "edits": [...]}``.

        The legacy ``{"file", "old_text", "new_text"}`` form is accepted too
        and reported back with a warning.
        """
        file = request.get("file") or request.get("path") or ""
        if not file:
            return EditResponse(success=False, file=file, status="error",
                                error="Missing required field: file")
        try:
            edits, warnings = edits_from_request(request)
        except HashlineError as e:
            return EditResponse(success=False, file=file, status="error", error=str(e))
        resp = self.edit(file, edits, dry_run=dry_run)
        resp.warnings = warnings + resp.warnings
        return resp

    @staticmethod
    def hash_line(line: str) -> str:
        """Anchor hash of a single line (whitespace-insensitive)."""
        return line_hash(line)

    # --- Tool definition for LLM APIs ---

    @staticmethod
    def _edit_parameters() -> dict:
        return {
            "type": "object",
            "properties": {
                "file": {"type": "string", "description": "Path to the file to edit"},
                "edits": {
                    "type": "array",
                    "description": "Edit operations using LINE:HASH anchors from the latest read",
                    "items": EDIT_ITEM_SCHEMA,
                },
            },
            "required": ["file", "edits"],
        }

    @staticmethod
    def anthropic_tool_schema() -> dict:
        """Return the Anthropic tool_use schema for the hashline edit tool."""
        return {
            "name": "edit_file",
            "description": EDIT_DESCRIPTION,
            "input_schema": Hashline._edit_parameters(),
        }

    @staticmethod
    def openai_function_schema() -> dict:
        """Return the OpenAI function calling schema for the hashline edit tool."""
        return {
            "type": "function",
            "function": {
                "name": "edit_file",
                "description": EDIT_DESCRIPTION,
                "parameters": Hashline._edit_parameters(),
            },
        }

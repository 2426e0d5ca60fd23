#!/usr/bin/env python3
"""Hashline — anchor-based line editing for LLM coding agents.

Every line of a file is addressed as ``LINE:HASH``, where HASH is a 2-char
digest of the line with all whitespace removed. Edits reference those anchors
instead of reproducing the text they replace, so an edit made against a stale
view of the file is either corrected (bounded relocation) or rejected with
fresh anchors. It is never applied to the wrong line.

Pipeline:
  1. Hash every line and index hash -> line numbers
  2. Parse and validate every anchor (relocate within ±20 lines)
  3. Repair each edit (merge detection, echo stripping, wrapped lines,
     indentation, confusable hyphens)
  4. Apply all anchor edits bottom-up in a single pass
  5. Apply fuzzy ``replace`` edits to the result

Exit codes: 0=applied, 1=error or no change, 2=stale anchors (hash mismatch)
"""

import argparse
import json
import logging
import os
import re
import sys
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

HASH_LEN = 2
HASH_MOD = 16 ** HASH_LEN  # 256
FNV_OFFSET = 0x811C9DC5
FNV_PRIME = 0x01000193

RELOCATION_WINDOW = 20
DIFF_CONTEXT_LINES = 4
DIFF_LOOKAHEAD = 50
REFORMAT_FACTOR = 4
MERGE_SLACK = 32
WRAP_MAX_LINES = 10
WRAP_MIN_CHARS = 6

LEGACY_INPUT_WARNING = (
    "Legacy top-level old_text/new_text input was normalized to "
    "edits[0].replace. Prefer the edits[] format."
)


class HashlineError(Exception):
    """Base class for every failure raised by the edit engine."""


class InvalidEditError(HashlineError):
    """Raised when an edit operation is structurally malformed."""


class InvalidReferenceError(HashlineError):
    """Raised when an anchor is not of the form ``LINE:HASH``."""

    def __init__(self, ref):
        self.ref = ref
        super().__init__(
            f'Invalid line reference "{ref}". Expected "LINE:HASH" (e.g. "5:ab").'
        )


class LineOutOfRangeError(HashlineError):
    """Raised when an anchor points outside the file."""

    def __init__(self, line: int, total: Optional[int] = None, ref: Optional[str] = None):
        self.line = line
        self.total = total
        if total is None:
            message = f'Line number must be >= 1, got {line} in "{ref}".'
        else:
            message = f"Line {line} does not exist (file has {total} lines)"
        super().__init__(message)


class RangeInvertedError(HashlineError):
    """Raised when a range's start anchor comes after its end anchor."""

    def __init__(self, start: int, end: int):
        self.start = start
        self.end = end
        super().__init__(f"Range start line {start} must be <= end line {end}")


class HashMismatchError(HashlineError):
    """Raised when one or more anchors no longer match the file.

    The message is a report with refreshed anchors around every affected
    line, so the caller can re-issue the batch without re-reading the file.
    """

    def __init__(self, mismatches: List["Mismatch"], file_lines: Sequence[str],
                 window: int = RELOCATION_WINDOW):
        self.mismatches = mismatches
        self.report = format_mismatch_report(mismatches, file_lines, window)
        super().__init__(self.report)


class ScopeChangedError(HashMismatchError):
    """Raised when relocating a range would change the number of lines it spans."""


class NoChangeError(HashlineError):
    """Raised when the whole batch leaves the content unchanged."""

    def __init__(self, message: str, noop_edits: Optional[List["NoopEdit"]] = None):
        self.noop_edits = noop_edits or []
        super().__init__(message)


class ReplaceNotFoundError(HashlineError):
    """Raised when a ``replace`` edit matches nothing, exactly or fuzzily."""

    def __init__(self, old_text: str):
        self.old_text = old_text
        super().__init__(f"Could not find text to replace: {old_text!r}")


class EditCancelledError(HashlineError):
    def __init__(self):
        super().__init__("Operation aborted")


def _check_cancelled(cancel) -> None:
    if cancel is not None and cancel.is_set():
        raise EditCancelledError()


# Hashing

_WHITESPACE_RE = re.compile(r'\s+')
_LEADING_WS_RE = re.compile(r'^\s*')


def strip_all_whitespace(text: str) -> str:
    """Remove every whitespace character, not only the leading/trailing ones."""
    return _WHITESPACE_RE.sub('', text)


def _fnv1_32(text: str) -> int:
    h = FNV_OFFSET
    for ch in text:
        h = (h * FNV_PRIME) & 0xFFFFFFFF
        h ^= ord(ch)
    return h


def line_hash(line: str) -> str:
    """Return the 2-char hex anchor hash of a single line.

    Whitespace is ignored entirely, so re-indenting or re-spacing a line
    keeps its hash. Collisions between different lines are expected; the
    line number paired with the hash disambiguates.
    """
    if line.endswith('\r'):
        line = line[:-1]
    return format(_fnv1_32(strip_all_whitespace(line)) % HASH_MOD, '02x')


def format_hashline(line_number: int, line: str) -> str:
    return f"{line_number}:{line_hash(line)}|{line}"


def format_hashlines(content: str, start_line: int = 1) -> str:
    """Render content as ``LINE:HASH|content`` lines.

    Example::

        1:3f|def hello():
        2:a0|    return "world"
    """
    return '\n'.join(
        format_hashline(num, line)
        for num, line in enumerate(content.split('\n'), start=start_line)
    )


# Anchor references

_REF_RE = re.compile(r'^(\d+):([0-9a-fA-F]{%d})$' % HASH_LEN)


@dataclass
class LineRef:
    """A parsed ``LINE:HASH`` anchor. ``line`` is rewritten on relocation."""
    line: int
    hash: str

    def __str__(self) -> str:
        return f"{self.line}:{self.hash}"


def parse_line_ref(ref: str) -> LineRef:
    """Parse ``"12:ab"`` (or an echoed ``"12:ab|content"``) into a LineRef."""
    if not isinstance(ref, str):
        raise InvalidReferenceError(ref)
    cleaned = ref.split('|', 1)[0].split('  ', 1)[0].strip()
    cleaned = re.sub(r'\s*:\s*', ':', cleaned, count=1)
    match = _REF_RE.match(cleaned)
    if not match:
        raise InvalidReferenceError(ref)
    line = int(match.group(1))
    if line < 1:
        raise LineOutOfRangeError(line, ref=ref)
    return LineRef(line=line, hash=match.group(2).lower())


# Edit operations

@dataclass
class SetLine:
    """Replace (or, with empty text, delete) a single line."""
    anchor: str
    new_text: str


@dataclass
class ReplaceLines:
    """Replace an inclusive range of lines."""
    start_anchor: str
    end_anchor: str
    new_text: str


@dataclass
class InsertAfter:
    """Insert zero or more lines after the anchored line."""
    anchor: str
    text: str = ''


@dataclass
class Replace:
    """Anchor-free substring replace, tolerant of quote/dash/space variants."""
    old_text: str
    new_text: str
    all: bool = False


EditOperation = Union[SetLine, ReplaceLines, InsertAfter, Replace]

EDIT_KINDS = {
    'set_line': SetLine,
    'replace_lines': ReplaceLines,
    'insert_after': InsertAfter,
    'replace': Replace,
}

EDIT_ITEM_SCHEMA = {
    "type": "object",
    "description": "Exactly one of set_line, replace_lines, insert_after, replace",
    "properties": {
        "set_line": {
            "type": "object",
            "properties": {
                "anchor": {"type": "string", "description": "LINE:HASH of the line"},
                "new_text": {"type": "string", "description": "Replacement; empty deletes the line"},
            },
            "required": ["anchor", "new_text"],
        },
        "replace_lines": {
            "type": "object",
            "properties": {
                "start_anchor": {"type": "string"},
                "end_anchor": {"type": "string"},
                "new_text": {"type": "string"},
            },
            "required": ["start_anchor", "end_anchor", "new_text"],
        },
        "insert_after": {
            "type": "object",
            "properties": {
                "anchor": {"type": "string"},
                "text": {"type": "string"},
            },
            "required": ["anchor", "text"],
        },
        "replace": {
            "type": "object",
            "properties": {
                "old_text": {"type": "string"},
                "new_text": {"type": "string"},
                "all": {"type": "boolean", "default": False},
            },
            "required": ["old_text", "new_text"],
        },
    },
}

EDIT_DESCRIPTION = (
    "Edit a file with hash-verified line references. Copy LINE:HASH anchors "
    "from the latest read output. Operations: set_line {anchor, new_text}, "
    "replace_lines {start_anchor, end_anchor, new_text}, insert_after "
    "{anchor, text}, replace {old_text, new_text, all?}. new_text is plain "
    "content (no hashes, no diff + markers). On a mismatch (>>> lines) use the "
    "refreshed anchors from the error. Edits are validated and applied "
    "bottom-up atomically."
)


def _require_str(body: dict, key: str, tag: str, index: int,
                 default: Optional[str] = None) -> str:
    value = body.get(key, default)
    if not isinstance(value, str):
        raise InvalidEditError(f"edits[{index}].{tag}.{key} must be a string.")
    return value


def parse_edit(item, index: int = 0) -> EditOperation:
    """Turn one request item into an edit operation.

    Items are dicts tagged with exactly one of ``set_line``,
    ``replace_lines``, ``insert_after`` or ``replace``. Already-built
    operations pass through unchanged.
    """
    if isinstance(item, (SetLine, ReplaceLines, InsertAfter, Replace)):
        return item
    if not isinstance(item, dict):
        raise InvalidEditError(
            f"edits[{index}] must be an object, got {type(item).__name__}."
        )
    if ('old_text' in item or 'new_text' in item) and 'replace' not in item:
        raise InvalidEditError(
            f"edits[{index}] has top-level 'old_text'/'new_text'. Use "
            "{replace: {old_text, new_text}} or {set_line}, {replace_lines}, {insert_after}."
        )
    if 'diff' in item:
        raise InvalidEditError(
            f"edits[{index}] contains 'diff' from patch mode. Hashline edit expects "
            "one of: {set_line}, {replace_lines}, {insert_after}, {replace}."
        )
    tags = [tag for tag in EDIT_KINDS if tag in item]
    if len(tags) != 1:
        raise InvalidEditError(
            f"edits[{index}] must contain exactly one of: 'set_line', 'replace_lines', "
            f"'insert_after', 'replace'. Got: [{', '.join(item)}]."
        )
    tag = tags[0]
    body = item[tag]
    if not isinstance(body, dict):
        raise InvalidEditError(f"edits[{index}].{tag} must be an object.")

    if tag == 'set_line':
        return SetLine(
            anchor=_require_str(body, 'anchor', tag, index),
            new_text=_require_str(body, 'new_text', tag, index),
        )
    if tag == 'replace_lines':
        return ReplaceLines(
            start_anchor=_require_str(body, 'start_anchor', tag, index),
            end_anchor=_require_str(body, 'end_anchor', tag, index),
            new_text=_require_str(body, 'new_text', tag, index),
        )
    if tag == 'insert_after':
        return InsertAfter(
            anchor=_require_str(body, 'anchor', tag, index),
            text=_require_str(body, 'text', tag, index, default=''),
        )
    replace_all = body.get('all', False)
    if not isinstance(replace_all, bool):
        raise InvalidEditError(f"edits[{index}].replace.all must be a boolean.")
    return Replace(
        old_text=_require_str(body, 'old_text', tag, index),
        new_text=_require_str(body, 'new_text', tag, index),
        all=replace_all,
    )


def edits_from_request(request: dict) -> Tuple[List[EditOperation], List[str]]:
    """Extract the edit batch from a tool request.

    A request without ``edits`` but with top-level ``old_text``/``new_text``
    (or ``oldText``/``newText``) is the legacy single-replace form; it is
    converted to one ``replace`` edit and a warning is returned alongside.
    """
    edits = request.get('edits')
    if edits is None:
        old_text = _first_str(request, 'old_text', 'oldText')
        new_text = _first_str(request, 'new_text', 'newText')
        if old_text is None and new_text is None:
            raise InvalidEditError("No edits provided.")
        if old_text is None or new_text is None:
            raise InvalidEditError(
                "Legacy edit input requires both old_text/new_text (or oldText/newText) "
                "when 'edits' is omitted."
            )
        replace_all = request.get('all')
        edit = Replace(old_text=old_text, new_text=new_text,
                       all=replace_all if isinstance(replace_all, bool) else False)
        return [edit], [LEGACY_INPUT_WARNING]

    if not isinstance(edits, list):
        raise InvalidEditError("'edits' must be an array of edit operations.")
    return [parse_edit(item, i) for i, item in enumerate(edits)], []


def _first_str(data: dict, *keys: str) -> Optional[str]:
    for key in keys:
        if isinstance(data.get(key), str):
            return data[key]
    return None


# Replacement text normalization

HASHLINE_PREFIX_RE = re.compile(r'^\d+:[0-9a-zA-Z]{1,16}\|')
DIFF_PLUS_RE = re.compile(r'^\+(?!\+)')


def split_new_text(text: str) -> List[str]:
    """Split replacement text into lines. The empty string is zero lines."""
    text = text.replace('\r\n', '\n')
    return [] if text == '' else text.split('\n')


def strip_echoed_prefixes(lines: Sequence[str]) -> List[str]:
    """Drop ``LINE:HASH|`` or diff ``+`` prefixes echoed back from earlier output.

    A prefix is stripped only when it covers at least half of the non-empty
    lines. Hash prefixes win over ``+`` markers; ``++`` is never touched.
    """
    hash_count = plus_count = non_empty = 0
    for line in lines:
        if not line:
            continue
        non_empty += 1
        if HASHLINE_PREFIX_RE.match(line):
            hash_count += 1
        if DIFF_PLUS_RE.match(line):
            plus_count += 1

    if not non_empty:
        return list(lines)
    if hash_count and hash_count >= non_empty * 0.5:
        return [HASHLINE_PREFIX_RE.sub('', line, count=1) for line in lines]
    if plus_count and plus_count >= non_empty * 0.5:
        return [DIFF_PLUS_RE.sub('', line, count=1) for line in lines]
    return list(lines)


# Line index and validation

@dataclass(frozen=True)
class LineIndex:
    """Per-call lookup tables built from one snapshot of the file."""
    hashes: Tuple[str, ...]
    by_hash: Dict[str, Tuple[int, ...]]
    # whitespace-free line -> (first original line, occurrence count)
    canonical: Dict[str, Tuple[str, int]]

    @classmethod
    def build(cls, lines: Sequence[str], cancel=None) -> "LineIndex":
        hashes = []
        by_hash: Dict[str, List[int]] = {}
        canonical: Dict[str, Tuple[str, int]] = {}
        for number, line in enumerate(lines, start=1):
            _check_cancelled(cancel)
            h = line_hash(line)
            hashes.append(h)
            by_hash.setdefault(h, []).append(number)
            canon = strip_all_whitespace(line)
            first, count = canonical.get(canon, (line, 0))
            canonical[canon] = (first, count + 1)
        return cls(
            hashes=tuple(hashes),
            by_hash={h: tuple(nums) for h, nums in by_hash.items()},
            canonical=canonical,
        )

    def find_relocation(self, expected: str, hint: int,
                        window: int = RELOCATION_WINDOW) -> Optional[int]:
        """Return the only line within ±window of hint carrying the hash, if any."""
        low = max(1, hint - window)
        high = min(len(self.hashes), hint + window)
        in_window = [n for n in self.by_hash.get(expected, ()) if low <= n <= high]
        return in_window[0] if len(in_window) == 1 else None


@dataclass
class Mismatch:
    line: int
    expected: str
    actual: str
    scope_changed: bool = False


def format_mismatch_report(mismatches: Sequence[Mismatch], file_lines: Sequence[str],
                           window: int = RELOCATION_WINDOW) -> str:
    """Describe stale anchors with fresh ``LINE:HASH`` refs (±2 lines of context)."""
    marked = {m.line for m in mismatches}
    shown = set()
    for line in marked:
        shown.update(range(max(1, line - 2), min(len(file_lines), line + 2) + 1))

    count = len(marked)
    summary = (
        f"{count} line{'s have' if count > 1 else ' has'} changed since last read. "
        f"Auto-relocation checks only within ±{window} lines of each anchor. "
        "Use the updated LINE:HASH references shown below (>>> marks changed lines)."
    )
    if any(m.scope_changed for m in mismatches):
        summary += " A relocated range would have changed size, so it was not applied."
    out = [summary, ""]

    prev = None
    for num in sorted(shown):
        if prev is not None and num > prev + 1:
            out.append("    ...")
        prev = num
        marker = ">>> " if num in marked else "    "
        out.append(marker + format_hashline(num, file_lines[num - 1]))
    return '\n'.join(out)


@dataclass
class _AnchorEdit:
    index: int
    kind: str  # "single", "range" or "insert"
    start: LineRef
    end: LineRef  # the same object as start unless kind == "range"
    lines: List[str]

    @property
    def location(self) -> str:
        return str(self.start)


def _parse_anchor_edit(edit: EditOperation, index: int) -> _AnchorEdit:
    if isinstance(edit, SetLine):
        ref = parse_line_ref(edit.anchor)
        return _AnchorEdit(index, 'single', ref, ref,
                           strip_echoed_prefixes(split_new_text(edit.new_text)))
    if isinstance(edit, ReplaceLines):
        start = parse_line_ref(edit.start_anchor)
        end = parse_line_ref(edit.end_anchor)
        lines = strip_echoed_prefixes(split_new_text(edit.new_text))
        if start.line == end.line:
            return _AnchorEdit(index, 'single', start, start, lines)
        return _AnchorEdit(index, 'range', start, end, lines)
    if isinstance(edit, InsertAfter):
        ref = parse_line_ref(edit.anchor)
        return _AnchorEdit(index, 'insert', ref, ref,
                           strip_echoed_prefixes(split_new_text(edit.text)))
    raise InvalidEditError("replace edits are applied after anchor edits")


def _validate_edits(edits: Sequence[_AnchorEdit], file_lines: Sequence[str],
                    index: LineIndex, window: int, cancel=None) -> List[str]:
    """Check every anchor against the file, relocating where unambiguous.

    All mismatches are collected and raised together. Returns the
    relocation notes as warnings.
    """
    mismatches: List[Mismatch] = []
    notes: Dict[str, None] = {}

    def check(ref: LineRef) -> bool:
        if ref.line > len(file_lines):
            raise LineOutOfRangeError(ref.line, len(file_lines))
        actual = index.hashes[ref.line - 1]
        if actual == ref.hash:
            return True
        relocated = index.find_relocation(ref.hash, ref.line, window)
        if relocated is not None:
            note = (f"Auto-relocated anchor {ref.line}:{ref.hash} -> "
                    f"{relocated}:{ref.hash} (window ±{window}).")
            logger.debug(note)
            notes[note] = None
            ref.line = relocated
            return True
        mismatches.append(Mismatch(ref.line, ref.hash, actual))
        return False

    for edit in edits:
        _check_cancelled(cancel)
        if edit.kind != 'range':
            check(edit.start)
            continue

        if edit.start.line > edit.end.line:
            raise RangeInvertedError(edit.start.line, edit.end.line)
        orig_start, orig_end = edit.start.line, edit.end.line
        start_ok = check(edit.start)
        end_ok = check(edit.end)
        if start_ok and end_ok and edit.end.line - edit.start.line != orig_end - orig_start:
            edit.start.line, edit.end.line = orig_start, orig_end
            mismatches.append(Mismatch(orig_start, edit.start.hash,
                                       index.hashes[orig_start - 1], scope_changed=True))
            mismatches.append(Mismatch(orig_end, edit.end.hash,
                                       index.hashes[orig_end - 1], scope_changed=True))

    if mismatches:
        if all(m.scope_changed for m in mismatches):
            raise ScopeChangedError(mismatches, file_lines, window)
        raise HashMismatchError(mismatches, file_lines, window)
    return list(notes)


def _touched_lines(edits: Sequence[_AnchorEdit]) -> FrozenSet[int]:
    touched = set()
    for edit in edits:
        touched.update(range(edit.start.line, edit.end.line + 1))
    return frozenset(touched)


def _dedupe(edits: Sequence[_AnchorEdit]) -> List[_AnchorEdit]:
    seen = set()
    out = []
    for edit in edits:
        key = (edit.kind, edit.start.line, edit.end.line, '\n'.join(edit.lines))
        if key in seen:
            logger.debug("Dropping duplicate edit %d at %s", edit.index, edit.location)
            continue
        seen.add(key)
        out.append(edit)
    return out


# Repair heuristics. Each takes immutable input and returns a new list.

_CONTINUATION_RE = re.compile(r'(?:&&|\|\||\?\?|\?|:|=|,|\+|-|\*|/|\.|\()\s*$')
_MERGE_OPERATORS_RE = re.compile(r'[|&?]')
CONFUSABLE_HYPHENS_RE = re.compile("[\u2010\u2011\u2012\u2013\u2014\u2212\ufe63\uff0d]")


@dataclass(frozen=True)
class Splice:
    """Delete ``delete`` lines starting at 1-based ``start``, insert ``lines`` there."""
    start: int
    delete: int
    lines: Tuple[str, ...]


def strip_continuation_tokens(text: str) -> str:
    return _CONTINUATION_RE.sub('', text, count=1)


def ws_equal(a: str, b: str) -> bool:
    return a == b or strip_all_whitespace(a) == strip_all_whitespace(b)


def _leading_whitespace(line: str) -> str:
    return _LEADING_WS_RE.match(line).group(0)


def detect_line_merge(file_lines: Sequence[str], line: int, new_lines: Sequence[str],
                      touched: FrozenSet[int] = frozenset()) -> Optional[Splice]:
    """Detect a one-line replacement that absorbed a continuation neighbour.

    ``a = f(x,`` / ``y)`` replaced by ``a = f(x, y)`` on the first line should
    remove both lines, not leave ``y)`` dangling. Neighbours that are the
    target of another edit in the batch are never merged.
    """
    if len(new_lines) != 1 or not 1 <= line <= len(file_lines):
        return None
    new_line = new_lines[0]
    new_canon = strip_all_whitespace(new_line)
    orig_canon = strip_all_whitespace(file_lines[line - 1])
    if not new_canon or not orig_canon:
        return None
    orig_match = strip_continuation_tokens(orig_canon)

    # replacement absorbed the next line
    if (len(orig_match) < len(orig_canon) and line < len(file_lines)
            and line + 1 not in touched):
        next_canon = strip_all_whitespace(file_lines[line])
        a = new_canon.find(orig_match)
        b = new_canon.find(next_canon) if next_canon else -1
        if (a != -1 and b != -1 and a < b
                and len(new_canon) <= len(orig_canon) + len(next_canon) + MERGE_SLACK):
            return Splice(line, 2, (new_line,))

    # replacement absorbed the previous line
    if line > 1 and line - 1 not in touched:
        prev_canon = strip_all_whitespace(file_lines[line - 2])
        prev_match = strip_continuation_tokens(prev_canon)
        if len(prev_match) < len(prev_canon):
            haystack = _MERGE_OPERATORS_RE.sub('', new_canon)
            a = haystack.find(_MERGE_OPERATORS_RE.sub('', prev_match))
            b = haystack.find(_MERGE_OPERATORS_RE.sub('', orig_canon))
            if (a != -1 and b != -1 and a < b
                    and len(new_canon) <= len(prev_canon) + len(orig_canon) + MERGE_SLACK):
                return Splice(line - 1, 2, (new_line,))
    return None


def strip_boundary_echo(file_lines: Sequence[str], start: int, end: int,
                        new_lines: Sequence[str]) -> List[str]:
    """Drop a first/last replacement line that repeats the line just outside the span."""
    out = list(new_lines)
    if len(out) <= 1 or len(out) <= end - start + 1:
        return out
    if start >= 2 and _echoes(out[0], file_lines[start - 2]):
        out = out[1:]
    if end < len(file_lines) and out and _echoes(out[-1], file_lines[end]):
        out = out[:-1]
    return out


def strip_insert_echo(anchor_line: str, new_lines: Sequence[str]) -> List[str]:
    """Drop a leading copy of the anchor line from inserted text."""
    if len(new_lines) > 1 and _echoes(new_lines[0], anchor_line):
        return list(new_lines[1:])
    return list(new_lines)


def _echoes(candidate: str, boundary: str) -> bool:
    # blank lines are too common to count as an echo
    return bool(boundary.strip()) and ws_equal(candidate, boundary)


def restore_wrapped_lines(new_lines: Sequence[str], canonical: Dict[str, Tuple[str, int]],
                          cancel=None) -> List[str]:
    """Collapse runs of 2-10 lines back into the single original line they re-wrap.

    A run qualifies when its whitespace-free concatenation equals a line
    that occurs exactly once in the original file and is at least
    WRAP_MIN_CHARS long. Runs that match more than once, or that overlap
    an earlier run, are left alone.
    """
    if len(new_lines) < 2 or not canonical:
        return list(new_lines)

    candidates = []
    for start in range(len(new_lines)):
        _check_cancelled(cancel)
        if not new_lines[start].strip():
            continue
        for length in range(2, WRAP_MAX_LINES + 1):
            if start + length > len(new_lines):
                break
            if not new_lines[start + length - 1].strip():
                continue
            canon = strip_all_whitespace(''.join(new_lines[start:start + length]))
            original, count = canonical.get(canon, ('', 0))
            if count == 1 and len(canon) >= WRAP_MIN_CHARS:
                candidates.append((start, length, original, canon))
    if not candidates:
        return list(new_lines)

    uses = Counter(canon for _, _, _, canon in candidates)
    chosen = []
    covered_until = 0
    for start, length, original, canon in candidates:
        if uses[canon] != 1 or start < covered_until:
            continue
        chosen.append((start, length, original))
        covered_until = start + length

    out = list(new_lines)
    for start, length, original in reversed(chosen):
        logger.debug("Restoring wrapped line: %r", original)
        out[start:start + length] = [original]
    return out


def restore_indentation(old_lines: Sequence[str], new_lines: Sequence[str]) -> List[str]:
    """Give unindented replacement lines the indentation of the line they replace."""
    if len(old_lines) != len(new_lines):
        return list(new_lines)
    out = []
    for template, line in zip(old_lines, new_lines):
        if line and not _leading_whitespace(line):
            line = _leading_whitespace(template) + line
        out.append(line)
    return out


def normalize_confusable_hyphens(old_lines: Sequence[str], new_lines: Sequence[str]) -> List[str]:
    """Map Unicode dashes to ``-`` when that is the only difference from the original."""
    if not any(CONFUSABLE_HYPHENS_RE.search(line) for line in old_lines):
        return list(new_lines)
    normalized = [CONFUSABLE_HYPHENS_RE.sub('-', line) for line in new_lines]
    if normalized == [CONFUSABLE_HYPHENS_RE.sub('-', line) for line in old_lines]:
        return normalized
    return list(new_lines)


def _resolve_edit(edit: _AnchorEdit, file_lines: Sequence[str], index: LineIndex,
                  touched: FrozenSet[int], cancel=None) -> Optional[Splice]:
    """Run the repair pipeline for one edit. None means the edit is a no-op."""
    if edit.kind == 'insert':
        inserted = strip_insert_echo(file_lines[edit.start.line - 1], edit.lines)
        if not inserted:
            return None
        return Splice(edit.start.line + 1, 0, tuple(inserted))

    if edit.kind == 'single':
        merged = detect_line_merge(file_lines, edit.start.line, edit.lines, touched)
        if merged is not None:
            old = file_lines[merged.start - 1:merged.start - 1 + merged.delete]
            new = restore_indentation(old[:1], merged.lines)
            new = normalize_confusable_hyphens(old, new)
            logger.debug("Edit %d merges lines %d-%d", edit.index,
                         merged.start, merged.start + 1)
            return Splice(merged.start, merged.delete, tuple(new))

    start, end = edit.start.line, edit.end.line
    old = list(file_lines[start - 1:end])
    new = strip_boundary_echo(file_lines, start, end, edit.lines)
    new = restore_wrapped_lines(new, index.canonical, cancel)
    new = restore_indentation(old, new)
    new = normalize_confusable_hyphens(old, new)
    if new == old:
        return None
    return Splice(start, end - start + 1, tuple(new))


# Applier

@dataclass
class NoopEdit:
    """An edit whose repaired replacement equals what is already there."""
    edit_index: int
    location: str
    current_content: str


@dataclass
class AnchorResult:
    content: str
    first_changed_line: Optional[int] = None
    warnings: List[str] = field(default_factory=list)
    noop_edits: List[NoopEdit] = field(default_factory=list)


def count_changed_lines(old_lines: Sequence[str], new_lines: Sequence[str]) -> int:
    changed = abs(len(new_lines) - len(old_lines))
    changed += sum(1 for a, b in zip(old_lines, new_lines) if a != b)
    return changed


def _insert_position(anchor: int, applied: Sequence[Splice]) -> int:
    """Where text inserted after ``anchor`` goes once same-line edits are applied.

    If an applied splice replaced the anchor line, the text lands below that
    splice's new lines. A merge that absorbed the following line counts too.
    """
    for splice in reversed(applied):
        if splice.start <= anchor < splice.start + splice.delete:
            return splice.start + len(splice.lines)
    return anchor + 1


def apply_anchor_edits(content: str, edits: Sequence, cancel=None,
                       window: int = RELOCATION_WINDOW) -> AnchorResult:
    """Apply every anchor-based edit in the batch to content in one pass.

    ``Replace`` operations in the batch are skipped here (see
    apply_replacements). Edit indices in no-op records refer to positions in
    ``edits``. Raises before touching anything if any anchor is invalid.
    """
    _check_cancelled(cancel)
    ops = [parse_edit(item, i) for i, item in enumerate(edits)]
    anchor_ops = [(i, op) for i, op in enumerate(ops) if not isinstance(op, Replace)]
    if not anchor_ops:
        return AnchorResult(content=content)

    file_lines = tuple(content.split('\n'))
    parsed = [_parse_anchor_edit(op, i) for i, op in anchor_ops]
    index = LineIndex.build(file_lines, cancel)
    warnings = _validate_edits(parsed, file_lines, index, window, cancel)
    touched = _touched_lines(parsed)

    planned = []
    noop_edits = []
    for edit in _dedupe(parsed):
        _check_cancelled(cancel)
        splice = _resolve_edit(edit, file_lines, index, touched, cancel)
        if splice is None:
            if edit.kind == 'insert':
                current = file_lines[edit.start.line - 1]
            else:
                current = '\n'.join(file_lines[edit.start.line - 1:edit.end.line])
            logger.debug("Edit %d at %s is a no-op", edit.index, edit.location)
            noop_edits.append(NoopEdit(edit.index, edit.location, current))
            continue
        planned.append((edit, splice))

    # Bottom-up, so pending edits keep valid line numbers. Inserts follow
    # same-line edits; batch order breaks remaining ties.
    planned.sort(key=lambda p: (-p[0].start.line, p[0].kind == "insert", p[0].index))

    new_lines = list(file_lines)
    first_changed = None
    applied: List[Splice] = []
    for edit, splice in planned:
        _check_cancelled(cancel)
        start = splice.start
        if edit.kind == 'insert':
            start = _insert_position(edit.start.line, applied)
        else:
            applied.append(splice)
        new_lines[start - 1:start - 1 + splice.delete] = splice.lines
        if first_changed is None or start < first_changed:
            first_changed = start

    changed = count_changed_lines(file_lines, new_lines)
    if changed > len(ops) * REFORMAT_FACTOR:
        warnings.append(
            f"Edit changed {changed} lines across {len(ops)} operations — "
            "verify no unintended reformatting."
        )

    return AnchorResult(
        content='\n'.join(new_lines),
        first_changed_line=first_changed,
        warnings=warnings,
        noop_edits=noop_edits,
    )


# Fuzzy replace

SINGLE_QUOTES_RE = re.compile("[\u2018\u2019\u201a\u201b]")
DOUBLE_QUOTES_RE = re.compile("[\u201c\u201d\u201e\u201f]")
DASHES_RE = re.compile("[\u2010-\u2015\u2212]")
UNICODE_SPACES_RE = re.compile("[\u00a0\u2002-\u200a\u202f\u205f\u3000]")


def normalize_punctuation(text: str) -> str:
    """Map curly quotes, Unicode dashes and exotic spaces to ASCII."""
    text = SINGLE_QUOTES_RE.sub("'", text)
    text = DOUBLE_QUOTES_RE.sub('"', text)
    text = DASHES_RE.sub('-', text)
    return UNICODE_SPACES_RE.sub(' ', text)


def normalize_for_match(text: str) -> str:
    return normalize_punctuation('\n'.join(line.rstrip() for line in text.split('\n')))


def build_normalized_with_map(text: str) -> Tuple[str, List[int]]:
    """Normalize text like normalize_for_match, keeping each char's original offset."""
    chars: List[str] = []
    index_map: List[int] = []
    lines = text.split('\n')
    offset = 0
    for i, line in enumerate(lines):
        for j, ch in enumerate(line.rstrip()):
            chars.append(normalize_punctuation(ch))
            index_map.append(offset + j)
        if i < len(lines) - 1:
            chars.append('\n')
            index_map.append(offset + len(line))
        offset += len(line) + 1
    return ''.join(chars), index_map


def _map_span(index_map: List[int], start: int, length: int) -> Optional[Tuple[int, int]]:
    if start < 0 or length <= 0 or start + length > len(index_map):
        return None
    first = index_map[start]
    last = index_map[start + length - 1]
    if last < first:
        return None
    return first, last + 1


def find_text(content: str, old_text: str) -> Optional[Tuple[int, int]]:
    """Locate old_text in content: exact first, then punctuation-normalized."""
    idx = content.find(old_text)
    if idx != -1:
        return idx, idx + len(old_text)
    needle = normalize_for_match(old_text)
    if not needle:
        return None
    normalized, index_map = build_normalized_with_map(content)
    pos = normalized.find(needle)
    if pos == -1:
        return None
    return _map_span(index_map, pos, len(needle))


def replace_text(content: str, old_text: str, new_text: str,
                 all: bool = False) -> Tuple[str, int]:
    """Replace old_text in content. Returns (new_content, replacement_count)."""
    if not old_text:
        return content, 0
    new_text = new_text.replace('\r\n', '\n')

    if not all:
        span = find_text(content, old_text)
        if span is None:
            return content, 0
        start, end = span
        return content[:start] + new_text + content[end:], 1

    exact = content.count(old_text)
    if exact:
        return content.replace(old_text, new_text), exact

    needle = normalize_for_match(old_text)
    if not needle:
        return content, 0
    normalized, index_map = build_normalized_with_map(content)
    spans: List[Tuple[int, int]] = []
    pos = normalized.find(needle)
    while pos != -1:
        span = _map_span(index_map, pos, len(needle))
        if span and (not spans or span[0] >= spans[-1][1]):
            spans.append(span)
        pos = normalized.find(needle, pos + len(needle))

    for start, end in reversed(spans):
        content = content[:start] + new_text + content[end:]
    return content, len(spans)


def apply_replacements(content: str, edits: Sequence, cancel=None) -> Tuple[str, int]:
    """Apply the batch's ``Replace`` operations in order. Each must match."""
    total = 0
    for i, item in enumerate(edits):
        edit = parse_edit(item, i)
        if not isinstance(edit, Replace):
            continue
        _check_cancelled(cancel)
        if not edit.old_text:
            raise InvalidEditError("replace.old_text must not be empty.")
        content, count = replace_text(content, edit.old_text, edit.new_text, all=edit.all)
        if not count:
            raise ReplaceNotFoundError(edit.old_text)
        total += count
    return content, total


# Diff rendering (display only; never drives mutation)

@dataclass
class DiffEntry:
    kind: str  # "same", "add" or "remove"
    text: str
    old_line: int
    new_line: int


def _find_resync(old_lines: Sequence[str], new_lines: Sequence[str], oi: int, ni: int,
                 lookahead: int) -> Optional[Tuple[int, int]]:
    """Nearest pair of equal lines past ``(oi, ni)``, cheapest skip first.

    Every split of ``skip_old + skip_new`` with each side at most ``lookahead``
    is tried, so one divergence costs O(lookahead**2) comparisons (about
    2500 at the default of 50). Returns None when no pair is in reach.
    """
    n_old, n_new = len(old_lines), len(new_lines)
    max_look = min(lookahead, max(n_old - oi, n_new - ni))
    for cost in range(1, 2 * max_look + 1):
        # pure removal, then pure addition, then a replaced block
        splits = [(cost, 0), (0, cost)] + [(k, cost - k) for k in range(1, cost)]
        for skip_old, skip_new in splits:
            if skip_old > max_look or skip_new > max_look:
                continue
            o, n = oi + skip_old, ni + skip_new
            if o < n_old and n < n_new and old_lines[o] == new_lines[n]:
                return o, n
    return None


def diff_lines(old_lines: Sequence[str], new_lines: Sequence[str],
               lookahead: int = DIFF_LOOKAHEAD) -> List[DiffEntry]:
    """Greedy line diff: walk both sides, resynchronising at the nearest match.

    Not a minimal edit script. When nothing within ``lookahead`` lines
    matches, the rest of both sides is emitted as one removal block followed
    by one addition block. Each resync searches at most ``lookahead`` lines on
    either side, so the worst case is O(lookahead**2) comparisons per
    divergence.
    """
    result: List[DiffEntry] = []
    oi = ni = 0
    n_old, n_new = len(old_lines), len(new_lines)

    while oi < n_old or ni < n_new:
        if oi < n_old and ni < n_new and old_lines[oi] == new_lines[ni]:
            result.append(DiffEntry('same', old_lines[oi], oi + 1, ni + 1))
            oi += 1
            ni += 1
            continue

        sync = _find_resync(old_lines, new_lines, oi, ni, lookahead)
        stop_old, stop_new = sync if sync is not None else (n_old, n_new)
        while oi < stop_old:
            result.append(DiffEntry('remove', old_lines[oi], oi + 1, ni + 1))
            oi += 1
        while ni < stop_new:
            result.append(DiffEntry('add', new_lines[ni], oi + 1, ni + 1))
            ni += 1

    return result


def generate_diff(old_content: str, new_content: str,
                  context_lines: int = DIFF_CONTEXT_LINES,
                  lookahead: int = DIFF_LOOKAHEAD) -> Tuple[str, Optional[int]]:
    """Render a compact numbered diff. Returns (diff_text, first_changed_line)."""
    old_lines = old_content.split('\n')
    new_lines = new_content.split('\n')
    width = len(str(max(len(old_lines), len(new_lines))))
    entries = diff_lines(old_lines, new_lines, lookahead)

    visible = [False] * len(entries)
    for i, entry in enumerate(entries):
        if entry.kind != 'same':
            for j in range(max(0, i - context_lines), min(len(entries), i + context_lines + 1)):
                visible[j] = True

    out = []
    first_changed = None
    prev_shown = False
    for i, entry in enumerate(entries):
        if not visible[i]:
            prev_shown = False
            continue
        if not prev_shown and i > 0:
            out.append(f" {'':>{width}} ...")
        prev_shown = True

        if entry.kind == 'remove':
            if first_changed is None:
                first_changed = entry.new_line
            out.append(f"-{entry.old_line:>{width}} {entry.text}")
        elif entry.kind == 'add':
            if first_changed is None:
                first_changed = entry.new_line
            out.append(f"+{entry.new_line:>{width}} {entry.text}")
        else:
            out.append(f" {entry.old_line:>{width}} {entry.text}")

    return '\n'.join(out), first_changed


# Batch entry point

@dataclass
class EditResult:
    content: str
    diff: str = ''
    first_changed_line: Optional[int] = None
    warnings: List[str] = field(default_factory=list)
    noop_edits: List[NoopEdit] = field(default_factory=list)
    replacements: int = 0


def _no_change_message(content: str, ops: Sequence[EditOperation],
                       noop_edits: Sequence[NoopEdit]) -> str:
    message = "No changes made. The edits produced identical content."
    if noop_edits:
        for noop in noop_edits:
            message += (
                f"\nEdit {noop.edit_index}: replacement for {noop.location} is identical "
                f"to current content:\n  {noop.location}| {noop.current_content}"
            )
        return message + "\nRe-read the file to see the current state."

    lines = content.split('\n')
    preview: Dict[str, None] = {}
    for op in ops:
        if isinstance(op, SetLine):
            anchors = [op.anchor]
        elif isinstance(op, ReplaceLines):
            anchors = [op.start_anchor, op.end_anchor]
        elif isinstance(op, InsertAfter):
            anchors = [op.anchor]
        else:
            continue
        for anchor in anchors:
            try:
                ref = parse_line_ref(anchor)
            except HashlineError:
                continue
            if ref.line <= len(lines):
                preview[format_hashline(ref.line, lines[ref.line - 1])] = None
    if preview:
        message += (
            "\nThe file currently contains:\n" + '\n'.join(list(preview)[:5]) +
            "\nYour edits were normalized back to the original content. "
            "Ensure your replacement changes actual code, not just formatting."
        )
    return message


def apply_edits(content: str, edits: Sequence, cancel=None,
                window: int = RELOCATION_WINDOW,
                context_lines: int = DIFF_CONTEXT_LINES) -> EditResult:
    """Apply a batch of edits to content and return the new text plus a diff.

    ``content`` must already use ``\\n`` line endings and carry no BOM.
    Anchor edits are applied first, all at once; ``replace`` edits follow
    in batch order on the result. Any failure leaves nothing applied.
    """
    _check_cancelled(cancel)
    ops = [parse_edit(item, i) for i, item in enumerate(edits)]
    if not ops:
        raise InvalidEditError("No edits provided.")

    anchored = apply_anchor_edits(content, ops, cancel, window)
    result, replacements = apply_replacements(anchored.content, ops, cancel)
    if result == content:
        raise NoChangeError(_no_change_message(result, ops, anchored.noop_edits),
                            anchored.noop_edits)

    _check_cancelled(cancel)
    diff, diff_first = generate_diff(content, result, context_lines)
    first_changed = anchored.first_changed_line
    if first_changed is None:
        first_changed = diff_first
    return EditResult(
        content=result,
        diff=diff,
        first_changed_line=first_changed,
        warnings=list(anchored.warnings),
        noop_edits=list(anchored.noop_edits),
        replacements=replacements,
    )


# File helpers

def strip_bom(text: str) -> Tuple[str, str]:
    """Split off a leading byte-order mark. Returns (bom, text)."""
    if text.startswith('\ufeff'):
        return '\ufeff', text[1:]
    return '', text


def detect_line_ending(text: str) -> str:
    crlf = text.find('\r\n')
    lf = text.find('\n')
    if lf == -1 or crlf == -1:
        return '\n'
    return '\r\n' if crlf < lf else '\n'


def normalize_to_lf(text: str) -> str:
    return text.replace('\r\n', '\n').replace('\r', '\n')


def restore_line_endings(text: str, ending: str) -> str:
    return text.replace('\n', '\r\n') if ending == '\r\n' else text


def _read_text(file_path: str) -> str:
    with open(file_path, 'rb') as f:
        return f.read().decode('utf-8', errors='replace')


def read_file(file_path: str, offset: Optional[int] = None,
              limit: Optional[int] = None) -> str:
    """Return the file as ``LINE:HASH|content`` lines.

    ``offset`` is the 1-based first line to show, ``limit`` the maximum
    number of lines. A hint is appended when the window stops short of EOF.
    Raises ValueError for a non-integer or non-positive offset/limit and
    OSError if the file cannot be read.
    """
    for name, value in (("offset", offset), ("limit", limit)):
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        if value < 1:
            raise ValueError(f"{name} must be >= 1, got {value}")
    if os.path.isdir(file_path):
        raise IsADirectoryError(f"Path is a directory: {file_path}")
    text = normalize_to_lf(strip_bom(_read_text(file_path))[1])
    lines = text.split('\n')
    total = len(lines)

    start = offset or 1
    if start > total:
        raise ValueError(f"Offset {start} is beyond end of file ({total} lines total)")
    end = min(start - 1 + limit, total) if limit else total
    body = '\n'.join(format_hashline(num, line)
                     for num, line in enumerate(lines[start - 1:end], start=start))
    if end < total:
        body += f"\n\n[Showing lines {start}-{end} of {total}. Use offset={end + 1} to continue.]"
    return body


@dataclass
class FileEditResult:
    status: str  # "applied", "mismatch", "no_change", "not_found", "cancelled", "error"
    file: str
    diff: Optional[str] = None
    first_changed_line: Optional[int] = None
    warnings: List[str] = field(default_factory=list)
    noop_edits: List[NoopEdit] = field(default_factory=list)
    error: Optional[str] = None


def _status_for(error: HashlineError) -> str:
    if isinstance(error, HashMismatchError):
        return "mismatch"
    if isinstance(error, NoChangeError):
        return "no_change"
    if isinstance(error, ReplaceNotFoundError):
        return "not_found"
    if isinstance(error, EditCancelledError):
        return "cancelled"
    return "error"


def edit_file(file_path: str, edits: Sequence, dry_run: bool = False, cancel=None,
              window: int = RELOCATION_WINDOW,
              context_lines: int = DIFF_CONTEXT_LINES) -> FileEditResult:
    """Apply an edit batch to a file, preserving its BOM and line endings.

    Nothing is written when the batch fails or ``dry_run`` is set.
    """
    try:
        raw = _read_text(file_path)
    except FileNotFoundError:
        return FileEditResult(status="error", file=file_path,
                              error=f"File not found: {file_path}")
    except OSError as e:
        return FileEditResult(status="error", file=file_path, error=str(e))

    bom, text = strip_bom(raw)
    ending = detect_line_ending(text)
    original = normalize_to_lf(text)

    try:
        result = apply_edits(original, edits, cancel=cancel, window=window,
                             context_lines=context_lines)
        if not dry_run:
            _check_cancelled(cancel)
            with open(file_path, 'wb') as f:
                f.write((bom + restore_line_endings(result.content, ending)).encode('utf-8'))
    except HashlineError as e:
        noops = e.noop_edits if isinstance(e, NoChangeError) else []
        return FileEditResult(status=_status_for(e), file=file_path, error=str(e),
                              noop_edits=list(noops))
    except OSError as e:
        return FileEditResult(status="error", file=file_path, error=str(e))

    return FileEditResult(
        status="applied",
        file=file_path,
        diff=result.diff,
        first_changed_line=result.first_changed_line,
        warnings=result.warnings,
        noop_edits=result.noop_edits,
    )


def result_to_dict(result: FileEditResult) -> dict:
    """Convert FileEditResult to JSON-serializable dict."""
    d = {"status": result.status, "file": result.file}
    if result.first_changed_line is not None:
        d["first_changed_line"] = result.first_changed_line
    if result.warnings:
        d["warnings"] = result.warnings
    if result.noop_edits:
        d["noop_edits"] = [
            {"edit_index": n.edit_index, "location": n.location,
             "current_content": n.current_content}
            for n in result.noop_edits
        ]
    if result.error is not None:
        d["error"] = result.error
    if result.diff is not None:
        d["diff"] = result.diff
    return d


def configure_logging(verbose: bool = False) -> None:
    """Send debug logs to stderr when asked (``--verbose`` or HASHLINE_DEBUG)."""
    if verbose or os.environ.get("HASHLINE_DEBUG", "").lower() in ("1", "true"):
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(levelname)s %(name)s: %(message)s",
        )


def parse_edit_input(args) -> Tuple[str, dict]:
    """Load the edit request for ``hl apply``. Returns (file_path, request)."""
    if args.stdin:
        data = json.load(sys.stdin)
    elif args.edit:
        with open(args.edit, 'r') as f:
            data = json.load(f)
    else:
        raise ValueError("Must provide --edit <file> or --stdin")

    if isinstance(data, list):
        data = {"edits": data}
    if not isinstance(data, dict):
        raise ValueError("Edit JSON must be an object or an array of edits")
    file_path = args.file or data.get("file") or data.get("path")
    if not file_path:
        raise ValueError('No target file: pass --file or include "file" in the edit JSON')
    return file_path, data


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="hl",
        description="Hashline — anchor-based line editing for LLM coding agents",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    sub = parser.add_subparsers(dest="command")

    read_parser = sub.add_parser("read", help="Print a file with LINE:HASH anchors")
    read_parser.add_argument("file", help="File to read")
    read_parser.add_argument("--offset", type=int, help="First line to show (1-based)")
    read_parser.add_argument("--limit", type=int, help="Maximum number of lines")

    hash_parser = sub.add_parser("hash", help="Print the anchor hash of each argument")
    hash_parser.add_argument("lines", nargs="+", help="Line contents")

    apply_parser = sub.add_parser("apply", help="Apply an edit batch to a file")
    apply_parser.add_argument("--file", help="Target file path")
    apply_parser.add_argument("--edit", help="JSON edit request file")
    apply_parser.add_argument(
        "--stdin", action="store_true", help="Read JSON edit request from stdin"
    )
    apply_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without writing",
    )
    apply_parser.add_argument(
        "--diff",
        action="store_true",
        help="Print the diff to stderr",
    )

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if args.command == "read":
        try:
            print(read_file(args.file, offset=args.offset, limit=args.limit))
        except (OSError, ValueError) as e:
            print(json.dumps({"status": "error", "file": args.file, "error": str(e)}))
            return 1
        return 0

    if args.command == "hash":
        for line in args.lines:
            print(line_hash(line))
        return 0

    if args.command != "apply":
        parser.print_help()
        return 1

    try:
        file_path, request = parse_edit_input(args)
        edits, warnings = edits_from_request(request)
    except (ValueError, OSError, HashlineError) as e:
        print(json.dumps({"status": "error", "error": str(e)}))
        return 1

    result = edit_file(file_path, edits, dry_run=args.dry_run)
    result.warnings.extend(warnings)

    if args.diff and result.diff:
        print(result.diff, file=sys.stderr)

    print(json.dumps(result_to_dict(result), indent=2))

    if result.status == "applied":
        return 0
    if result.status == "mismatch":
        return 2
    return 1


if __name__ == "__main__":
    sys.exit(main())

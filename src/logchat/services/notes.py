"""Helpers for the ``notes`` field of an activity log.

Notes are either plain text or JSON written by the editor:
- a Quill delta (list of ``{"insert": ...}`` ops),
- a wrapper object ``{"delta": [...], "title": ..., "area": ..., "category": ...}``,
- or a metadata object without a delta.
"""
import json
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class NoteMeta:
    """Metadata and plaintext extracted from a notes value."""
    title: str = ""
    area: str = ""
    category: str = ""
    plaintext: str = ""


def _ops_to_text(ops: Any) -> str:
    if not isinstance(ops, list):
        return ""
    return "".join(op["insert"] for op in ops
                   if isinstance(op, dict) and isinstance(op.get("insert"), str))


def _load(notes: Optional[str]) -> Any:
    if not notes:
        return None
    try:
        return json.loads(notes)
    except (ValueError, TypeError):
        return None


def _str_field(obj: dict, *keys: str) -> str:
    for key in keys:
        value = obj.get(key)
        if isinstance(value, str):
            return value
    return ""


def parse_notes(notes: Optional[str]) -> NoteMeta:
    """Extract title/area/category and plaintext from a notes value."""
    if not notes:
        return NoteMeta()

    obj = _load(notes)
    if isinstance(obj, list):
        return NoteMeta(plaintext=_ops_to_text(obj))

    if isinstance(obj, dict):
        meta = NoteMeta(
            title=_str_field(obj, "title", "name"),
            area=_str_field(obj, "area"),
            category=_str_field(obj, "category"),
        )
        if "delta" in obj:
            meta.plaintext = _ops_to_text(obj["delta"])
        else:
            meta.plaintext = _str_field(obj, "text") or meta.title or notes
        return meta

    return NoteMeta(plaintext=notes)


def plaintext(notes: Optional[str]) -> str:
    return parse_notes(notes).plaintext


def first_line(notes: Optional[str]) -> str:
    """First line of the note body (may be empty)."""
    return plaintext(notes).split("\n")[0]


def first_nonblank_line(notes: Optional[str]) -> str:
    for line in plaintext(notes).split("\n"):
        if line.strip():
            return line.strip()
    return ""


def area_of(notes: Optional[str]) -> str:
    """The ``area`` a log was filed under, or an empty string."""
    obj = _load(notes)
    if isinstance(obj, dict):
        return _str_field(obj, "area")
    return ""


def render_for_index(notes: Optional[str], occurred_at_iso: Optional[str] = None) -> str:
    """Plaintext with a metadata header, as stored in the semantic index."""
    if not notes:
        return ""

    meta = parse_notes(notes)
    obj = _load(notes)
    if obj is None or not isinstance(obj, (list, dict)):
        return "\n".join(part for part in (f"Datum: {occurred_at_iso}" if occurred_at_iso else "", notes) if part)

    header = []
    if meta.title:
        header.append(f"Titel: {meta.title}")
    if meta.area or meta.category:
        header.append(f"Bereich: {meta.area}{'/' + meta.category if meta.category else ''}")
    if occurred_at_iso:
        header.append(f"Datum: {occurred_at_iso}")
    return "\n".join(part for part in header + [meta.plaintext] if part)


def chunk_text(text: str, max_len: int = 2000, overlap: int = 200):
    """Split text into windows of ``max_len`` characters overlapping by ``overlap``."""
    chunks = []
    if not text or not text.strip():
        return chunks
    i = 0
    while i < len(text):
        end = min(i + max_len, len(text))
        chunks.append(text[i:end])
        if end == len(text):
            break
        i = max(i + 1, end - overlap)
    return chunks

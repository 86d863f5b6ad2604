"""Deterministic text normalization applied before any AI step."""

from __future__ import annotations

import re
import unicodedata

from pydantic import BaseModel

_SPACE_RE = re.compile(r"[ \t\f\v]+")
_BLANK_LINES_RE = re.compile(r"\n{3,}")


class ProcessedText(BaseModel):
    processed_text: str
    word_count: int
    char_count: int


def process_text(raw: str) -> ProcessedText:
    """Normalize pasted text: NFC, unix newlines, collapsed spacing."""
    text = unicodedata.normalize("NFC", raw)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [_SPACE_RE.sub(" ", line).strip() for line in text.split("\n")]
    text = _BLANK_LINES_RE.sub("\n\n", "\n".join(lines)).strip()
    return ProcessedText(
        processed_text=text,
        word_count=len(text.split()),
        char_count=len(text),
    )

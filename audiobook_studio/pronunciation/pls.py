"""Pronunciation Lexicon Specification (PLS) documents."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple
from xml.sax.saxutils import escape

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# The dictionary API rejects indented lexemes, so nothing below is indented.
_HEADER = (
    XML_DECLARATION + "\n"
    '<lexicon version="1.0"\n'
    'xmlns="http://www.w3.org/2005/01/pronunciation-lexicon"\n'
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance"\n'
    'xsi:schemaLocation="http://www.w3.org/2005/01/pronunciation-lexicon\n'
    'http://www.w3.org/TR/2007/CR-pronunciation-lexicon-20071212/pls.xsd"\n'
    'alphabet="ipa" xml:lang="en-US">\n'
)


def wrap_phoneme(phoneme: str) -> str:
    """Ensure ``phoneme`` is enclosed in forward slashes."""
    text = phoneme.strip()
    if not text.startswith("/"):
        text = "/" + text
    if not text.endswith("/") or len(text) == 1:
        text = text + "/"
    return text


def build_pls(entries: Iterable[Tuple[str, str]]) -> str:
    """Render ``(grapheme, ipa)`` pairs as an IPA lexicon."""

    parts = [_HEADER]
    for grapheme, phoneme in entries:
        if not grapheme or not phoneme:
            continue
        parts.append("<lexeme>\n")
        parts.append(f"<grapheme>{escape(grapheme)}</grapheme>\n")
        parts.append(f"<phoneme>{escape(wrap_phoneme(phoneme))}</phoneme>\n")
        parts.append("</lexeme>\n")
    parts.append("</lexicon>")
    return "".join(parts)


def validate_pls(content: str) -> Optional[str]:
    """Return an error message when ``content`` is not a usable lexicon."""
    if XML_DECLARATION not in content:
        return "Missing XML declaration"
    if "<lexicon" not in content:
        return "Missing lexicon element"
    return None


__all__ = ["build_pls", "validate_pls", "wrap_phoneme"]

"""Plate text normalization.

Two separate algorithms, kept apart on purpose:

* recognition-time (`normalize_ocr_text` + `match_plate`): turns raw OCR text
  into a plate that fits the grammar, preferring digits wherever a letter and
  a digit are confusable;
* match-time (`normalize_for_match`): a looser rewrite applied to stored plates
  right before the cross-capture equality check, preferring letters at a few
  known-confusable spots.

Plate grammar: 2 letters, 1-2 digits, 1-3 letters, 3-4 digits.
"""

from __future__ import annotations

import re

PLATE_PATTERN = re.compile(r"[A-Z]{2}\d{1,2}[A-Z]{1,3}\d{3,4}", re.IGNORECASE)

# Applied in this order; digit-confusable letters resolve to digits.
DIGIT_SUBSTITUTIONS: tuple[tuple[str, str], ...] = (
    ("O", "0"),
    ("Q", "0"),
    ("I", "1"),
    ("L", "1"),
    ("Z", "2"),
    ("B", "8"),
    ("S", "5"),
)

_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_O_AFTER_DIGIT = (
    re.compile(r"(?<=\d)O(?=\d)"),
    re.compile(r"(?<=\d)O$"),
    re.compile(r"(?<=\d)O(?=[A-Z])"),
)

# (min, max) run length and slot kind, in grammar order.
_GRAMMAR: tuple[tuple[str, int, int], ...] = (
    ("L", 2, 2),
    ("D", 1, 2),
    ("L", 1, 3),
    ("D", 3, 4),
)


def coarse_digit_substitution(text: str) -> str:
    for src, dst in DIGIT_SUBSTITUTIONS:
        text = text.replace(src, dst)
    return text


def normalize_ocr_text(text: str) -> str:
    """Uppercase, keep only A-Z/0-9, and rewrite an O that follows a digit to 0."""
    s = _NON_ALNUM.sub("", str(text or "").upper())
    for pattern in _O_AFTER_DIGIT:
        s = pattern.sub("0", s)
    return s


def _digit_slot(s: str, i: int) -> str | None:
    ch = s[i]
    if ch.isdigit():
        return ch
    mapped = coarse_digit_substitution(ch)
    return mapped if mapped.isdigit() else None


def _letter_slot(s: str, i: int, start: int) -> str | None:
    ch = s[i]
    prev = s[i - 1] if i > 0 else ""
    nxt = s[i + 1] if i + 1 < len(s) else ""
    if prev == "D" and (ch == "1" or (ch == "I" and i == start + 1)):
        # "D1"/"DI" district code read back as "DL".
        return "L"
    if ch.isalpha():
        return ch
    if ch in "58" and prev.isalpha() and nxt.isalpha():
        return "S" if ch == "5" else "B"
    return None


def _layouts():
    # Greedy preference order: longer digit run first, then longer letter run.
    for d1 in (2, 1):
        for l2 in (3, 2, 1):
            for d2 in (4, 3):
                yield (2, d1, l2, d2)


_LAYOUTS = tuple(_layouts())


def _fit(s: str, start: int, layout: tuple[int, ...]) -> tuple[str, int] | None:
    end = start + sum(layout)
    if end > len(s):
        return None
    out: list[str] = []
    kept = 0
    pos = start
    for (kind, _lo, _hi), run in zip(_GRAMMAR, layout):
        for i in range(pos, pos + run):
            ch = _letter_slot(s, i, start) if kind == "L" else _digit_slot(s, i)
            if ch is None:
                return None
            if ch == s[i]:
                kept += 1
            out.append(ch)
        pos += run
    return "".join(out), kept


def match_plate(normalized: str) -> str | None:
    """Return the leftmost grammar-fitting plate in `normalized`, or None.

    Digit slots take digits and the digit-confusable letters (mapped through
    `DIGIT_SUBSTITUTIONS`). Letter slots take letters, a 1 right after a D or
    an I as the second plate character after a D (restored to L), and a
    5/8 between two letters (restored to S/B). A 0 never fills a letter slot. At
    a given start the layout that changes the fewest characters wins.
    """
    s = _NON_ALNUM.sub("", str(normalized or "").upper())
    for start in range(len(s)):
        best: tuple[str, int] | None = None
        for layout in _LAYOUTS:
            fitted = _fit(s, start, layout)
            if fitted is not None and (best is None or fitted[1] > best[1]):
                best = fitted
        if best is not None:
            return best[0]
    return None


def extract_plate_text(text: str) -> str | None:
    """Recognition-time normalization followed by grammar matching."""
    return match_plate(normalize_ocr_text(text))


def normalize_for_match(text: str) -> str:
    """Match-time normalization, applied to each stored plate before comparison."""
    s = str(text or "").upper()
    s = re.sub(r"[^A-Z0-9]", "", s)
    s = re.sub(r"\bD1\b", "DL", s)
    s = re.sub(r"\bDI\b", "DL", s)
    s = re.sub(r"(?<=D)1", "L", s)
    s = re.sub(r"(?<=D)I", "L", s)
    s = s.replace("8", "B")
    return s


def is_canonical_plate(text: str) -> bool:
    return PLATE_PATTERN.fullmatch(str(text or "")) is not None


__all__ = [
    "DIGIT_SUBSTITUTIONS",
    "PLATE_PATTERN",
    "coarse_digit_substitution",
    "extract_plate_text",
    "is_canonical_plate",
    "match_plate",
    "normalize_for_match",
    "normalize_ocr_text",
]

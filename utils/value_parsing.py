from __future__ import annotations


def blank_to_none(text: str | None) -> str | None:
    """Empty strings in the extracts mean "absent"."""

    if text is None:
        return None
    if str(text) == "":
        return None
    return text


def parse_int_strict(text: str | None) -> int:
    """Parse an integer stored as TEXT.

    Unlike a lenient primitive parser this never falls back to the original
    string: '2008' -> 2008, ' 2025 ' -> 2025, '20O8' / '' / None -> ValueError.
    """

    if text is None:
        raise ValueError("expected an integer, got None")

    s = str(text).strip()
    if s.isdigit() or (s.startswith("-") and s[1:].isdigit()):
        return int(s)
    raise ValueError(f"expected an integer, got {text!r}")

"""Map raw KBO juridical forms onto a handful of familiar business forms.

Matching is substring based on the uppercased form code and its label, and
markers can overlap: a code 'NV' with label 'CV' matches both rules and lands
in the NV bucket, which is checked first. Rules are evaluated top-down and
the first match wins; keep the list in this order.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

UNKNOWN = "Onbekend"

_Rule = Tuple[Callable[[str, str, str, str, str], bool], str]


def _contains_any(haystack: str, *needles: str) -> bool:
    return any(n in haystack for n in needles)


# Each predicate receives (raw, label, type, type_label, haystack), all uppercased.
RULES: List[_Rule] = [
    (
        lambda raw, label, typ, typ_lbl, hay: not raw
        and not label
        and ("NATUURL" in typ or "NATUURL" in typ_lbl),
        "Eenmanszaak",
    ),
    (lambda *a: _contains_any(a[4], "EENMANS", "NATUURL"), "Eenmanszaak"),
    (lambda *a: _contains_any(a[4], "BVBA", "B.V.B.A", "BV"), "BV"),
    (lambda *a: _contains_any(a[4], "NV"), "NV"),
    (lambda *a: _contains_any(a[4], "CVBA", "C.V.B.A", "CV"), "CV"),
    (lambda *a: _contains_any(a[4], "COMM.V", "COMMAND"), "CommV"),
    (
        lambda *a: _contains_any(a[4], "VZW", "VERENIGING ZONDER WINST", "ASBL"),
        "VZW",
    ),
    (lambda *a: _contains_any(a[4], "STICHTING", "FONDATION"), "Stichting"),
]


def classify_juridical_form(
    raw_form: Optional[str] = None,
    type_of_enterprise: Optional[str] = None,
    form_label: Optional[str] = None,
    type_label: Optional[str] = None,
) -> str:
    """Return the business-form bucket for an enterprise.

    Falls back to the (uppercased) raw form, then its label, then 'Onbekend'.
    """
    raw = (raw_form or "").upper()
    label = (form_label or "").upper()
    typ = (type_of_enterprise or "").upper()
    typ_lbl = (type_label or "").upper()
    haystack = f"{raw} {label}"

    for predicate, bucket in RULES:
        if predicate(raw, label, typ, typ_lbl, haystack):
            return bucket

    return raw or label or UNKNOWN

from __future__ import annotations

import pytest

from api.services.juridical_forms import UNKNOWN, classify_juridical_form


@pytest.mark.parametrize(
    "raw,type_of_enterprise,form_label,type_label,expected",
    [
        # Natural persons carry no juridical form.
        (None, "1", None, "Natuurlijk persoon", "Eenmanszaak"),
        ("", "1", "", "natuurlijk persoon", "Eenmanszaak"),
        (None, None, "Eenmanszaak", None, "Eenmanszaak"),
        ("BV", None, None, None, "BV"),
        ("610", None, "Besloten vennootschap met beperkte aansprakelijkheid (BVBA)", None, "BV"),
        ("B.V.B.A", None, None, None, "BV"),
        ("nv", None, None, None, "NV"),
        ("CV", None, None, None, "CV"),
        ("C.V.B.A", None, None, None, "CV"),
        ("BVBA", None, None, None, "BV"),
        ("CVBA", None, None, None, "CV"),
        # NV is checked before CV.
        ("NV", None, "CV", None, "NV"),
        (None, "NATUURLIJK PERSOON", None, None, "Eenmanszaak"),
        ("COMM.V", None, None, None, "CommV"),
        ("017", None, "Association sans but lucratif ASBL", None, "VZW"),
        ("VZW", None, None, None, "VZW"),
        ("325", None, "Stichting van openbaar nut", None, "Stichting"),
        ("FONDATION", None, None, None, "Stichting"),
    ],
)
def test_classify_known_forms(raw, type_of_enterprise, form_label, type_label, expected) -> None:
    assert (
        classify_juridical_form(raw, type_of_enterprise, form_label, type_label) == expected
    )


def test_classify_falls_back_to_raw_then_label() -> None:
    assert classify_juridical_form("014") == "014"
    assert classify_juridical_form(None, None, "Europese vennootschap") == "EUROPESE VENNOOTSCHAP"


def test_classify_unknown() -> None:
    assert classify_juridical_form() == UNKNOWN
    assert classify_juridical_form("", "2", "", "Rechtspersoon") == UNKNOWN

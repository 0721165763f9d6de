from __future__ import annotations

import pytest

from api.services.label_service import (
    language_order,
    resolve_activity_label,
    resolve_label,
    resolve_status,
)
from models.codes import Code


@pytest.fixture()
def session(kbo_db):
    session, _engine = kbo_db
    session.add_all(
        [
            Code(category="Status", code="AC", language="NL", description="Actief"),
            Code(category="Status", code="AC", language="FR", description="Actif"),
            Code(category="JuridicalForm", code="014", language="NL", description="Naamloze vennootschap"),
            Code(category="JuridicalForm", code="014", language="FR", description="Société anonyme"),
            Code(category="JuridicalForm", code="030", language="DE", description="Ausländische Gesellschaft"),
            Code(category="JuridicalForm", code="030", language="EN", description="Foreign company"),
            Code(category="JuridicalForm", code="999", language="IT", description="Forma italiana"),
            Code(category="JuridicalForm", code="999", language="ES", description="Forma española"),
            Code(category="Nace2008", code="62010", language="NL", description="Programmeren (2008)"),
            Code(category="Nace2008", code="62010", language="FR", description="Programmation (2008)"),
            Code(category="NACEBEL_2025", code="62010", language="NL", description="Programmeren (2025)"),
            Code(category="Nace2003", code="72220", language="FR", description="Conseil (2003)"),
            Code(category="Nace2003", code="72220", language="NL", description="Advies (2003)"),
            # Same code outside the NACE categories never labels an activity.
            Code(category="Status", code="72220", language="FR", description="pas une activité"),
            # Stored but empty: treated as no label at all.
            Code(category="JuridicalForm", code="888", language="NL", description=""),
        ]
    )
    session.commit()
    return session


@pytest.mark.parametrize(
    "preferred,expected",
    [
        (None, ["NL", "FR", "DE", "EN"]),
        ("", ["NL", "FR", "DE", "EN"]),
        ("fr-FR,fr;q=0.9,en;q=0.8", ["FR", "NL", "DE", "EN"]),
        ("en", ["EN", "NL", "FR", "DE"]),
        ("es-ES", ["ES", "NL", "FR", "DE", "EN"]),
        (" nl ", ["NL", "FR", "DE", "EN"]),
    ],
)
def test_language_order(preferred, expected) -> None:
    assert language_order(preferred) == expected


def test_resolve_label_prefers_requested_language(session) -> None:
    assert resolve_label(session, "JuridicalForm", "014", "fr-FR,fr;q=0.9") == "Société anonyme"
    assert resolve_label(session, "JuridicalForm", "014") == "Naamloze vennootschap"


def test_resolve_label_falls_back_along_the_base_order(session) -> None:
    # No FR or NL row: DE comes before EN.
    assert resolve_label(session, "JuridicalForm", "030", "fr") == "Ausländische Gesellschaft"
    assert resolve_label(session, "JuridicalForm", "030", "en") == "Foreign company"


def test_resolve_label_unlisted_languages_sort_alphabetically(session) -> None:
    assert resolve_label(session, "JuridicalForm", "999") == "Forma española"
    assert resolve_label(session, "JuridicalForm", "999", "it") == "Forma italiana"


def test_resolve_label_absent(session) -> None:
    assert resolve_label(session, "JuridicalForm", "000") is None
    assert resolve_label(session, "JuridicalForm", None) is None
    assert resolve_label(session, "JuridicalForm", "") is None
    assert resolve_label(session, "JuridicalForm", "888") is None


def test_resolve_status(session) -> None:
    assert resolve_status(session, "AC") == "Actief"
    assert resolve_status(session, "AC", "fr") == "Actif"
    assert resolve_status(session, "ST") is None


def test_activity_label_newest_code_set_wins_over_language(session) -> None:
    # NACEBEL_2025 only has NL, yet beats the FR row of Nace2008.
    assert resolve_activity_label(session, "62010", "fr") == "Programmeren (2025)"


def test_activity_label_older_code_sets_follow_language(session) -> None:
    assert resolve_activity_label(session, "72220") == "Advies (2003)"
    assert resolve_activity_label(session, "72220", "fr") == "Conseil (2003)"
    assert resolve_activity_label(session, "00000") is None
    assert resolve_activity_label(session, None) is None

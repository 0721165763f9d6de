from __future__ import annotations

import pytest

from api.services.companies_service import (
    EnterpriseNotFound,
    get_company_detail,
    list_companies,
    sanitize_pagination,
)
from utils.staging_loader import load_staging_tables
from utils.transform import transform


@pytest.fixture()
def session(kbo_db, extract_dir):
    session, engine = kbo_db
    load_staging_tables(engine, extract_dir)
    transform(engine)
    return session


@pytest.mark.parametrize(
    "page,page_size,expected",
    [
        (None, None, (1, 20)),
        ("3", "50", (3, 50)),
        (0, 0, (1, 20)),
        (-2, 500, (1, 100)),
        ("abc", "x", (1, 20)),
        ("2.5", "10abc", (2, 10)),
        (" 4 ", "+30", (4, 30)),
    ],
)
def test_sanitize_pagination(page, page_size, expected) -> None:
    assert sanitize_pagination(page, page_size) == expected


def test_list_companies_newest_first(session) -> None:
    resp = list_companies(session)

    assert resp.total == 2
    assert resp.page == 1
    assert resp.page_size == 20
    assert [i.enterprise_number for i in resp.items] == ["0201.310.929", "0200.065.765"]

    veneco = resp.items[1]
    assert veneco.start_date == "1960-08-09"
    assert veneco.names == ["Intergemeentelijke Vereniging Veneco"]


def test_list_companies_search_by_name_or_number(session) -> None:
    by_name = list_companies(session, search="veneco")
    assert by_name.total == 1
    assert by_name.items[0].enterprise_number == "0200.065.765"

    by_number = list_companies(session, search="0201.310")
    assert [i.enterprise_number for i in by_number.items] == ["0201.310.929"]

    assert list_companies(session, search="nobody").total == 0
    assert list_companies(session, search="   ").total == 2


def test_list_companies_pagination(session) -> None:
    resp = list_companies(session, page=2, page_size=1)
    assert resp.total == 2
    assert [i.enterprise_number for i in resp.items] == ["0200.065.765"]

    assert list_companies(session, page=3, page_size=1).items == []


def test_company_detail_labels_follow_preferred_language(session) -> None:
    detail = get_company_detail(session, "0200.065.765", "fr-BE,fr;q=0.9")

    assert detail.status_label == "Actif"
    assert detail.juridical_form_label == "Société anonyme"
    assert detail.juridical_situation_label == "Situation normale"
    # Only a Dutch label exists for the type.
    assert detail.type_of_enterprise_label == "Rechtspersoon"
    assert detail.start_date == "1960-08-09"
    assert detail.juridical_form_cac is None

    assert [d.denomination for d in detail.denominations] == [
        "Intergemeentelijke Vereniging Veneco"
    ]
    assert detail.addresses[0].street_nl == "Panhuisstraat"
    assert detail.addresses[0].box is None
    assert detail.contacts[0].value == "093553910"

    activity = detail.activities[0]
    assert activity.nace_version == 2008
    assert activity.nace_label == "Programmation informatique"


def test_company_detail_natural_person(session) -> None:
    detail = get_company_detail(session, "0201.310.929")

    assert detail.type_of_enterprise_label == "Natuurlijk persoon"
    assert detail.juridical_form_label is None
    assert detail.juridical_form_group == "Eenmanszaak"
    assert detail.juridical_form_display == "Eenmanszaak"
    assert detail.status_label == "Actief"


def test_company_detail_not_found(session) -> None:
    with pytest.raises(EnterpriseNotFound) as excinfo:
        get_company_detail(session, "0999.999.999")
    assert excinfo.value.enterprise_number == "0999.999.999"

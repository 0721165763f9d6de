from __future__ import annotations

import re
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import exists, func, or_
from sqlalchemy.orm import Session

from api.schemas.companies import (
    ActivityOut,
    AddressOut,
    CompanyDetail,
    CompanyListItem,
    CompanyListResponse,
    ContactOut,
    DenominationOut,
)
from api.services.juridical_forms import UNKNOWN, classify_juridical_form
from api.services.label_service import (
    resolve_activity_label,
    resolve_label,
    resolve_status,
)
from models.activities import Activity
from models.addresses import Address
from models.contacts import Contact
from models.denominations import Denomination
from models.enterprises import Enterprise
from utils.time_utils import iso_date

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class EnterpriseNotFound(LookupError):
    """No enterprise with the requested number. Not a system failure."""

    def __init__(self, enterprise_number: str) -> None:
        super().__init__(f"Enterprise {enterprise_number} not found")
        self.enterprise_number = enterprise_number


# Leading integer only: "10abc" -> 10, "2.5" -> 2.
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    m = _LEADING_INT_RE.match(str(value))
    return int(m.group(1)) if m else None


def sanitize_pagination(page: Any = None, page_size: Any = None) -> Tuple[int, int]:
    """Return a safe (page, page_size).

    - page: >= 1, default 1
    - page_size: clamped to [1, 100], default 20 (also for 0 / garbage)
    """
    safe_page = max(1, _to_int(page) or 1)
    size = _to_int(page_size) or DEFAULT_PAGE_SIZE
    safe_size = min(max(1, size), MAX_PAGE_SIZE)
    return safe_page, safe_size


def _search_filter(search: Optional[str]):
    if not search or not search.strip():
        return None
    term = f"%{search.strip()}%"
    return or_(
        Enterprise.enterprise_number.ilike(term),
        exists().where(
            Denomination.entity_number == Enterprise.enterprise_number,
            Denomination.denomination.ilike(term),
        ),
    )


def _names_by_entity(session: Session, numbers: List[str]) -> Dict[str, List[str]]:
    names: Dict[str, set] = defaultdict(set)
    if not numbers:
        return {}
    rows = (
        session.query(Denomination.entity_number, Denomination.denomination)
        .filter(Denomination.entity_number.in_(numbers))
        .all()
    )
    for entity_number, denomination in rows:
        names[entity_number].add(denomination)
    return {k: sorted(v) for k, v in names.items()}


def list_companies(
    session: Session,
    search: Optional[str] = None,
    page: Any = None,
    page_size: Any = None,
) -> CompanyListResponse:
    """Page of enterprises, optionally filtered by number or name substring.

    Newest start date first, then by enterprise number.
    """
    page_num, size = sanitize_pagination(page, page_size)
    offset = (page_num - 1) * size

    flt = _search_filter(search)

    count_q = session.query(func.count(Enterprise.enterprise_number))
    page_q = session.query(Enterprise)
    if flt is not None:
        count_q = count_q.filter(flt)
        page_q = page_q.filter(flt)

    total = int(count_q.scalar() or 0)
    enterprises = (
        page_q.order_by(Enterprise.start_date.desc(), Enterprise.enterprise_number)
        .offset(offset)
        .limit(size)
        .all()
    )

    names = _names_by_entity(session, [e.enterprise_number for e in enterprises])
    items = [
        CompanyListItem(
            enterprise_number=e.enterprise_number,
            status=e.status,
            juridical_form=e.juridical_form,
            start_date=iso_date(e.start_date),
            names=names.get(e.enterprise_number, []),
            juridical_form_group=classify_juridical_form(e.juridical_form),
        )
        for e in enterprises
    ]
    return CompanyListResponse(items=items, total=total, page=page_num, page_size=size)


def get_company_detail(
    session: Session,
    enterprise_number: str,
    preferred_language: Optional[str] = None,
) -> CompanyDetail:
    """Enterprise detail decorated with labels in the preferred language.

    Raises:
        EnterpriseNotFound: unknown enterprise number.
    """
    enterprise = session.get(Enterprise, enterprise_number)
    if enterprise is None:
        raise EnterpriseNotFound(enterprise_number)

    denominations = (
        session.query(Denomination)
        .filter(Denomination.entity_number == enterprise_number)
        .order_by(Denomination.language, Denomination.type_of_denomination)
        .all()
    )
    addresses = (
        session.query(Address)
        .filter(Address.entity_number == enterprise_number)
        .order_by(Address.id)
        .all()
    )
    contacts = (
        session.query(Contact).filter(Contact.entity_number == enterprise_number).all()
    )
    activities = (
        session.query(Activity).filter(Activity.entity_number == enterprise_number).all()
    )

    form_label = resolve_label(
        session, "JuridicalForm", enterprise.juridical_form, preferred_language
    )
    situation_label = resolve_label(
        session, "JuridicalSituation", enterprise.juridical_situation, preferred_language
    )
    type_label = resolve_label(
        session, "TypeOfEnterprise", enterprise.type_of_enterprise, preferred_language
    )
    status_label = resolve_status(session, enterprise.status, preferred_language)

    group = classify_juridical_form(
        enterprise.juridical_form,
        enterprise.type_of_enterprise,
        form_label,
        type_label,
    )
    display = (group if group != UNKNOWN else None) or form_label or enterprise.juridical_form

    return CompanyDetail(
        enterprise_number=enterprise.enterprise_number,
        status=enterprise.status,
        status_label=status_label,
        juridical_situation=enterprise.juridical_situation,
        juridical_situation_label=situation_label,
        type_of_enterprise=enterprise.type_of_enterprise,
        type_of_enterprise_label=type_label,
        juridical_form=enterprise.juridical_form,
        juridical_form_label=form_label,
        juridical_form_display=display,
        juridical_form_group=group,
        juridical_form_cac=enterprise.juridical_form_cac,
        start_date=iso_date(enterprise.start_date),
        denominations=[
            DenominationOut(
                language=d.language,
                type_of_denomination=d.type_of_denomination,
                denomination=d.denomination,
            )
            for d in denominations
        ],
        addresses=[
            AddressOut(
                type_of_address=a.type_of_address,
                country_nl=a.country_nl,
                country_fr=a.country_fr,
                zipcode=a.zipcode,
                municipality_nl=a.municipality_nl,
                municipality_fr=a.municipality_fr,
                street_nl=a.street_nl,
                street_fr=a.street_fr,
                house_number=a.house_number,
                box=a.box,
                extra_address_info=a.extra_address_info,
                date_striking_off=iso_date(a.date_striking_off),
            )
            for a in addresses
        ],
        contacts=[
            ContactOut(
                entity_contact=c.entity_contact,
                contact_type=c.contact_type,
                value=c.value,
            )
            for c in contacts
        ],
        activities=[
            ActivityOut(
                activity_group=a.activity_group,
                nace_version=a.nace_version,
                nace_code=a.nace_code,
                nace_label=resolve_activity_label(session, a.nace_code, preferred_language),
                classification=a.classification,
            )
            for a in activities
        ],
    )

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from models.codes import Code

BASE_LANGUAGE_ORDER: tuple[str, ...] = ("NL", "FR", "DE", "EN")
STATUS_CATEGORY = "Status"
NACEBEL_2025_CATEGORY = "NACEBEL_2025"


def language_order(preferred: Optional[str] = None) -> List[str]:
    """Return the language priority list for a caller preference.

    The preference may be an Accept-Language style value: only the first
    comma-separated entry is used, reduced to its first two letters.

    - None / ''          -> ['NL', 'FR', 'DE', 'EN']
    - 'fr-FR,fr;q=0.9'   -> ['FR', 'NL', 'DE', 'EN']
    - 'en'               -> ['EN', 'NL', 'FR', 'DE']
    - 'es'               -> ['ES', 'NL', 'FR', 'DE', 'EN']
    """
    base = list(BASE_LANGUAGE_ORDER)
    if not preferred:
        return base
    norm = preferred.split(",")[0].strip()[:2].upper()
    if not norm:
        return base
    return list(dict.fromkeys([norm, *base]))


def _language_rank(languages: List[str]):
    # Position in the priority list; unknown languages sort after all of them.
    return case(
        {lang: i for i, lang in enumerate(languages)},
        value=Code.language,
        else_=len(languages),
    )


def resolve_label(
    session: Session,
    category: str,
    code: Optional[str],
    preferred_language: Optional[str] = None,
) -> Optional[str]:
    """Best description for (category, code), or None.

    Rows are ranked by the language priority list, then alphabetically by
    language.
    """
    if not code:
        return None
    row = (
        session.query(Code.description)
        .filter(Code.category == category, Code.code == code)
        .order_by(_language_rank(language_order(preferred_language)), Code.language)
        .first()
    )
    return (row[0] or None) if row else None


def resolve_status(
    session: Session, code: Optional[str], preferred_language: Optional[str] = None
) -> Optional[str]:
    """KBO status codes live in kbo.code as category 'Status'."""
    return resolve_label(session, STATUS_CATEGORY, code, preferred_language)


def resolve_activity_label(
    session: Session, code: Optional[str], preferred_language: Optional[str] = None
) -> Optional[str]:
    """Label of a NACE activity code across every NACE code-set vintage.

    Several vintages can describe the same code. A NACEBEL_2025 row wins over
    any older category before language preference is considered.
    """
    if not code:
        return None
    row = (
        session.query(Code.description)
        .filter(Code.code == code, func.upper(Code.category).like("NACE%"))
        .order_by(
            case((Code.category == NACEBEL_2025_CATEGORY, 0), else_=1),
            _language_rank(language_order(preferred_language)),
            Code.language,
        )
        .first()
    )
    return (row[0] or None) if row else None

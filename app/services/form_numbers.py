from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NumberGenerationFailed
from app.models.ministry_form import MinistryForm

logger = logging.getLogger(__name__)

SEQUENCE_WIDTH = 4


def form_number_prefix(year: int, prefix: str | None = None) -> str:
    return f"{prefix or settings.FORM_NUMBER_PREFIX}-{year}-"


def format_form_number(year: int, sequence: int, prefix: str | None = None) -> str:
    # Past 9999 the suffix simply grows wider.
    return f"{form_number_prefix(year, prefix)}{sequence:0{SEQUENCE_WIDTH}d}"


def next_sequence(last_number: str | None, prefix: str) -> int:
    if last_number is None:
        return 1
    suffix = last_number[len(prefix):]
    if not suffix.isdigit():
        raise NumberGenerationFailed(f"Existing form number {last_number!r} is malformed")
    return int(suffix) + 1


def generate_form_number(db: Session, *, year: int | None = None, prefix: str | None = None) -> str:
    """Return the next ``<prefix>-<year>-NNNN`` number.

    Must run in the same transaction as the insert that uses it; the unique
    constraint on ``form_number`` catches the remaining race.
    """

    if year is None:
        year = datetime.now(timezone.utc).year
    year_prefix = form_number_prefix(year, prefix)

    try:
        last_number = (
            db.query(MinistryForm.form_number)
            .filter(MinistryForm.form_number.like(f"{year_prefix}%"))
            .order_by(func.length(MinistryForm.form_number).desc(), MinistryForm.form_number.desc())
            .limit(1)
            .scalar()
        )
    except SQLAlchemyError as exc:
        logger.exception("form_number_lookup_failed", extra={"prefix": year_prefix})
        raise NumberGenerationFailed() from exc

    return format_form_number(year, next_sequence(last_number, year_prefix), prefix)

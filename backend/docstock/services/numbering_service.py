# Overview: Per-tenant document numbering from templates and atomic series counters.

"""
Document numbering

next_number() is the default path for every numbered document:

1. Resolve the tenant's template for the series (built-in default when the
   tenant has none).
2. Reserve the next integer with a single atomic UPDATE on the series
   counter, raising it to the configured starting value first if needed.
3. Render the template with the reserved integer and the business date.

The counter never moves backwards through next_number(); uniqueness against
documents that were numbered by hand or imported is the allocator's job
(allocator_service).
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import SeriesCounter
from docstock.time_utils import today as business_today
from . import tenant_service
from .concurrency import run_with_retry
from .sequence_template import render


SERIES_QUOTE = "devis"
SERIES_PURCHASE_ORDER = "bc"
SERIES_DELIVERY = "bl"
SERIES_INVOICE = "fac"
SERIES_CREDIT_NOTE = "avoir"
SERIES_RECEIPT = "br"
SERIES_SUPPLIER_INVOICE = "facfo"
SERIES_SUPPLIER_CREDIT_NOTE = "avoirfo"
SERIES_SUPPLIER_PAYMENT = "pafo"
SERIES_CUSTOMER_PAYMENT = "pac"
SERIES_INTERNAL_INVOICE = "int_fac"
SERIES_SALES_RETURN = "retour"
SERIES_PURCHASE_RETURN = "retour_achat"
SERIES_WARRANTY = "garantie"

DEFAULT_TEMPLATES = {
    SERIES_QUOTE: "DEV-{{YYYY}}-{{SEQ:5}}",
    SERIES_PURCHASE_ORDER: "BC-{{YYYY}}-{{SEQ:5}}",
    SERIES_DELIVERY: "BL-{{YY}}{{MM}}-{{SEQ:4}}",
    SERIES_INVOICE: "FAC-{{YYYY}}-{{SEQ:5}}",
    SERIES_CREDIT_NOTE: "AVR-{{YYYY}}-{{SEQ:5}}",
    SERIES_RECEIPT: "BR-{{YYYY}}-{{SEQ:5}}",
    SERIES_SUPPLIER_INVOICE: "FACFO-{{YYYY}}-{{SEQ:5}}",
    SERIES_SUPPLIER_CREDIT_NOTE: "AVOIRFO-{{YYYY}}-{{SEQ:5}}",
    SERIES_SUPPLIER_PAYMENT: "PAFO-{{YYYY}}-{{SEQ:5}}",
    SERIES_CUSTOMER_PAYMENT: "PAC-{{YYYY}}-{{SEQ:5}}",
    SERIES_INTERNAL_INVOICE: "{{SEQ:4}}",
    SERIES_SALES_RETURN: "RET-{{YYYY}}-{{SEQ:4}}",
    SERIES_PURCHASE_RETURN: "RETA-{{YYYY}}-{{SEQ:4}}",
    SERIES_WARRANTY: "GAR-{{YYYY}}-{{SEQ:5}}",
}


class ConfigurationMissing(Exception):
    """Raised when no numbering template exists for a tenant/series."""
    pass


class RetryableStorageError(Exception):
    """Raised when the counter could not be reserved because storage kept failing."""
    pass


def resolve_template(tenant_id: int, series_code: str) -> str:
    """Tenant-configured pattern for the series; ConfigurationMissing when unset."""
    template = tenant_service.get_numbering_template(tenant_id, series_code)
    if template is None or not template.pattern:
        raise ConfigurationMissing(
            f"No numbering template for series {series_code!r} (tenant {tenant_id})"
        )
    return template.pattern


def template_for(tenant_id: int, series_code: str) -> str:
    """
    Pattern used to render numbers for the series.

    Falls back to the built-in default when the tenant has not configured one.
    ConfigurationMissing only escapes for series without a default.
    """
    try:
        return resolve_template(tenant_id, series_code)
    except ConfigurationMissing as exc:
        default = DEFAULT_TEMPLATES.get(series_code)
        if default is None:
            current_app.logger.warning("%s; no built-in default exists", exc)
            raise
        current_app.logger.warning("%s; using built-in default %r", exc, default)
        return default


def _counter_filter(tenant_id: int, series_code: str):
    return (
        SeriesCounter.tenant_id == tenant_id,
        SeriesCounter.series_code == series_code,
    )


def _read_counter(tenant_id: int, series_code: str) -> int | None:
    return (
        db.session.query(SeriesCounter.last_value)
        .filter(*_counter_filter(tenant_id, series_code))
        .scalar()
    )


def _seed_counter(tenant_id: int, series_code: str, *, last_value: int, starting_value: int) -> bool:
    """
    Insert the counter row. Returns False when a concurrent caller created it
    first (the session is rolled back in that case).
    """
    seq = SeriesCounter(
        tenant_id=tenant_id,
        series_code=series_code,
        last_value=last_value,
        starting_value=starting_value,
    )
    db.session.add(seq)
    try:
        db.session.flush()
        return True
    except IntegrityError:
        db.session.rollback()
        return False


def reserve_value(tenant_id: int, series_code: str) -> int:
    """
    Atomically reserve the next integer for (tenant, series).

    One UPDATE does the read-modify-write; the counter row is seeded on first
    use. Must be called before other objects are added to the session: losing
    the seeding race rolls the session back.

    Raises RetryableStorageError when storage keeps failing after retries.
    """
    if not tenant_id:
        raise ValueError("tenant_id is required")
    if not series_code:
        raise ValueError("series_code is required")

    def _op() -> int:
        floor = tenant_service.get_starting_value(tenant_id, series_code)
        stmt = (
            update(SeriesCounter)
            .where(*_counter_filter(tenant_id, series_code))
            .values(
                last_value=case(
                    (SeriesCounter.last_value < floor, floor + 1),
                    else_=SeriesCounter.last_value + 1,
                ),
                starting_value=floor,
            )
            .execution_options(synchronize_session=False)
        )

        result = db.session.execute(stmt)
        if result.rowcount:
            db.session.flush()
            return _read_counter(tenant_id, series_code)

        if _seed_counter(tenant_id, series_code, last_value=floor + 1, starting_value=floor):
            return floor + 1

        result = db.session.execute(stmt)
        if not result.rowcount:
            raise RetryableStorageError(
                f"Series counter {series_code!r} for tenant {tenant_id} vanished during seeding"
            )
        db.session.flush()
        return _read_counter(tenant_id, series_code)

    try:
        return run_with_retry(_op)
    except (OperationalError, StaleDataError) as exc:
        current_app.logger.warning(
            "Could not reserve %s counter for tenant %s: %s", series_code, tenant_id, exc
        )
        raise RetryableStorageError(
            f"Numbering storage unavailable for series {series_code!r}; retry later"
        ) from exc


def next_number(tenant_id: int, series_code: str, *, today: date | None = None) -> str:
    """
    Allocate and render the next document number for a tenant/series.

    Does not check existing documents; callers facing imported or manually
    entered numbers should use allocator_service.allocate_unique().
    """
    template = template_for(tenant_id, series_code)
    value = reserve_value(tenant_id, series_code)
    day = today or business_today()
    return render(template, day.year, day.month, value, day.day)


def current_value(tenant_id: int, series_code: str) -> int:
    """Last reserved integer for the series (0 when never used)."""
    return _read_counter(tenant_id, series_code) or 0


def preview_number(tenant_id: int, series_code: str, *, today: date | None = None) -> str:
    """Render the number next_number() would produce, without reserving it."""
    template = template_for(tenant_id, series_code)
    floor = tenant_service.get_starting_value(tenant_id, series_code)
    upcoming = max(current_value(tenant_id, series_code), floor) + 1
    day = today or business_today()
    return render(template, day.year, day.month, upcoming, day.day)


def ensure_sequence_ahead(tenant_id: int, series_code: str, min_value: int) -> None:
    """
    Raise the counter to at least min_value; never lowers it.

    Used after numbers were assigned outside next_number() so that the next
    reservation does not land on an existing document. Flushes only.
    """
    stmt = (
        update(SeriesCounter)
        .where(*_counter_filter(tenant_id, series_code), SeriesCounter.last_value < min_value)
        .values(last_value=min_value)
        .execution_options(synchronize_session=False)
    )
    db.session.execute(stmt)
    if _read_counter(tenant_id, series_code) is not None:
        db.session.flush()
        return

    floor = tenant_service.get_starting_value(tenant_id, series_code)
    if not _seed_counter(tenant_id, series_code, last_value=min_value, starting_value=floor):
        db.session.execute(stmt)
        db.session.flush()


def reset_counter(tenant_id: int, series_code: str) -> None:
    """Administrative reset of one series counter to 0."""
    result = db.session.execute(
        update(SeriesCounter)
        .where(*_counter_filter(tenant_id, series_code))
        .values(last_value=0)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.session.add(SeriesCounter(tenant_id=tenant_id, series_code=series_code, last_value=0))
    db.session.commit()
    current_app.logger.warning("Series counter %s reset to 0 for tenant %s", series_code, tenant_id)


def reset_all(tenant_id: int) -> list[str]:
    """Reset every known series counter of the tenant to 0."""
    codes = sorted(
        set(DEFAULT_TEMPLATES)
        | {
            code
            for (code,) in db.session.query(SeriesCounter.series_code).filter_by(tenant_id=tenant_id)
        }
    )
    for code in codes:
        reset_counter(tenant_id, code)
    return codes

# Overview: Collision-resolving number allocation for high-contention document series.

"""
Collision-resolving allocator

Supplier payments are numbered under heavy contention, and their numbers can
also be typed in by hand or imported, which leaves the series counter behind
reality. allocate_unique() therefore derives the next number from the
documents that actually exist and persists the document itself:

1. Sample the tenant's most recent documents and take the highest number of
   the active shape (prefix + zero-padded trailing digits).
2. Candidate = highest + 1. Check it is free, then insert and commit.
3. Taken (existence check or unique-constraint violation at commit): jump to
   the highest stored number with the same prefix and retry from there.
4. Give up after ALLOCATOR_MAX_ATTEMPTS with AllocationExhausted.

Document creation and number choice are not one transaction. The
(tenant_id, number) unique constraint is the arbiter; this loop only
guarantees that a writer losing the race moves on instead of failing.
"""

from __future__ import annotations

import enum
import time
from datetime import date
from typing import Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from docstock.time_utils import today as business_today
from . import numbering_service
from .concurrency import run_with_retry
from .sequence_template import NumberShape, render, split_number


class AllocationExhausted(Exception):
    """Raised when no free number could be claimed within the attempt bound."""

    def __init__(self, message: str, *, attempts: int, last_candidate: str | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_candidate = last_candidate


JUMP_SCAN_ROWS = 50


class ClaimResult(enum.Enum):
    CLAIMED = "claimed"
    COLLISION = "collision"
    TRANSIENT = "transient"


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def is_number_violation(exc: IntegrityError, model) -> bool:
    """True when the integrity error comes from the (tenant_id, number) constraint."""
    message = str(getattr(exc, "orig", exc)).lower()
    constraint_names = [
        c.name.lower()
        for c in model.__table__.constraints
        if getattr(c, "name", None) and "number" in {col.name for col in getattr(c, "columns", [])}
    ]
    if any(name in message for name in constraint_names):
        return True
    # SQLite reports the columns: "UNIQUE constraint failed: table.tenant_id, table.number"
    return "unique" in message and f"{model.__tablename__}.number" in message


def _template_shape(tenant_id: int, series_code: str, day: date) -> NumberShape | None:
    try:
        template = numbering_service.template_for(tenant_id, series_code)
        return split_number(render(template, day.year, day.month, 0, day.day))
    except (numbering_service.ConfigurationMissing, ValueError):
        return None


def highest_sampled_number(model, tenant_id: int, *, sample_size: int, preferred_prefix: str | None = None) -> NumberShape | None:
    """
    Highest number among the tenant's latest documents, within one shape.

    With a preferred prefix (the template rendered for today) only numbers of
    that prefix count, and None is returned when the sample holds none, so a
    new period starts from the series counter. Without one, the shape of the
    most recently created document is used.
    """
    rows = (
        db.session.query(model.number)
        .filter(model.tenant_id == tenant_id)
        .order_by(model.id.desc())
        .limit(sample_size)
        .all()
    )
    shapes = [shape for shape in (split_number(number) for (number,) in rows) if shape is not None]
    if not shapes:
        return None

    prefix = shapes[0].prefix if preferred_prefix is None else preferred_prefix
    matching = [s for s in shapes if s.prefix == prefix]
    if not matching:
        return None
    return max(matching, key=lambda s: s.value)


def jump_to_max(model, tenant_id: int, candidate: str) -> str | None:
    """
    Next number after the highest stored number sharing the candidate's prefix.

    LIKE also matches suffixes that are not all digits (PAFO-2025-X9), and
    those sort above the numeric ones, so the top JUMP_SCAN_ROWS matches are
    split and only numbers with exactly the candidate's prefix count.
    Returns None when nothing at or above the candidate exists.
    """
    shape = split_number(candidate)
    if shape is None:
        return None

    rows = (
        db.session.query(model.number)
        .filter(
            model.tenant_id == tenant_id,
            model.number.like(f"{_escape_like(shape.prefix)}%", escape="\\"),
        )
        .order_by(model.number.desc())
        .limit(JUMP_SCAN_ROWS)
        .all()
    )
    values = [
        found.value
        for found in (split_number(number) for (number,) in rows)
        if found is not None and found.prefix == shape.prefix
    ]
    if not values or max(values) < shape.value:
        return None

    highest = shape.format(max(values))
    jumped = shape.format(max(values) + 1)
    current_app.logger.warning(
        "Collision on %s; jumped to %s (highest stored: %s)", candidate, jumped, highest
    )
    return jumped


def _next_candidate(model, tenant_id: int, series_code: str, candidate: str, day: date) -> str:
    jumped = jump_to_max(model, tenant_id, candidate)
    if jumped:
        return jumped
    shape = split_number(candidate)
    if shape is not None:
        return shape.format(shape.value + 1)
    return numbering_service.next_number(tenant_id, series_code, today=day)


def _exists(model, tenant_id: int, number: str) -> bool:
    return (
        db.session.query(model.id)
        .filter(model.tenant_id == tenant_id, model.number == number)
        .first()
        is not None
    )


def _claim(model, tenant_id: int, candidate: str, build: Callable[[str], object]):
    if _exists(model, tenant_id, candidate):
        return ClaimResult.COLLISION, None

    document = build(candidate)
    db.session.add(document)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if is_number_violation(exc, model):
            return ClaimResult.COLLISION, None
        raise
    except OperationalError as exc:
        db.session.rollback()
        current_app.logger.warning("Transient error persisting %s: %s", candidate, exc)
        return ClaimResult.TRANSIENT, None
    return ClaimResult.CLAIMED, document


def _keep_counter_ahead(tenant_id: int, series_code: str, value: int) -> None:
    """
    Move the series counter past a number the allocator just committed.

    The document is already stored at this point; a counter that stays
    behind only costs later collisions, so failure is logged, not raised.
    """
    def _op():
        numbering_service.ensure_sequence_ahead(tenant_id, series_code, value)
        db.session.commit()

    try:
        run_with_retry(_op)
    except (OperationalError, StaleDataError) as exc:
        db.session.rollback()
        current_app.logger.warning(
            "Series counter %s for tenant %s left behind %s: %s", series_code, tenant_id, value, exc
        )


def allocate_unique(
    *,
    tenant_id: int,
    model,
    series_code: str,
    build: Callable[[str], object],
    today: date | None = None,
):
    """
    Persist a new document of `model` under a collision-free number.

    Args:
        tenant_id: Owning tenant
        model: Document model with tenant_id / number columns and a
            unique constraint over them
        series_code: Numbering series used to seed an empty collection
        build: Called with a candidate number, returns the unsaved document

    Returns:
        The committed document

    Raises:
        AllocationExhausted: when every attempt collided
    """
    config = current_app.config
    max_attempts = config.get("ALLOCATOR_MAX_ATTEMPTS", 50)
    delay = config.get("ALLOCATOR_RETRY_DELAY_MS", 50) / 1000.0
    sample_size = config.get("ALLOCATOR_SAMPLE_SIZE", 500)
    day = today or business_today()

    preferred = _template_shape(tenant_id, series_code, day)
    highest = highest_sampled_number(
        model,
        tenant_id,
        sample_size=sample_size,
        preferred_prefix=preferred.prefix if preferred else None,
    )
    if highest is not None:
        candidate = highest.format(highest.value + 1)
    else:
        candidate = numbering_service.next_number(tenant_id, series_code, today=day)
        db.session.commit()

    collisions = 0
    for attempt in range(1, max_attempts + 1):
        outcome, document = _claim(model, tenant_id, candidate, build)

        if outcome is ClaimResult.CLAIMED:
            if collisions:
                current_app.logger.info(
                    "Allocated %s for tenant %s after %s collision(s)", candidate, tenant_id, collisions
                )
            shape = split_number(candidate)
            if shape is not None and preferred is not None and shape.prefix == preferred.prefix:
                _keep_counter_ahead(tenant_id, series_code, shape.value)
            return document

        if attempt < max_attempts:
            if outcome is ClaimResult.COLLISION:
                collisions += 1
                candidate = _next_candidate(model, tenant_id, series_code, candidate, day)
            time.sleep(delay)

    current_app.logger.warning(
        "Number allocation exhausted for %s (tenant %s) after %s attempts; last candidate %s",
        model.__tablename__, tenant_id, max_attempts, candidate,
    )
    raise AllocationExhausted(
        "Could not allocate a document number. Please retry.",
        attempts=max_attempts,
        last_candidate=candidate,
    )

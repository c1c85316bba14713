"""Session-bound workflows behind the dashboard's API endpoints.

The lot generator and the auditors are pure; these helpers load their inputs
through the ORM models, persist their outputs and move batches through their
status lifecycle. Callers own the transaction: every helper flushes but none
commits.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import insert
from sqlalchemy.orm import Session

from .config import DEFAULT_SETTINGS, LotSettings
from .errors import BatchNotFoundError, ConfigError, InvalidTransitionError
from .lot.generator import LotCoupon, LotGenerator
from .models import Batch, Coupon, PrizeConfig, ProductionLog, QCValidation
from .qc.reporter import QCReport, ValidationRecord, run_audits

logger = logging.getLogger(__name__)

GENERATABLE_STATUSES = ("pending", "in_progress")


def create_batch(
    session: Session,
    batch_number: int,
    operator_name: str,
    location: str,
    *,
    production_date: Optional[datetime] = None,
    total_boxes: Optional[int] = None,
    created_by: Optional[int] = None,
    operator_id: Optional[int] = None,
    settings: Optional[LotSettings] = None,
) -> Batch:
    """Create a ``pending`` batch.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    batch_number : int
        Externally assigned, unique, positive batch number.
    operator_name : str
        Name of the operator running the production line.
    location : str
        Production site.
    production_date : Optional[datetime], default: None
        Defaults to now (UTC).
    total_boxes : Optional[int], default: None
        Defaults to ``settings.default_total_boxes``.
    created_by, operator_id : Optional[int], default: None
        User references recorded on the batch.
    settings : Optional[LotSettings], default: None
        Lot conventions; the module defaults are used when omitted.

    Raises
    ------
    ValueError
        If the batch number is not positive or already taken, or
        ``total_boxes`` is not positive.
    """

    settings = settings or DEFAULT_SETTINGS
    if batch_number <= 0:
        raise ValueError("batch_number must be positive")
    boxes = total_boxes if total_boxes is not None else settings.default_total_boxes
    if boxes <= 0:
        raise ValueError("total_boxes must be positive")
    if Batch.get_by_number(session, batch_number) is not None:
        raise ValueError(f"Batch number {batch_number} already exists")

    batch = Batch(
        batch_number=batch_number,
        operator_name=operator_name,
        location=location,
        production_date=production_date or datetime.now(timezone.utc),
        total_boxes=boxes,
        status="pending",
        created_by=created_by,
        operator_id=operator_id,
    )
    session.add(batch)
    session.flush()
    log_production_action(
        session,
        batch,
        "batch_created",
        description=f"Batch {batch_number} created with {boxes} boxes",
        operator_user_id=operator_id,
    )
    return batch


def create_prize_config(
    session: Session,
    prize_amount: int,
    total_coupons: int,
    coupons_per_box: Optional[int] = None,
    *,
    is_active: bool = True,
    created_by: Optional[int] = None,
    settings: Optional[LotSettings] = None,
) -> PrizeConfig:
    """Persist a prize config row.

    Raises
    ------
    ConfigError
        If the values are invalid, or an active config already exists for
        ``prize_amount`` or uses a different box size.
    """

    settings = settings or DEFAULT_SETTINGS
    box_size = coupons_per_box if coupons_per_box is not None else settings.coupons_per_box
    if prize_amount < 0:
        raise ConfigError("prize_amount must not be negative")
    if total_coupons <= 0 or box_size <= 0:
        raise ConfigError("total_coupons and coupons_per_box must be positive")

    if is_active:
        for existing in PrizeConfig.get_active(session):
            if existing.prize_amount == prize_amount:
                raise ConfigError(
                    f"An active config for amount {prize_amount} already exists"
                )
            if existing.coupons_per_box != box_size:
                raise ConfigError(
                    f"Active configs use {existing.coupons_per_box} coupons per box, "
                    f"not {box_size}"
                )

    config = PrizeConfig(
        prize_amount=prize_amount,
        total_coupons=total_coupons,
        coupons_per_box=box_size,
        is_active=is_active,
        created_by=created_by,
        updated_by=created_by,
    )
    session.add(config)
    session.flush()
    return config


def log_production_action(
    session: Session,
    batch: Batch,
    action_type: str,
    *,
    description: Optional[str] = None,
    operator_name: Optional[str] = None,
    operator_user_id: Optional[int] = None,
    location: Optional[str] = None,
    meta: Optional[dict[str, Any]] = None,
) -> ProductionLog:
    """Append a production log entry for ``batch``.

    Operator name and location default to the batch's own values.
    """

    entry = ProductionLog(
        batch_id=batch.id,
        action_type=action_type,
        action_description=description,
        operator_name=operator_name or batch.operator_name,
        operator_user_id=operator_user_id,
        location=location or batch.location,
        meta=meta,
    )
    session.add(entry)
    session.flush()
    return entry


def get_batch(session: Session, batch_id: int) -> Batch:
    """Return the batch with primary key ``batch_id``.

    Raises
    ------
    BatchNotFoundError
        If no such batch exists.
    """

    batch = session.get(Batch, batch_id)
    if batch is None:
        raise BatchNotFoundError(f"Batch id {batch_id} does not exist")
    return batch


def get_batch_by_number(session: Session, batch_number: int) -> Batch:
    batch = Batch.get_by_number(session, batch_number)
    if batch is None:
        raise BatchNotFoundError(f"Batch number {batch_number} does not exist")
    return batch


def save_coupons(
    session: Session,
    batch: Batch,
    coupons: Iterable[LotCoupon],
    *,
    generated_by: Optional[int] = None,
) -> int:
    """Bulk-insert generated coupons for ``batch`` and return how many were saved."""

    generated_at = datetime.now(timezone.utc)
    rows = [
        {
            "batch_id": batch.id,
            "coupon_number": coupon.coupon_number,
            "box_number": coupon.box_number,
            "prize_amount": coupon.prize_amount,
            "prize_description": coupon.prize_description,
            "is_winner": coupon.is_winner,
            "generated_at": generated_at,
            "generated_by": generated_by,
        }
        for coupon in coupons
    ]
    if rows:
        session.execute(insert(Coupon), rows)
    session.flush()
    return len(rows)


def generate_coupons(
    session: Session,
    batch_id: int,
    generated_by: Optional[int] = None,
    *,
    generator: Optional[LotGenerator] = None,
    settings: Optional[LotSettings] = None,
) -> dict[str, Any]:
    """Generate and persist the lot for ``batch_id``.

    This backs ``POST /api/coupons/generate``. The workflow performs the
    following steps:

    1. Load the batch, its existing coupon count and the active prize configs.
    2. Generate the lot (pure; raises before anything is written).
    3. Move the batch ``pending -> in_progress``, bulk-insert the coupons and
       move it to ``completed``.
    4. Append a ``coupons_generated`` production log entry.

    Returns
    -------
    dict[str, Any]
        ``{"success", "message", "totalCoupons", "batch_id"}``.

    Raises
    ------
    BatchNotFoundError
        If ``batch_id`` does not exist.
    AlreadyGeneratedError
        If the batch already owns coupons.
    ConfigError
        If the active prize configs do not fit the batch's lot.
    InvalidTransitionError
        If the batch is past the generation stage.
    """

    generator = generator or LotGenerator(settings)
    batch = get_batch(session, batch_id)
    existing = Coupon.count_for_batch(session, batch.id)
    configs = PrizeConfig.get_active(session)

    try:
        coupons = generator.generate(batch, configs, existing_coupons=existing)
    except ConfigError as exc:
        logger.error(f"Coupon generation for batch {batch.batch_number} rejected: {exc}")
        raise

    if batch.status not in GENERATABLE_STATUSES:
        raise InvalidTransitionError(batch.status, "in_progress")
    if batch.status == "pending":
        batch.transition_to("in_progress")

    total = save_coupons(session, batch, coupons, generated_by=generated_by)
    batch.transition_to("completed")
    winners = sum(1 for coupon in coupons if coupon.is_winner)
    log_production_action(
        session,
        batch,
        "coupons_generated",
        description=f"Generated {total} coupons ({winners} winners)",
        operator_user_id=generated_by,
        meta={"total_coupons": total, "winners": winners, "total_boxes": batch.total_boxes},
    )
    session.flush()
    logger.info(f"Generated {total} coupons for batch {batch.batch_number}")

    return {
        "success": True,
        "message": f"Successfully generated {total} coupons",
        "totalCoupons": total,
        "batch_id": batch.id,
    }


def save_validation(session: Session, record: ValidationRecord) -> QCValidation:
    """Persist a single validation record."""

    row = QCValidation.from_record(record)
    session.add(row)
    session.flush()
    return row


def run_quality_control(
    session: Session,
    batch_id: int,
    validated_by: str,
    *,
    validated_by_user_id: Optional[int] = None,
    settings: Optional[LotSettings] = None,
) -> QCReport:
    """Audit a batch's lot, persist the three records and settle its status.

    A ``completed`` batch moves to ``qc_passed`` when every audit passes and to
    ``qc_failed`` otherwise. Batches already past ``completed`` can be
    re-audited; the new records supersede the old ones but the status stays.

    Raises
    ------
    BatchNotFoundError
        If ``batch_id`` does not exist.
    InvalidTransitionError
        If the batch has not finished generation yet.
    """

    batch = get_batch(session, batch_id)
    if batch.status in GENERATABLE_STATUSES:
        raise InvalidTransitionError(batch.status, "qc_passed/qc_failed")

    coupons = Coupon.get_for_batch(session, batch.id)
    configs = PrizeConfig.get_active(session)
    report = run_audits(
        batch,
        coupons,
        configs,
        validated_by=validated_by,
        validated_by_user_id=validated_by_user_id,
        settings=settings,
    )
    for record in report.records:
        save_validation(session, record)

    if batch.status == "completed":
        batch.transition_to(report.batch_status)
    else:
        logger.warning(
            f"Batch {batch.batch_number} re-audited while '{batch.status}'; "
            f"status left unchanged (audit verdict: {report.batch_status})"
        )

    log_production_action(
        session,
        batch,
        "qc_validated",
        description=f"QC {report.batch_status} by {validated_by}",
        operator_name=validated_by,
        operator_user_id=validated_by_user_id,
        meta={
            "batch_status": batch.status,
            **{r.validation_type: r.validation_status for r in report.records},
        },
    )
    session.flush()
    return report


def get_validations_for_batch(session: Session, batch_id: int) -> list[dict[str, Any]]:
    """Serialized QC validations for ``GET /api/qc-validations/batch/{id}``."""

    return [row.to_json() for row in QCValidation.get_for_batch(session, batch_id)]


__all__ = [
    "create_batch",
    "create_prize_config",
    "generate_coupons",
    "get_batch",
    "get_batch_by_number",
    "get_validations_for_batch",
    "log_production_action",
    "run_quality_control",
    "save_coupons",
    "save_validation",
]

"""Printable production report for a generated batch."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional, Union

from sqlalchemy.orm import Session

from .config import DEFAULT_SETTINGS, LotSettings
from .db.utils import dt_iso
from .lot.labels import format_amount
from .models import Batch, Coupon
from .workflows import get_batch_by_number

logger = logging.getLogger(__name__)

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def format_nominal(amount: int) -> str:
    """Render a prize amount for the report (``0`` stays ``"0"``)."""

    if amount == 0:
        return "0"
    return format_amount(amount)


def format_report_date(value: Union[datetime, date, str, None]) -> str:
    """Render a production date as ``01-Jan-2026 / 14:00``."""

    if value is None:
        return ""
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    month = MONTH_ABBREVIATIONS[value.month - 1]
    return f"{value.day:02d}-{month}-{value.year} / {value:%H:%M}"


def report_data(batch: Batch, coupons: Iterable[Coupon]) -> dict[str, Any]:
    """Build the ``ProductionReport`` payload served to the dashboard."""

    return {
        "batch_number": batch.batch_number,
        "operator_name": batch.operator_name,
        "location": batch.location,
        "production_date": dt_iso(batch.production_date),
        "coupons": [
            {
                "box_number": coupon.box_number,
                "coupon_number": coupon.coupon_number,
                "prize_amount": coupon.prize_amount,
                "prize_description": coupon.prize_description,
            }
            for coupon in sorted(coupons, key=lambda c: (c.box_number, c.coupon_number))
        ],
    }


def format_production_report(
    data: dict[str, Any], settings: Optional[LotSettings] = None
) -> str:
    """Render a ``ProductionReport`` payload as plain text, box by box.

    Coupons without a prize show the configured no-prize caption.
    """

    settings = settings or DEFAULT_SETTINGS
    coupons = data.get("coupons", [])
    number_width = max([len("Coupon"), *(len(c["coupon_number"]) for c in coupons)])
    amount_width = max(
        [len("Amount"), *(len(format_nominal(c["prize_amount"])) for c in coupons)]
    )

    lines = [
        f"Batch       : {data['batch_number']}",
        f"Operator    : {data['operator_name']}",
        f"Location    : {data['location']}",
        f"Production  : {format_report_date(data.get('production_date'))}",
        f"Coupons     : {len(coupons)}",
    ]

    current_box = None
    for coupon in coupons:
        if coupon["box_number"] != current_box:
            current_box = coupon["box_number"]
            lines.append("")
            lines.append(f"Box {current_box}")
            lines.append(
                f"  {'Coupon':<{number_width}}  {'Amount':>{amount_width}}  Description"
            )
        description = coupon["prize_description"] or settings.no_prize_caption
        lines.append(
            f"  {coupon['coupon_number']:<{number_width}}  "
            f"{format_nominal(coupon['prize_amount']):>{amount_width}}  {description}"
        )
    return "\n".join(lines)


def build_production_report(
    session: Session,
    batch_number: int,
    *,
    settings: Optional[LotSettings] = None,
) -> dict[str, Any]:
    """Load a batch's lot and return ``{"success", "data", "formattedReport"}``.

    Raises
    ------
    BatchNotFoundError
        If no batch carries ``batch_number``.
    """

    batch = get_batch_by_number(session, batch_number)
    coupons = Coupon.get_for_batch(session, batch.id)
    if not coupons:
        logger.warning(f"Production report requested for batch {batch_number} with no coupons")
    data = report_data(batch, coupons)
    return {
        "success": True,
        "data": data,
        "formattedReport": format_production_report(data, settings),
    }


__all__ = [
    "build_production_report",
    "format_nominal",
    "format_production_report",
    "format_report_date",
    "report_data",
]

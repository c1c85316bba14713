"""Plain-text rendering of validation details for operators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

from ..lot.labels import format_amount
from .details import (
    BoxCompositionDetail,
    ConsecutiveDetail,
    DistributionDetail,
    ValidationDetail,
)

if TYPE_CHECKING:
    from .reporter import QCReport

PASS_MARK = "✓"
FAIL_MARK = "✗"


def _count(value: Union[int, float]) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def format_validation_details(detail: ValidationDetail, currency_prefix: str = "Rp") -> str:
    """Render ``detail`` as the multi-line text shown next to a QC record."""

    if detail.message:
        return detail.message

    if isinstance(detail, DistributionDetail):
        lines = ["Prize distribution:"]
        for amount in sorted(detail.expected, reverse=True):
            expected = detail.expected[amount]
            actual = detail.actual.get(amount, 0)
            mark = PASS_MARK if expected == actual else FAIL_MARK
            lines.append(
                f"  {currency_prefix} {format_amount(amount)}: {actual} coupons "
                f"(expected {expected}) {mark}"
            )
        if detail.issues:
            lines.append("")
            lines.append("Issues found:")
            lines.extend(f"  - {issue}" for issue in detail.issues)
        return "\n".join(lines)

    if isinstance(detail, BoxCompositionDetail):
        lines = ["Composition per box:"]
        for amount in sorted(detail.expected_per_box, reverse=True):
            lines.append(
                f"  {currency_prefix} {format_amount(amount)}: "
                f"{_count(detail.expected_per_box[amount])} coupons"
            )
        if detail.box_compositions:
            mismatched = set(detail.mismatched_boxes())
            lines.append("")
            lines.append("Status per box:")
            for box in sorted(detail.box_compositions):
                status = f"Mismatch {FAIL_MARK}" if box in mismatched else f"OK {PASS_MARK}"
                lines.append(f"  Box {box}: {status}")
        if detail.issues:
            lines.append("")
            lines.append("Issues found:")
            lines.extend(f"  - {issue}" for issue in detail.issues)
        return "\n".join(lines)

    if isinstance(detail, ConsecutiveDetail):
        if detail.total_consecutive_issues == 0:
            return f"No identical prizes on consecutive numbers {PASS_MARK}"
        lines = [
            f"Found {detail.total_consecutive_issues} consecutive identical prizes:"
        ]
        for issue in detail.issues:
            description = issue.get("description") or "Same prize as the previous coupon"
            lines.append(f"  - Coupon {issue.get('coupon_number')}: {description}")
        return "\n".join(lines)

    raise TypeError(f"Unsupported validation detail {type(detail).__name__}")


def format_qc_report(report: "QCReport", currency_prefix: str = "Rp") -> str:
    """Render every record of ``report`` followed by the release verdict."""

    sections = []
    for record in report.records:
        header = f"[{record.validation_status.upper()}] {record.validation_type}"
        body = format_validation_details(record.validation_details, currency_prefix)
        sections.append(f"{header}\n{body}")
    sections.append(f"Batch status: {report.batch_status}")
    return "\n\n".join(sections)


__all__ = ["format_qc_report", "format_validation_details"]

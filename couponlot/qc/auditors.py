"""The three independent QC audits run over a generated lot."""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..config import DEFAULT_SETTINGS, LotSettings
from ..errors import AuditInputError
from ..lot.numbering import box_for_position, box_range, parse_coupon_number
from ..lot.prize_table import PrizeTable
from .details import (
    BOX_COMPOSITION,
    CONSECUTIVE_CHECK,
    DISTRIBUTION_CHECK,
    BoxCompositionDetail,
    ConsecutiveDetail,
    DistributionDetail,
    ValidationDetail,
    error_detail,
)
from .findings import (
    BOX_COUNT_MISMATCH,
    BOX_INEXACT_DIVISION,
    BOX_RANGE_MISMATCH,
    BOX_SIZE_MISMATCH,
    BoxCompositionMismatch,
    ConsecutiveDuplicate,
    DistributionMismatch,
    ValidationFinding,
)


@dataclass(frozen=True)
class AuditCoupon:
    """Normalized view of a coupon as seen by the auditors."""

    coupon_number: str
    position: int
    box_number: int
    prize_amount: int


@dataclass(frozen=True)
class AuditOutcome:
    """Result of one audit: its findings plus the detail payload to record.

    ``error`` is set when the audit could not run because its input was
    empty or malformed; such an outcome never passes.
    """

    validation_type: str
    findings: tuple[ValidationFinding, ...]
    detail: ValidationDetail
    error: Optional[AuditInputError] = None

    @property
    def passed(self) -> bool:
        return self.error is None and not self.findings

    @property
    def status(self) -> str:
        return "pass" if self.passed else "fail"

    @classmethod
    def from_error(cls, validation_type: str, error: AuditInputError) -> "AuditOutcome":
        return cls(
            validation_type=validation_type,
            findings=(),
            detail=error_detail(validation_type, f"Audit could not run: {error}"),
            error=error,
        )


def normalize_coupons(coupons: Iterable[Any]) -> list[AuditCoupon]:
    """Validate ``coupons`` and return them sorted by numeric coupon number.

    Accepts ORM ``Coupon`` rows, :class:`~couponlot.lot.LotCoupon` objects or
    mappings with ``coupon_number``, ``box_number`` and ``prize_amount``.

    Raises
    ------
    AuditInputError
        If the set is empty, a coupon lacks a field or carries an invalid
        value, or two coupons share a number.
    """

    normalized: list[AuditCoupon] = []
    seen: set[int] = set()
    for coupon in coupons:
        if isinstance(coupon, Mapping):
            number = coupon.get("coupon_number")
            box = coupon.get("box_number")
            amount = coupon.get("prize_amount")
        else:
            number = getattr(coupon, "coupon_number", None)
            box = getattr(coupon, "box_number", None)
            amount = getattr(coupon, "prize_amount", None)
        try:
            position = parse_coupon_number(number)
        except (TypeError, ValueError) as exc:
            raise AuditInputError(f"Malformed coupon {coupon!r}: {exc}") from exc
        if not isinstance(box, int) or isinstance(box, bool) or box <= 0:
            raise AuditInputError(f"Coupon {number} has an invalid box_number {box!r}")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise AuditInputError(
                f"Coupon {number} has an invalid prize_amount {amount!r}"
            )
        if position in seen:
            raise AuditInputError(f"Coupon number {number} appears more than once")
        seen.add(position)
        normalized.append(
            AuditCoupon(
                coupon_number=number,
                position=position,
                box_number=box,
                prize_amount=amount,
            )
        )

    if not normalized:
        raise AuditInputError("No coupons to audit")
    normalized.sort(key=lambda coupon: coupon.position)
    return normalized


class _Auditor:
    validation_type: str = ""

    def __init__(self, settings: Optional[LotSettings] = None) -> None:
        self._settings = settings or DEFAULT_SETTINGS

    def _table(self, prize_configs: Any) -> PrizeTable:
        if isinstance(prize_configs, PrizeTable):
            return prize_configs
        return PrizeTable.from_configs(
            prize_configs, default_coupons_per_box=self._settings.coupons_per_box
        )


class DistributionAuditor(_Auditor):
    """Compare whole-lot prize counts with the prize table."""

    validation_type = DISTRIBUTION_CHECK

    def audit(self, coupons: Iterable[Any], prize_configs: Any) -> list[DistributionMismatch]:
        """Return one finding per prize amount whose count is off."""
        return list(self.inspect(coupons, prize_configs).findings)  # type: ignore[arg-type]

    def inspect(self, coupons: Iterable[Any], prize_configs: Any) -> AuditOutcome:
        table = self._table(prize_configs)
        normalized = normalize_coupons(coupons)

        expected = table.expected_counts()
        actual_all = Counter(c.prize_amount for c in normalized if c.prize_amount > 0)
        # Amounts nobody configured are reported against an expectation of 0.
        for amount in actual_all:
            expected.setdefault(amount, 0)

        findings: list[DistributionMismatch] = []
        actual: dict[int, int] = {}
        for amount in sorted(expected, reverse=True):
            count = actual_all.get(amount, 0)
            actual[amount] = count
            if count != expected[amount]:
                findings.append(
                    DistributionMismatch(
                        prize_amount=amount, expected=expected[amount], actual=count
                    )
                )

        detail = DistributionDetail(
            expected=expected,
            actual=actual,
            issues=tuple(finding.description for finding in findings),
        )
        return AuditOutcome(self.validation_type, tuple(findings), detail)


class BoxCompositionAuditor(_Auditor):
    """Check that every box carries the same share of each prize."""

    validation_type = BOX_COMPOSITION

    def audit(
        self,
        coupons: Iterable[Any],
        prize_configs: Any,
        *,
        total_boxes: Optional[int] = None,
    ) -> list[BoxCompositionMismatch]:
        """Return box-level findings; see :class:`BoxCompositionMismatch`."""
        outcome = self.inspect(coupons, prize_configs, total_boxes=total_boxes)
        return list(outcome.findings)  # type: ignore[arg-type]

    def inspect(
        self,
        coupons: Iterable[Any],
        prize_configs: Any,
        *,
        total_boxes: Optional[int] = None,
    ) -> AuditOutcome:
        table = self._table(prize_configs)
        normalized = normalize_coupons(coupons)
        coupons_per_box = table.coupons_per_box
        if total_boxes is None:
            total_boxes = -(-len(normalized) // coupons_per_box)
        if total_boxes <= 0:
            raise AuditInputError(f"total_boxes must be positive (got {total_boxes})")

        findings: list[BoxCompositionMismatch] = []
        expected_per_box: dict[int, float] = {}
        exact: dict[int, int] = {}
        for amount, (base, remainder) in table.per_box_split(total_boxes).items():
            total = base * total_boxes + remainder
            if remainder:
                share = total / total_boxes
                expected_per_box[amount] = share
                findings.append(
                    BoxCompositionMismatch(
                        reason=BOX_INEXACT_DIVISION,
                        box_number=None,
                        prize_amount=amount,
                        expected=share,
                        actual=total,
                    )
                )
            else:
                expected_per_box[amount] = base
                exact[amount] = base

        per_box: dict[int, Counter] = defaultdict(Counter)
        sizes: Counter = Counter()
        for coupon in normalized:
            sizes[coupon.box_number] += 1
            first, last = box_range(coupon.box_number, coupons_per_box)
            if not first <= coupon.position <= last:
                findings.append(
                    BoxCompositionMismatch(
                        reason=BOX_RANGE_MISMATCH,
                        box_number=coupon.box_number,
                        prize_amount=None,
                        expected=box_for_position(coupon.position, coupons_per_box),
                        actual=coupon.box_number,
                        coupon_number=coupon.coupon_number,
                    )
                )
            if coupon.prize_amount > 0:
                per_box[coupon.box_number][coupon.prize_amount] += 1

        last_box = max([total_boxes, *sizes.keys()])
        compositions: dict[int, dict[int, int]] = {}
        for box in range(1, last_box + 1):
            counts = per_box.get(box, Counter())
            tracked = set(expected_per_box) | set(counts)
            compositions[box] = {amount: counts.get(amount, 0) for amount in tracked}

            if sizes.get(box, 0) != coupons_per_box:
                findings.append(
                    BoxCompositionMismatch(
                        reason=BOX_SIZE_MISMATCH,
                        box_number=box,
                        prize_amount=None,
                        expected=coupons_per_box,
                        actual=sizes.get(box, 0),
                    )
                )
            for amount in sorted(tracked, reverse=True):
                if amount not in expected_per_box:
                    expected = 0
                elif amount in exact:
                    expected = exact[amount]
                else:
                    # Already reported as an inexact division for the whole lot.
                    continue
                if counts.get(amount, 0) != expected:
                    findings.append(
                        BoxCompositionMismatch(
                            reason=BOX_COUNT_MISMATCH,
                            box_number=box,
                            prize_amount=amount,
                            expected=expected,
                            actual=counts.get(amount, 0),
                        )
                    )

        detail = BoxCompositionDetail(
            expected_per_box={
                amount: (int(share) if float(share).is_integer() else share)
                for amount, share in expected_per_box.items()
            },
            box_compositions=compositions,
            issues=tuple(finding.description for finding in findings),
        )
        return AuditOutcome(self.validation_type, tuple(findings), detail)


class ConsecutiveAuditor(_Auditor):
    """Flag numerically adjacent coupons that share a non-zero prize."""

    validation_type = CONSECUTIVE_CHECK

    def audit(self, coupons: Iterable[Any]) -> list[ConsecutiveDuplicate]:
        """Return one finding per offending pair, keyed on the later coupon."""
        return list(self.inspect(coupons).findings)  # type: ignore[arg-type]

    def inspect(self, coupons: Iterable[Any]) -> AuditOutcome:
        # Input order is not trusted; normalize_coupons re-sorts numerically.
        normalized = normalize_coupons(coupons)
        findings = [
            ConsecutiveDuplicate(
                coupon_number=current.coupon_number,
                previous_coupon_number=previous.coupon_number,
                prize_amount=current.prize_amount,
                box_number=current.box_number,
            )
            for previous, current in _pairs(normalized)
            if current.prize_amount > 0
            and current.prize_amount == previous.prize_amount
        ]
        detail = ConsecutiveDetail(
            total_consecutive_issues=len(findings),
            issues=tuple(
                {
                    "coupon_number": finding.coupon_number,
                    "previous_coupon_number": finding.previous_coupon_number,
                    "prize_amount": finding.prize_amount,
                    "description": finding.description,
                }
                for finding in findings
            ),
        )
        return AuditOutcome(self.validation_type, tuple(findings), detail)


def _pairs(coupons: Sequence[AuditCoupon]) -> Iterable[tuple[AuditCoupon, AuditCoupon]]:
    return zip(coupons, coupons[1:])


__all__ = [
    "AuditCoupon",
    "AuditOutcome",
    "BoxCompositionAuditor",
    "ConsecutiveAuditor",
    "DistributionAuditor",
    "normalize_coupons",
]

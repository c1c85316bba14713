"""Findings produced by the QC auditors.

A finding is data, not an error: a failed audit is a successful computation
that reports one or more findings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from ..lot.labels import format_amount

BOX_COUNT_MISMATCH = "count_mismatch"
BOX_INEXACT_DIVISION = "inexact_division"
BOX_SIZE_MISMATCH = "box_size"
BOX_RANGE_MISMATCH = "box_range"


def _number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


@dataclass(frozen=True)
class DistributionMismatch:
    """Whole-lot count for ``prize_amount`` differs from the prize table."""

    kind: ClassVar[str] = "distribution_mismatch"

    prize_amount: int
    expected: int
    actual: int

    @property
    def description(self) -> str:
        return (
            f"Prize {format_amount(self.prize_amount)}: {self.actual} coupons "
            f"(expected {self.expected})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "prize_amount": self.prize_amount,
            "expected": self.expected,
            "actual": self.actual,
            "description": self.description,
        }


@dataclass(frozen=True)
class BoxCompositionMismatch:
    """A box-level consistency problem.

    Attributes
    ----------
    reason : str
        ``"count_mismatch"`` when a box holds the wrong number of coupons of
        ``prize_amount``; ``"inexact_division"`` when ``prize_amount`` cannot
        be spread evenly over the boxes (``box_number`` is ``None``);
        ``"box_size"`` when the box holds the wrong number of coupons overall
        (``prize_amount`` is ``None``); ``"box_range"`` when coupon
        ``coupon_number`` is packed in a box its number does not belong to
        (``expected`` is the box it belongs to).
    box_number : Optional[int]
        Offending box, if the finding concerns a single box.
    prize_amount : Optional[int]
        Offending prize amount, if the finding concerns a single amount.
    expected : float
        Expected count. Non-integral only for ``"inexact_division"``.
    actual : int
        Observed count (the lot-wide total for ``"inexact_division"``).
    coupon_number : Optional[str]
        Offending coupon, for ``"box_range"`` only.
    """

    kind: ClassVar[str] = "box_composition_mismatch"

    reason: str
    box_number: Optional[int]
    prize_amount: Optional[int]
    expected: float
    actual: int
    coupon_number: Optional[str] = None

    @property
    def description(self) -> str:
        if self.reason == BOX_RANGE_MISMATCH:
            return (
                f"Coupon {self.coupon_number} is packed in box {self.box_number} "
                f"but belongs to box {_number(self.expected)}"
            )
        if self.reason == BOX_INEXACT_DIVISION:
            return (
                f"Prize {format_amount(self.prize_amount or 0)}: {self.actual} coupons "
                f"cannot be split evenly across boxes ({_number(self.expected)} per box)"
            )
        if self.reason == BOX_SIZE_MISMATCH:
            return (
                f"Box {self.box_number}: {self.actual} coupons "
                f"(expected {_number(self.expected)})"
            )
        return (
            f"Box {self.box_number}: prize {format_amount(self.prize_amount or 0)} "
            f"appears {self.actual} times (expected {_number(self.expected)})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "reason": self.reason,
            "box_number": self.box_number,
            "prize_amount": self.prize_amount,
            "expected": self.expected,
            "actual": self.actual,
            "coupon_number": self.coupon_number,
            "description": self.description,
        }


@dataclass(frozen=True)
class ConsecutiveDuplicate:
    """Two numerically adjacent coupons share the same non-zero prize."""

    kind: ClassVar[str] = "consecutive_duplicate"

    coupon_number: str
    previous_coupon_number: str
    prize_amount: int
    box_number: Optional[int] = None

    @property
    def description(self) -> str:
        return (
            f"Same prize {format_amount(self.prize_amount)} as previous coupon "
            f"{self.previous_coupon_number}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "coupon_number": self.coupon_number,
            "previous_coupon_number": self.previous_coupon_number,
            "prize_amount": self.prize_amount,
            "box_number": self.box_number,
            "description": self.description,
        }


ValidationFinding = Union[DistributionMismatch, BoxCompositionMismatch, ConsecutiveDuplicate]

__all__ = [
    "BOX_COUNT_MISMATCH",
    "BOX_INEXACT_DIVISION",
    "BOX_RANGE_MISMATCH",
    "BOX_SIZE_MISMATCH",
    "BoxCompositionMismatch",
    "ConsecutiveDuplicate",
    "DistributionMismatch",
    "ValidationFinding",
]

"""Exception types raised by the coupon lot core and workflows."""

from __future__ import annotations


class CouponLotError(ValueError):
    """Base class for domain errors raised by :mod:`couponlot`."""


class ConfigError(CouponLotError):
    """The prize table is inconsistent with the lot size or box size."""


class AlreadyGeneratedError(ConfigError):
    """The batch already owns coupons, so a new lot cannot be generated."""

    def __init__(self, batch_number: int, existing: int) -> None:
        super().__init__(
            f"Batch {batch_number} already has {existing} coupons; "
            "regenerating would overlap the existing numbering"
        )
        self.batch_number = batch_number
        self.existing = existing


class AuditInputError(CouponLotError):
    """The coupon set passed to an auditor is empty or malformed."""


class InvalidTransitionError(CouponLotError):
    """A batch status change that the state machine does not allow."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move batch status from '{current}' to '{target}'")
        self.current = current
        self.target = target


class BatchNotFoundError(LookupError):
    """No batch matches the requested identifier."""


__all__ = [
    "AlreadyGeneratedError",
    "AuditInputError",
    "BatchNotFoundError",
    "ConfigError",
    "CouponLotError",
    "InvalidTransitionError",
]

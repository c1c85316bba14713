"""Coupon lot generation and quality-control validation."""

from .config import LotSettings
from .errors import (
    AlreadyGeneratedError,
    AuditInputError,
    BatchNotFoundError,
    ConfigError,
    CouponLotError,
    InvalidTransitionError,
)

__all__ = [
    "AlreadyGeneratedError",
    "AuditInputError",
    "BatchNotFoundError",
    "ConfigError",
    "CouponLotError",
    "InvalidTransitionError",
    "LotSettings",
]

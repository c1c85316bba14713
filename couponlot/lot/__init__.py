"""Lot generation: prize tables, coupon numbering and the generator."""

from .generator import BatchDescriptor, LotCoupon, LotGenerator, derive_lot_seed
from .labels import describe_prize, format_amount
from .numbering import (
    box_for_position,
    box_range,
    coupon_number_width,
    format_coupon_number,
    parse_coupon_number,
)
from .prize_table import PrizeTable, PrizeTier

__all__ = [
    "BatchDescriptor",
    "LotCoupon",
    "LotGenerator",
    "PrizeTable",
    "PrizeTier",
    "box_for_position",
    "box_range",
    "coupon_number_width",
    "derive_lot_seed",
    "describe_prize",
    "format_amount",
    "format_coupon_number",
    "parse_coupon_number",
]

"""Helpers for coupon numbers and the box slots they map to."""

from __future__ import annotations


def coupon_number_width(lot_size: int, minimum: int = 5) -> int:
    """Return the zero-padded width needed to number ``lot_size`` coupons."""

    if lot_size <= 0:
        raise ValueError("lot_size must be positive")
    return max(minimum, len(str(lot_size)))


def format_coupon_number(position: int, width: int) -> str:
    """Render the 1-based ``position`` as a zero-padded coupon number."""

    if position <= 0:
        raise ValueError("coupon positions start at 1")
    return str(position).zfill(width)


def parse_coupon_number(coupon_number: str) -> int:
    """Return the numeric position encoded in ``coupon_number``.

    Parameters
    ----------
    coupon_number : str
        Zero-padded coupon number, e.g. ``"00042"``.

    Raises
    ------
    TypeError
        If ``coupon_number`` is not a string.
    ValueError
        If the value is empty, not purely decimal, or not positive.
    """

    if not isinstance(coupon_number, str):
        raise TypeError("coupon_number must be a string")
    normalized = coupon_number.strip()
    if not normalized or not normalized.isdigit():
        raise ValueError(f"coupon_number '{coupon_number}' is not a decimal number")
    position = int(normalized)
    if position <= 0:
        raise ValueError(f"coupon_number '{coupon_number}' must be positive")
    return position


def box_for_position(position: int, coupons_per_box: int) -> int:
    """Box number (1-based) holding the coupon at ``position``."""

    return (position - 1) // coupons_per_box + 1


def box_range(box_number: int, coupons_per_box: int) -> tuple[int, int]:
    """Inclusive numeric range of coupon positions packed in ``box_number``."""

    if box_number <= 0:
        raise ValueError("box numbers start at 1")
    first = (box_number - 1) * coupons_per_box + 1
    return first, box_number * coupons_per_box


__all__ = [
    "box_for_position",
    "box_range",
    "coupon_number_width",
    "format_coupon_number",
    "parse_coupon_number",
]

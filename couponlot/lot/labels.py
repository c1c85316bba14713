"""Display labels for prize amounts."""

from __future__ import annotations


def format_amount(amount: int) -> str:
    """Format ``amount`` with ``.`` thousands separators (``50000`` -> ``50.000``)."""

    return f"{amount:,}".replace(",", ".")


def describe_prize(amount: int, currency_prefix: str = "Rp") -> str:
    """Return the printed description for a coupon carrying ``amount``.

    Coupons without a prize get an empty description; the report layer
    decides which caption to show for them.
    """

    if amount <= 0:
        return ""
    return f"{currency_prefix} {format_amount(amount)}".strip()


__all__ = ["describe_prize", "format_amount"]

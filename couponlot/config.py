"""Runtime settings for lot generation, loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{name}' must be an integer") from exc
    if value <= 0:
        raise ValueError(f"Environment variable '{name}' must be positive")
    return value


@dataclass(frozen=True)
class LotSettings:
    """Lot-wide conventions that used to be hard-coded in the dashboard.

    Attributes
    ----------
    coupons_per_box : int
        Box size used when no active prize config provides one.
    default_total_boxes : int
        Number of boxes assigned to a new batch when the caller omits it.
    coupon_number_width : int
        Minimum zero-padded width of coupon numbers. Lots whose size needs
        more digits widen automatically.
    no_prize_caption : str
        Caption shown on printed reports for coupons without a prize.
    currency_prefix : str
        Prefix used when rendering prize amounts, e.g. ``"Rp"``.
    """

    coupons_per_box: int = 1000
    default_total_boxes: int = 10
    coupon_number_width: int = 5
    no_prize_caption: str = "Anda Belum Beruntung"
    currency_prefix: str = "Rp"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "LotSettings":
        """Build settings from ``env`` (defaults to ``os.environ`` after ``.env``)."""

        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            coupons_per_box=_int_setting(env, "COUPONS_PER_BOX", cls.coupons_per_box),
            default_total_boxes=_int_setting(
                env, "DEFAULT_TOTAL_BOXES", cls.default_total_boxes
            ),
            coupon_number_width=_int_setting(
                env, "COUPON_NUMBER_WIDTH", cls.coupon_number_width
            ),
            no_prize_caption=env.get("NO_PRIZE_CAPTION") or cls.no_prize_caption,
            currency_prefix=env.get("CURRENCY_PREFIX") or cls.currency_prefix,
        )

    @property
    def default_lot_size(self) -> int:
        return self.coupons_per_box * self.default_total_boxes


DEFAULT_SETTINGS = LotSettings()

__all__ = ["DEFAULT_SETTINGS", "LotSettings"]

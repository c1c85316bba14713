"""Immutable prize table used by lot generation and the QC audits."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from ..errors import ConfigError


def _field_getter(config: Any) -> Callable[..., Any]:
    if isinstance(config, Mapping):
        return config.get

    def getter(name: str, default: Any = None) -> Any:
        return getattr(config, name, default)

    return getter


def is_active_config(config: Any) -> bool:
    """Whether ``config`` takes part in generation and audits."""

    if isinstance(config, PrizeTier):
        return config.is_active
    return bool(_field_getter(config)("is_active", True))


@dataclass(frozen=True)
class PrizeTier:
    """One prize configuration row, detached from any database session.

    Attributes
    ----------
    prize_amount : int
        Prize value in whole currency units; ``0`` means "no prize".
    total_coupons : int
        Coupons carrying exactly this amount across the whole lot.
    coupons_per_box : int
        Box size of the lot the tier belongs to.
    is_active : bool
        Inactive tiers are ignored by generation and audits.
    """

    prize_amount: int
    total_coupons: int
    coupons_per_box: int
    is_active: bool = True

    @classmethod
    def from_config(cls, config: Any) -> "PrizeTier":
        """Coerce an ORM ``PrizeConfig``, a mapping, or a tier into a tier."""

        if isinstance(config, PrizeTier):
            return config
        getter = _field_getter(config)
        try:
            tier = cls(
                prize_amount=int(getter("prize_amount")),
                total_coupons=int(getter("total_coupons")),
                coupons_per_box=int(getter("coupons_per_box")),
                is_active=bool(getter("is_active", True)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Malformed prize config {config!r}: {exc}") from exc
        if tier.is_active:
            tier.validate()
        return tier

    @property
    def is_prize(self) -> bool:
        return self.prize_amount > 0

    def validate(self) -> None:
        if self.prize_amount < 0:
            raise ConfigError(
                f"prize_amount must not be negative (got {self.prize_amount})"
            )
        if self.total_coupons <= 0:
            raise ConfigError(
                f"total_coupons for amount {self.prize_amount} must be positive"
            )
        if self.coupons_per_box <= 0:
            raise ConfigError(
                f"coupons_per_box for amount {self.prize_amount} must be positive"
            )


@dataclass(frozen=True)
class PrizeTable:
    """Validated set of active prize tiers sharing a single box size.

    Build instances through :meth:`from_configs`, which drops inactive rows
    and rejects inconsistent tables with :class:`ConfigError`.
    """

    tiers: tuple[PrizeTier, ...]
    coupons_per_box: int

    @classmethod
    def from_configs(
        cls,
        configs: Iterable[Any],
        *,
        default_coupons_per_box: int = 1000,
    ) -> "PrizeTable":
        """Build a table from prize configs, keeping only the active ones.

        Parameters
        ----------
        configs : Iterable[Any]
            ORM ``PrizeConfig`` rows, :class:`PrizeTier` objects or mappings
            with the same field names.
        default_coupons_per_box : int, default: 1000
            Box size used when no active config is supplied.

        Raises
        ------
        ConfigError
            If a config is malformed, two active configs share an amount,
            or the active configs disagree on ``coupons_per_box``.
        """

        # Inactive rows are skipped before validation.
        active = [
            PrizeTier.from_config(config) for config in configs if is_active_config(config)
        ]

        seen: set[int] = set()
        for tier in active:
            if tier.prize_amount in seen:
                raise ConfigError(
                    f"Prize amount {tier.prize_amount} is configured more than once"
                )
            seen.add(tier.prize_amount)

        box_sizes = {tier.coupons_per_box for tier in active}
        if len(box_sizes) > 1:
            raise ConfigError(
                "Active prize configs disagree on coupons_per_box: "
                + ", ".join(str(size) for size in sorted(box_sizes))
            )
        if default_coupons_per_box <= 0:
            raise ConfigError("default coupons_per_box must be positive")
        coupons_per_box = box_sizes.pop() if box_sizes else default_coupons_per_box

        ordered = tuple(sorted(active, key=lambda tier: -tier.prize_amount))
        return cls(tiers=ordered, coupons_per_box=coupons_per_box)

    @property
    def prize_tiers(self) -> tuple[PrizeTier, ...]:
        """Tiers with a non-zero amount, largest prize first."""
        return tuple(tier for tier in self.tiers if tier.is_prize)

    @property
    def configured_coupons(self) -> int:
        """Coupons explicitly claimed by the table, an explicit zero tier included."""
        return sum(tier.total_coupons for tier in self.tiers)

    def expected_counts(self) -> dict[int, int]:
        """Whole-lot coupon count per non-zero prize amount."""
        return {tier.prize_amount: tier.total_coupons for tier in self.prize_tiers}

    def lot_size(self, total_boxes: int) -> int:
        return total_boxes * self.coupons_per_box

    def check_lot(self, total_boxes: int) -> int:
        """Ensure the table fits a lot of ``total_boxes`` boxes and return its size.

        Raises
        ------
        ConfigError
            If ``total_boxes`` is not positive or the configured coupons
            exceed the lot size.
        """

        if total_boxes <= 0:
            raise ConfigError(f"total_boxes must be positive (got {total_boxes})")
        lot_size = self.lot_size(total_boxes)
        if self.configured_coupons > lot_size:
            raise ConfigError(
                f"Prize configs claim {self.configured_coupons} coupons but the lot "
                f"only holds {lot_size} ({total_boxes} boxes of {self.coupons_per_box})"
            )
        return lot_size

    def per_box_split(self, total_boxes: int) -> dict[int, tuple[int, int]]:
        """Return ``divmod(total_coupons, total_boxes)`` per non-zero amount."""

        if total_boxes <= 0:
            raise ConfigError(f"total_boxes must be positive (got {total_boxes})")
        return {
            tier.prize_amount: divmod(tier.total_coupons, total_boxes)
            for tier in self.prize_tiers
        }

    def inexact_amounts(self, total_boxes: int) -> list[int]:
        """Amounts whose coupons cannot be spread evenly over ``total_boxes``."""

        return [
            amount
            for amount, (_, remainder) in self.per_box_split(total_boxes).items()
            if remainder
        ]

    def get(self, prize_amount: int) -> Optional[PrizeTier]:
        for tier in self.tiers:
            if tier.prize_amount == prize_amount:
                return tier
        return None


__all__ = ["PrizeTable", "PrizeTier", "is_active_config"]

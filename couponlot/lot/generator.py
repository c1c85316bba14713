"""Deterministic generation of a batch's coupon lot."""

from __future__ import annotations

import hashlib
import logging
import random
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from ..config import DEFAULT_SETTINGS, LotSettings
from ..errors import AlreadyGeneratedError, ConfigError
from .labels import describe_prize
from .numbering import box_for_position, coupon_number_width, format_coupon_number
from .prize_table import PrizeTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchDescriptor:
    """Minimal description of a batch, for callers without an ORM ``Batch``."""

    batch_number: int
    total_boxes: int
    id: Optional[int] = None


@dataclass(frozen=True)
class LotCoupon:
    """A generated coupon, before persistence.

    Attributes
    ----------
    coupon_number : str
        Zero-padded number, unique within the batch.
    box_number : int
        1-based box holding the coupon.
    prize_amount : int
        ``0`` for no prize, otherwise a configured amount.
    prize_description : str
        Printed prize label; empty when ``prize_amount`` is ``0``.
    is_winner : bool
        ``True`` iff ``prize_amount > 0``.
    batch_id : Optional[int]
        Identifier of the owning batch, when known.
    """

    coupon_number: str
    box_number: int
    prize_amount: int
    prize_description: str
    is_winner: bool
    batch_id: Optional[int] = None

    @property
    def position(self) -> int:
        return int(self.coupon_number)


def derive_lot_seed(batch_number: int) -> int:
    """Return the PRNG seed for ``batch_number``.

    The seed is the first 8 bytes of a SHA-256 digest so that neighbouring
    batch numbers produce unrelated layouts.
    """

    digest = hashlib.sha256(f"couponlot:{batch_number}".encode("ascii")).digest()
    return int.from_bytes(digest[:8], "big")


class LotGenerator:
    """Build the complete, ordered coupon lot for a batch.

    The generator is stateless between calls; every call creates its own
    :class:`random.Random` seeded from the batch number, so one instance can
    be shared across threads and batches.
    """

    def __init__(self, settings: Optional[LotSettings] = None) -> None:
        self._settings = settings or DEFAULT_SETTINGS

    @property
    def settings(self) -> LotSettings:
        return self._settings

    def prize_table(self, prize_configs: Iterable[Any]) -> PrizeTable:
        return PrizeTable.from_configs(
            prize_configs, default_coupons_per_box=self._settings.coupons_per_box
        )

    def generate(
        self,
        batch: Any,
        prize_configs: Iterable[Any],
        *,
        existing_coupons: int = 0,
    ) -> list[LotCoupon]:
        """Generate every coupon of ``batch`` in ascending coupon-number order.

        Parameters
        ----------
        batch : Any
            ORM ``Batch`` or :class:`BatchDescriptor`; ``batch_number`` and
            ``total_boxes`` are required, ``id`` is copied onto the coupons.
        prize_configs : Iterable[Any]
            Prize configs; inactive ones are ignored.
        existing_coupons : int, default: 0
            Number of coupons the batch already owns, as reported by the
            persistence layer.

        Returns
        -------
        list[LotCoupon]
            ``total_boxes * coupons_per_box`` coupons numbered ``1..lot_size``.

        Notes
        -----
        1. Validate the batch and prize table.
        2. Spread every prize amount over the boxes: each box gets
           ``total // boxes`` coupons of it, the remainder goes to the
           least-loaded boxes (ties broken by a seeded permutation).
        3. Lay out each box with the seeded PRNG so that no two adjacent coupons
           share a non-zero amount, box boundaries included. Winners get
           non-adjacent slots drawn at random; boxes too dense for that are
           filled greedily, always placing the amount with the most coupons
           left that differs from its neighbour.

        Raises
        ------
        AlreadyGeneratedError
            If ``existing_coupons`` is positive.
        ConfigError
            If the prize table does not fit the batch's lot, or a box is too
            dense to keep equal prizes apart.
        """

        batch_number = getattr(batch, "batch_number", None)
        total_boxes = getattr(batch, "total_boxes", None)
        if batch_number is None or int(batch_number) <= 0:
            raise ConfigError(f"batch_number must be positive (got {batch_number!r})")
        if total_boxes is None:
            raise ConfigError(f"Batch {batch_number} has no total_boxes")
        batch_number = int(batch_number)
        total_boxes = int(total_boxes)
        if existing_coupons > 0:
            raise AlreadyGeneratedError(batch_number, existing_coupons)

        table = self.prize_table(prize_configs)
        lot_size = table.check_lot(total_boxes)
        coupons_per_box = table.coupons_per_box

        inexact = table.inexact_amounts(total_boxes)
        if inexact:
            logger.warning(
                f"Batch {batch_number}: prize amounts {inexact} do not divide evenly "
                f"over {total_boxes} boxes; box composition will not be uniform"
            )

        rng = random.Random(derive_lot_seed(batch_number))
        allocation = self._allocate_boxes(table, total_boxes, rng)

        width = coupon_number_width(lot_size, self._settings.coupon_number_width)
        batch_id = getattr(batch, "id", None)
        descriptions: dict[int, str] = {}
        coupons: list[LotCoupon] = []
        previous = 0
        for box_index, counts in enumerate(allocation):
            amounts = self._box_amounts(
                counts, coupons_per_box, rng, previous, box_index + 1
            )
            first_position = box_index * coupons_per_box + 1
            for offset, amount in enumerate(amounts):
                position = first_position + offset
                if amount not in descriptions:
                    descriptions[amount] = describe_prize(
                        amount, self._settings.currency_prefix
                    )
                coupons.append(
                    LotCoupon(
                        coupon_number=format_coupon_number(position, width),
                        box_number=box_for_position(position, coupons_per_box),
                        prize_amount=amount,
                        prize_description=descriptions[amount],
                        is_winner=amount > 0,
                        batch_id=batch_id,
                    )
                )
            previous = amounts[-1]

        logger.debug(
            f"Generated {len(coupons)} coupons for batch {batch_number} "
            f"({total_boxes} boxes of {coupons_per_box}, "
            f"{sum(1 for c in coupons if c.is_winner)} winners)"
        )
        return coupons

    def _allocate_boxes(
        self, table: PrizeTable, total_boxes: int, rng: random.Random
    ) -> list[dict[int, int]]:
        """Return per-box ``{amount: count}`` for every non-zero amount."""

        split = table.per_box_split(total_boxes)
        allocation: list[dict[int, int]] = [
            {amount: base for amount, (base, _) in split.items()}
            for _ in range(total_boxes)
        ]
        loads = [sum(counts.values()) for counts in allocation]

        for amount, (_, remainder) in split.items():
            if not remainder:
                continue
            rank = {box: i for i, box in enumerate(rng.sample(range(total_boxes), total_boxes))}
            targets = sorted(range(total_boxes), key=lambda box: (loads[box], rank[box]))
            for box in targets[:remainder]:
                allocation[box][amount] += 1
                loads[box] += 1

        for box, load in enumerate(loads, start=1):
            if load > table.coupons_per_box:
                raise ConfigError(
                    f"Box {box} would need {load} prize coupons but holds only "
                    f"{table.coupons_per_box}"
                )
        return allocation

    def _box_amounts(
        self,
        counts: dict[int, int],
        coupons_per_box: int,
        rng: random.Random,
        previous: int,
        box_number: int,
    ) -> list[int]:
        amounts = _arrange_box(counts, coupons_per_box, rng, previous)
        if amounts is None:
            winners = {amount: count for amount, count in counts.items() if count}
            raise ConfigError(
                f"Box {box_number} cannot hold prizes {winners} in {coupons_per_box} "
                "coupons without two equal prizes side by side"
            )
        return amounts


def _arrange_box(
    counts: Mapping[int, int],
    size: int,
    rng: random.Random,
    previous: int = 0,
) -> Optional[list[int]]:
    """Lay out one box so no two neighbours share a non-zero amount.

    ``previous`` is the amount printed just before the box (the tail of the
    preceding box). Returns ``None`` when no such layout exists.
    """

    winners = [amount for amount in sorted(counts, reverse=True) for _ in range(counts[amount])]
    if len(winners) > size:
        return None
    start = 1 if previous and counts.get(previous, 0) else 0
    if len(winners) <= (size - start + 1) // 2:
        return _spread(winners, size, start, rng)
    return _interleave(counts, size, rng, previous)


def _spread(winners: list[int], size: int, start: int, rng: random.Random) -> list[int]:
    """Give every winner its own slot with at least one blank between any two.

    ``k`` offsets drawn from ``size - start - k + 1`` values, shifted by their
    rank, are ``k`` slots no two of which touch.
    """

    amounts = [0] * size
    k = len(winners)
    offsets = sorted(rng.sample(range(size - start - k + 1), k))
    rng.shuffle(winners)
    for rank, (offset, amount) in enumerate(zip(offsets, winners)):
        amounts[start + offset + rank] = amount
    return amounts


def _interleave(
    counts: Mapping[int, int], size: int, rng: random.Random, previous: int
) -> Optional[list[int]]:
    """Fill a dense box slot by slot.

    Each slot takes the amount with the most coupons left that differs from
    the slot before it; blanks count as one coupon each. This succeeds
    whenever any valid layout of the box exists.
    """

    remaining = {amount: count for amount, count in counts.items() if count}
    blanks = size - sum(remaining.values())
    amounts: list[int] = []
    last = previous
    for _ in range(size):
        options = [(count, amount) for amount, count in remaining.items() if amount != last]
        if blanks:
            options.append((1, 0))
        if not options:
            return None
        top = max(count for count, _ in options)
        choice = rng.choice(sorted(amount for count, amount in options if count == top))
        amounts.append(choice)
        if choice:
            remaining[choice] -= 1
            if not remaining[choice]:
                del remaining[choice]
        else:
            blanks -= 1
        last = choice
    return amounts


__all__ = [
    "BatchDescriptor",
    "LotCoupon",
    "LotGenerator",
    "derive_lot_seed",
]

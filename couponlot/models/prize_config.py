from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .user import User


class PrizeConfig(Base):
    """One row of the prize table: how many coupons carry ``prize_amount``."""

    __tablename__ = "prize_configs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prize_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    """Prize value in whole currency units; ``0`` means no prize."""

    total_coupons: Mapped[int] = mapped_column(Integer, nullable=False)
    """Coupons carrying this exact amount across a whole lot."""

    coupons_per_box: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    """Lot-wide box size. All active configs must agree on it."""

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    updated_by: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    creator: Mapped[Optional["User"]] = relationship("User", foreign_keys=[created_by])
    updater: Mapped[Optional["User"]] = relationship("User", foreign_keys=[updated_by])

    __table_args__ = (
        CheckConstraint("prize_amount >= 0", name="prize_amount_non_negative"),
        CheckConstraint("total_coupons > 0", name="total_coupons_positive"),
        CheckConstraint("coupons_per_box > 0", name="coupons_per_box_positive"),
    )

    def __repr__(self) -> str:
        return (
            "<PrizeConfig("
            f"id={self.id}, prize_amount={self.prize_amount}, "
            f"total_coupons={self.total_coupons}, coupons_per_box={self.coupons_per_box}, "
            f"is_active={self.is_active}"
            ")>"
        )

    @classmethod
    def get_active(cls, session: Session) -> list["PrizeConfig"]:
        """Return active configs ordered by descending prize amount."""

        stmt = (
            select(cls)
            .where(cls.is_active.is_(True))
            .order_by(cls.prize_amount.desc(), cls.id)
        )
        return list(session.scalars(stmt))

    def to_json(self) -> dict[str, Any]:
        return {
            "config_id": self.id,
            "prize_amount": self.prize_amount,
            "total_coupons": self.total_coupons,
            "coupons_per_box": self.coupons_per_box,
            "is_active": self.is_active,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
        }

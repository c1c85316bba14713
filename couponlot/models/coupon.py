from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .batch import Batch
    from .user import User


class Coupon(Base):
    """A single printed coupon belonging to a batch's lot."""

    __tablename__ = "coupons"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False
    )
    coupon_number: Mapped[str] = mapped_column(String(20), nullable=False)
    box_number: Mapped[int] = mapped_column(Integer, nullable=False)
    prize_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    prize_description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    is_winner: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    generated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    generated_by: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    batch: Mapped["Batch"] = relationship(back_populates="coupons")
    generator: Mapped[Optional["User"]] = relationship("User")

    __table_args__ = (
        UniqueConstraint("batch_id", "coupon_number", name="uq_coupon_batch_number"),
        Index("ix_coupons_batch_box", "batch_id", "box_number"),
    )

    def __repr__(self) -> str:
        return (
            "<Coupon("
            f"id={self.id}, batch_id={self.batch_id}, number='{self.coupon_number}', "
            f"box={self.box_number}, prize_amount={self.prize_amount}"
            ")>"
        )

    @classmethod
    def get_for_batch(
        cls, session: Session, batch_id: int, *, box_number: Optional[int] = None
    ) -> list["Coupon"]:
        """List a batch's coupons in coupon-number order, optionally for one box."""

        stmt = select(cls).where(cls.batch_id == batch_id)
        if box_number is not None:
            stmt = stmt.where(cls.box_number == box_number)
        return list(session.scalars(stmt.order_by(cls.coupon_number)))

    @classmethod
    def count_for_batch(cls, session: Session, batch_id: int) -> int:
        """Return how many coupons already exist for ``batch_id``."""

        stmt = select(func.count(cls.id)).where(cls.batch_id == batch_id)
        return int(session.scalar(stmt) or 0)

    @classmethod
    def get_by_number(
        cls, session: Session, batch_id: int, coupon_number: str
    ) -> Optional["Coupon"]:
        return session.scalar(
            select(cls).where(
                cls.batch_id == batch_id, cls.coupon_number == coupon_number
            )
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "coupon_id": self.id,
            "coupon_number": self.coupon_number,
            "prize_amount": self.prize_amount,
            "prize_description": self.prize_description,
            "box_number": self.box_number,
            "batch_id": self.batch_id,
            "is_winner": self.is_winner,
            "generated_at": dt_iso(self.generated_at),
            "generated_by": self.generated_by,
        }

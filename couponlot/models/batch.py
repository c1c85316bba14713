"""Production batch model and its status state machine."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from ..errors import InvalidTransitionError
from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .coupon import Coupon
    from .production_log import ProductionLog
    from .qc_validation import QCValidation
    from .user import User

BATCH_STATUSES = ("pending", "in_progress", "completed", "qc_passed", "qc_failed")

# One-directional; ``qc_passed`` and ``qc_failed`` are terminal.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"in_progress"}),
    "in_progress": frozenset({"completed"}),
    "completed": frozenset({"qc_passed", "qc_failed"}),
    "qc_passed": frozenset(),
    "qc_failed": frozenset(),
}


class Batch(Base):
    """A production batch that owns exactly one generated lot of coupons."""

    __tablename__ = "batches"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, index=True, autoincrement=True)
    batch_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    """Externally assigned, positive batch number. Seeds lot generation."""

    operator_name: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    production_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    total_boxes: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    created_by: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    operator_id: Mapped[Optional[int]] = mapped_column(
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

    # Relationships
    coupons: Mapped[list["Coupon"]] = relationship(
        "Coupon",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="Coupon.coupon_number",
    )
    qc_validations: Mapped[list["QCValidation"]] = relationship(
        "QCValidation",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="QCValidation.id",
    )
    production_logs: Mapped[list["ProductionLog"]] = relationship(
        "ProductionLog",
        back_populates="batch",
        cascade="all, delete-orphan",
        order_by="ProductionLog.id",
    )
    creator: Mapped[Optional["User"]] = relationship("User", foreign_keys=[created_by])
    operator: Mapped[Optional["User"]] = relationship("User", foreign_keys=[operator_id])

    __table_args__ = (
        CheckConstraint("batch_number > 0", name="batch_number_positive"),
        CheckConstraint("total_boxes > 0", name="total_boxes_positive"),
        CheckConstraint(
            "status IN ('pending','in_progress','completed','qc_passed','qc_failed')",
            name="status_enum",
        ),
    )

    def __repr__(self) -> str:
        return (
            "<Batch("
            f"id={self.id}, batch_number={self.batch_number}, "
            f"total_boxes={self.total_boxes}, status='{self.status}'"
            ")>"
        )

    @classmethod
    def get_by_number(cls, session: Session, batch_number: int) -> Optional["Batch"]:
        """Fetch a batch by its external batch number."""

        return session.scalar(select(cls).where(cls.batch_number == batch_number))

    def can_transition_to(self, target: str) -> bool:
        return target in ALLOWED_TRANSITIONS.get(self.status, frozenset())

    def transition_to(self, target: str) -> None:
        """Move the batch to ``target``.

        Raises
        ------
        InvalidTransitionError
            If ``target`` is unknown or not reachable from the current status.
        """
        if target not in BATCH_STATUSES or not self.can_transition_to(target):
            raise InvalidTransitionError(self.status, target)
        self.status = target
        self.updated_at = datetime.now(timezone.utc)

    @property
    def is_released(self) -> bool:
        return self.status == "qc_passed"

    def to_json(self) -> dict[str, Any]:
        return {
            "batch_id": self.id,
            "batch_number": self.batch_number,
            "operator_name": self.operator_name,
            "location": self.location,
            "production_date": dt_iso(self.production_date),
            "total_boxes": self.total_boxes,
            "status": self.status,
            "created_by": self.created_by,
            "operator_id": self.operator_id,
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from .batch import Batch


class ProductionLog(Base):
    """Append-only trail of production actions taken on a batch."""

    __tablename__ = "production_logs"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False
    )
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    action_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    operator_name: Mapped[str] = mapped_column(String(100), nullable=False)
    operator_user_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    location: Mapped[str] = mapped_column(String(100), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    # ``metadata`` is reserved on declarative classes.
    meta: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    batch: Mapped["Batch"] = relationship(back_populates="production_logs")

    __table_args__ = (
        Index("ix_production_logs_batch_action", "batch_id", "action_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProductionLog(id={self.id}, batch_id={self.batch_id}, "
            f"action_type='{self.action_type}')>"
        )

    @classmethod
    def get_for_batch(
        cls, session: Session, batch_id: int, *, action_type: Optional[str] = None
    ) -> list["ProductionLog"]:
        stmt = select(cls).where(cls.batch_id == batch_id)
        if action_type is not None:
            stmt = stmt.where(cls.action_type == action_type)
        return list(session.scalars(stmt.order_by(cls.timestamp, cls.id)))

    def to_json(self) -> dict[str, Any]:
        return {
            "log_id": self.id,
            "batch_id": self.batch_id,
            "action_type": self.action_type,
            "action_description": self.action_description,
            "operator_name": self.operator_name,
            "operator_user_id": self.operator_user_id,
            "location": self.location,
            "timestamp": dt_iso(self.timestamp),
            "metadata": self.meta,
        }

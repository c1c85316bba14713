"""Persisted QC audit runs."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from ..qc.details import VALIDATION_TYPES, ValidationDetail, parse_validation_details
from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from ..qc.reporter import ValidationRecord
    from .batch import Batch
    from .user import User

VALIDATION_STATUSES = ("pass", "fail", "pending")


def _in_clause(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ",".join(f"'{value}'" for value in values) + ")"


class QCValidation(Base):
    """Immutable record of one audit run against a batch's lot.

    Rows are never updated; a new audit run adds new rows and the latest row
    per ``validation_type`` supersedes the older ones.
    """

    __tablename__ = "qc_validations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    validation_type: Mapped[str] = mapped_column(String(50), nullable=False)
    validation_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending"
    )
    validation_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """JSON text in the shape the dashboard's details formatter parses."""

    validated_by: Mapped[str] = mapped_column(String(100), nullable=False)
    validated_by_user_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    validated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    batch: Mapped["Batch"] = relationship(back_populates="qc_validations")
    validator: Mapped[Optional["User"]] = relationship("User")

    __table_args__ = (
        CheckConstraint(
            _in_clause("validation_type", VALIDATION_TYPES),
            name="validation_type_enum",
        ),
        CheckConstraint(
            _in_clause("validation_status", VALIDATION_STATUSES),
            name="validation_status_enum",
        ),
        Index("ix_qc_validations_batch_type", "batch_id", "validation_type"),
    )

    def __repr__(self) -> str:
        return (
            "<QCValidation("
            f"id={self.id}, batch_id={self.batch_id}, type='{self.validation_type}', "
            f"status='{self.validation_status}'"
            ")>"
        )

    @classmethod
    def from_record(
        cls, record: "ValidationRecord", *, batch_id: Optional[int] = None
    ) -> "QCValidation":
        """Build an unsaved row from a core :class:`ValidationRecord`."""

        target_batch_id = batch_id if batch_id is not None else record.batch_id
        if target_batch_id is None:
            raise ValueError("A batch_id is required to persist a QC validation")
        return cls(
            batch_id=target_batch_id,
            validation_type=record.validation_type,
            validation_status=record.validation_status,
            validation_details=json.dumps(record.validation_details.to_dict()),
            validated_by=record.validated_by,
            validated_by_user_id=record.validated_by_user_id,
            validated_at=record.validated_at,
        )

    @classmethod
    def get_for_batch(cls, session: Session, batch_id: int) -> list["QCValidation"]:
        """All validation rows for a batch, newest first."""

        stmt = (
            select(cls)
            .where(cls.batch_id == batch_id)
            .order_by(cls.validated_at.desc(), cls.id.desc())
        )
        return list(session.scalars(stmt))

    @classmethod
    def latest_for_batch(
        cls, session: Session, batch_id: int
    ) -> dict[str, "QCValidation"]:
        """Return the newest row per validation type for ``batch_id``."""

        latest: dict[str, QCValidation] = {}
        for row in cls.get_for_batch(session, batch_id):
            latest.setdefault(row.validation_type, row)
        return latest

    @property
    def details(self) -> Optional[ValidationDetail]:
        """Decode :attr:`validation_details` into its tagged variant."""

        if not self.validation_details:
            return None
        return parse_validation_details(
            self.validation_type, json.loads(self.validation_details)
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "qc_id": self.id,
            "batch_id": self.batch_id,
            "validation_type": self.validation_type,
            "validation_status": self.validation_status,
            "validation_details": self.validation_details,
            "validated_by": self.validated_by,
            "validated_by_user_id": self.validated_by_user_id,
            "validated_at": dt_iso(self.validated_at),
        }

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, validates

from ..db.utils import dt_iso
from .base import Base
from .id_type import ID_TYPE

USER_ROLES = ("admin", "operator", "qc_staff")


class User(Base):
    """Staff account that creates batches, generates lots or signs off QC."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, index=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="operator")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint("role IN ('admin','operator','qc_staff')", name="role_enum"),
    )

    @validates("role")
    def _check_role(self, _key: str, value: str) -> str:
        if value not in USER_ROLES:
            raise ValueError(f"Unknown user role '{value}'")
        return value

    @validates("email")
    def _normalize_email(self, _key: str, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', role='{self.role}')>"

    @classmethod
    def get_by_username(cls, session: Session, username: str) -> Optional["User"]:
        """Get a user by their unique username."""
        return session.scalar(select(cls).where(cls.username == username))

    def to_json(self) -> dict[str, Any]:
        return {
            "user_id": self.id,
            "username": self.username,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }

"""SQLAlchemy Position model for the reporting structure."""

import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from src.models.base import Base


class Position(Base):
    """
    A position in the organizational hierarchy.

    Each position reports to at most one other position through
    reports_to_position_id. A position without a supervisor is the top of
    its branch.
    """

    __tablename__ = "position"

    # Primary Key
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )

    # Basic Information
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(150), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
        comment="Owning department"
    )

    # Hierarchy
    reports_to_position_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("position.id", ondelete="SET NULL"),
        nullable=True,
        comment="Direct supervisor position (NULL for the top of a branch)"
    )

    # Status and Headcount
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    authorized_headcount: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # =========================================================================
    # Timestamps
    # =========================================================================

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    # =========================================================================
    # Relationships
    # =========================================================================

    reports_to: Mapped[Optional["Position"]] = relationship(
        "Position", remote_side=[id], back_populates="direct_reports"
    )
    direct_reports: Mapped[List["Position"]] = relationship(
        "Position", back_populates="reports_to"
    )

    __table_args__ = (
        CheckConstraint(
            "id != reports_to_position_id",
            name="ck_position_not_own_supervisor",
        ),
        Index("ix_position_reports_to", "reports_to_position_id"),
    )

    def __repr__(self) -> str:
        return f"<Position(id={self.id}, code={self.code}, reports_to={self.reports_to_position_id})>"

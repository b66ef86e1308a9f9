"""
School Models

Each school is a tenant; users, students and forms reference it via school_id.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from permission_please.modules.shared import BaseModel

if TYPE_CHECKING:
    from permission_please.modules.users.models import User


class School(BaseModel):
    """School tenant model."""

    __tablename__ = "schools"

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    users: Mapped[list["User"]] = relationship(
        "User",
        back_populates="school",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name={self.name})>"

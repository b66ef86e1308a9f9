"""
User Models

Teachers, parents, reviewers and administrators share one table.
Credentials and sessions are handled by the external auth provider.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.dialects.postgresql import ENUM, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from permission_please.modules.shared import BaseModel

if TYPE_CHECKING:
    from permission_please.modules.schools.models import School


class UserRole(str, Enum):
    """User roles in the system."""

    ADMIN = "admin"
    TEACHER = "teacher"
    REVIEWER = "reviewer"
    PARENT = "parent"


class User(BaseModel):
    """
    User model.

    Multi-tenant: school_id is set for every role except platform ADMIN.
    """

    __tablename__ = "users"

    # ON DELETE SET NULL: If school is deleted, users remain but lose school association
    school_id: Mapped[str | None] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("schools.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
    )
    role: Mapped[UserRole] = mapped_column(
        ENUM(UserRole, name="user_role", create_type=True),
        nullable=False,
        default=UserRole.PARENT,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Relationships
    school: Mapped["School | None"] = relationship(
        "School",
        back_populates="users",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"

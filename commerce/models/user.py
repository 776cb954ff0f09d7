# commerce/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(SQLModel, table=True):
    """
    Application profile mirrored from Supabase Auth.

    id matches auth.users.id (the JWT "sub"). Passwords stay in Supabase;
    this table only carries identity and the application role, which
    decides whether order transitions run as admin.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        description="Display name; local part of the email by default",
    )

    role: str = Field(
        default=ROLE_USER,
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

# src/pitchcoach_backend/app/db/models.py

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    String,
    TIMESTAMP,
    UniqueConstraint,
    Uuid,
    func,
    text,
)

from .session import Base


class User(Base):
    """
    Durable user record.

    Rules:
      - email is unique across all users (account-linking key).
      - password is NULL for pure-OAuth accounts; a password account that
        later signs in with Google/Apple keeps its password and gains
        oauth_provider/oauth_id.
      - (oauth_provider, oauth_id) identifies at most one user.
    """

    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, nullable=False)
    name = Column(String, nullable=False)

    # bcrypt hash written by the password-auth flow; never read here
    password = Column(String, nullable=True)

    # "google" | "apple"
    oauth_provider = Column(String, nullable=True)
    # provider "sub"
    oauth_id = Column(String, nullable=True)

    email_verified = Column(Boolean, nullable=False, default=False, server_default=text("false"))

    created_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint(
            "oauth_provider",
            "oauth_id",
            name="uq_users_oauth_provider_oauth_id",
        ),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} provider={self.oauth_provider}>"

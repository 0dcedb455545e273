import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text

from appstore.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Profile(Base):
    """A user as seen by the catalog. Identity itself lives with the auth provider."""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False)
    full_name = Column(String(255), nullable=False, default="")
    role = Column(String(20), nullable=False, default="user")  # user | developer | admin
    developer_name = Column(String(255))
    developer_website = Column(String(500))
    developer_bio = Column(Text)
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_profiles_role", "role"),
    )

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text, text

from appstore.database import Base


def utcnow():
    return datetime.now(timezone.utc)


APPLICATION_STATUSES = ("pending", "approved", "rejected")


class DeveloperApplication(Base):
    __tablename__ = "developer_applications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    developer_name = Column(String(255), nullable=False)
    developer_website = Column(String(500))
    developer_bio = Column(Text, nullable=False)
    portfolio_links = Column(Text, nullable=False, default="[]")  # JSON array of URLs
    experience_years = Column(Integer)
    motivation = Column(Text, nullable=False)

    # State machine: pending -> approved | rejected (both terminal)
    status = Column(String(20), nullable=False, default="pending")

    # Audit only. Moderators listed in MODERATOR_USER_IDS need not have a profile.
    reviewed_by = Column(String(36))
    reviewed_at = Column(DateTime(timezone=True))
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in APPLICATION_STATUSES) + ")",
            name="ck_dev_applications_status",
        ),
        Index("idx_dev_applications_user_created", "user_id", "created_at"),
        Index("idx_dev_applications_status", "status"),
        # At most one pending application per user, enforced by the store.
        Index(
            "uq_dev_applications_one_pending",
            "user_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

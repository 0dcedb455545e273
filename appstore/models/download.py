import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from appstore.database import Base


def utcnow():
    return datetime.now(timezone.utc)


DOWNLOAD_TYPES = ("free_download", "purchase")


class AppDownload(Base):
    """Append-only ledger row: one per (user, app), never updated or deleted."""

    __tablename__ = "app_downloads"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    app_id = Column(String(36), ForeignKey("apps.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    download_type = Column(String(20), nullable=False)  # free_download | purchase
    amount_paid_usd = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    amount_paid_zwl = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    payment_method = Column(String(50))
    payment_reference = Column(String(255))
    downloaded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    app = relationship("App", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("app_id", "user_id", name="uq_app_downloads_app_user"),
        CheckConstraint(
            "download_type IN (" + ", ".join(f"'{t}'" for t in DOWNLOAD_TYPES) + ")",
            name="ck_app_downloads_type",
        ),
        Index("idx_downloads_user", "user_id"),
    )

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from appstore.database import Base


def utcnow():
    return datetime.now(timezone.utc)


APP_STATUSES = ("draft", "submitted", "under_review", "approved", "rejected", "published")


class App(Base):
    __tablename__ = "apps"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    developer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), unique=True, nullable=False)
    short_description = Column(String(255), nullable=False, default="")
    full_description = Column(Text, nullable=False, default="")
    icon_url = Column(String(500))
    version = Column(String(30), nullable=False, default="1.0.0")
    price_usd = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    price_zwl = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    is_free = Column(Boolean, nullable=False, default=True)

    # Pipeline: draft -> submitted -> under_review -> approved | rejected -> published
    status = Column(String(20), nullable=False, default="draft")

    # Derived counters. download_count is owned by the download ledger and
    # rating_* by the rating aggregator; nothing else writes them.
    download_count = Column(Integer, nullable=False, default=0)
    rating_average = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)

    featured = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    developer = relationship("Profile", lazy="selectin")
    category = relationship("Category", lazy="selectin")
    screenshots = relationship(
        "AppScreenshot",
        back_populates="app",
        order_by="AppScreenshot.sort_order",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("price_usd >= 0", name="ck_apps_price_usd_non_negative"),
        CheckConstraint("download_count >= 0", name="ck_apps_download_count_non_negative"),
        CheckConstraint("rating_count >= 0", name="ck_apps_rating_count_non_negative"),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in APP_STATUSES) + ")",
            name="ck_apps_status",
        ),
        Index("idx_apps_developer", "developer_id"),
        Index("idx_apps_category", "category_id"),
        Index("idx_apps_status", "status"),
        Index("idx_apps_created", "created_at"),
    )


class AppScreenshot(Base):
    __tablename__ = "app_screenshots"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    app_id = Column(String(36), ForeignKey("apps.id", ondelete="CASCADE"), nullable=False)
    image_url = Column(String(500), nullable=False)
    caption = Column(String(255))
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    app = relationship("App", back_populates="screenshots")

    __table_args__ = (
        Index("idx_screenshots_app", "app_id"),
    )

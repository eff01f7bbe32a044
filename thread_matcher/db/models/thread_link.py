"""ORM model for order thread links: one row per order."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from thread_matcher.db.base import Base, TimestampMixin


class ThreadLinkRecord(Base, TimestampMixin):
    """Customer thread match for an order. Keyed by the external order number."""

    __tablename__ = "order_thread_links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_number: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    conversation_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)
    match_status: Mapped[str] = mapped_column(String(32), nullable=False, default="not_found", index=True)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    email_matched: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order_in_subject: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order_in_body: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    days_since_last_message: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    matched_email: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    conversation_subject: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    search_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    reviewed_at: Mapped[Optional[datetime]] = mapped_column(nullable=True)
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

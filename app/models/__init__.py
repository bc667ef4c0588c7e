"""
SQLAlchemy models for the subscription tracker.
"""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DECIMAL, DateTime, ForeignKey, Integer, Text
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Text, primary_key=True, default=_uuid)
    email = Column(Text, nullable=False, unique=True, index=True)
    password_hash = Column(Text, nullable=False)
    display_name = Column(Text, nullable=False)
    avatar_uri = Column(Text)
    push_token = Column(Text)
    notifications_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Text, primary_key=True, default=_uuid)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    icon_key = Column(Text, default="default")
    category = Column(Text, default="Other")
    price = Column(DECIMAL(10, 2), default=0)
    currency = Column(Text, default="USD")
    billing_cycle = Column(Text, nullable=False, default="monthly")
    start_date = Column(DateTime(timezone=True), nullable=False)
    next_payment_date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, default="")
    reminder_days_before = Column(Integer, default=1, nullable=False)
    notification_id = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ScheduledReminder(Base):
    __tablename__ = "scheduled_reminders"

    id = Column(Text, primary_key=True, default=_uuid)
    user_id = Column(Text, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    fire_at = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(Text, default="scheduled", nullable=False)
    sent_at = Column(DateTime(timezone=True))
    error = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

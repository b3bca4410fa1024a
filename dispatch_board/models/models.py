from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Boolean,
    Integer,
    JSON,
    Text,
    Index,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base
from ..services.time_rules import utc_now


def int_pk() -> Mapped[int]:
    return mapped_column(Integer, primary_key=True, autoincrement=True)


class AuditColumnsMixin:
    """Creator/updater identity, timestamps and the optimistic-lock counter shared by every board record."""

    created_by_email: Mapped[Optional[str]] = mapped_column(String(255))
    created_by_name: Mapped[Optional[str]] = mapped_column(String(255))
    updated_by_email: Mapped[Optional[str]] = mapped_column(String(255))
    updated_by_name: Mapped[Optional[str]] = mapped_column(String(255))
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=utc_now)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)


class Absence(AuditColumnsMixin, Base):
    __tablename__ = "absences"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = int_pk()
    badge_number: Mapped[str] = mapped_column(String(50), nullable=False)
    location_name: Mapped[str] = mapped_column(String(255), nullable=False)
    covering_badge_number: Mapped[Optional[str]] = mapped_column(String(50))  # free text, not a join
    absence_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class DownedEquipment(AuditColumnsMixin, Base):
    __tablename__ = "downed_equipment"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = int_pk()
    equipment_type: Mapped[str] = mapped_column(String(100), nullable=False)
    equipment_id_number: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)  # vocabulary from settings.equipment_statuses
    notes: Mapped[Optional[str]] = mapped_column(Text)


class OnCallStaff(AuditColumnsMixin, Base):
    __tablename__ = "on_call_staff"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = int_pk()
    department_name: Mapped[str] = mapped_column(String(255), nullable=False)
    person_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class Notice(AuditColumnsMixin, Base):
    __tablename__ = "notices"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = int_pk()
    notice_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    text_content: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class EmergencyAlert(AuditColumnsMixin, Base):
    """Alerts are soft-deleted: dismiss/clear flip active, rows are never removed"""
    __tablename__ = "emergency_alerts"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = int_pk()
    severity_level: Mapped[str] = mapped_column(String(20), nullable=False)  # Low|Medium|High|Critical
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text)


class AdminLoginLog(Base):
    """Append-only record of admin panel entries"""
    __tablename__ = "admin_login_logs"

    id: Mapped[int] = int_pk()
    user_id: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    user_email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    user_agent: Mapped[Optional[str]] = mapped_column(Text)
    session_info: Mapped[Optional[dict]] = mapped_column(JSON)
    login_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_admin_login_logs_timestamp', 'login_timestamp'),
        {"sqlite_autoincrement": True},
    )

from datetime import date
from typing import Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator


class AlertSeverity(str, Enum):
    low = "Low"
    medium = "Medium"
    high = "High"
    critical = "Critical"


def _required_text(value):
    if value is None:
        raise ValueError("field required")
    text = str(value).strip()
    if not text:
        raise ValueError("must not be empty")
    return text


def _optional_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_date(value):
    # Empty dates fall back to "today" in the service
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, str):
        # Accept full ISO timestamps from browser date pickers; keep the calendar date as written
        return value.strip()[:10]
    return value


class RecordFields(BaseModel):
    """Base for the writable fields of a board record. Unknown keys are ignored."""
    notes: Optional[str] = None
    version: Optional[int] = None

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, v):
        return _optional_text(v)


class AbsenceFields(RecordFields):
    badge_number: str
    location_name: str
    covering_badge_number: Optional[str] = None
    absence_date: Optional[date] = None

    @field_validator("badge_number", "location_name", mode="before")
    @classmethod
    def check_required(cls, v):
        return _required_text(v)

    @field_validator("covering_badge_number", mode="before")
    @classmethod
    def check_covering(cls, v):
        return _optional_text(v)

    @field_validator("absence_date", mode="before")
    @classmethod
    def check_date(cls, v):
        return _optional_date(v)


class EquipmentFields(RecordFields):
    equipment_type: str
    equipment_id_number: str
    title: str
    status: str

    @field_validator("equipment_type", "equipment_id_number", "title", "status", mode="before")
    @classmethod
    def check_required(cls, v):
        return _required_text(v)


class OnCallFields(RecordFields):
    department_name: str
    person_name: str
    phone_number: str

    @field_validator("department_name", "person_name", "phone_number", mode="before")
    @classmethod
    def check_required(cls, v):
        return _required_text(v)


class NoticeFields(RecordFields):
    notice_date: Optional[date] = None
    title: str
    text_content: str

    @field_validator("title", "text_content", mode="before")
    @classmethod
    def check_required(cls, v):
        return _required_text(v)

    @field_validator("notice_date", mode="before")
    @classmethod
    def check_date(cls, v):
        return _optional_date(v)


class AlertFields(RecordFields):
    model_config = ConfigDict(use_enum_values=True)

    severity_level: AlertSeverity
    title: str

    @field_validator("title", mode="before")
    @classmethod
    def check_required(cls, v):
        return _required_text(v)

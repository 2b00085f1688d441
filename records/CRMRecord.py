# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: CRMRecord
# -----------------------------------------------------------------------------
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union


class RecordType(str, Enum):
    DEAL = "deal"
    CONTACT = "contact"
    LEAD = "lead"

    @property
    def table(self) -> str:
        return f"{self.value}s"

    @property
    def activity_fk(self) -> str:
        """Column on `activities` that references this record type."""
        return f"{self.value}_id"

    @classmethod
    def parse(cls, value: Union[str, "RecordType"]) -> "RecordType":
        """Accepts 'deal' / 'deals' / RecordType.DEAL."""
        if isinstance(value, RecordType):
            return value
        raw = (value or "").strip().lower()
        for rt in cls:
            if raw in (rt.value, rt.table):
                return rt
        raise ValueError(f"Unknown record type: {value!r}")


def to_utc(value: Any) -> Optional[datetime]:
    """Normalise DB / JSON timestamps to tz-aware UTC datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    else:
        raw = str(value).strip()
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _custom_fields(value: Any) -> Dict[str, Any]:
    # JSONB comes back as dict from psycopg2, as str from some drivers / imports
    if not value:
        return {}
    if isinstance(value, dict):
        return dict(value)
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _str_or_none(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class CRMRecord:
    """Fields shared by every embeddable record."""

    id: str
    owner_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    notes: Optional[str] = None

    record_type = None  # set on subclasses

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.owner_id = str(self.owner_id)
        self.created_at = to_utc(self.created_at)
        self.updated_at = to_utc(self.updated_at)

    @property
    def display_name(self) -> str:
        raise NotImplementedError


@dataclass
class Deal(CRMRecord):
    title: str = ""
    company: Optional[str] = None
    value: Optional[float] = None
    stage: Optional[str] = None
    probability: Optional[int] = None
    next_step: Optional[str] = None
    close_date: Optional[datetime] = None
    contact_name: Optional[str] = None
    contact_id: Optional[str] = None

    record_type = RecordType.DEAL

    def __post_init__(self) -> None:
        super().__post_init__()
        self.close_date = to_utc(self.close_date)
        self.contact_id = _str_or_none(self.contact_id)
        if self.value is not None:
            self.value = float(self.value)

    @property
    def display_name(self) -> str:
        return self.title

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Deal":
        return cls(
            id=row["id"],
            owner_id=row["user_id"],
            title=row.get("title") or "",
            company=row.get("company"),
            value=row.get("value"),
            stage=row.get("stage"),
            probability=row.get("probability"),
            next_step=row.get("next_step"),
            close_date=row.get("expected_close_date") or row.get("close_date"),
            contact_name=row.get("contact_name"),
            contact_id=row.get("contact_id"),
            notes=row.get("notes"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class Contact(CRMRecord):
    name: str = ""
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None
    score: Optional[int] = None
    persona: Optional[str] = None
    custom_fields: Dict[str, Any] = field(default_factory=dict)

    record_type = RecordType.CONTACT

    def __post_init__(self) -> None:
        super().__post_init__()
        self.custom_fields = _custom_fields(self.custom_fields)

    @property
    def display_name(self) -> str:
        return self.name

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Contact":
        return cls(
            id=row["id"],
            owner_id=row["user_id"],
            name=row.get("name") or "",
            company=row.get("company"),
            email=row.get("email"),
            phone=row.get("phone"),
            title=row.get("title"),
            status=row.get("status"),
            score=row.get("score"),
            persona=row.get("persona"),
            custom_fields=row.get("custom_fields"),
            notes=row.get("notes"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class Lead(CRMRecord):
    name: str = ""
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    source: Optional[str] = None
    status: Optional[str] = None
    score: Optional[int] = None
    title: Optional[str] = None
    custom_fields: Dict[str, Any] = field(default_factory=dict)

    record_type = RecordType.LEAD

    def __post_init__(self) -> None:
        super().__post_init__()
        self.custom_fields = _custom_fields(self.custom_fields)

    @property
    def display_name(self) -> str:
        return self.name

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Lead":
        return cls(
            id=row["id"],
            owner_id=row["user_id"],
            name=row.get("name") or "",
            company=row.get("company"),
            email=row.get("email"),
            phone=row.get("phone"),
            source=row.get("source"),
            status=row.get("status"),
            score=row.get("score"),
            title=row.get("title"),
            custom_fields=row.get("custom_fields"),
            notes=row.get("notes"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


EmbeddableRecord = Union[Deal, Contact, Lead]

RECORD_CLASSES = {
    RecordType.DEAL: Deal,
    RecordType.CONTACT: Contact,
    RecordType.LEAD: Lead,
}


@dataclass
class Activity:
    """
    Call / email / meeting / note logged against a record.
    Never embedded on its own; contributes to each parent's composed text.
    """

    id: str
    owner_id: str
    type: str
    subject: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Parent references
    deal_id: Optional[str] = None
    contact_id: Optional[str] = None
    lead_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.id = str(self.id)
        self.owner_id = str(self.owner_id)
        self.created_at = to_utc(self.created_at)
        self.updated_at = to_utc(self.updated_at)
        self.deal_id = _str_or_none(self.deal_id)
        self.contact_id = _str_or_none(self.contact_id)
        self.lead_id = _str_or_none(self.lead_id)

    def parent_refs(self) -> Dict[RecordType, str]:
        refs: Dict[RecordType, str] = {}
        for rt in RecordType:
            ref = getattr(self, rt.activity_fk)
            if ref:
                refs[rt] = ref
        return refs

    def references(self, record_type: RecordType, record_id: str) -> bool:
        return getattr(self, record_type.activity_fk) == str(record_id)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Activity":
        return cls(
            id=row["id"],
            owner_id=row["user_id"],
            type=row.get("type") or "",
            subject=row.get("title") or row.get("subject"),
            description=row.get("description"),
            notes=row.get("notes"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            deal_id=row.get("deal_id"),
            contact_id=row.get("contact_id"),
            lead_id=row.get("lead_id"),
        )


@dataclass(frozen=True)
class RecordVersion:
    """Identity + change timestamps of a record, used for staleness scans."""

    record_id: str
    created_at: Optional[datetime]
    content_changed_at: Optional[datetime]

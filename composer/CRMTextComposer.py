# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-06
# Description: CRMTextComposer
# -----------------------------------------------------------------------------
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from records.CRMRecord import Activity, EmbeddableRecord, RecordType

PLACEHOLDER = "N/A"
UNKNOWN_DATE = "Unknown date"

_MIN_TS = datetime.min.replace(tzinfo=timezone.utc)


def _iso_date(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.astimezone(timezone.utc).date().isoformat()


def _number(value: Any) -> str:
    if value is None or value == "":
        return "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class HeaderField:
    """
    One labeled line of the header block.

    kind:
      text     - always rendered, empty -> N/A
      number   - always rendered, empty -> 0
      percent  - like number with a trailing %
      date     - always rendered as YYYY-MM-DD, empty -> N/A
      optional - rendered only when non-empty
      optional_date - rendered only when set, as YYYY-MM-DD
    """

    label: str
    attr: str
    kind: str = "text"

    def render(self, record: EmbeddableRecord) -> Optional[str]:
        value = getattr(record, self.attr, None)

        if self.kind == "text":
            return f"{self.label}: {PLACEHOLDER if _is_empty(value) else value}"
        if self.kind == "number":
            return f"{self.label}: {_number(value)}"
        if self.kind == "percent":
            return f"{self.label}: {_number(value)}%"
        if self.kind == "date":
            return f"{self.label}: {_iso_date(value) or PLACEHOLDER}"
        if self.kind == "optional":
            return None if _is_empty(value) else f"{self.label}: {value}"
        if self.kind == "optional_date":
            return None if value is None else f"{self.label}: {_iso_date(value)}"

        raise ValueError(f"Unknown header field kind: {self.kind}")


# Tail lines shared by every record type
_TAIL = (
    HeaderField("Created At", "created_at", "date"),
    HeaderField("Notes", "notes"),
)

HEADER_FIELDS: Dict[RecordType, Tuple[HeaderField, ...]] = {
    RecordType.DEAL: (
        HeaderField("Deal", "title"),
        HeaderField("Company", "company"),
        HeaderField("Value", "value", "number"),
        HeaderField("Stage", "stage"),
        HeaderField("Probability", "probability", "percent"),
        HeaderField("Next Step", "next_step", "optional"),
        HeaderField("Close Date", "close_date", "optional_date"),
        HeaderField("Contact", "contact_name", "optional"),
        HeaderField("Contact ID", "contact_id", "optional"),
    ),
    RecordType.CONTACT: (
        HeaderField("Contact", "name"),
        HeaderField("Company", "company"),
        HeaderField("Email", "email"),
        HeaderField("Phone", "phone"),
        HeaderField("Title", "title"),
        HeaderField("Status", "status"),
        HeaderField("Score", "score", "number"),
        HeaderField("Persona", "persona", "optional"),
    ),
    RecordType.LEAD: (
        HeaderField("Lead", "name"),
        HeaderField("Company", "company"),
        HeaderField("Email", "email"),
        HeaderField("Phone", "phone"),
        HeaderField("Lead Source", "source"),
        HeaderField("Status", "status"),
        HeaderField("Score", "score", "number"),
        HeaderField("Title", "title", "optional"),
    ),
}


def order_activities(activities: Iterable[Activity]) -> List[Activity]:
    """Newest first; equal timestamps fall back to ascending id."""
    items = sorted(activities, key=lambda a: a.id)
    return sorted(items, key=lambda a: a.created_at or _MIN_TS, reverse=True)


def fingerprint(text: str) -> str:
    """Content fingerprint stored next to a vector (sha256 of the composed text)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def truncate_for_embedding(text: str, max_chars: int) -> str:
    """
    Cut composed text to the provider window. Header and newest activities come
    first, so what is dropped is the oldest activity history.
    """
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars]


class CRMTextComposer:
    """
    Serialises a CRM record plus its activity history into the single text
    block that is embedded. Pure and deterministic: the same record and
    activities always give byte-identical text.
    """

    def __init__(self, header_fields: Dict[RecordType, Sequence[HeaderField]] | None = None) -> None:
        self.header_fields = header_fields or HEADER_FIELDS

    def compose(self, record: EmbeddableRecord, activities: Iterable[Activity]) -> str:
        lines: List[str] = []

        for f in self.header_fields[record.record_type]:
            line = f.render(record)
            if line is not None:
                lines.append(line)

        custom: Dict[str, Any] = getattr(record, "custom_fields", None) or {}
        for key in sorted(custom):
            lines.append(f"{key}: {custom[key]}")

        for f in _TAIL:
            lines.append(f.render(record))

        text = "\n".join(lines) + "\n"

        ordered = order_activities(activities)
        if ordered:
            text += "\nActivities:\n"
            for activity in ordered:
                text += self._activity_lines(activity)

        return text

    @staticmethod
    def _activity_lines(activity: Activity) -> str:
        date = _iso_date(activity.created_at) or UNKNOWN_DATE
        body = activity.description or activity.subject or ""
        out = f"- [{date}] {activity.type}: {body}\n"
        if activity.notes:
            out += f"  Notes: {activity.notes}\n"
        return out

    def compose_with_fingerprint(
            self,
            record: EmbeddableRecord,
            activities: Iterable[Activity],
    ) -> Tuple[str, str]:
        text = self.compose(record, activities)
        return text, fingerprint(text)

"""Pydantic models for the synchronized carpool document.

Defines the data contracts shared by every store and rule module:

- ``TripType``: the closed set of trip directions.
- ``Participant``: one rider's payment record for one trip.
- ``Trip``: one directional leg on one calendar day.
- ``AppData``: the single persisted document (active week + archives).

All models are frozen; rule modules build updated copies instead of
mutating in place.  ``sanitize()`` is the only way untrusted payloads
(imported files, cached text, remote rows) become an ``AppData``.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_WEEK_NAME = "Semana Atual"

# Top-level keys of the wire format that are never archive slots.
_RESERVED_KEYS = frozenset(
    {"active_trips", "currentWeekName", "current_week_name", "archives"}
)


class TripType(str, Enum):
    """Direction of a trip."""

    IDA = "Ida"
    VOLTA = "Volta"


class Participant(BaseModel):
    """One rider's payment record on one trip.

    Attributes:
        id: Stable identifier, derived from name and creation time.
        name: Display name.
        paid: Whether this rider has paid for this trip.
    """

    id: str
    name: str
    paid: bool = False

    model_config = {"frozen": True}


class Trip(BaseModel):
    """One directional leg on one calendar day.

    Attributes:
        day: Formatted day label, e.g. ``"Segunda-feira (03/06)"``.
        type: ``Ida`` (outbound) or ``Volta`` (return).
        time: Optional departure time, carried through untouched.
        participants: Riders, kept in collation order.
    """

    day: str
    type: TripType
    time: str | None = None
    participants: list[Participant] = Field(default_factory=list)

    model_config = {"frozen": True}


class AppData(BaseModel):
    """The whole persisted document.

    Attributes:
        active_trips: Trips of the active week, in display order.
        current_week_name: Active week name (serialized as
            ``currentWeekName``).  ``DEFAULT_WEEK_NAME`` means no week was
            explicitly started.
        archives: Frozen trip lists of previous weeks, keyed by week name.
    """

    active_trips: list[Trip] = Field(default_factory=list)
    current_week_name: str = Field(
        default=DEFAULT_WEEK_NAME, alias="currentWeekName"
    )
    archives: dict[str, list[Trip]] = Field(default_factory=dict)

    model_config = {"frozen": True, "populate_by_name": True}

    @classmethod
    def default(cls) -> AppData:
        """Return the empty document used on first load."""
        return cls()

    @property
    def is_default_week(self) -> bool:
        """True when no week has been explicitly started."""
        return self.current_week_name == DEFAULT_WEEK_NAME

    @property
    def total_payers(self) -> int:
        """Number of paid participant records across active trips."""
        return sum(
            1 for t in self.active_trips for p in t.participants if p.paid
        )

    @property
    def total_participants(self) -> int:
        """Number of participant records across active trips."""
        return sum(len(t.participants) for t in self.active_trips)

    def to_payload(self) -> dict[str, Any]:
        """Return the structured wire form of the document."""
        return self.model_dump(mode="json", by_alias=True)


def generate_participant_id(name: str, now: datetime | None = None) -> str:
    """Derive a participant id from *name* and the creation time.

    Format: ``p-<epoch milliseconds>-<first five lowercase chars of the
    name without whitespace>``.
    """
    moment = now or datetime.now()
    millis = int(moment.timestamp() * 1000)
    slug = "".join(name.split()).lower()[:5]
    return f"p-{millis}-{slug}"


def serialize(doc: AppData, indent: int | None = None) -> str:
    """Render *doc* as JSON text (the local cache and export format)."""
    return json.dumps(doc.to_payload(), ensure_ascii=False, indent=indent)


# ------------------------------------------------------------------
# Sanitation
# ------------------------------------------------------------------


def _normalize_shape(data: dict[str, Any]) -> dict[str, Any]:
    """Fill defaults and lift legacy top-level archive slots.

    Documents written by older clients stored archives as extra top-level
    keys next to ``active_trips``; any such key holding a list becomes an
    entry of ``archives`` unless ``archives`` already has that name.
    """
    active = data.get("active_trips")
    if active is None:
        active = []

    name = data.get("currentWeekName", data.get("current_week_name"))
    if not isinstance(name, str) or not name.strip():
        name = DEFAULT_WEEK_NAME

    archives_raw = data.get("archives")
    archives: dict[str, Any] = (
        dict(archives_raw) if isinstance(archives_raw, dict) else {}
    )
    for key, value in data.items():
        if key in _RESERVED_KEYS or not isinstance(value, list):
            continue
        archives.setdefault(key, value)

    return {
        "active_trips": active,
        "currentWeekName": name,
        "archives": archives,
    }


def sanitize(raw: Any) -> AppData:
    """Turn untrusted input into a well-formed ``AppData``.

    Accepts ``None``, serialized text (``str``/``bytes``), a structured
    mapping, or an ``AppData``.  Never raises: malformed input is logged
    and replaced by the empty default document.

    Args:
        raw: The payload to sanitize.

    Returns:
        A valid document.
    """
    if isinstance(raw, AppData):
        return raw.model_copy(deep=True)
    if raw is None:
        return AppData.default()

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Discarding document: payload is not UTF-8")
            return AppData.default()

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Discarding document: invalid JSON (%s)", exc)
            return AppData.default()

    if not isinstance(raw, dict):
        logger.warning(
            "Discarding document: expected an object, got %s",
            type(raw).__name__,
        )
        return AppData.default()

    try:
        return AppData.model_validate(_normalize_shape(raw))
    except ValidationError as exc:
        logger.warning(
            "Discarding document: %d shape error(s), first: %s",
            exc.error_count(),
            exc.errors()[0]["msg"],
        )
        return AppData.default()

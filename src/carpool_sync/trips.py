"""Trip merge resolver and participant edits.

Every function here is pure: it takes an ``AppData`` (or a ``Trip``) and
returns an updated copy, leaving the input untouched.  The caller hands
the result to ``SyncEngine.save()``.

Merging a target name set into a trip is a *replacement* of the
participant set: names already on the trip keep their record (``id`` and
``paid``), new names get fresh unpaid records, and names missing from the
target set are dropped.
"""

from __future__ import annotations

import logging
import unicodedata
from collections.abc import Iterable
from datetime import date, datetime

from carpool_sync.exceptions import CarpoolValidationError
from carpool_sync.sync.models import (
    AppData,
    Participant,
    Trip,
    TripType,
    generate_participant_id,
)

logger = logging.getLogger(__name__)

WEEKDAYS_PT = (
    "Segunda-feira",
    "Terça-feira",
    "Quarta-feira",
    "Quinta-feira",
    "Sexta-feira",
    "Sábado",
    "Domingo",
)


# ------------------------------------------------------------------
# Ordering and formatting
# ------------------------------------------------------------------


def collation_key(name: str) -> tuple[str, str]:
    """Sort key approximating pt-BR collation.

    Accents and case are ignored at the primary level; the original string
    breaks ties so the order is total and deterministic.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (base.casefold(), name)


def sort_participants(participants: Iterable[Participant]) -> list[Participant]:
    return sorted(participants, key=lambda p: collation_key(p.name))


def format_trip_day(day: date) -> str:
    """Format *day* as ``"<Weekday> (<DD>/<MM>)"``."""
    return f"{WEEKDAYS_PT[day.weekday()]} ({day:%d/%m})"


def _coerce_date(value: date | str | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise CarpoolValidationError(f"Data inválida: {value!r}") from None


def _coerce_type(value: TripType | str) -> TripType:
    try:
        return TripType(value)
    except ValueError:
        raise CarpoolValidationError(
            f"Tipo inválido: {value!r} (use Ida ou Volta)"
        ) from None


# ------------------------------------------------------------------
# Name handling
# ------------------------------------------------------------------


def collect_target_names(
    selected: Iterable[str] = (), typed_text: str = ""
) -> list[str]:
    """Combine checkbox selections with typed names.

    Selected names are kept verbatim so they still match their stored
    records.  Typed text holds one name per line; lines are trimmed and
    blanks are dropped.  The union is deduplicated and returned in
    collation order.
    """
    names = {n for n in selected if n and n.strip()}
    names.update(
        line.strip() for line in typed_text.splitlines() if line.strip()
    )
    return sorted(names, key=collation_key)


def all_unique_names(doc: AppData) -> list[str]:
    """Every participant name in the active week and all archives."""
    names: set[str] = set()
    for trip in doc.active_trips:
        names.update(p.name for p in trip.participants)
    for trips in doc.archives.values():
        for trip in trips:
            names.update(p.name for p in trip.participants)
    return sorted(names, key=collation_key)


def filter_names(names: Iterable[str], term: str) -> list[str]:
    """Case-insensitive substring filter; a blank term keeps everything."""
    needle = term.strip().lower()
    if not needle:
        return list(names)
    return [n for n in names if needle in n.lower()]


# ------------------------------------------------------------------
# Merge
# ------------------------------------------------------------------


def find_trip(doc: AppData, day: str, trip_type: TripType | str) -> int | None:
    """Return the index of the active trip for ``(day, type)``, if any."""
    wanted = _coerce_type(trip_type)
    for index, trip in enumerate(doc.active_trips):
        if trip.day == day and trip.type == wanted:
            return index
    return None


def names_on_trip(
    doc: AppData, day: str, trip_types: Iterable[TripType | str]
) -> list[str]:
    """Names on the first existing trip matching *day* and any of *trip_types*.

    Used to preselect names when editing an existing trip.
    """
    wanted = {_coerce_type(t) for t in trip_types}
    for trip in doc.active_trips:
        if trip.day == day and trip.type in wanted:
            return [p.name for p in trip.participants]
    return []


def merge_trip(
    existing: Trip | None,
    day: str,
    trip_type: TripType | str,
    names: Iterable[str],
    now: datetime | None = None,
) -> Trip:
    """Resolve the participant list of one ``(day, type)`` trip.

    Args:
        existing: The current trip for this day and direction, if any.
        day: Formatted day label.
        trip_type: Direction.
        names: Target participant names (already deduplicated).
        now: Creation time used for new participant ids.

    Returns:
        The merged trip, participants in collation order.
    """
    moment = now or datetime.now()
    by_name: dict[str, Participant] = {}
    if existing is not None:
        for p in existing.participants:
            by_name.setdefault(p.name, p)

    used_ids = {p.id for p in by_name.values()}
    merged: list[Participant] = []
    for name in dict.fromkeys(names):
        person = by_name.get(name)
        if person is None:
            pid = base = generate_participant_id(name, moment)
            suffix = 2
            while pid in used_ids:
                pid = f"{base}-{suffix}"
                suffix += 1
            person = Participant(id=pid, name=name)
        used_ids.add(person.id)
        merged.append(person)

    return Trip(
        day=day,
        type=_coerce_type(trip_type),
        time=existing.time if existing is not None else None,
        participants=sort_participants(merged),
    )


def add_trips(
    doc: AppData,
    trip_date: date | str | None,
    trip_types: Iterable[TripType | str],
    names: Iterable[str],
    now: datetime | None = None,
) -> AppData:
    """Create or update the trips of one day for each selected direction.

    Each direction is resolved independently against the existing trip of
    the same ``(day, type)``.  New trips are appended in direction order.

    Raises:
        CarpoolValidationError: If the date is missing, no direction is
            selected, or the name set is empty.  Nothing is changed.
    """
    day_value = _coerce_date(trip_date)
    if day_value is None:
        raise CarpoolValidationError("Selecione a data.")

    types = list(dict.fromkeys(_coerce_type(t) for t in trip_types))
    if not types:
        raise CarpoolValidationError(
            "Selecione pelo menos um tipo (Ida ou Volta)."
        )

    target = collect_target_names(names)
    if not target:
        raise CarpoolValidationError("Adicione participantes.")

    day = format_trip_day(day_value)
    moment = now or datetime.now()
    trips = list(doc.active_trips)
    for trip_type in types:
        index = find_trip(doc, day, trip_type)
        if index is not None:
            trips[index] = merge_trip(
                trips[index], day, trip_type, target, moment
            )
        else:
            trips.append(merge_trip(None, day, trip_type, target, moment))

    logger.debug(
        "Saved %s for %s with %d participant(s)",
        "/".join(t.value for t in types),
        day,
        len(target),
    )
    return doc.model_copy(update={"active_trips": trips})


# ------------------------------------------------------------------
# Participant and trip edits
# ------------------------------------------------------------------


def _trip_at(doc: AppData, trip_index: int) -> Trip:
    if not 0 <= trip_index < len(doc.active_trips):
        raise CarpoolValidationError(f"Viagem {trip_index} não existe.")
    return doc.active_trips[trip_index]


def _participant_at(trip: Trip, participant_index: int) -> Participant:
    if not 0 <= participant_index < len(trip.participants):
        raise CarpoolValidationError(
            f"Participante {participant_index} não existe."
        )
    return trip.participants[participant_index]


def _replace_trip(doc: AppData, trip_index: int, trip: Trip) -> AppData:
    trips = list(doc.active_trips)
    trips[trip_index] = trip
    return doc.model_copy(update={"active_trips": trips})


def toggle_payment(
    doc: AppData, trip_index: int, participant_index: int
) -> AppData:
    """Flip the paid flag of one participant.  Order is unchanged."""
    trip = _trip_at(doc, trip_index)
    person = _participant_at(trip, participant_index)
    participants = list(trip.participants)
    participants[participant_index] = person.model_copy(
        update={"paid": not person.paid}
    )
    return _replace_trip(
        doc, trip_index, trip.model_copy(update={"participants": participants})
    )


def rename_participant(
    doc: AppData, trip_index: int, participant_index: int, new_name: str
) -> AppData:
    """Rename one participant, keeping its id, and re-sort the trip."""
    name = new_name.strip()
    if not name:
        raise CarpoolValidationError("Nome não pode ser vazio.")
    trip = _trip_at(doc, trip_index)
    person = _participant_at(trip, participant_index)
    participants = list(trip.participants)
    participants[participant_index] = person.model_copy(update={"name": name})
    return _replace_trip(
        doc,
        trip_index,
        trip.model_copy(
            update={"participants": sort_participants(participants)}
        ),
    )


def delete_participant(
    doc: AppData, trip_index: int, participant_index: int
) -> AppData:
    """Remove one participant from a trip."""
    trip = _trip_at(doc, trip_index)
    _participant_at(trip, participant_index)
    participants = list(trip.participants)
    del participants[participant_index]
    return _replace_trip(
        doc, trip_index, trip.model_copy(update={"participants": participants})
    )


def delete_trip(doc: AppData, trip_index: int) -> AppData:
    """Remove one trip from the active week."""
    _trip_at(doc, trip_index)
    trips = list(doc.active_trips)
    del trips[trip_index]
    return doc.model_copy(update={"active_trips": trips})

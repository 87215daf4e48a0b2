"""Week archive manager.

Rotates the active week into a keyed archive slot, installs new or stored
weeks, and derives week names from a start date.  All functions are pure
and return updated copies of the document.

Rotation never overwrites an archive slot: a colliding (or sentinel) name
is disambiguated with an ``" (Arq. <date>-<ticker>)"`` suffix.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import NamedTuple

from carpool_sync.exceptions import (
    CarpoolValidationError,
    WeekCollisionError,
    WeekNotFoundError,
)
from carpool_sync.sync.models import DEFAULT_WEEK_NAME, AppData
from carpool_sync.trips import collation_key

logger = logging.getLogger(__name__)

WEEK_LENGTH_DAYS = 5

_WEEK_START_PATTERN = re.compile(r"Semana (\d{2})/(\d{2})/(\d{4})")


class RotationResult(NamedTuple):
    """Outcome of a rotation.

    Attributes:
        archived_name: Archive key the active week was stored under, or
            ``None`` when nothing was archived.
        updated: The resulting document.
    """

    archived_name: str | None
    updated: AppData


def _format_date(day: date) -> str:
    return f"{day:%d/%m/%Y}"


def derive_week_name(start: date | str | None) -> str | None:
    """Name the five-day week beginning on *start*.

    Args:
        start: A ``date`` or ISO ``YYYY-MM-DD`` string.

    Returns:
        ``"Semana DD/MM/YYYY - DD/MM/YYYY"``, or ``None`` when no start
        date is supplied.
    """
    if not start:
        return None
    if isinstance(start, datetime):
        start = start.date()
    elif isinstance(start, str):
        try:
            start = date.fromisoformat(start)
        except ValueError:
            raise CarpoolValidationError(f"Data inválida: {start!r}") from None
    end = start + timedelta(days=WEEK_LENGTH_DAYS - 1)
    return f"Semana {_format_date(start)} - {_format_date(end)}"


def parse_start_date(week_name: str) -> date | None:
    """Recover the start date from a derived week name, if it has one."""
    match = _WEEK_START_PATTERN.search(week_name)
    if not match:
        return None
    day, month, year = (int(g) for g in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def list_weeks(doc: AppData) -> list[str]:
    """Current week name followed by archived names in collation order."""
    return [doc.current_week_name, *sorted(doc.archives, key=collation_key)]


# ------------------------------------------------------------------
# Rotation
# ------------------------------------------------------------------


def _archive_key(doc: AppData, now: datetime) -> str:
    name = doc.current_week_name
    if name not in doc.archives and name != DEFAULT_WEEK_NAME:
        return name

    ticker = int(now.timestamp() * 1000) % 1000
    while True:
        key = f"{name} (Arq. {_format_date(now.date())}-{ticker})"
        if key not in doc.archives:
            return key
        ticker += 1


def rotate(doc: AppData, now: datetime | None = None) -> RotationResult:
    """Move the active week into the archives.

    A no-op only when there are no active trips and the current name is
    either the sentinel or already archived.  Otherwise the trips are
    stored under a unique key, the active list is cleared and the name is
    reset to the sentinel.
    """
    name = doc.current_week_name
    if not doc.active_trips and (
        name == DEFAULT_WEEK_NAME or name in doc.archives
    ):
        return RotationResult(None, doc)

    key = _archive_key(doc, now or datetime.now())
    archives = dict(doc.archives)
    archives[key] = list(doc.active_trips)
    logger.info("Archived week %r as %r", name, key)
    return RotationResult(
        key,
        doc.model_copy(
            update={
                "archives": archives,
                "active_trips": [],
                "current_week_name": DEFAULT_WEEK_NAME,
            }
        ),
    )


def start_new_week(
    doc: AppData, start: date | str | None, now: datetime | None = None
) -> RotationResult:
    """Archive the active week and open the week starting on *start*.

    Returns:
        The rotation result; ``updated`` has the new week installed.

    Raises:
        CarpoolValidationError: If no start date is given.
        WeekCollisionError: If the derived week already exists.  Nothing
            is changed.
    """
    new_name = derive_week_name(start)
    if new_name is None:
        raise CarpoolValidationError("Selecione uma data.")

    archived_name, updated = rotate(doc, now)
    if new_name in updated.archives:
        raise WeekCollisionError(new_name)

    return RotationResult(
        archived_name,
        updated.model_copy(
            update={"current_week_name": new_name, "active_trips": []}
        ),
    )


def select_week(
    doc: AppData, week_name: str, now: datetime | None = None
) -> AppData:
    """Make *week_name* the active week.

    The current week is rotated out first.  The sentinel installs an empty
    active set; an archived name moves its trips into the active set and
    its slot is deleted.  Selecting the current (non-sentinel) week is a
    no-op.

    Raises:
        WeekNotFoundError: If *week_name* is neither the sentinel nor an
            archived week.
    """
    if week_name == doc.current_week_name and week_name != DEFAULT_WEEK_NAME:
        return doc
    if week_name != DEFAULT_WEEK_NAME and week_name not in doc.archives:
        raise WeekNotFoundError(week_name)

    _, updated = rotate(doc, now)
    archives = dict(updated.archives)
    if week_name == DEFAULT_WEEK_NAME:
        trips = []
    else:
        trips = [t.model_copy(deep=True) for t in archives.pop(week_name)]

    return updated.model_copy(
        update={
            "archives": archives,
            "active_trips": trips,
            "current_week_name": week_name,
        }
    )


def delete_week(doc: AppData, week_name: str) -> AppData:
    """Permanently delete a week.  Irreversible; confirm before calling.

    Deleting the active week clears its trips and resets the name to the
    sentinel; archives are untouched.  Otherwise the archive slot is
    removed.

    Raises:
        WeekNotFoundError: If no such week exists.
    """
    if week_name == doc.current_week_name:
        return doc.model_copy(
            update={"active_trips": [], "current_week_name": DEFAULT_WEEK_NAME}
        )
    if week_name not in doc.archives:
        raise WeekNotFoundError(week_name)

    archives = dict(doc.archives)
    del archives[week_name]
    return doc.model_copy(update={"archives": archives})


def rename_active_week(doc: AppData, new_name: str) -> AppData:
    """Rename the active week.

    Raises:
        CarpoolValidationError: If no week was started or the name is blank.
        WeekCollisionError: If an archived week already uses the name.
    """
    if doc.is_default_week:
        raise CarpoolValidationError("Nenhuma semana iniciada para renomear.")
    name = new_name.strip()
    if not name:
        raise CarpoolValidationError("Nome da semana não pode ser vazio.")
    if name == DEFAULT_WEEK_NAME or name in doc.archives:
        raise WeekCollisionError(name)
    return doc.model_copy(update={"current_week_name": name})

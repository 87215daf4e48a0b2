"""Exception hierarchy for carpool_sync."""

from __future__ import annotations


class CarpoolError(Exception):
    """Base exception for all carpool_sync errors."""


class RemoteUnreachableError(CarpoolError):
    """The remote store could not be contacted or answered with an error."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message)


class MalformedDocumentError(CarpoolError):
    """An imported payload is not a document object."""


class CarpoolValidationError(CarpoolError, ValueError):
    """Required input is missing or invalid. No state was changed."""


class WeekNotFoundError(CarpoolValidationError):
    """The named week is neither active nor archived."""

    def __init__(self, week_name: str) -> None:
        self.week_name = week_name
        super().__init__(f'Semana "{week_name}" não encontrada.')


class WeekCollisionError(CarpoolError):
    """A week with the requested name already exists."""

    def __init__(self, week_name: str) -> None:
        self.week_name = week_name
        super().__init__(f'A semana "{week_name}" já existe.')


class StoreNotLoadedError(CarpoolError, RuntimeError):
    """save() was called before the initial load completed."""

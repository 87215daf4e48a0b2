"""Tests for week naming, rotation and the archive operations."""

from datetime import date, datetime

import pytest

from carpool_sync.exceptions import (
    CarpoolValidationError,
    WeekCollisionError,
    WeekNotFoundError,
)
from carpool_sync.sync.models import DEFAULT_WEEK_NAME, AppData
from carpool_sync.trips import add_trips
from carpool_sync.weeks import (
    delete_week,
    derive_week_name,
    list_weeks,
    parse_start_date,
    rename_active_week,
    rotate,
    select_week,
    start_new_week,
)

WEEK_1 = "Semana 03/06/2024 - 07/06/2024"
WEEK_2 = "Semana 10/06/2024 - 14/06/2024"
ROTATED_AT = datetime(2024, 6, 10, 8, 0, 0, 42000)


def _stamp(now):
    return f"{now:%d/%m/%Y}-{int(now.timestamp() * 1000) % 1000}"


@pytest.fixture
def week_one(now):
    _, doc = start_new_week(AppData.default(), date(2024, 6, 3), now)
    return add_trips(doc, date(2024, 6, 3), ["Ida"], ["Ana", "Bruno"], now)


class TestNaming:
    def test_derive_week_name(self):
        assert derive_week_name(date(2024, 6, 3)) == WEEK_1
        assert derive_week_name("2024-06-10") == WEEK_2
        assert derive_week_name(datetime(2024, 6, 3, 12, 0)) == WEEK_1

    def test_month_boundary(self):
        assert (
            derive_week_name(date(2024, 5, 29))
            == "Semana 29/05/2024 - 02/06/2024"
        )

    def test_missing_date(self):
        assert derive_week_name(None) is None
        assert derive_week_name("") is None

    def test_invalid_date(self):
        with pytest.raises(CarpoolValidationError):
            derive_week_name("2024-13-40")

    def test_parse_start_date(self):
        assert parse_start_date(WEEK_1) == date(2024, 6, 3)
        assert parse_start_date("Minha semana") is None


class TestRotate:
    def test_noop_on_empty_default(self):
        doc = AppData.default()
        archived, updated = rotate(doc, ROTATED_AT)
        assert archived is None
        assert updated is doc

    def test_archives_under_current_name(self, week_one):
        archived, updated = rotate(week_one, ROTATED_AT)
        assert archived == WEEK_1
        assert updated.archives[WEEK_1] == week_one.active_trips
        assert updated.active_trips == []
        assert updated.is_default_week

    def test_sentinel_name_is_disambiguated(self, now):
        doc = add_trips(AppData.default(), date(2024, 6, 3), ["Ida"], ["Ana"], now)
        archived, updated = rotate(doc, ROTATED_AT)
        assert archived == f"{DEFAULT_WEEK_NAME} (Arq. {_stamp(ROTATED_AT)})"
        assert DEFAULT_WEEK_NAME not in updated.archives

    def test_collision_never_overwrites(self, week_one):
        existing = {WEEK_1: []}
        doc = week_one.model_copy(update={"archives": existing})
        archived, updated = rotate(doc, ROTATED_AT)
        assert archived == f"{WEEK_1} (Arq. {_stamp(ROTATED_AT)})"
        assert updated.archives[WEEK_1] == []
        assert len(updated.archives) == 2

    def test_ticker_advances_past_taken_keys(self, week_one):
        taken = f"{WEEK_1} (Arq. {_stamp(ROTATED_AT)})"
        doc = week_one.model_copy(update={"archives": {WEEK_1: [], taken: []}})
        archived, _ = rotate(doc, ROTATED_AT)
        ticker = int(ROTATED_AT.timestamp() * 1000) % 1000 + 1
        assert archived == f"{WEEK_1} (Arq. {ROTATED_AT:%d/%m/%Y}-{ticker})"

    def test_empty_named_week_is_archived(self, now):
        _, doc = start_new_week(AppData.default(), date(2024, 6, 3), now)
        archived, updated = rotate(doc, ROTATED_AT)
        assert archived == WEEK_1
        assert updated.archives == {WEEK_1: []}


class TestStartNewWeek:
    def test_from_default(self, now):
        archived, doc = start_new_week(AppData.default(), "2024-06-03", now)
        assert archived is None
        assert doc.current_week_name == WEEK_1
        assert doc.active_trips == []

    def test_archives_previous_week(self, week_one):
        archived, doc = start_new_week(week_one, date(2024, 6, 10), ROTATED_AT)
        assert archived == WEEK_1
        assert doc.current_week_name == WEEK_2
        assert list(doc.archives) == [WEEK_1]

    def test_collision(self, week_one):
        _, doc = start_new_week(week_one, date(2024, 6, 10), ROTATED_AT)
        with pytest.raises(WeekCollisionError, match="já existe"):
            start_new_week(doc, date(2024, 6, 3), ROTATED_AT)

    def test_missing_date(self):
        with pytest.raises(CarpoolValidationError, match="Selecione uma data."):
            start_new_week(AppData.default(), None)


class TestSelectWeek:
    @pytest.fixture
    def two_weeks(self, week_one):
        _, doc = start_new_week(week_one, date(2024, 6, 10), ROTATED_AT)
        return add_trips(doc, date(2024, 6, 10), ["Volta"], ["Carla"], ROTATED_AT)

    def test_swap_with_archive(self, two_weeks, week_one):
        doc = select_week(two_weeks, WEEK_1, ROTATED_AT)
        assert doc.current_week_name == WEEK_1
        assert doc.active_trips == week_one.active_trips
        assert WEEK_1 not in doc.archives
        assert WEEK_2 in doc.archives

    def test_round_trip_restores_trips(self, two_weeks):
        there = select_week(two_weeks, WEEK_1, ROTATED_AT)
        back = select_week(there, WEEK_2, ROTATED_AT)
        assert back.current_week_name == WEEK_2
        assert back.active_trips == two_weeks.active_trips
        assert back.archives == two_weeks.archives

    def test_selecting_current_is_noop(self, two_weeks):
        assert select_week(two_weeks, WEEK_2) is two_weeks

    def test_selecting_sentinel_starts_empty(self, two_weeks):
        doc = select_week(two_weeks, DEFAULT_WEEK_NAME, ROTATED_AT)
        assert doc.is_default_week
        assert doc.active_trips == []
        assert set(doc.archives) == {WEEK_1, WEEK_2}

    def test_unknown_week(self, two_weeks):
        with pytest.raises(WeekNotFoundError):
            select_week(two_weeks, "Semana inexistente")


class TestDeleteWeek:
    def test_delete_archive(self, week_one):
        _, doc = start_new_week(week_one, date(2024, 6, 10), ROTATED_AT)
        doc = delete_week(doc, WEEK_1)
        assert doc.archives == {}
        assert doc.current_week_name == WEEK_2

    def test_delete_active_resets_to_sentinel(self, week_one):
        doc = delete_week(week_one, WEEK_1)
        assert doc.is_default_week
        assert doc.active_trips == []

    def test_delete_unknown(self, week_one):
        with pytest.raises(WeekNotFoundError):
            delete_week(week_one, "Semana X")


class TestRenameAndList:
    def test_rename(self, week_one):
        doc = rename_active_week(week_one, "  Semana do feriado ")
        assert doc.current_week_name == "Semana do feriado"

    def test_rename_default_week_rejected(self):
        with pytest.raises(CarpoolValidationError):
            rename_active_week(AppData.default(), "Nova")

    def test_rename_blank_rejected(self, week_one):
        with pytest.raises(CarpoolValidationError):
            rename_active_week(week_one, "   ")

    def test_rename_collision(self, week_one):
        _, doc = start_new_week(week_one, date(2024, 6, 10), ROTATED_AT)
        with pytest.raises(WeekCollisionError):
            rename_active_week(doc, WEEK_1)
        with pytest.raises(WeekCollisionError):
            rename_active_week(doc, DEFAULT_WEEK_NAME)

    def test_list_weeks(self, week_one):
        _, doc = start_new_week(week_one, date(2024, 6, 10), ROTATED_AT)
        doc = doc.model_copy(
            update={"archives": {**doc.archives, "Aulas extras": []}}
        )
        assert list_weeks(doc) == [WEEK_2, "Aulas extras", WEEK_1]

"""Tests for the streak engine entry points: touch, recompute_all, snapshot."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from nutristreak.exceptions import MissingUserContextError, StreakError, UnknownActivityKindError
from nutristreak.models import EPOCH_FLOOR, ActivityKind, StreakSnapshot


class TestTouch:
    def test_first_touch_creates_state_lazily(self, streaks, streak_repo, user):
        assert streak_repo.read(user.id) is None

        streaks.touch(user.id, ActivityKind.FOOD)

        assert streak_repo.read(user.id) is not None

    def test_dispatches_by_kind(self, streaks, user, clock, activity_factory):
        clock.set_day(date(2025, 4, 2))
        activity_factory(user, ActivityKind.LOGIN, date(2025, 4, 1), date(2025, 4, 2))
        activity_factory(user, ActivityKind.FOOD, date(2025, 4, 2))

        after_login = streaks.touch(user.id, "login")
        assert after_login.login_current_days == 2
        assert after_login.food_current_days == 0

        after_food = streaks.touch(user.id, " FOOD ")
        assert after_food.login_current_days == 2
        assert after_food.food_current_days == 1

    def test_unknown_kind_writes_nothing(self, streaks, streak_repo, user):
        with pytest.raises(UnknownActivityKindError) as exc_info:
            streaks.touch(user.id, "water")

        assert isinstance(exc_info.value, ValueError)
        assert exc_info.value.kind == "water"
        assert streak_repo.read(user.id) is None

    @pytest.mark.parametrize("user_id", [None, "", "  ", "abc"])
    def test_missing_user_context(self, streaks, streak_repo, user_id):
        with pytest.raises(MissingUserContextError):
            streaks.touch(user_id, ActivityKind.LOGIN)
        assert streak_repo.list_user_ids() == []

    def test_unknown_user_is_rejected(self, streaks, streak_repo):
        with pytest.raises(MissingUserContextError) as exc_info:
            streaks.touch(404, ActivityKind.FOOD)
        assert exc_info.value.user_id == 404
        assert streak_repo.read(404) is None

    def test_numeric_string_user_id_is_accepted(self, streaks, user):
        state = streaks.touch(str(user.id), ActivityKind.LOGIN)
        assert state.user_id == user.id

    def test_storage_failure_leaves_state_unchanged(self, streaks, streak_repo, user, clock, db_engine):
        """A failing UPDATE rolls back; the stored activity lets a later touch catch up."""
        clock.set_day(date(2025, 4, 2))
        streaks.record_food_day(user.id)
        before = streak_repo.read(user.id)

        def fail_streak_update(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().upper().startswith("UPDATE STREAK_STATE"):
                raise OperationalError(statement, parameters, Exception("disk I/O error"))

        event.listen(db_engine, "before_cursor_execute", fail_streak_update)
        clock.set_day(date(2025, 4, 3))
        try:
            with pytest.raises(OperationalError):
                streaks.record_food_day(user.id)
        finally:
            event.remove(db_engine, "before_cursor_execute", fail_streak_update)

        after = streak_repo.read(user.id)
        assert after.version == before.version
        assert after.food_current_days == before.food_current_days
        assert after.food_current_end_date == date(2025, 4, 2)
        assert after.food_pending_missing_days == before.food_pending_missing_days
        assert after.last_recomputed_at == before.last_recomputed_at

        retried = streaks.touch(user.id, ActivityKind.FOOD)

        assert retried.version == before.version + 1
        assert retried.food_current_days == 2
        assert retried.food_current_end_date == date(2025, 4, 3)
        assert retried.food_pending_missing_days == 1


class TestRecomputeAll:
    def test_refreshes_both_streaks(self, streaks, user, clock, activity_factory):
        activity_factory(user, ActivityKind.LOGIN, date(2025, 5, 1), date(2025, 5, 2), date(2025, 5, 3))
        activity_factory(user, ActivityKind.FOOD, date(2025, 5, 1), date(2025, 5, 2), date(2025, 5, 3))
        clock.set_day(date(2025, 5, 3))

        state = streaks.recompute_all(user.id)

        assert state.login_current_days == 3
        assert state.login_pr_days == 3
        assert state.food_current_days == 3
        assert state.food_current_start_date == date(2025, 5, 1)
        assert state.food_pr_days == 3
        assert state.last_recomputed_at is not None

    def test_is_idempotent(self, streaks, user, clock, activity_factory):
        activity_factory(user, ActivityKind.FOOD, date(2025, 5, 2), date(2025, 5, 3))
        activity_factory(user, ActivityKind.LOGIN, date(2025, 5, 3))
        clock.set_day(date(2025, 5, 3))

        streaks.recompute_all(user.id)
        first = streaks.snapshot(user.id)
        streaks.recompute_all(user.id)

        assert streaks.snapshot(user.id) == first

    def test_after_long_absence(self, streaks, user, clock):
        clock.set_day(date(2025, 1, 1))
        streaks.record_login(user.id)
        streaks.record_food_day(user.id)

        clock.set_day(date(2025, 6, 1))
        state = streaks.recompute_all(user.id)

        assert state.login_current_days == 0
        assert state.login_pr_days == 1
        assert state.food_current_days == 0
        assert state.food_break_floor_date == date(2025, 5, 29)

    def test_requires_user(self, streaks):
        with pytest.raises(StreakError):
            streaks.recompute_all(None)


class TestSnapshot:
    def test_user_without_state_reads_empty(self, streaks, streak_repo, user):
        snapshot = streaks.snapshot(user.id)

        assert snapshot == StreakSnapshot.empty(user.id)
        assert snapshot.login.current_days == 0
        assert snapshot.food.pr_days == 0
        assert snapshot.food_break_floor_date == EPOCH_FLOOR
        # Reading never creates the row
        assert streak_repo.read(user.id) is None

    def test_snapshot_does_not_write(self, streaks, streak_repo, user, clock):
        clock.set_day(date(2025, 1, 3))
        streaks.record_login(user.id)
        version = streak_repo.read(user.id).version

        clock.set_day(date(2025, 1, 10))
        snapshot = streaks.snapshot(user.id)

        # Stored values are reported as-is, even if stale
        assert snapshot.login.current_days == 1
        assert streak_repo.read(user.id).version == version

    def test_as_dict_uses_iso_dates(self, streaks, user, clock):
        clock.set_day(date(2025, 1, 3))
        streaks.record_food_day(user.id)

        data = streaks.snapshot(user.id).as_dict()

        assert data["user_id"] == user.id
        assert data["food_current_start_date"] == "2025-01-03"
        assert data["food_current_days"] == 1
        assert data["food_break_floor_date"] == "2024-12-31"
        assert data["login_current_start_date"] is None

    def test_food_on_hold_flag(self, streaks, user, clock):
        clock.set_day(date(2025, 1, 3))
        streaks.record_food_day(user.id)
        assert streaks.snapshot(user.id).food_on_hold  # 01-01 and 01-02 still open

        clock.set_day(date(2025, 1, 20))
        streaks.recompute_all(user.id)
        assert not streaks.snapshot(user.id).food_on_hold


def test_timezone_change_applies_on_next_call(streaks, user_repo, user, clock, activity_factory):
    """Changing timezone re-derives local today; counted days are not revisited."""
    activity_factory(user, ActivityKind.LOGIN, date(2025, 1, 1))
    clock.now = clock.now.replace(year=2025, month=1, day=2, hour=2)

    assert streaks.touch(user.id, ActivityKind.LOGIN).login_current_days == 0

    user_repo.set_timezone(user.id, "America/New_York")
    state = streaks.touch(user.id, ActivityKind.LOGIN)

    assert state.login_current_days == 1
    assert state.login_current_end_date == date(2025, 1, 1)

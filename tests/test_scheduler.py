"""Tests for the nightly streak maintenance job."""

from __future__ import annotations

from datetime import date

import pytest

from nutristreak.exceptions import StaleStreakStateError
from nutristreak.models import ActivityKind
from nutristreak.scheduler import NIGHTLY_JOB_ID, StreakMaintenanceScheduler


@pytest.fixture
def maintenance(app_ctx):
    scheduler = StreakMaintenanceScheduler(app_ctx)
    yield scheduler
    scheduler.stop()


def test_nightly_recompute_refreshes_users_with_state(app_ctx, maintenance, clock):
    alice = app_ctx.user_repo.create("alice", timezone="UTC")
    bob = app_ctx.user_repo.create("bob", timezone="UTC")
    app_ctx.user_repo.create("carol")  # never touched

    clock.set_day(date(2025, 1, 1))
    app_ctx.streaks.record_login(alice.id)
    app_ctx.streaks.record_food_day(bob.id)

    clock.set_day(date(2025, 1, 10))
    results = maintenance.run_nightly_recompute()

    assert results == {alice.id: True, bob.id: True}
    assert app_ctx.streaks.snapshot(alice.id).login.current_days == 0
    assert app_ctx.streaks.snapshot(alice.id).login.pr_days == 1
    assert app_ctx.streaks.snapshot(bob.id).food_break_floor_date == date(2025, 1, 7)


def test_one_failure_does_not_stop_the_rest(app_ctx, maintenance, clock, monkeypatch):
    alice = app_ctx.user_repo.create("alice")
    bob = app_ctx.user_repo.create("bob")
    dave = app_ctx.user_repo.create("dave")
    for member in (alice, bob, dave):
        app_ctx.streak_repo.ensure_row(member.id)
    app_ctx.activity_repo.record(dave.id, ActivityKind.FOOD, date(2025, 1, 1))
    clock.set_day(date(2025, 1, 1))

    original = app_ctx.streaks.recompute_all

    def flaky(user_id):
        if user_id == alice.id:
            raise StaleStreakStateError(user_id, 0)
        if user_id == bob.id:
            raise RuntimeError("boom")
        return original(user_id)

    monkeypatch.setattr(app_ctx.streaks, "recompute_all", flaky)

    results = maintenance.run_nightly_recompute()

    assert results == {alice.id: False, bob.id: False, dave.id: True}
    assert app_ctx.streaks.snapshot(dave.id).food.current_days == 1


def test_start_registers_cron_job(app_ctx, maintenance):
    app_ctx.config.RECOMPUTE_HOUR = 4

    maintenance.start()

    assert maintenance.running
    job = maintenance.scheduler.get_job(NIGHTLY_JOB_ID)
    assert job is not None
    assert str(job.trigger.fields[5]) == "4"  # hour field

    maintenance.stop()
    assert not maintenance.running


def test_start_twice_keeps_single_scheduler(app_ctx, maintenance):
    maintenance.start()
    first = maintenance.scheduler

    maintenance.start()

    assert maintenance.scheduler is first
    assert len(first.get_jobs()) == 1

from datetime import date, timedelta

import pytest

from ritual.apps.api.services.routine import compute_streak
from ritual.apps.api.services.routine.streaks import window_start

TODAY = date(2026, 3, 10)


def _days(*offsets):
    return [TODAY - timedelta(days=n) for n in offsets]


def test_streak_through_today():
    result = compute_streak(_days(0, 1, 2), 30, TODAY)
    assert (result.current_streak, result.longest_streak) == (3, 3)
    assert result.completion_rate == 10.0
    assert result.last_completion_date == TODAY


def test_yesterday_keeps_streak_alive():
    result = compute_streak(_days(1, 2), 30, TODAY)
    assert result.current_streak == 2


def test_stale_streak_is_not_current():
    result = compute_streak(_days(3, 4), 30, TODAY)
    assert (result.current_streak, result.longest_streak) == (0, 2)


def test_longest_run_can_be_older_than_current():
    result = compute_streak(_days(0, 1, 5, 6, 7, 8, 20), 30, TODAY)
    assert result.current_streak == 2
    assert result.longest_streak == 4


def test_input_order_and_duplicates_do_not_matter():
    shuffled = _days(2, 0, 1, 0, 2)
    result = compute_streak(shuffled, 30, TODAY)
    assert (result.current_streak, result.longest_streak) == (3, 3)
    assert result.total_completions == 3


def test_completion_rate_is_capped():
    result = compute_streak(_days(*range(40)), 30, TODAY)
    assert result.completion_rate == 100.0
    assert result.longest_streak == 40


def test_completion_rate_only_counts_window():
    result = compute_streak(_days(0, 10, 45), 10, TODAY)
    assert result.total_completions == 2
    assert result.completion_rate == 20.0


def test_future_days_are_ignored():
    result = compute_streak([TODAY + timedelta(days=1), TODAY], 30, TODAY)
    assert result.current_streak == 1
    assert result.last_completion_date == TODAY


def test_empty_history():
    result = compute_streak([], 30, TODAY)
    assert (result.current_streak, result.longest_streak, result.completion_rate) == (0, 0, 0.0)
    assert result.last_completion_date is None


def test_window_must_be_positive():
    with pytest.raises(ValueError):
        compute_streak(_days(0), 0, TODAY)


@pytest.mark.asyncio
async def test_analyzer_reads_fully_completed_days(analyzer, store, morning):
    for offset in (0, 1, 2):
        store.put_completion("user-1", TODAY - timedelta(days=offset), ["a1", "a2", "a3"], True)
    store.put_completion("user-1", TODAY - timedelta(days=3), ["a1"], False)
    store.put_completion("user-1", TODAY - timedelta(days=4), ["a1", "a2", "a3"], True)

    result = await analyzer.compute("user-1", 30)

    assert result.current_streak == 3
    assert result.longest_streak == 3
    assert result.total_completions == 4
    assert result.window_days == 30


@pytest.mark.asyncio
async def test_analyzer_uses_configured_default_window(analyzer, settings):
    result = await analyzer.compute("nobody")
    assert result.window_days == settings.streak_window_days
    assert result.current_streak == 0


def test_window_includes_its_first_day():
    result = compute_streak(_days(0, 10, 11), 10, TODAY)
    assert window_start(TODAY, 10) == TODAY - timedelta(days=10)
    assert result.total_completions == 2


def test_longest_ignores_runs_entirely_before_window():
    result = compute_streak(_days(0, *range(20, 30)), 10, TODAY)
    assert result.current_streak == 1
    assert result.longest_streak == 1


def test_days_with_activity_counts_partial_days_in_window():
    result = compute_streak(_days(0), 30, TODAY, active_days=_days(0, 2, 5, 40))
    assert result.days_with_activity == 3
    assert result.total_completions == 1


@pytest.mark.asyncio
async def test_current_streak_extends_past_the_window(analyzer, store, morning):
    for offset in range(45):
        store.put_completion("user-1", TODAY - timedelta(days=offset), ["a1", "a2", "a3"], True)

    result = await analyzer.compute("user-1", 30)

    assert result.current_streak == 45
    assert result.longest_streak == 45
    assert result.total_completions == 31
    assert result.completion_rate == 100.0


@pytest.mark.asyncio
async def test_analyzer_reports_days_with_any_activity(analyzer, store, morning):
    store.put_completion("user-1", TODAY, ["a1", "a2", "a3"], True)
    store.put_completion("user-1", TODAY - timedelta(days=1), ["a2"], False)
    store.put_completion("user-1", TODAY - timedelta(days=2), [], False)
    store.put_completion("user-1", TODAY - timedelta(days=60), ["a1"], False)

    result = await analyzer.compute("user-1", 30)

    assert result.days_with_activity == 2
    assert result.total_completions == 1

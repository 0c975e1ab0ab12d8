# tests/services/test_due_status.py
from collections import namedtuple
from datetime import date, timedelta

import pytest

from fleet_compliance.services.due_status import (
    DueState,
    classify,
    classify_cadence,
    due_soon_threshold,
    forecast_bucket,
    overdue_sort_key,
    sort_most_overdue,
)
from fleet_compliance.services.errors import InputError

TODAY = date(2024, 3, 15)

Item = namedtuple("Item", "id due_date due_odometer current_odometer")


def test_mileage_only_item_past_due_odometer_is_overdue_by_mileage():
    due = classify(None, 49000, TODAY, current_odometer=50000)

    assert due.state is DueState.OVERDUE
    assert due.trigger == "mileage"
    assert due.odometer_overage == 1000


def test_due_date_today_is_overdue_by_date():
    due = classify(TODAY, None, TODAY)

    assert due.state is DueState.OVERDUE
    assert due.trigger == "date"
    assert due.days_overdue == 0


def test_both_triggers_firing_are_tagged_together():
    due = classify(TODAY - timedelta(days=3), 1000, TODAY, current_odometer=1000)

    assert due.state is DueState.OVERDUE
    assert due.trigger == "date+mileage"


def test_either_trigger_firing_is_enough():
    # date is in the future but the odometer already passed
    due = classify(TODAY + timedelta(days=60), 10_000, TODAY, current_odometer=12_000)

    assert due.is_overdue
    assert due.trigger == "mileage"


def test_item_without_any_trigger_is_rejected():
    with pytest.raises(InputError):
        classify(None, None, TODAY, current_odometer=1000)


def test_unknown_current_odometer_never_fires_mileage_trigger():
    due = classify(None, 49000, TODAY, current_odometer=None)

    assert due.state is DueState.OK
    assert due.trigger is None


def test_due_soon_by_date_horizon():
    due = classify(TODAY + timedelta(days=7), None, TODAY)

    assert due.state is DueState.DUE_SOON


def test_outside_date_horizon_is_ok():
    due = classify(TODAY + timedelta(days=8), None, TODAY)

    assert due.state is DueState.OK


def test_due_soon_by_odometer_horizon():
    assert classify(None, 50_500, TODAY, current_odometer=50_000).state is DueState.DUE_SOON
    assert classify(None, 50_501, TODAY, current_odometer=50_000).state is DueState.OK


def test_custom_horizons_are_respected():
    due = classify(TODAY + timedelta(days=10), None, TODAY, due_soon_days=14)

    assert due.state is DueState.DUE_SOON


# -----------------------------------------------------------------------------
# Most-overdue ordering
# -----------------------------------------------------------------------------
def test_larger_odometer_overage_sorts_first():
    items = [
        Item(1, None, 49_500, 50_000),   # 500 over
        Item(2, None, 45_000, 50_000),   # 5000 over
        Item(3, None, 49_000, 50_000),   # 1000 over
    ]

    assert [i.id for i in sort_most_overdue(items)] == [2, 3, 1]


def test_date_only_items_follow_odometer_items_and_rank_by_date():
    items = [
        Item("a", date(2024, 3, 10), None, 50_000),
        Item("b", None, 49_900, 50_000),
        Item("c", date(2024, 1, 2), None, 50_000),
    ]

    assert [i.id for i in sort_most_overdue(items)] == ["b", "c", "a"]


def test_same_overage_tie_breaks_on_due_date_then_id():
    items = [
        Item(7, date(2024, 3, 1), 49_000, 50_000),
        Item(3, None, 49_000, 50_000),
        Item(5, date(2024, 2, 1), 49_000, 50_000),
        Item(4, date(2024, 2, 1), 49_000, 50_000),
    ]

    assert [i.id for i in sort_most_overdue(items)] == [4, 5, 7, 3]


def test_sort_key_is_a_total_order():
    items = [
        Item(1, date(2024, 2, 1), 49_000, 50_000),
        Item(2, date(2024, 2, 1), 49_000, 50_000),
        Item(3, date(2024, 2, 1), None, None),
        Item(4, None, 100, None),
    ]
    keys = [overdue_sort_key(i.id, i.due_date, i.due_odometer, i.current_odometer) for i in items]

    assert len(set(keys)) == len(keys)
    for a in keys:
        for b in keys:
            if a != b:
                assert (a < b) != (b < a)


def test_sort_is_independent_of_input_order():
    items = [
        Item(1, date(2024, 2, 1), 49_000, 50_000),
        Item(2, date(2024, 1, 1), None, 50_000),
        Item(3, None, 48_000, 50_000),
        Item(4, date(2024, 2, 1), 49_000, 50_000),
    ]

    forward = [i.id for i in sort_most_overdue(items)]
    backward = [i.id for i in sort_most_overdue(reversed(items))]

    assert forward == backward == [3, 1, 4, 2]


# -----------------------------------------------------------------------------
# Cadence
# -----------------------------------------------------------------------------
def test_due_soon_threshold_floors_and_never_hits_zero():
    assert due_soon_threshold(7) == 5
    assert due_soon_threshold(30) == 24
    assert due_soon_threshold(1) == 1


@pytest.mark.parametrize(
    "age, expected",
    [
        (0, DueState.OK),
        (4, DueState.OK),
        (5, DueState.DUE_SOON),
        (7, DueState.DUE_SOON),
        (8, DueState.OVERDUE),
        (40, DueState.OVERDUE),
    ],
)
def test_weekly_cadence_by_age(age, expected):
    due = classify_cadence(TODAY - timedelta(days=age), TODAY, 7)

    assert due.state is expected
    assert due.age_days == age


def test_cadence_without_any_completion_is_missing_not_ok():
    due = classify_cadence(None, TODAY, 30)

    assert due.state is DueState.MISSING
    assert due.state.needs_action


def test_cadence_requires_positive_interval():
    with pytest.raises(InputError):
        classify_cadence(TODAY, TODAY, 0)


def test_missing_and_overdue_share_the_most_urgent_rank():
    assert DueState.MISSING.rank == DueState.OVERDUE.rank < DueState.DUE_SOON.rank < DueState.OK.rank


# -----------------------------------------------------------------------------
# Forecast buckets
# -----------------------------------------------------------------------------
def test_forecast_buckets():
    assert forecast_bucket(TODAY - timedelta(days=1), TODAY) == "overdue"
    assert forecast_bucket(TODAY, TODAY) == "overdue"
    assert forecast_bucket(TODAY + timedelta(days=7), TODAY) == "due-7days"
    assert forecast_bucket(TODAY + timedelta(days=14), TODAY) == "due-14days"
    assert forecast_bucket(TODAY + timedelta(days=15), TODAY) == "later"
    assert forecast_bucket(None, TODAY) == "later"

from datetime import date

import pytest

from models.shift_generator import (
    ShiftGenerator,
    calculate_fairness,
    month_bounds,
    daterange,
    as_date,
    SHIFT_TIMES,
)

STAFF = [
    {"id": 1, "name": "Ana"},
    {"id": 2, "name": "Bogdan"},
    {"id": 3, "name": "Carmen"},
]


def _assignees(result):
    return [s["staff_id"] for s in result["shifts"]]


# ---------------------------------------------------------------------------
# Date helpers
# ---------------------------------------------------------------------------

def test_month_bounds_handles_leap_february():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_bounds(2025, 2) == (date(2025, 2, 1), date(2025, 2, 28))
    assert month_bounds(2025, 12) == (date(2025, 12, 1), date(2025, 12, 31))


def test_month_bounds_rejects_bad_month():
    with pytest.raises(ValueError):
        month_bounds(2025, 13)


def test_as_date_accepts_strings_and_timestamps():
    assert as_date("2025-03-04") == date(2025, 3, 4)
    assert as_date("2025-03-04T00:00:00+00:00") == date(2025, 3, 4)
    assert as_date(date(2025, 3, 4)) == date(2025, 3, 4)


def test_daterange_is_inclusive():
    days = daterange(date(2025, 3, 30), date(2025, 4, 2))
    assert [d.day for d in days] == [30, 31, 1, 2]


# ---------------------------------------------------------------------------
# Greedy distribution
# ---------------------------------------------------------------------------

def test_round_robin_when_everyone_is_free():
    result = ShiftGenerator("2025-03-03", "2025-03-08", "ATI", STAFF).run()

    assert _assignees(result) == [1, 2, 3, 1, 2, 3]
    assert all(s["status"] == "assigned" for s in result["shifts"])
    assert result["stats"]["generated"] == 6
    assert result["stats"]["open"] == 0
    assert result["fairness"]["fairness_score"] == 100.0


def test_unavailable_staff_are_skipped():
    unavailability = [{"staff_id": 1, "date": "2025-03-03"}]
    result = ShiftGenerator("2025-03-03", "2025-03-04", "ATI", STAFF, unavailability=unavailability).run()

    # Staff 1 is back on day two and is the least loaded
    assert _assignees(result) == [2, 1]


def test_staff_busy_in_another_department_are_skipped():
    existing = [{"date": "2025-03-03", "type": "24h", "staff_id": 1, "department": "Urgențe"}]
    result = ShiftGenerator("2025-03-03", "2025-03-03", "ATI", STAFF, existing_shifts=existing).run()

    assert _assignees(result) == [2]


def test_already_filled_slots_are_kept_and_counted():
    existing = [{"date": "2025-03-03", "type": "24h", "staff_id": 1, "department": "ATI", "status": "assigned"}]
    result = ShiftGenerator("2025-03-03", "2025-03-05", "ATI", STAFF, existing_shifts=existing).run()

    assert [s["date"] for s in result["shifts"]] == ["2025-03-04", "2025-03-05"]
    # Staff 1 already has one shift, so 2 and 3 go first
    assert _assignees(result) == [2, 3]
    assert result["stats"]["already_filled"] == 1


def test_open_shift_when_nobody_is_available():
    unavailability = [{"staff_id": s["id"], "date": "2025-03-03"} for s in STAFF]
    result = ShiftGenerator("2025-03-03", "2025-03-03", "ATI", STAFF, unavailability=unavailability).run()

    shift = result["shifts"][0]
    assert shift["staff_id"] is None
    assert shift["status"] == "open"
    assert result["stats"]["open_dates"] == ["2025-03-03"]


def test_no_staff_means_every_shift_is_open():
    result = ShiftGenerator("2025-03-01", "2025-03-31", "ATI", []).run()

    assert len(result["shifts"]) == 31
    assert result["stats"]["open"] == 31


def test_one_shift_per_staff_per_day_with_several_types():
    result = ShiftGenerator("2025-03-03", "2025-03-03", "ATI", STAFF[:1], shift_types=["day", "night"]).run()

    day, night = result["shifts"]
    assert day["staff_id"] == 1 and day["start_time"] == "08:00" and day["end_time"] == "20:00"
    assert night["staff_id"] is None and night["status"] == "open"


def test_shift_times_match_type():
    result = ShiftGenerator("2025-03-03", "2025-03-03", "ATI", STAFF).run()
    shift = result["shifts"][0]
    assert (shift["start_time"], shift["end_time"]) == SHIFT_TIMES["24h"] == ("08:00", "08:00")


def test_invalid_range_and_type_are_rejected():
    with pytest.raises(ValueError):
        ShiftGenerator("2025-03-05", "2025-03-01", "ATI", STAFF)
    with pytest.raises(ValueError):
        ShiftGenerator("2025-03-01", "2025-03-05", "ATI", STAFF, shift_types=["6h"])


# ---------------------------------------------------------------------------
# Reservations and optional rules
# ---------------------------------------------------------------------------

def test_reservations_are_honored_first():
    reservations = [{"id": 10, "staff_id": 3, "shift_date": "2025-03-03", "department": "ATI", "created_at": "1"}]
    result = ShiftGenerator("2025-03-03", "2025-03-04", "ATI", STAFF, reservations=reservations).run()

    first = result["shifts"][0]
    assert first["staff_id"] == 3
    assert first["status"] == "reserved"
    assert result["stats"]["reserved"] == 1
    assert _assignees(result) == [3, 1]


def test_earliest_reservation_wins_a_date():
    reservations = [
        {"id": 11, "staff_id": 2, "shift_date": "2025-03-03", "department": "ATI", "created_at": "2"},
        {"id": 10, "staff_id": 1, "shift_date": "2025-03-03", "department": "ATI", "created_at": "1"},
    ]
    result = ShiftGenerator("2025-03-03", "2025-03-03", "ATI", STAFF, reservations=reservations).run()

    assert _assignees(result) == [1]


def test_prevent_consecutive_days():
    result = ShiftGenerator(
        "2025-03-03", "2025-03-06", "ATI", STAFF[:2], prevent_consecutive_days=True
    ).run()

    assignees = _assignees(result)
    assert assignees == [1, 2, 1, 2]
    for previous, current in zip(assignees, assignees[1:]):
        assert previous != current


def test_weekend_cap():
    # 2025-03-08 and 2025-03-09 are a Saturday and a Sunday
    result = ShiftGenerator(
        "2025-03-08", "2025-03-09", "ATI", STAFF[:1], max_weekend_shifts=1
    ).run()

    assert _assignees(result) == [1, None]


def test_weekends_first_balances_weekend_load():
    result = ShiftGenerator(
        "2025-03-07", "2025-03-10", "ATI", STAFF[:2], weekends_first=True
    ).run()

    by_date = {s["date"]: s["staff_id"] for s in result["shifts"]}
    assert by_date["2025-03-08"] != by_date["2025-03-09"]


# ---------------------------------------------------------------------------
# Fairness
# ---------------------------------------------------------------------------

def test_fairness_of_uneven_distribution():
    shifts = [
        {"date": "2025-03-03", "staff_id": 1},
        {"date": "2025-03-04", "staff_id": 1},
        {"date": "2025-03-08", "staff_id": 2},
    ]
    fairness = calculate_fairness(shifts, STAFF)

    assert fairness["staff"][1]["total"] == 2
    assert fairness["staff"][2]["weekends"] == 1
    assert fairness["average"] == 1.0
    assert fairness["variance"] == pytest.approx(0.67, abs=0.01)
    assert fairness["fairness_score"] == pytest.approx(93.33, abs=0.01)


def test_fairness_with_no_staff():
    assert calculate_fairness([], [])["fairness_score"] == 100.0

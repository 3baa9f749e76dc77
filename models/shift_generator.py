import calendar
from typing import List, Dict, Optional, Any, Tuple
from datetime import date, datetime, timedelta
from collections import defaultdict

# Start/end wall-clock times for each shift type
SHIFT_TIMES = {
    "24h": ("08:00", "08:00"),
    "day": ("08:00", "20:00"),
    "night": ("20:00", "08:00"),
    "12h": ("08:00", "20:00"),
}


def as_date(value: Any) -> date:
    """Accept a date, datetime or ISO string ("2025-03-01" or a full timestamp)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def daterange(start_date: date, end_date: date) -> List[date]:
    return [start_date + timedelta(days=offset) for offset in range((end_date - start_date).days + 1)]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    """First and last day of a calendar month (month is 1-12)."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month}")
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    return first, last


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def calculate_fairness(shifts: List[Dict], staff: List[Dict]) -> Dict[str, Any]:
    """
    Spread of assigned shifts across staff.

    The score is 100 for a perfectly even distribution and drops by
    ten points per unit of variance, floored at zero.
    """
    per_staff = {s["id"]: {"name": s.get("name"), "total": 0, "weekends": 0} for s in staff}

    for shift in shifts:
        stat = per_staff.get(shift.get("staff_id"))
        if stat is None:
            continue
        stat["total"] += 1
        if is_weekend(as_date(shift["date"])):
            stat["weekends"] += 1

    totals = [s["total"] for s in per_staff.values()]
    average = sum(totals) / len(totals) if totals else 0.0
    variance = sum((t - average) ** 2 for t in totals) / len(totals) if totals else 0.0
    score = 100.0 if variance == 0 else max(0.0, 100.0 - variance * 10)

    return {
        "staff": per_staff,
        "average": round(average, 2),
        "variance": round(variance, 2),
        "fairness_score": round(score, 2),
    }


class ShiftGenerator:
    """
    Greedy, count-balancing shift distribution for one department.

    Every (day, shift type) slot in the range that is not already held by
    someone is filled with the least-loaded available staff member. Staff
    are available when they are not marked unavailable and have no other
    shift that day. Ties keep the order of the staff list. A slot with no
    available staff is emitted as an open shift.

    Reservations are honored before the greedy pass. Optional rules:
    - prevent_consecutive_days: nobody works two days in a row
    - max_weekend_shifts: cap on weekend shifts per person in the range
    - weekends_first: fill weekends before weekdays, balancing weekend load
    """

    def __init__(
        self,
        start_date: Any,
        end_date: Any,
        department: str,
        staff: List[Dict],
        existing_shifts: Optional[List[Dict]] = None,
        unavailability: Optional[List[Dict]] = None,
        reservations: Optional[List[Dict]] = None,
        shift_types: Optional[List[str]] = None,
        prevent_consecutive_days: bool = False,
        max_weekend_shifts: Optional[int] = None,
        weekends_first: bool = False
    ):
        self.start_date = as_date(start_date)
        self.end_date = as_date(end_date)
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")

        self.department = department
        self.staff = list(staff)
        self.existing_shifts = existing_shifts or []
        self.unavailability = unavailability or []
        self.reservations = reservations or []
        self.shift_types = shift_types or ["24h"]
        for shift_type in self.shift_types:
            if shift_type not in SHIFT_TIMES:
                raise ValueError(f"Unknown shift type: {shift_type}")

        self.prevent_consecutive_days = prevent_consecutive_days
        self.max_weekend_shifts = max_weekend_shifts
        self.weekends_first = weekends_first

        self._staff_by_id = {s["id"]: s for s in self.staff}
        self._reset_state()

    def _reset_state(self):
        self.days = daterange(self.start_date, self.end_date)
        self.filled = set()
        self.busy = defaultdict(set)
        self.unavailable = defaultdict(set)
        self.counts = {s["id"]: 0 for s in self.staff}
        self.weekend_counts = {s["id"]: 0 for s in self.staff}

        for record in self.unavailability:
            self.unavailable[record["staff_id"]].add(as_date(record["date"]))

        for shift in self.existing_shifts:
            staff_id = shift.get("staff_id")
            if staff_id is None:
                continue
            shift_day = as_date(shift["date"])
            self.busy[staff_id].add(shift_day)

            if shift.get("department") == self.department:
                self.filled.add((shift_day, shift.get("type", "24h")))

            if staff_id in self.counts and self.start_date <= shift_day <= self.end_date:
                self._count(staff_id, shift_day)

    def _count(self, staff_id, day: date):
        self.counts[staff_id] += 1
        if is_weekend(day):
            self.weekend_counts[staff_id] += 1

    def _is_available(self, staff_id, day: date) -> bool:
        if day in self.unavailable[staff_id]:
            return False
        if day in self.busy[staff_id]:
            return False
        if self.prevent_consecutive_days:
            if (day - timedelta(days=1)) in self.busy[staff_id] or (day + timedelta(days=1)) in self.busy[staff_id]:
                return False
        if (
            self.max_weekend_shifts is not None
            and is_weekend(day)
            and self.weekend_counts[staff_id] >= self.max_weekend_shifts
        ):
            return False
        return True

    def _make_shift(self, day: date, shift_type: str, staff_member: Optional[Dict], status: str) -> Dict:
        start_time, end_time = SHIFT_TIMES[shift_type]
        return {
            "date": day.isoformat(),
            "type": shift_type,
            "department": self.department,
            "staff_id": staff_member["id"] if staff_member else None,
            "staff_name": staff_member.get("name") if staff_member else None,
            "status": status,
            "start_time": start_time,
            "end_time": end_time,
        }

    def _assign(self, day: date, shift_type: str, staff_member: Dict, status: str) -> Dict:
        staff_id = staff_member["id"]
        self.filled.add((day, shift_type))
        self.busy[staff_id].add(day)
        self._count(staff_id, day)
        return self._make_shift(day, shift_type, staff_member, status)

    def _apply_reservations(self) -> List[Dict]:
        shifts = []
        ordered = sorted(
            self.reservations,
            key=lambda r: (str(r.get("created_at") or ""), r.get("id") or 0)
        )
        for reservation in ordered:
            if reservation.get("department", self.department) != self.department:
                continue

            day = as_date(reservation["shift_date"])
            if not (self.start_date <= day <= self.end_date):
                continue

            staff_member = self._staff_by_id.get(reservation["staff_id"])
            if staff_member is None:
                continue
            if day in self.unavailable[staff_member["id"]] or day in self.busy[staff_member["id"]]:
                continue

            free_types = [t for t in self.shift_types if (day, t) not in self.filled]
            if not free_types:
                continue

            shifts.append(self._assign(day, free_types[0], staff_member, "reserved"))
        return shifts

    def _ordered_days(self) -> List[date]:
        if not self.weekends_first:
            return self.days
        weekends = [d for d in self.days if is_weekend(d)]
        weekdays = [d for d in self.days if not is_weekend(d)]
        return weekends + weekdays

    def _candidates(self, day: date) -> List[Dict]:
        available = [s for s in self.staff if self._is_available(s["id"], day)]
        if self.weekends_first and is_weekend(day):
            return sorted(available, key=lambda s: (self.weekend_counts[s["id"]], self.counts[s["id"]]))
        # sorted() is stable, so ties keep staff list order
        return sorted(available, key=lambda s: self.counts[s["id"]])

    def run(self) -> Dict[str, Any]:
        self._reset_state()
        already_filled = len([
            slot for slot in self.filled
            if self.start_date <= slot[0] <= self.end_date and slot[1] in self.shift_types
        ])

        shifts = self._apply_reservations()
        open_dates = set()

        for day in self._ordered_days():
            for shift_type in self.shift_types:
                if (day, shift_type) in self.filled:
                    continue

                candidates = self._candidates(day)
                if not candidates:
                    shifts.append(self._make_shift(day, shift_type, None, "open"))
                    open_dates.add(day.isoformat())
                    continue

                shifts.append(self._assign(day, shift_type, candidates[0], "assigned"))

        shifts.sort(key=lambda s: (s["date"], self.shift_types.index(s["type"])))

        schedule = [
            s for s in self.existing_shifts
            if s.get("staff_id") is not None
            and s.get("department") == self.department
            and self.start_date <= as_date(s["date"]) <= self.end_date
        ] + [s for s in shifts if s["staff_id"] is not None]

        stats = {
            "total_days": len(self.days),
            "slots_needed": len(self.days) * len(self.shift_types),
            "already_filled": already_filled,
            "generated": len(shifts),
            "assigned": len([s for s in shifts if s["status"] == "assigned"]),
            "reserved": len([s for s in shifts if s["status"] == "reserved"]),
            "open": len([s for s in shifts if s["status"] == "open"]),
            "open_dates": sorted(open_dates),
        }

        return {
            "shifts": shifts,
            "stats": stats,
            "fairness": calculate_fairness(schedule, self.staff),
        }

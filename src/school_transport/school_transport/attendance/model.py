from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class Attendance:
    """Boarding record; at most one live row per (student, trip)."""

    attendance_id: int
    tenant_id: int
    student_id: int
    trip_id: int
    attendance_date: date
    status: AttendanceStatus
    boarding_time: Optional[datetime] = None
    alighting_time: Optional[datetime] = None
    boarding_location: Optional[str] = None
    alighting_location: Optional[str] = None
    notes: Optional[str] = None
    recorded_by: Optional[int] = None


@dataclass(frozen=True)
class AttendanceSearch:
    student_id: Optional[int] = None
    trip_id: Optional[int] = None
    route_id: Optional[int] = None
    status: Optional[AttendanceStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


@dataclass(frozen=True)
class AttendanceSummary:
    student_id: int
    start_date: date
    end_date: date
    total_records: int
    present: int
    absent: int
    late: int
    excused: int
    no_show: int

    @property
    def attendance_rate(self) -> float:
        if self.total_records == 0:
            return 0.0
        return round((self.present + self.late) * 100.0 / self.total_records, 2)

    __json_properties__ = ("attendance_rate",)

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..common.value_objects import Address, FullName
from ..core.enums import StudentStatus


@dataclass(frozen=True)
class Student:
    """Domain entity: a rider. Assigned to at most one route stop."""

    student_id: int
    tenant_id: int
    student_number: str
    name: FullName
    date_of_birth: date
    grade: str
    school: str
    address: Address
    enrollment_date: date
    status: StudentStatus = StudentStatus.ACTIVE
    phone: Optional[str] = None
    email: Optional[str] = None
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    parent_email: Optional[str] = None
    parent_user_id: Optional[int] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    special_needs: Optional[str] = None
    medical_conditions: Optional[str] = None
    allergies: Optional[str] = None
    notes: Optional[str] = None
    route_id: Optional[int] = None
    route_stop_id: Optional[int] = None
    rfid_tag: Optional[str] = None


@dataclass(frozen=True)
class StudentSearch:
    search_term: Optional[str] = None
    grade: Optional[str] = None
    school: Optional[str] = None
    status: Optional[StudentStatus] = None
    route_id: Optional[int] = None
    sort_by: Optional[str] = None
    sort_descending: bool = False


@dataclass(frozen=True)
class SchoolStatistics:
    school_name: str
    total_students: int
    active_students: int
    inactive_students: int
    students_with_routes: int
    students_without_routes: int


@dataclass(frozen=True)
class ParentAccount:
    """Login provisioned for a parent together with their child."""

    username: str
    email: str
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Optional, Sequence

from werkzeug.security import generate_password_hash

from ..common.datetime_utils import optional_date, parse_iso_date
from ..common.validators import optional_email, require_non_empty
from ..common.value_objects import Address, FullName
from ..core.enums import Role, StudentStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..core.result import PagedResult, Result, service_result
from ..routes.repository import RouteRepository
from ..users.password_policy import PasswordPolicyService
from ..users.repository import UserRepository
from .model import ParentAccount, SchoolStatistics, Student, StudentSearch
from .repository import StudentRepository

logger = logging.getLogger(__name__)


def _parse_status(value: Any, default: StudentStatus) -> StudentStatus:
    if value in (None, ""):
        return default
    try:
        return StudentStatus(str(value).upper())
    except ValueError:
        raise ValidationError(f"Invalid student status: {value}")


def build_student(payload: dict, *, tenant_id: int, base: Optional[Student] = None) -> Student:
    """Merge an API payload over `base` (or build a new student) and validate it."""
    addr = payload.get("address") or {}
    b = base

    def pick(key: str, current: Any = None) -> Any:
        return payload[key] if key in payload else current

    name = FullName(
        first_name=require_non_empty(pick("first_name", b.name.first_name if b else None), "First name"),
        last_name=require_non_empty(pick("last_name", b.name.last_name if b else None), "Last name"),
        middle_name=pick("middle_name", b.name.middle_name if b else None) or None,
    )
    address = Address(
        street=addr.get("street", b.address.street if b else ""),
        city=addr.get("city", b.address.city if b else ""),
        state=addr.get("state", b.address.state if b else ""),
        zip_code=addr.get("zip_code", b.address.zip_code if b else ""),
        country=addr.get("country", b.address.country if b else "USA") or "USA",
    )

    dob_raw = pick("date_of_birth")
    date_of_birth = parse_iso_date(dob_raw) if dob_raw else (b.date_of_birth if b else None)
    if date_of_birth is None:
        raise ValidationError("Date of birth is required")
    if date_of_birth >= date.today():
        raise ValidationError("Date of birth must be in the past")

    enrollment_raw = pick("enrollment_date")
    enrollment = optional_date(enrollment_raw) or (b.enrollment_date if b else date.today())

    return Student(
        student_id=b.student_id if b else 0,
        tenant_id=tenant_id,
        student_number=require_non_empty(pick("student_number", b.student_number if b else None), "Student number"),
        name=name,
        date_of_birth=date_of_birth,
        grade=require_non_empty(pick("grade", b.grade if b else None), "Grade"),
        school=require_non_empty(pick("school", b.school if b else None), "School"),
        address=address,
        enrollment_date=enrollment,
        status=_parse_status(pick("status"), b.status if b else StudentStatus.ACTIVE),
        phone=pick("phone", b.phone if b else None),
        email=optional_email(pick("email", b.email if b else None)),
        parent_name=pick("parent_name", b.parent_name if b else None),
        parent_phone=pick("parent_phone", b.parent_phone if b else None),
        parent_email=optional_email(pick("parent_email", b.parent_email if b else None), "Parent email"),
        parent_user_id=b.parent_user_id if b else None,
        emergency_contact=pick("emergency_contact", b.emergency_contact if b else None),
        emergency_phone=pick("emergency_phone", b.emergency_phone if b else None),
        special_needs=pick("special_needs", b.special_needs if b else None),
        medical_conditions=pick("medical_conditions", b.medical_conditions if b else None),
        allergies=pick("allergies", b.allergies if b else None),
        notes=pick("notes", b.notes if b else None),
        route_id=b.route_id if b else None,
        route_stop_id=b.route_stop_id if b else None,
        rfid_tag=pick("rfid_tag", b.rfid_tag if b else None),
    )


class StudentService:
    def __init__(
        self,
        students: StudentRepository,
        routes: RouteRepository,
        users: UserRepository,
        policy: PasswordPolicyService,
    ):
        self._students = students
        self._routes = routes
        self._users = users
        self._policy = policy

    def _require(self, tenant_id: int, student_id: int) -> Student:
        student = self._students.get_by_id(tenant_id, student_id)
        if not student:
            raise NotFoundError("Student not found")
        return student

    @service_result("An error occurred while retrieving the student")
    def get_student(self, *, tenant_id: int, student_id: int) -> Student:
        return self._require(tenant_id, student_id)

    @service_result("An error occurred while retrieving the student")
    def get_by_student_number(self, *, tenant_id: int, student_number: str) -> Student:
        student = self._students.get_by_number(tenant_id, student_number)
        if not student:
            raise NotFoundError("Student not found")
        return student

    @service_result("An error occurred while retrieving students")
    def search_students(self, *, tenant_id: int, criteria: StudentSearch, page: int = 1, page_size: int = 20) -> PagedResult:
        items, total = self._students.search(tenant_id=tenant_id, criteria=criteria, page=page, page_size=page_size)
        return PagedResult(items=items, total_count=total, page=page, page_size=page_size)

    @service_result("An error occurred while creating the student")
    def create_student(self, *, tenant_id: int, payload: dict, parent: Optional[ParentAccount] = None) -> Result[Student]:
        student = build_student(payload, tenant_id=tenant_id)
        if self._students.get_by_number(tenant_id, student.student_number):
            raise ValidationError("Student number already exists")

        if parent is None:
            student_id = self._students.create(student)
        else:
            username = require_non_empty(parent.username, "Parent username")
            email = optional_email(require_non_empty(parent.email, "Parent email"), "Parent email")
            validation = self._policy.validate_password(parent.password)
            if not validation.is_valid:
                return Result.failure("Parent password does not meet policy requirements", errors=validation.errors)
            if self._users.get_by_username(tenant_id, username):
                raise ValidationError("Username already exists")

            student_id, user_id = self._students.create_with_parent(
                replace(student, parent_email=student.parent_email or email),
                username=username,
                email=email,
                password_hash=generate_password_hash(parent.password),
                role=Role.PARENT,
                first_name=parent.first_name,
                last_name=parent.last_name,
                phone=parent.phone,
            )
            logger.info("Parent account %s provisioned with student %s", user_id, student_id)

        return Result.success(self._require(tenant_id, student_id))

    @service_result("An error occurred while updating the student")
    def update_student(self, *, tenant_id: int, student_id: int, payload: dict) -> Student:
        existing = self._require(tenant_id, student_id)
        updated = build_student(payload, tenant_id=tenant_id, base=existing)
        if updated.student_number != existing.student_number and self._students.get_by_number(tenant_id, updated.student_number):
            raise ValidationError("Student number already exists")
        self._students.update(updated)
        return self._require(tenant_id, student_id)

    @service_result("An error occurred while deleting the student")
    def delete_student(self, *, tenant_id: int, student_id: int, deleted_by: Optional[int] = None) -> bool:
        self._require(tenant_id, student_id)
        return self._students.soft_delete(tenant_id=tenant_id, student_id=student_id, deleted_by=deleted_by)

    @service_result("An error occurred while retrieving students by route")
    def get_students_by_route(self, *, tenant_id: int, route_id: int) -> list[Student]:
        return list(self._students.list_by_route(tenant_id, route_id))

    @service_result("An error occurred while assigning student to route")
    def assign_to_route(self, *, tenant_id: int, student_id: int, route_id: int, route_stop_id: Optional[int] = None) -> bool:
        self._require(tenant_id, student_id)
        if not self._routes.get_by_id(tenant_id, route_id):
            raise NotFoundError("Route not found")
        if route_stop_id is not None:
            stop = self._routes.get_stop(tenant_id, route_stop_id)
            if not stop or stop.route_id != route_id:
                raise ValidationError("Stop does not belong to this route")
        return self._students.set_route(tenant_id=tenant_id, student_id=student_id, route_id=route_id, route_stop_id=route_stop_id)

    @service_result("An error occurred while removing student from route")
    def remove_from_route(self, *, tenant_id: int, student_id: int) -> bool:
        self._require(tenant_id, student_id)
        return self._students.set_route(tenant_id=tenant_id, student_id=student_id, route_id=None, route_stop_id=None)

    @service_result("An error occurred while updating student status")
    def bulk_update_status(self, *, tenant_id: int, student_ids: Sequence[int], status: StudentStatus) -> int:
        if not student_ids:
            raise ValidationError("At least one student id is required")
        return self._students.update_status_bulk(tenant_id=tenant_id, student_ids=student_ids, status=status)

    @service_result("An error occurred while retrieving school statistics")
    def get_school_statistics(self, *, tenant_id: int) -> list[SchoolStatistics]:
        return list(self._students.school_statistics(tenant_id))

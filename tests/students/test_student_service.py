from __future__ import annotations

from dataclasses import replace
from datetime import date, time

from src.school_transport.school_transport.core.enums import Role, StudentStatus
from src.school_transport.school_transport.routes.model import Route, RouteStop
from src.school_transport.school_transport.students.model import ParentAccount
from src.school_transport.school_transport.students.service import StudentService
from src.school_transport.school_transport.users.password_policy import PasswordPolicyService


class InMemoryStudents:
    def __init__(self):
        self.rows = {}
        self.deleted = set()
        self.parents = []

    def get_by_id(self, tenant_id, student_id):
        s = self.rows.get(student_id)
        if not s or s.tenant_id != tenant_id or student_id in self.deleted:
            return None
        return s

    def get_by_number(self, tenant_id, student_number):
        return next(
            (s for s in self.rows.values() if s.tenant_id == tenant_id and s.student_number == student_number and s.student_id not in self.deleted),
            None,
        )

    def create(self, student):
        student_id = len(self.rows) + 1
        self.rows[student_id] = replace(student, student_id=student_id)
        return student_id

    def create_with_parent(self, student, *, username, email, password_hash, role, first_name, last_name, phone):
        self.parents.append((username, email, role))
        student_id = self.create(replace(student, parent_user_id=100 + len(self.parents)))
        return student_id, 100 + len(self.parents)

    def update(self, student):
        self.rows[student.student_id] = student
        return True

    def set_route(self, *, tenant_id, student_id, route_id, route_stop_id):
        self.rows[student_id] = replace(self.rows[student_id], route_id=route_id, route_stop_id=route_stop_id)
        return True

    def update_status_bulk(self, *, tenant_id, student_ids, status):
        n = 0
        for sid in student_ids:
            if self.get_by_id(tenant_id, sid):
                self.rows[sid] = replace(self.rows[sid], status=status)
                n += 1
        return n

    def soft_delete(self, *, tenant_id, student_id, deleted_by):
        self.deleted.add(student_id)
        return True


class FakeRoutes:
    def __init__(self):
        self.route = Route(route_id=1, tenant_id=1, route_number="R-100", name="Olaya", start_time=time(6, 30), end_time=time(7, 30))
        self.stops = {
            10: RouteStop(stop_id=10, tenant_id=1, route_id=1, name="A", latitude=24.69, longitude=46.685, stop_order=1),
            20: RouteStop(stop_id=20, tenant_id=1, route_id=2, name="B", latitude=24.66, longitude=46.73, stop_order=1),
        }

    def get_by_id(self, tenant_id, route_id):
        return self.route if route_id == 1 and tenant_id == 1 else None

    def get_stop(self, tenant_id, stop_id):
        return self.stops.get(stop_id)


class FakeUsers:
    def __init__(self, taken=()):
        self.taken = set(taken)

    def get_by_username(self, tenant_id, username):
        return object() if username in self.taken else None


def _payload(**overrides):
    values = {
        "student_number": "S-001",
        "first_name": "Sara",
        "last_name": "Ahmed",
        "date_of_birth": "2015-05-01",
        "grade": "4",
        "school": "Riyadh Elementary",
        "address": {"street": "King Fahd Rd", "city": "Riyadh", "state": "RY", "zip_code": "12211"},
    }
    values.update(overrides)
    return values


def _service(users=None):
    students = InMemoryStudents()
    svc = StudentService(students, FakeRoutes(), users or FakeUsers(), PasswordPolicyService())
    return svc, students


def test_create_and_reject_duplicate_number():
    svc, _ = _service()

    created = svc.create_student(tenant_id=1, payload=_payload())
    assert created.is_success
    assert created.value.name.full_name == "Sara Ahmed"
    assert created.value.enrollment_date == date.today()

    dup = svc.create_student(tenant_id=1, payload=_payload(first_name="Other"))
    assert dup.is_failure
    assert dup.error == "Student number already exists"


def test_validation_messages():
    svc, _ = _service()
    assert svc.create_student(tenant_id=1, payload=_payload(grade=" ")).error == "Grade is required"
    assert svc.create_student(tenant_id=1, payload=_payload(date_of_birth="2999-01-01")).error == "Date of birth must be in the past"
    assert svc.create_student(tenant_id=1, payload=_payload(address={"city": "Riyadh"})).is_failure


def test_tenant_isolation():
    svc, _ = _service()
    student_id = svc.create_student(tenant_id=1, payload=_payload()).value.student_id

    assert svc.get_student(tenant_id=2, student_id=student_id).not_found


def test_soft_deleted_student_is_gone_and_number_reusable():
    svc, _ = _service()
    student_id = svc.create_student(tenant_id=1, payload=_payload()).value.student_id

    assert svc.delete_student(tenant_id=1, student_id=student_id, deleted_by=1).value is True
    assert svc.get_student(tenant_id=1, student_id=student_id).not_found
    assert svc.create_student(tenant_id=1, payload=_payload()).is_success


def test_create_with_parent_account():
    svc, students = _service()
    parent = ParentAccount(username="parent1", email="p1@rihla.test", password="Str0ng!Passw0rd")

    created = svc.create_student(tenant_id=1, payload=_payload(), parent=parent)

    assert created.is_success
    assert created.value.parent_user_id == 101
    assert created.value.parent_email == "p1@rihla.test"
    assert students.parents == [("parent1", "p1@rihla.test", Role.PARENT)]


def test_parent_password_policy_and_username():
    svc, _ = _service(FakeUsers(taken={"taken"}))

    weak = svc.create_student(tenant_id=1, payload=_payload(), parent=ParentAccount("p", "p@rihla.test", "weak"))
    assert weak.is_failure and weak.errors

    taken = svc.create_student(tenant_id=1, payload=_payload(), parent=ParentAccount("taken", "p@rihla.test", "Str0ng!Passw0rd"))
    assert taken.error == "Username already exists"


def test_route_assignment_checks_stop_belongs_to_route():
    svc, students = _service()
    student_id = svc.create_student(tenant_id=1, payload=_payload()).value.student_id

    assert svc.assign_to_route(tenant_id=1, student_id=student_id, route_id=9).not_found
    assert svc.assign_to_route(tenant_id=1, student_id=student_id, route_id=1, route_stop_id=20).error == "Stop does not belong to this route"

    assert svc.assign_to_route(tenant_id=1, student_id=student_id, route_id=1, route_stop_id=10).is_success
    assert students.rows[student_id].route_stop_id == 10

    svc.remove_from_route(tenant_id=1, student_id=student_id)
    assert students.rows[student_id].route_id is None


def test_bulk_status_requires_ids():
    svc, _ = _service()
    student_id = svc.create_student(tenant_id=1, payload=_payload()).value.student_id

    assert svc.bulk_update_status(tenant_id=1, student_ids=[], status=StudentStatus.INACTIVE).is_failure
    assert svc.bulk_update_status(tenant_id=1, student_ids=[student_id, 99], status=StudentStatus.INACTIVE).value == 1

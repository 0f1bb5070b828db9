"""In-memory repositories shared by the service and HTTP tests."""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Dict, List

from src.hr_admin.hr_admin.assignments.model import Assignment
from src.hr_admin.hr_admin.assignments.service import AssignmentService
from src.hr_admin.hr_admin.clients.model import Client
from src.hr_admin.hr_admin.clients.service import ClientService
from src.hr_admin.hr_admin.core.enums import EmployeeStatus, EmploymentType, OutboxStatus, Role
from src.hr_admin.hr_admin.core.exceptions import ConflictError, NotFoundError
from src.hr_admin.hr_admin.cost_centers.model import CostCenter, CostCenterStatistics
from src.hr_admin.hr_admin.cost_centers.service import CostCenterService
from src.hr_admin.hr_admin.employees.export import ActiveEmployeeExportService
from src.hr_admin.hr_admin.employees.identifiers import EmployeeIdentifierGenerator
from src.hr_admin.hr_admin.employees.model import Employee, EmployeeStatistics
from src.hr_admin.hr_admin.employees.retention import EmployeeRetentionService
from src.hr_admin.hr_admin.employees.service import EmployeeService
from src.hr_admin.hr_admin.integrity.lookup import RELATION_COLUMNS
from src.hr_admin.hr_admin.integrity.validator import IntegrityValidator
from src.hr_admin.hr_admin.locations.model import Location
from src.hr_admin.hr_admin.locations.service import LocationService
from src.hr_admin.hr_admin.outbox.model import OutboxEntry
from src.hr_admin.hr_admin.users.model import User, UserContext

_ticks = itertools.count(1)
EPOCH = datetime(2026, 1, 1, 9, 0, 0)


def tick() -> datetime:
    """Strictly increasing timestamps, so every write changes modified_at."""
    return EPOCH + timedelta(seconds=next(_ticks), microseconds=123)


ADMIN = UserContext(username="admin", roles=frozenset({Role.ADMIN}))
EDITOR = UserContext(username="editor", roles=frozenset({Role.EDITOR}), company_codes=("COMP-001",))
VIEWER = UserContext(username="viewer", roles=frozenset({Role.VIEWER}), company_codes=("COMP-001",))
OUTSIDER = UserContext(username="outsider", roles=frozenset({Role.EDITOR}), company_codes=("DE-1000",))


class _InMemoryRepository:
    label = "Entity"
    search_fields: tuple = ()

    def __init__(self):
        self.items: Dict[str, Any] = {}

    def get_by_id(self, entity_id):
        return self.items.get(entity_id)

    def get_many(self, ids):
        return {i: self.items[i] for i in ids if i in self.items}

    def _matches(self, item, client_ids, search, filters) -> bool:
        if client_ids is not None and item.client_id not in client_ids:
            return False
        if search:
            needle = search.lower()
            if not any(needle in str(getattr(item, f) or "").lower() for f in self.search_fields):
                return False
        for key, value in filters.items():
            if value is None:
                continue
            current = getattr(item, key)
            current = current.value if hasattr(current, "value") else current
            if current != value:
                return False
        return True

    def list(self, *, client_ids=None, search=None, limit=100, offset=0, **filters):
        rows = [i for i in self.items.values() if self._matches(i, client_ids, search, filters)]
        return rows[offset : offset + limit]

    def count(self, *, client_ids=None, search=None, **filters):
        return len([i for i in self.items.values() if self._matches(i, client_ids, search, filters)])

    def _coerce(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        return changes

    def insert(self, entity):
        now = tick()
        stored = replace(entity, created_at=now, modified_at=now)
        self.items[stored.id] = stored
        return stored

    def update(self, entity_id, changes, *, modified_by):
        current = self.items.get(entity_id)
        if current is None:
            raise NotFoundError(f"{self.label} not found.")
        stored = replace(current, **self._coerce(dict(changes)), modified_at=tick(), modified_by=modified_by)
        self.items[entity_id] = stored
        return stored

    def delete(self, entity_id):
        self.items.pop(entity_id, None)


class InMemoryClients(_InMemoryRepository):
    label = "Client"
    search_fields = ("company_id", "name")

    def __init__(self, store: "Store"):
        super().__init__()
        self._store = store

    def _matches(self, item, client_ids, search, filters) -> bool:
        if client_ids is not None and item.id not in client_ids:
            return False
        return super()._matches(item, None, search, filters)

    def get_by_company_id(self, company_id):
        return next((c for c in self.items.values() if c.company_id == company_id), None)

    def ids_for_company_codes(self, company_codes):
        return [c.id for c in self.items.values() if c.company_id in company_codes]

    def delete(self, client_id):
        s = self._store
        for repo in (s.assignments, s.cost_centers, s.employees, s.locations):
            for key in [k for k, v in repo.items.items() if v.client_id == client_id]:
                repo.items.pop(key)
        self.items.pop(client_id, None)

    def count_related(self, client_id):
        s = self._store
        return {
            "employee_count": s.employees.count(client_ids=[client_id]),
            "cost_center_count": s.cost_centers.count(client_ids=[client_id]),
            "location_count": s.locations.count(client_ids=[client_id]),
            "assignment_count": s.assignments.count(client_ids=[client_id]),
        }


class InMemoryLocations(_InMemoryRepository):
    label = "Location"
    search_fields = ("city", "street", "zip_code")

    def __init__(self, store: "Store"):
        super().__init__()
        self._store = store

    def count_employees(self, location_id):
        return len([e for e in self._store.employees.items.values() if e.location_id == location_id])


class InMemoryCostCenters(_InMemoryRepository):
    label = "Cost center"
    search_fields = ("code", "name")

    def __init__(self, store: "Store"):
        super().__init__()
        self._store = store

    def get_by_code(self, client_id, code):
        return next((c for c in self.items.values() if c.client_id == client_id and c.code == code), None)

    def delete(self, cost_center_id):
        s = self._store
        for e in list(s.employees.items.values()):
            if e.cost_center_id == cost_center_id:
                s.employees.items[e.id] = replace(e, cost_center_id=None)
        for key in [k for k, a in s.assignments.items.items() if a.cost_center_id == cost_center_id]:
            s.assignments.items.pop(key)
        self.items.pop(cost_center_id, None)

    def count_related(self, cost_center_id):
        s = self._store
        return {
            "employee_count": len([e for e in s.employees.items.values() if e.cost_center_id == cost_center_id]),
            "assignment_count": len(s.assignments.list_for_cost_center(cost_center_id)),
        }

    def count_responsible_for(self, employee_id):
        return len([c for c in self.items.values() if c.responsible_id == employee_id])

    def statistics(self, *, client_ids, today, horizon):
        rows = [c for c in self.items.values() if client_ids is None or c.client_id in client_ids]
        return CostCenterStatistics(
            total=len(rows),
            with_responsible=len([c for c in rows if c.responsible_id]),
            expiring_soon=len([c for c in rows if c.valid_to and today <= c.valid_to <= horizon]),
        )


class InMemoryEmployees(_InMemoryRepository):
    label = "Employee"
    search_fields = ("employee_id", "first_name", "last_name", "email")

    def __init__(self, store: "Store"):
        super().__init__()
        self._store = store

    def _coerce(self, changes):
        if "status" in changes:
            changes["status"] = EmployeeStatus(changes["status"])
        if "employment_type" in changes:
            changes["employment_type"] = EmploymentType(changes["employment_type"])
        return changes

    def find_by_employee_id(self, client_id, employee_id):
        return next(
            (e for e in self.items.values() if e.client_id == client_id and e.employee_id == employee_id), None
        )

    def insert(self, employee):
        if self.find_by_employee_id(employee.client_id, employee.employee_id):
            raise ConflictError("Employee ID already exists for this client.")
        return super().insert(employee)

    def delete(self, employee_pk):
        s = self._store
        for e in list(self.items.values()):
            if e.manager_id == employee_pk:
                self.items[e.id] = replace(e, manager_id=None)
        for key in [k for k, a in s.assignments.items.items() if a.employee_id == employee_pk]:
            s.assignments.items.pop(key)
        self.items.pop(employee_pk, None)

    def set_manager(self, employee_pks, manager_pk, *, modified_by):
        updated = 0
        for pk in employee_pks:
            if pk in self.items and pk != manager_pk:
                self.items[pk] = replace(self.items[pk], manager_id=manager_pk, modified_by=modified_by)
                updated += 1
        return updated

    def list_former_employees(self, *, before, client_ids):
        return [
            e
            for e in self.items.values()
            if e.exit_date and e.exit_date < before and e.anonymized_at is None
            and (client_ids is None or e.client_id in client_ids)
        ]

    def anonymize(self, replacements, *, placeholder, anonymized_at, modified_by):
        updated = 0
        for pk, email in replacements:
            e = self.items.get(pk)
            if e is None or e.anonymized_at is not None:
                continue
            self.items[pk] = replace(
                e,
                first_name=placeholder,
                last_name=placeholder,
                email=email,
                location_id=None,
                position_level=None,
                status=EmployeeStatus.INACTIVE,
                anonymized_at=anonymized_at,
                modified_at=anonymized_at,
                modified_by=modified_by,
            )
            updated += 1
        return updated

    def statistics(self, *, client_ids, today, since, horizon):
        rows = [e for e in self.items.values() if client_ids is None or e.client_id in client_ids]
        return EmployeeStatistics(
            total=len(rows),
            active=len([e for e in rows if e.status == EmployeeStatus.ACTIVE]),
            inactive=len([e for e in rows if e.status == EmployeeStatus.INACTIVE]),
            internal=len([e for e in rows if e.employment_type == EmploymentType.INTERNAL]),
            external=len([e for e in rows if e.employment_type == EmploymentType.EXTERNAL]),
            managers=len([e for e in rows if e.is_manager]),
            recent_hires=len([e for e in rows if since <= e.entry_date <= today]),
            upcoming_exits=len([e for e in rows if e.exit_date and today <= e.exit_date <= horizon]),
        )

    def list_active(self, *, today, limit=None, offset=0):
        rows = sorted(
            (
                e
                for e in self.items.values()
                if e.status == EmployeeStatus.ACTIVE and e.entry_date <= today
                and (e.exit_date is None or e.exit_date >= today)
            ),
            key=lambda e: (e.last_name, e.first_name),
        )
        return rows[offset:] if limit is None else rows[offset : offset + limit]


class InMemoryAssignments(_InMemoryRepository):
    label = "Assignment"

    def list_for_employee(self, employee_id):
        return [a for a in self.items.values() if a.employee_id == employee_id]

    def list_for_cost_center(self, cost_center_id):
        return [a for a in self.items.values() if a.cost_center_id == cost_center_id]


class InMemoryCounters:
    def __init__(self, *, conflicts: int = 0):
        self.values: Dict[str, int] = {}
        self._conflicts = conflicts

    def next_counter(self, client_id):
        if self._conflicts:
            self._conflicts -= 1
            raise ConflictError("Employee ID counter was initialized concurrently.")
        self.values[client_id] = self.values.get(client_id, 0) + 1
        return self.values[client_id]


class InMemoryIntegrityLookup:
    def __init__(self, store: "Store"):
        self._store = store
        self.calls: List[tuple] = []

    def load(self, entity, ids):
        self.calls.append((entity, tuple(ids)))
        repo = {"employees": self._store.employees, "cost_centers": self._store.cost_centers,
                "locations": self._store.locations}[entity]
        columns = RELATION_COLUMNS[entity]
        return {
            i: {c: getattr(repo.items[i], c) for c in columns}
            for i in ids
            if i in repo.items
        }


class InMemoryUsers:
    def __init__(self, users=()):
        self.by_username = {u.username: u for u in users}

    def get_by_id(self, user_id):
        return next((u for u in self.by_username.values() if u.user_id == user_id), None)

    def get_by_username(self, username):
        return self.by_username.get(username)


@dataclass
class InMemoryOutbox:
    entries: Dict[str, OutboxEntry] = field(default_factory=dict)
    dead_letters: List[dict] = field(default_factory=list)
    fail_inserts: int = 0
    lose_claims: set = field(default_factory=set)
    fail_completions: set = field(default_factory=set)
    fail_dead_letters: bool = False

    def insert(self, entry):
        if self.fail_inserts:
            self.fail_inserts -= 1
            raise RuntimeError("database unavailable")
        self.entries[entry.id] = entry

    def release_expired_claims(self, *, claimed_before):
        released = 0
        for e in list(self.entries.values()):
            if e.status == OutboxStatus.PROCESSING and e.claimed_at and e.claimed_at < claimed_before:
                self.entries[e.id] = replace(e, status=OutboxStatus.PENDING, claimed_at=None, claimed_by=None)
                released += 1
        return released

    def list_candidates(self, *, limit):
        rows = [e for e in self.entries.values() if e.status in (OutboxStatus.PENDING, OutboxStatus.PROCESSING)]
        rows.sort(key=lambda e: e.next_attempt_at or datetime.min)
        return rows[:limit]

    def claim(self, entry, *, claimed_at, claimed_by):
        current = self.entries.get(entry.id)
        if entry.id in self.lose_claims or current is None:
            return False
        if (current.status, current.claimed_at, current.claimed_by) != (entry.status, entry.claimed_at, entry.claimed_by):
            return False
        self.entries[entry.id] = replace(
            current, status=OutboxStatus.PROCESSING, claimed_at=claimed_at, claimed_by=claimed_by
        )
        return True

    def mark_completed(self, entry_id, *, delivered_at):
        if entry_id in self.fail_completions:
            raise RuntimeError("Lost connection to MySQL server during query")
        self.entries[entry_id] = replace(
            self.entries[entry_id], status=OutboxStatus.COMPLETED, delivered_at=delivered_at,
            claimed_at=None, claimed_by=None, modified_at=delivered_at,
        )

    def reschedule(self, entry_id, *, attempts, next_attempt_at, last_error):
        self.entries[entry_id] = replace(
            self.entries[entry_id], status=OutboxStatus.PENDING, attempts=attempts,
            next_attempt_at=next_attempt_at, last_error=last_error, claimed_at=None, claimed_by=None,
        )

    def move_to_dead_letter(self, entry, *, attempts, last_error, failed_at):
        if self.fail_dead_letters:
            raise RuntimeError("Table 'outbox_dead_letter' is read only")
        self.dead_letters.append({"id": entry.id, "attempts": attempts, "last_error": last_error})
        self.entries.pop(entry.id, None)

    def delete_finished_before(self, cutoff):
        finished = [
            e.id
            for e in self.entries.values()
            if e.status in (OutboxStatus.COMPLETED, OutboxStatus.FAILED) and e.modified_at and e.modified_at < cutoff
        ]
        for entry_id in finished:
            self.entries.pop(entry_id)
        return len(finished)

    def count_pending(self):
        return len([e for e in self.entries.values() if e.status == OutboxStatus.PENDING])


class Store:
    """One in-memory database shared by every fake repository."""

    def __init__(self, *, counter_conflicts: int = 0):
        self.clients = InMemoryClients(self)
        self.locations = InMemoryLocations(self)
        self.cost_centers = InMemoryCostCenters(self)
        self.employees = InMemoryEmployees(self)
        self.assignments = InMemoryAssignments()
        self.counters = InMemoryCounters(conflicts=counter_conflicts)
        self.lookup = InMemoryIntegrityLookup(self)

    def integrity(self) -> IntegrityValidator:
        return IntegrityValidator(self.lookup)

    # -------- Seeding --------
    def add_client(self, id="c1", company_id="COMP-001", name="Alpha GmbH", **kw) -> Client:
        return self.clients.insert(Client(id=id, company_id=company_id, name=name, **kw))

    def add_location(self, id="l1", client_id="c1", **kw) -> Location:
        values = dict(city="Berlin", country_code="DE", zip_code="10115", street="Main 1", valid_from=date(2020, 1, 1))
        values.update(kw)
        return self.locations.insert(Location(id=id, client_id=client_id, **values))

    def add_employee(self, id="e1", client_id="c1", **kw) -> Employee:
        values = dict(
            employee_id=id.upper(),
            first_name="Erika",
            last_name="Muster",
            email=f"{id}@example.com",
            entry_date=date(2020, 1, 1),
        )
        values.update(kw)
        return self.employees.insert(Employee(id=id, client_id=client_id, **values))

    def add_cost_center(self, id="cc1", client_id="c1", responsible_id="m1", **kw) -> CostCenter:
        values = dict(code=id.upper(), name=f"Cost center {id}")
        values.update(kw)
        return self.cost_centers.insert(
            CostCenter(id=id, client_id=client_id, responsible_id=responsible_id, **values)
        )

    def add_assignment(self, id="a1", employee_id="e1", cost_center_id="cc1", client_id="c1", **kw) -> Assignment:
        values = dict(valid_from=date(2020, 1, 1))
        values.update(kw)
        return self.assignments.insert(
            Assignment(id=id, employee_id=employee_id, cost_center_id=cost_center_id, client_id=client_id, **values)
        )

    # -------- Services --------
    def client_service(self, **kw) -> ClientService:
        return ClientService(self.clients, **kw)

    def location_service(self) -> LocationService:
        return LocationService(self.locations, self.clients, self.integrity)

    def cost_center_service(self) -> CostCenterService:
        return CostCenterService(self.cost_centers, self.clients, self.employees, self.integrity)

    def employee_service(self, notifications=None) -> EmployeeService:
        return EmployeeService(
            self.employees,
            self.clients,
            self.cost_centers,
            self.locations,
            EmployeeIdentifierGenerator(self.employees, self.counters),
            self.integrity,
            notifications,
        )

    def assignment_service(self) -> AssignmentService:
        return AssignmentService(self.assignments, self.employees, self.cost_centers, self.clients)

    def retention_service(self) -> EmployeeRetentionService:
        return EmployeeRetentionService(self.employees, self.clients)

    def export_service(self) -> ActiveEmployeeExportService:
        return ActiveEmployeeExportService(self.employees, self.clients, self.cost_centers)


def make_user(username: str, password_hash: str, roles, company_codes=(), **kw) -> User:
    return User(
        user_id=kw.pop("user_id", 1),
        username=username,
        password_hash=password_hash,
        full_name=kw.pop("full_name", username.title()),
        roles=frozenset(roles),
        company_codes=tuple(company_codes),
        **kw,
    )


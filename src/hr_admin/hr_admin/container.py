from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .assignments.mysql_assignment_repository import MySQLAssignmentRepository
from .assignments.service import AssignmentService
from .clients.mysql_client_repository import MySQLClientRepository
from .clients.service import ClientService
from .cost_centers.mysql_cost_center_repository import MySQLCostCenterRepository
from .cost_centers.service import CostCenterService
from .database.connection import DBConfig, DatabaseConnection
from .employees.export import ActiveEmployeeExportService
from .employees.identifiers import EmployeeIdentifierGenerator
from .employees.mysql_employee_repository import MySQLEmployeeIdCounterRepository, MySQLEmployeeRepository
from .employees.retention import EmployeeRetentionService
from .employees.service import EmployeeService
from .integrity.lookup import MySQLIntegrityLookup
from .integrity.validator import IntegrityValidator
from .locations.mysql_location_repository import MySQLLocationRepository
from .locations.service import LocationService
from .notifications.notifier import EmployeeNotifier
from .notifications.service import EmployeeNotificationService
from .outbox.config import OutboxConfig
from .outbox.dispatcher import ParallelDispatcher
from .outbox.metrics import OutboxMetrics
from .outbox.mysql_outbox_repository import MySQLOutboxRepository
from .outbox.scheduler import OutboxCleanup, OutboxScheduler
from .outbox.service import OutboxService
from .users.mysql_user_repository import MySQLUserRepository
from .users.service import ApiKeyVerifier, AuthService


@dataclass(frozen=True)
class Container:
    auth_service: AuthService
    api_key_verifier: ApiKeyVerifier

    client_service: ClientService
    location_service: LocationService
    cost_center_service: CostCenterService
    employee_service: EmployeeService
    retention_service: EmployeeRetentionService
    export_service: ActiveEmployeeExportService
    assignment_service: AssignmentService

    outbox_metrics: OutboxMetrics
    outbox_dispatcher: Optional[ParallelDispatcher] = None
    outbox_cleanup: Optional[OutboxCleanup] = None
    outbox_scheduler: Optional[OutboxScheduler] = None


def build_container(
    *,
    db_config: Mapping[str, Any],
    outbox_config: Optional[OutboxConfig] = None,
    notification_config: Optional[Mapping[str, Any]] = None,
    export_api_key: Optional[str] = None,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(dict(db_config)))
    outbox_config = outbox_config or OutboxConfig()
    notification_config = notification_config or {}
    allow_insecure = bool(notification_config.get("ALLOW_INSECURE_ENDPOINTS", False))

    users_repo = MySQLUserRepository(conn)
    clients_repo = MySQLClientRepository(conn)
    locations_repo = MySQLLocationRepository(conn)
    cost_centers_repo = MySQLCostCenterRepository(conn)
    employees_repo = MySQLEmployeeRepository(conn)
    counters_repo = MySQLEmployeeIdCounterRepository(conn)
    assignments_repo = MySQLAssignmentRepository(conn)
    outbox_repo = MySQLOutboxRepository(conn)
    integrity_lookup = MySQLIntegrityLookup(conn)

    def integrity_factory() -> IntegrityValidator:
        return IntegrityValidator(integrity_lookup)

    metrics = OutboxMetrics()
    outbox_service = OutboxService(outbox_repo, outbox_config, metrics)
    notifier = EmployeeNotifier(
        secret=notification_config.get("THIRD_PARTY_EMPLOYEE_SECRET"),
        timeout_ms=int(notification_config.get("THIRD_PARTY_EMPLOYEE_TIMEOUT_MS", 15_000)),
        allow_insecure_endpoints=allow_insecure,
    )
    dispatcher = ParallelDispatcher(outbox_repo, notifier, outbox_config, metrics)
    cleanup = OutboxCleanup(outbox_repo, outbox_config)

    return Container(
        auth_service=AuthService(users_repo),
        api_key_verifier=ApiKeyVerifier(export_api_key),
        client_service=ClientService(clients_repo, allow_insecure_endpoints=allow_insecure),
        location_service=LocationService(locations_repo, clients_repo, integrity_factory),
        cost_center_service=CostCenterService(cost_centers_repo, clients_repo, employees_repo, integrity_factory),
        employee_service=EmployeeService(
            employees_repo,
            clients_repo,
            cost_centers_repo,
            locations_repo,
            EmployeeIdentifierGenerator(employees_repo, counters_repo),
            integrity_factory,
            EmployeeNotificationService(clients_repo, outbox_service),
        ),
        retention_service=EmployeeRetentionService(employees_repo, clients_repo),
        export_service=ActiveEmployeeExportService(employees_repo, clients_repo, cost_centers_repo),
        assignment_service=AssignmentService(assignments_repo, employees_repo, cost_centers_repo, clients_repo),
        outbox_metrics=metrics,
        outbox_dispatcher=dispatcher,
        outbox_cleanup=cleanup,
        outbox_scheduler=OutboxScheduler(dispatcher, cleanup, outbox_config),
    )

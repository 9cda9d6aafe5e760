"""Organization imports and hierarchy edits on top of the repository."""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Any

from orgchart.core.config import Settings
from orgchart.models.employee import Employee, EmployeeCreateRequest, Organization
from orgchart.models.hierarchy import (
    HierarchyErrorCode,
    HierarchyNode,
    ImportResult,
    ImportStatistics,
    ManagerUpdateResponse,
)
from orgchart.models.layout import ChartLayout, LayoutRequest
from orgchart.services.column_identifier import column_identifier
from orgchart.services.file_parser import file_parser
from orgchart.services.hierarchy_builder import hierarchy_builder
from orgchart.services.hierarchy_validator import HierarchyValidator
from orgchart.services.layout_engine import (
    LARGE_HIERARCHY_THRESHOLD,
    VIEWPORT_BUFFER,
    LayoutEngine,
    LayoutSpacing,
    auto_collapsed_ids,
    focus_employees,
)
from orgchart.services.repository import HierarchyRepository, create_repository

logger = logging.getLogger(__name__)

DEFAULT_EMPLOYEE_TITLE = "Unknown Title"


class OrganizationServiceError(Exception):
    pass


class HierarchyImportError(OrganizationServiceError):
    pass


class OrganizationAccessError(OrganizationServiceError):
    pass


class EmployeeCreationError(OrganizationServiceError):
    pass


class HierarchyUpdateError(OrganizationServiceError):
    def __init__(self, error_code: HierarchyErrorCode, message: str) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.message = message


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class OrganizationService:
    def __init__(self, id_factory: Callable[[str], str] = _new_id) -> None:
        self.repository: HierarchyRepository | None = None
        self.validator: HierarchyValidator | None = None
        self.layout_engine = LayoutEngine()
        self.id_factory = id_factory
        self.default_title = DEFAULT_EMPLOYEE_TITLE
        self.large_hierarchy_threshold = LARGE_HIERARCHY_THRESHOLD
        self.viewport_buffer = VIEWPORT_BUFFER
        self.initialized = False
        # One in-flight commit per organization
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def initialize(self, settings: Settings, repository: HierarchyRepository | None = None) -> None:
        if self.initialized:
            return

        self.repository = repository or create_repository(settings)
        self.validator = HierarchyValidator(self.repository)
        self.layout_engine = LayoutEngine(LayoutSpacing(max_children_per_row=settings.MAX_CHILDREN_PER_ROW))
        self.default_title = settings.DEFAULT_EMPLOYEE_TITLE
        self.large_hierarchy_threshold = settings.LARGE_HIERARCHY_THRESHOLD
        self.viewport_buffer = settings.VIEWPORT_BUFFER
        self.initialized = True
        logger.info("OrganizationService initialized (storage=%s)", settings.STORAGE_BACKEND)

    async def close(self) -> None:
        self.repository = None
        self.validator = None
        self._locks.clear()
        self.initialized = False

    def _require_repository(self) -> HierarchyRepository:
        if not self.initialized or self.repository is None:
            raise OrganizationServiceError("OrganizationService not initialized")
        return self.repository

    def _require_validator(self) -> HierarchyValidator:
        if not self.initialized or self.validator is None:
            raise OrganizationServiceError("OrganizationService not initialized")
        return self.validator

    def build_import_result(
        self,
        data: list[list[Any]],
        organization_id: str,
    ) -> tuple[ImportResult, list[Employee]]:
        """Turn a raw grid into id-keyed chart data; nothing is persisted here."""
        if not data:
            raise HierarchyImportError("No data found in file")

        columns = column_identifier.identify(data)
        if columns.name_column is None and columns.manager_column is None:
            raise HierarchyImportError("Could not identify employee name or manager columns")
        if columns.name_column is None:
            raise HierarchyImportError("Could not identify employee name column")

        structure = hierarchy_builder.generate_hierarchy(
            data,
            columns.name_column,
            columns.manager_column,
            columns.title_column,
        )

        # Names are only keys inside this call; everything returned uses ids.
        name_to_id = {parsed.name: self.id_factory("emp") for parsed in structure.employees}
        by_name: dict[str, Employee] = {}
        for parsed in structure.employees:
            by_name[parsed.name] = Employee(
                id=name_to_id[parsed.name],
                name=parsed.name,
                title=parsed.title or self.default_title,
                organization_id=organization_id,
                manager_id=name_to_id.get(parsed.manager) if parsed.manager else None,
                custom_fields=dict(parsed.custom_fields),
            )

        employees = list(by_name.values())
        hierarchy = {
            name_to_id[name]: HierarchyNode(
                employee=by_name[name],
                direct_reports=[name_to_id[r] for r in node.direct_reports if r in name_to_id],
                manager_id=by_name[name].manager_id,
            )
            for name, node in structure.hierarchy.items()
        }
        roots = [by_name[n] for n in structure.root_employees if n in by_name]
        orphans = [by_name[n] for n in structure.orphaned_employees if n in by_name]
        validation = hierarchy_builder.validate_structure(structure)

        result = ImportResult(
            organization_id=organization_id,
            employees=employees,
            hierarchy=hierarchy,
            root_employees=roots,
            orphaned_employees=orphans,
            column_identification=columns,
            validation=validation,
            statistics=ImportStatistics(
                total_employees=len(structure.employees),
                root_employees=len(structure.root_employees),
                orphaned_employees=len(structure.orphaned_employees),
                total_errors=len(structure.errors),
            ),
        )
        return result, employees

    async def import_grid(self, data: list[list[Any]], organization_name: str, user_id: str) -> ImportResult:
        repository = self._require_repository()

        organization = Organization(
            id=self.id_factory("org"),
            name=organization_name,
            user_id=user_id,
            created_at=datetime.now(timezone.utc),
        )
        result, employees = self.build_import_result(data, organization.id)

        async with self._locks[organization.id]:
            await repository.create_organization(organization)
            await repository.bulk_create_employees(employees)

        logger.info(
            "Imported %d employees into organization %s (errors=%d, user=%s)",
            len(employees),
            organization.id,
            result.statistics.total_errors,
            user_id,
        )
        return result

    async def import_file(self, file_bytes: bytes, file_name: str, user_id: str) -> ImportResult:
        data = file_parser.parse(file_bytes, file_name)
        return await self.import_grid(data, PurePath(file_name).stem or file_name, user_id)

    async def get_user_organizations(self, user_id: str) -> list[Organization]:
        return await self._require_repository().get_user_organizations(user_id)

    async def _owned_organization(self, organization_id: str, user_id: str) -> Organization:
        organization = await self._require_repository().get_organization(organization_id)
        if organization is None or organization.user_id != user_id:
            raise OrganizationAccessError("Unauthorized access to organization")
        return organization

    async def get_employees(self, organization_id: str, user_id: str) -> list[Employee]:
        await self._owned_organization(organization_id, user_id)
        return await self._require_repository().get_employees_by_organization(organization_id)

    async def create_employee(
        self,
        organization_id: str,
        request: EmployeeCreateRequest,
        user_id: str,
    ) -> Employee:
        repository = self._require_repository()
        await self._owned_organization(organization_id, user_id)

        async with self._locks[organization_id]:
            if request.manager_id:
                manager = await repository.get_employee(request.manager_id)
                if manager is None:
                    raise EmployeeCreationError("Specified manager does not exist")
                if manager.organization_id != organization_id:
                    raise EmployeeCreationError("Manager must be in the same organization")

            employee = Employee(
                id=self.id_factory("emp"),
                name=request.name,
                title=request.title,
                organization_id=organization_id,
                manager_id=request.manager_id or None,
                custom_fields=dict(request.custom_fields),
            )
            created = await repository.create_employee(employee)

        logger.info("Created employee %s in organization %s", created.id, organization_id)
        return created

    async def _check_update(self, employee_id: str, new_manager_id: str, user_id: str) -> None:
        validation = await self._require_validator().validate_hierarchy_update(employee_id, new_manager_id, user_id)
        if not validation.is_valid:
            code = validation.error_code or HierarchyErrorCode.INTERNAL_ERROR
            logger.info("Rejected manager update %s -> %s: %s", employee_id, new_manager_id, code.value)
            raise HierarchyUpdateError(code, validation.error or "Validation failed")

    async def update_manager(self, employee_id: str, new_manager_id: str, user_id: str) -> ManagerUpdateResponse:
        repository = self._require_repository()

        try:
            current = await repository.get_employee(employee_id)
        except Exception as e:
            logger.exception("Error loading employee %s for manager update", employee_id)
            raise HierarchyUpdateError(HierarchyErrorCode.INTERNAL_ERROR, "Internal validation error") from e

        if current is None:
            # Nothing can be committed, so no organization lock is taken.
            await self._check_update(employee_id, new_manager_id, user_id)
            raise HierarchyUpdateError(HierarchyErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found")

        async with self._locks[current.organization_id]:
            await self._check_update(employee_id, new_manager_id, user_id)

            try:
                employee = await repository.get_employee(employee_id)
                if employee is not None:
                    await repository.update_employee(employee.model_copy(update={"manager_id": new_manager_id}))
            except Exception as e:
                logger.exception("Error committing manager update %s -> %s", employee_id, new_manager_id)
                raise HierarchyUpdateError(HierarchyErrorCode.INTERNAL_ERROR, "Failed to update hierarchy") from e

            if employee is None:
                raise HierarchyUpdateError(HierarchyErrorCode.EMPLOYEE_NOT_FOUND, "Employee not found")
            previous_manager_id = employee.manager_id

        logger.info("Moved employee %s from %s to %s", employee_id, previous_manager_id, new_manager_id)
        return ManagerUpdateResponse(
            success=True,
            employee_id=employee_id,
            new_manager_id=new_manager_id,
            previous_manager_id=previous_manager_id,
        )

    async def get_layout(self, organization_id: str, request: LayoutRequest, user_id: str) -> ChartLayout:
        employees = await self.get_employees(organization_id, user_id)
        employees = focus_employees(employees, request.focused_employee_id)

        if request.collapsed_ids is not None:
            collapsed = set(request.collapsed_ids)
        else:
            collapsed = auto_collapsed_ids(employees, threshold=self.large_hierarchy_threshold) or set()

        layout = self.layout_engine.compute_layout(employees, collapsed)
        return self.layout_engine.cull(layout, request.viewport, self.viewport_buffer)


organization_service = OrganizationService()

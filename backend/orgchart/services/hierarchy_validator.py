from __future__ import annotations

import logging
from collections.abc import Iterable

from orgchart.models.employee import Employee
from orgchart.models.hierarchy import HierarchyErrorCode, HierarchyValidationResult
from orgchart.services.repository import HierarchyRepository

logger = logging.getLogger(__name__)

_MESSAGES: dict[HierarchyErrorCode, str] = {
    HierarchyErrorCode.EMPLOYEE_NOT_FOUND: "Employee not found",
    HierarchyErrorCode.MANAGER_NOT_FOUND: "New manager not found",
    HierarchyErrorCode.DIFFERENT_ORGANIZATIONS: "Employee and manager must belong to the same organization",
    HierarchyErrorCode.UNAUTHORIZED_ACCESS: "Unauthorized access to organization",
    HierarchyErrorCode.SELF_MANAGEMENT: "Employee cannot be their own manager",
    HierarchyErrorCode.CIRCULAR_RELATIONSHIP: "This change would create a circular reporting relationship",
    HierarchyErrorCode.INTERNAL_ERROR: "Internal validation error",
}


def _reject(code: HierarchyErrorCode) -> HierarchyValidationResult:
    return HierarchyValidationResult(is_valid=False, error=_MESSAGES[code], error_code=code)


def is_subordinate(manager_id: str, candidate_id: str, manager_of: dict[str, str | None]) -> bool:
    """True if ``candidate_id`` reports to ``manager_id`` directly or transitively.

    Walks upward from the candidate; the visited set stops the walk on data
    that already contains a cycle.
    """
    visited: set[str] = set()
    current: str | None = candidate_id
    while current is not None and current not in visited:
        visited.add(current)
        parent = manager_of.get(current)
        if parent is None:
            return False
        if parent == manager_id:
            return True
        current = parent
    return False


def would_create_circular_reference(
    employees: Iterable[Employee],
    employee_id: str,
    new_manager_id: str,
) -> bool:
    """In-memory precheck for a drag-and-drop reparent, before any round trip."""
    if employee_id == new_manager_id:
        return True
    manager_of = {e.id: e.manager_id for e in employees}
    return is_subordinate(employee_id, new_manager_id, manager_of)


class HierarchyValidator:
    def __init__(self, repository: HierarchyRepository) -> None:
        self.repository = repository

    async def validate_hierarchy_update(
        self,
        employee_id: str,
        new_manager_id: str,
        user_id: str,
    ) -> HierarchyValidationResult:
        if employee_id == new_manager_id:
            return _reject(HierarchyErrorCode.SELF_MANAGEMENT)

        try:
            employee = await self.repository.get_employee(employee_id)
            if employee is None:
                return _reject(HierarchyErrorCode.EMPLOYEE_NOT_FOUND)

            new_manager = await self.repository.get_employee(new_manager_id)
            if new_manager is None:
                return _reject(HierarchyErrorCode.MANAGER_NOT_FOUND)

            if employee.organization_id != new_manager.organization_id:
                return _reject(HierarchyErrorCode.DIFFERENT_ORGANIZATIONS)

            organization = await self.repository.get_organization(employee.organization_id)
            if organization is None:
                logger.warning("Organization %s not found for update by user=%s", employee.organization_id, user_id)
                return _reject(HierarchyErrorCode.UNAUTHORIZED_ACCESS)
            if organization.user_id != user_id:
                logger.warning("User %s does not own organization %s", user_id, organization.id)
                return _reject(HierarchyErrorCode.UNAUTHORIZED_ACCESS)
        except Exception:
            logger.exception("Error validating hierarchy update %s -> %s", employee_id, new_manager_id)
            return _reject(HierarchyErrorCode.INTERNAL_ERROR)

        if await self.check_circular_relationship(employee_id, new_manager_id, employee.organization_id):
            return _reject(HierarchyErrorCode.CIRCULAR_RELATIONSHIP)

        return HierarchyValidationResult(is_valid=True)

    async def check_circular_relationship(
        self,
        employee_id: str,
        new_manager_id: str,
        organization_id: str,
    ) -> bool:
        try:
            employees = await self.repository.get_employees_by_organization(organization_id)
        except Exception:
            logger.exception("Error loading employees for cycle check in organization %s", organization_id)
            return True  # fail closed

        manager_of = {e.id: e.manager_id for e in employees}
        return is_subordinate(employee_id, new_manager_id, manager_of)

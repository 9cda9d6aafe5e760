"""Employee and organization storage used by the hierarchy services."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from orgchart.core.config import Settings
from orgchart.models.employee import Employee, Organization

logger = logging.getLogger(__name__)


class RepositoryError(Exception):
    pass


class HierarchyRepository(ABC):
    @abstractmethod
    async def get_employee(self, employee_id: str) -> Employee | None: ...

    @abstractmethod
    async def get_organization(self, organization_id: str) -> Organization | None: ...

    @abstractmethod
    async def create_organization(self, organization: Organization) -> Organization: ...

    @abstractmethod
    async def update_employee(self, employee: Employee) -> Employee: ...

    @abstractmethod
    async def create_employee(self, employee: Employee) -> Employee: ...

    @abstractmethod
    async def bulk_create_employees(self, employees: list[Employee]) -> list[Employee]: ...

    @abstractmethod
    async def get_employees_by_organization(self, organization_id: str) -> list[Employee]: ...

    @abstractmethod
    async def get_user_organizations(self, user_id: str) -> list[Organization]: ...


class InMemoryRepository(HierarchyRepository):
    """Process-local store; employees and organizations are copied in and out."""

    def __init__(self) -> None:
        self._employees: dict[str, Employee] = {}
        self._organizations: dict[str, Organization] = {}
        self._organization_employees: dict[str, list[str]] = {}
        self._user_organizations: dict[str, list[str]] = {}

    async def get_employee(self, employee_id: str) -> Employee | None:
        employee = self._employees.get(employee_id)
        return employee.model_copy(deep=True) if employee else None

    async def get_organization(self, organization_id: str) -> Organization | None:
        organization = self._organizations.get(organization_id)
        return organization.model_copy() if organization else None

    async def create_organization(self, organization: Organization) -> Organization:
        self._organizations[organization.id] = organization.model_copy()
        self._organization_employees.setdefault(organization.id, [])
        owned = self._user_organizations.setdefault(organization.user_id, [])
        if organization.id not in owned:
            owned.append(organization.id)
        return organization

    async def update_employee(self, employee: Employee) -> Employee:
        if employee.id not in self._employees:
            raise RepositoryError(f"Employee {employee.id} does not exist")
        self._employees[employee.id] = employee.model_copy(deep=True)
        return employee

    async def create_employee(self, employee: Employee) -> Employee:
        self._employees[employee.id] = employee.model_copy(deep=True)
        self._add_to_organization(employee.organization_id, [employee.id])
        return employee

    async def bulk_create_employees(self, employees: list[Employee]) -> list[Employee]:
        by_organization: dict[str, list[str]] = {}
        for employee in employees:
            self._employees[employee.id] = employee.model_copy(deep=True)
            by_organization.setdefault(employee.organization_id, []).append(employee.id)

        for organization_id, employee_ids in by_organization.items():
            self._add_to_organization(organization_id, employee_ids)
        return employees

    async def get_employees_by_organization(self, organization_id: str) -> list[Employee]:
        employee_ids = self._organization_employees.get(organization_id, [])
        return [self._employees[e].model_copy(deep=True) for e in employee_ids if e in self._employees]

    async def get_user_organizations(self, user_id: str) -> list[Organization]:
        organization_ids = self._user_organizations.get(user_id, [])
        return [self._organizations[o].model_copy() for o in organization_ids if o in self._organizations]

    def _add_to_organization(self, organization_id: str, employee_ids: list[str]) -> None:
        existing = self._organization_employees.setdefault(organization_id, [])
        known = set(existing)
        for employee_id in employee_ids:
            if employee_id not in known:
                existing.append(employee_id)
                known.add(employee_id)


def create_repository(settings: Settings) -> HierarchyRepository:
    if settings.STORAGE_BACKEND != "memory":
        raise RepositoryError(f"Unsupported storage backend: {settings.STORAGE_BACKEND}")
    logger.info("Using in-memory hierarchy repository")
    return InMemoryRepository()

"""Employee and organization models for the hierarchy engine."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from orgchart.models.base import CamelModel


class ParsedEmployee(CamelModel):
    """Employee row as read from an import grid, manager referenced by name."""

    name: str
    title: str | None = None
    manager: str | None = None
    custom_fields: dict[str, str] = Field(default_factory=dict)


class Employee(CamelModel):
    """Persisted employee, manager referenced by id."""

    id: str
    name: str
    title: str
    organization_id: str
    manager_id: str | None = None
    custom_fields: dict[str, str] = Field(default_factory=dict)


class Organization(CamelModel):
    id: str
    name: str
    user_id: str
    created_at: datetime


class EmployeeCreateRequest(CamelModel):
    """Request body for adding a single employee to an organization."""

    name: str = Field(..., min_length=1, max_length=255)
    title: str = Field(..., min_length=1, max_length=255)
    manager_id: str | None = None
    custom_fields: dict[str, str] = Field(default_factory=dict)

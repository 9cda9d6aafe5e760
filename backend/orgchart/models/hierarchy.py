"""Models for hierarchy import, validation and manager updates."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from orgchart.models.base import CamelModel
from orgchart.models.employee import Employee, ParsedEmployee


class ColumnIdentification(CamelModel):
    """Which grid columns hold the name, manager and title of an employee."""

    name_column: int | None = None
    manager_column: int | None = None
    title_column: int | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    analysis: str = ""


class ParsedHierarchyNode(CamelModel):
    employee: ParsedEmployee
    direct_reports: list[str] = Field(default_factory=list)
    manager_id: str | None = None


class HierarchicalStructure(CamelModel):
    """Name-keyed hierarchy produced from one import grid."""

    employees: list[ParsedEmployee] = Field(default_factory=list)
    hierarchy: dict[str, ParsedHierarchyNode] = Field(default_factory=dict)
    root_employees: list[str] = Field(default_factory=list)
    orphaned_employees: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class HierarchyNode(CamelModel):
    employee: Employee
    direct_reports: list[str] = Field(default_factory=list)
    manager_id: str | None = None


class StructureValidation(CamelModel):
    is_valid: bool
    issues: list[str] = Field(default_factory=list)


class ImportStatistics(CamelModel):
    total_employees: int = 0
    root_employees: int = 0
    orphaned_employees: int = 0
    total_errors: int = 0


class ImportResult(CamelModel):
    """Id-keyed chart data returned to the caller after an import."""

    organization_id: str | None = None
    employees: list[Employee] = Field(default_factory=list)
    hierarchy: dict[str, HierarchyNode] = Field(default_factory=dict)
    root_employees: list[Employee] = Field(default_factory=list)
    orphaned_employees: list[Employee] = Field(default_factory=list)
    column_identification: ColumnIdentification = Field(default_factory=ColumnIdentification)
    validation: StructureValidation = Field(default_factory=lambda: StructureValidation(is_valid=True))
    statistics: ImportStatistics = Field(default_factory=ImportStatistics)


class HierarchyErrorCode(str, Enum):
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"
    MANAGER_NOT_FOUND = "MANAGER_NOT_FOUND"
    DIFFERENT_ORGANIZATIONS = "DIFFERENT_ORGANIZATIONS"
    UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"
    SELF_MANAGEMENT = "SELF_MANAGEMENT"
    CIRCULAR_RELATIONSHIP = "CIRCULAR_RELATIONSHIP"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class HierarchyValidationResult(CamelModel):
    is_valid: bool
    error: str | None = None
    error_code: HierarchyErrorCode | None = None


class ManagerUpdateRequest(CamelModel):
    employee_id: str = Field(..., min_length=1)
    new_manager_id: str = Field(..., min_length=1)


class ManagerUpdateResponse(CamelModel):
    success: bool = True
    employee_id: str
    new_manager_id: str
    previous_manager_id: str | None = None

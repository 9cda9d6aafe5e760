"""Build a name-keyed reporting hierarchy from an employee grid.

The builder never aborts on bad rows. Empty names, duplicate names, managers
missing from the sheet and circular reporting chains are collected as
human-readable errors next to whatever structure could be recovered, so the
caller can show them to the user for correction.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

from orgchart.models.employee import ParsedEmployee
from orgchart.models.hierarchy import (
    HierarchicalStructure,
    ParsedHierarchyNode,
    StructureValidation,
)
from orgchart.services.column_identifier import cell_to_str

logger = logging.getLogger(__name__)


def _cell(row: list[Any], column: int | None) -> str:
    if column is None or column < 0 or column >= len(row):
        return ""
    return cell_to_str(row[column])


def detect_circular_reporting(hierarchy: dict[str, ParsedHierarchyNode]) -> list[str]:
    """Return one error per reporting cycle reachable in ``hierarchy``.

    Each employee has at most one manager, so a depth-first walk from a node is
    simply its manager chain. A chain that runs back into a node still on the
    current path is a cycle; a chain that reaches a node finished by an earlier
    walk stops there. Every node is walked at most once.
    """
    errors: list[str] = []
    visited: set[str] = set()

    for start in hierarchy:
        if start in visited:
            continue

        path: list[str] = []
        on_path: set[str] = set()
        current: str | None = start

        while current is not None:
            if current in on_path:
                errors.append(f"Circular reporting detected: {' -> '.join(path)} -> {current}")
                break
            if current in visited:
                break

            visited.add(current)
            on_path.add(current)
            path.append(current)

            manager = hierarchy[current].manager_id
            current = manager if manager and manager in hierarchy else None

    return errors


class HierarchyBuilder:
    def _custom_fields(
        self,
        headers: list[Any],
        row: list[Any],
        reserved: set[int],
    ) -> dict[str, str]:
        fields: dict[str, str] = {}
        for index, raw_value in enumerate(row):
            if index in reserved or index >= len(headers):
                continue
            field_name = cell_to_str(headers[index])
            value = cell_to_str(raw_value)
            if field_name and value:
                fields[field_name] = value
        return fields

    def generate_hierarchy(
        self,
        data: list[list[Any]],
        name_column: int,
        manager_column: int | None = None,
        title_column: int | None = None,
    ) -> HierarchicalStructure:
        if manager_column is not None and manager_column < 0:
            manager_column = None

        headers = data[0] if data else []
        reserved = {c for c in (name_column, manager_column, title_column) if c is not None}

        employees: list[ParsedEmployee] = []
        seen_names: set[str] = set()
        reports_by_manager: dict[str, list[str]] = defaultdict(list)
        errors: list[str] = []

        for offset, row in enumerate(data[1:]):
            row_number = offset + 2  # header is row 1
            name = _cell(row, name_column)
            manager = _cell(row, manager_column)
            title = _cell(row, title_column)

            if not name:
                errors.append(f"Row {row_number}: Empty employee name")
                continue

            if name in seen_names:
                errors.append(f'Row {row_number}: Duplicate employee name "{name}"')
                continue

            employees.append(
                ParsedEmployee(
                    name=name,
                    title=title or None,
                    manager=manager or None,
                    custom_fields=self._custom_fields(headers, row, reserved),
                )
            )
            seen_names.add(name)
            if manager:
                reports_by_manager[manager].append(name)

        hierarchy = {
            employee.name: ParsedHierarchyNode(
                employee=employee,
                direct_reports=list(reports_by_manager.get(employee.name, [])),
                manager_id=employee.manager,
            )
            for employee in employees
        }

        root_employees: list[str] = []
        for employee in employees:
            if not employee.manager:
                root_employees.append(employee.name)
            elif employee.manager not in seen_names:
                root_employees.append(employee.name)
                errors.append(
                    f'Employee "{employee.name}" has manager "{employee.manager}" '
                    "who is not in the employee list"
                )

        errors.extend(detect_circular_reporting(hierarchy))

        logger.info(
            "Built hierarchy: %d employees, %d root(s), %d error(s)",
            len(employees),
            len(root_employees),
            len(errors),
        )
        return HierarchicalStructure(
            employees=employees,
            hierarchy=hierarchy,
            root_employees=root_employees,
            orphaned_employees=[],
            errors=errors,
        )

    def validate_structure(self, structure: HierarchicalStructure) -> StructureValidation:
        issues: list[str] = []

        unnamed = [e for e in structure.employees if not e.name.strip()]
        if unnamed:
            issues.append(f"{len(unnamed)} employees have empty names")

        for name, node in structure.hierarchy.items():
            for report in node.direct_reports:
                if report not in structure.hierarchy:
                    issues.append(
                        f'Employee "{name}" has direct report "{report}" who doesn\'t exist in hierarchy'
                    )

            if node.manager_id:
                manager = structure.hierarchy.get(node.manager_id)
                if manager is None:
                    issues.append(
                        f'Employee "{name}" has manager "{node.manager_id}" who doesn\'t exist in hierarchy'
                    )
                elif name not in manager.direct_reports:
                    issues.append(f'Manager "{node.manager_id}" doesn\'t list "{name}" as a direct report')

        issues.extend(structure.errors)
        return StructureValidation(is_valid=not issues, issues=issues)


hierarchy_builder = HierarchyBuilder()

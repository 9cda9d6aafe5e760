"""Interactive state for one open org chart.

A session holds the employees of a chart together with the view state a
viewer needs (collapsed managers, focus, pan and zoom). Manager changes are
applied optimistically and reverted when the commit fails; the failed move
is kept so it can be retried.

The HTTP API is stateless and never holds a session. A front-end host keeps
one `ChartSession` per open chart and passes a coroutine that calls
`OrganizationService.update_manager` (or the manager update endpoint) as the
commit step of `move_employee`.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from orgchart.models.employee import Employee
from orgchart.models.hierarchy import ImportResult, ImportStatistics
from orgchart.models.layout import ChartLayout, Viewport
from orgchart.services.hierarchy_validator import would_create_circular_reference
from orgchart.services.layout_engine import (
    LARGE_HIERARCHY_THRESHOLD,
    VIEWPORT_BUFFER,
    LayoutEngine,
    auto_collapsed_ids,
    children_by_manager,
    focus_employees,
    nodes_with_children,
)

logger = logging.getLogger(__name__)

MIN_SCALE = 0.1
MAX_SCALE = 3.0
ZOOM_OUT_FACTOR = 0.9
ZOOM_IN_FACTOR = 1.1
SEARCH_LIMIT = 10


class ChartSessionError(Exception):
    pass


class CircularReferenceError(ChartSessionError):
    pass


class SaveInProgressError(ChartSessionError):
    pass


class UnknownEmployeeError(ChartSessionError):
    pass


class SaveState(str, Enum):
    IDLE = "idle"
    SAVING = "saving"
    APPLIED = "applied"
    REVERTED = "reverted"


@dataclass
class PendingMove:
    employee_id: str
    new_manager_id: str
    previous_manager_id: str | None


class ChartSession:
    def __init__(
        self,
        layout_engine: LayoutEngine | None = None,
        large_hierarchy_threshold: int = LARGE_HIERARCHY_THRESHOLD,
        viewport_buffer: float = VIEWPORT_BUFFER,
    ) -> None:
        self.layout_engine = layout_engine or LayoutEngine()
        self.large_hierarchy_threshold = large_hierarchy_threshold
        self.viewport_buffer = viewport_buffer

        self.organization_id: str | None = None
        self._employees: dict[str, Employee] = {}
        self.collapsed: set[str] = set()
        self.focused_id: str | None = None
        self.viewport = Viewport()

        self.save_state = SaveState.IDLE
        self.error: str | None = None
        self.pending: PendingMove | None = None
        self.last_failed: PendingMove | None = None

    # Chart data

    def load(self, result: ImportResult) -> None:
        previous_count = len(self._employees)
        self.organization_id = result.organization_id
        self._employees = {e.id: e.model_copy(deep=True) for e in result.employees}
        self.focused_id = None
        self.error = None
        self.pending = None
        self.last_failed = None
        self.save_state = SaveState.IDLE
        self._apply_auto_collapse(previous_count)
        logger.debug("Loaded chart %s with %d employees", self.organization_id, len(self._employees))

    def _apply_auto_collapse(self, previous_count: int) -> None:
        collapsed = auto_collapsed_ids(
            self.employees,
            previous_count=previous_count,
            threshold=self.large_hierarchy_threshold,
        )
        if collapsed is not None:
            self.collapsed = collapsed

    @property
    def employees(self) -> list[Employee]:
        return list(self._employees.values())

    def get(self, employee_id: str) -> Employee:
        try:
            return self._employees[employee_id]
        except KeyError:
            raise UnknownEmployeeError(f"Unknown employee: {employee_id}") from None

    @property
    def root_employees(self) -> list[Employee]:
        return [e for e in self._employees.values() if not e.manager_id]

    @property
    def orphaned_employees(self) -> list[Employee]:
        return [e for e in self._employees.values() if e.manager_id and e.manager_id not in self._employees]

    @property
    def unreachable_employees(self) -> list[Employee]:
        """Employees caught in a reporting cycle or reporting into one."""
        children = children_by_manager(self.employees)
        reached: set[str] = set()
        stack = [e.id for e in self._employees.values() if not e.manager_id or e.manager_id not in self._employees]
        while stack:
            current = stack.pop()
            if current in reached:
                continue
            reached.add(current)
            stack.extend(child.id for child in children.get(current, []))
        return [e for e in self._employees.values() if e.id not in reached]

    @property
    def statistics(self) -> ImportStatistics:
        return ImportStatistics(
            total_employees=len(self._employees),
            root_employees=len(self.root_employees),
            orphaned_employees=len(self.orphaned_employees),
            total_errors=len(self.orphaned_employees) + len(self.unreachable_employees),
        )

    def add_employee(self, employee: Employee) -> None:
        if employee.manager_id and employee.manager_id not in self._employees:
            raise UnknownEmployeeError(f"Unknown manager: {employee.manager_id}")
        previous_count = len(self._employees)
        self._employees[employee.id] = employee.model_copy(deep=True)
        self._apply_auto_collapse(previous_count)

    def update_employee(self, employee_id: str, name: str | None = None, title: str | None = None) -> Employee:
        employee = self.get(employee_id)
        changes = {k: v for k, v in (("name", name), ("title", title)) if v is not None}
        updated = employee.model_copy(update=changes)
        self._employees[employee_id] = updated
        return updated

    # Manager changes

    def begin_move(self, employee_id: str, new_manager_id: str) -> PendingMove:
        if self.save_state == SaveState.SAVING:
            raise SaveInProgressError("A hierarchy change is already being saved")

        employee = self.get(employee_id)
        self.get(new_manager_id)
        if would_create_circular_reference(self.employees, employee_id, new_manager_id):
            raise CircularReferenceError("This change would create a circular reporting relationship")

        move = PendingMove(employee_id, new_manager_id, employee.manager_id)
        self._set_manager(employee_id, new_manager_id)
        self.pending = move
        self.error = None
        self.save_state = SaveState.SAVING
        return move

    def commit_succeeded(self) -> None:
        self.pending = None
        self.last_failed = None
        self.error = None
        self.save_state = SaveState.APPLIED

    def commit_failed(self, message: str) -> None:
        move = self.pending
        if move is not None:
            self._set_manager(move.employee_id, move.previous_manager_id)
            logger.info("Reverted move of %s: %s", move.employee_id, message)
        self.pending = None
        self.last_failed = move
        self.error = message
        self.save_state = SaveState.REVERTED

    async def move_employee(
        self,
        employee_id: str,
        new_manager_id: str,
        commit: Callable[[str, str], Awaitable[object]],
    ) -> bool:
        """Apply a move locally, then ``commit`` it; revert if the commit raises."""
        self.begin_move(employee_id, new_manager_id)
        try:
            await commit(employee_id, new_manager_id)
        except Exception as e:
            self.commit_failed(str(e) or "Failed to update hierarchy")
            return False
        self.commit_succeeded()
        return True

    async def retry(self, commit: Callable[[str, str], Awaitable[object]]) -> bool:
        if self.last_failed is None:
            raise ChartSessionError("No failed change to retry")
        move = self.last_failed
        return await self.move_employee(move.employee_id, move.new_manager_id, commit)

    def _set_manager(self, employee_id: str, manager_id: str | None) -> None:
        employee = self._employees[employee_id]
        self._employees[employee_id] = employee.model_copy(update={"manager_id": manager_id})

    # View state

    def toggle_collapse(self, employee_id: str) -> bool:
        if employee_id in self.collapsed:
            self.collapsed.discard(employee_id)
            return False
        self.collapsed.add(employee_id)
        return True

    def collapse_all(self) -> None:
        self.collapsed = nodes_with_children(self.employees)

    def expand_all(self) -> None:
        self.collapsed = set()

    def focus(self, employee_id: str | None) -> None:
        if employee_id is not None:
            self.get(employee_id)
        self.focused_id = employee_id

    def search(self, term: str, limit: int = SEARCH_LIMIT) -> list[Employee]:
        needle = term.strip().lower()
        if not needle:
            return []
        matches = [e for e in self._employees.values() if needle in e.name.lower() or needle in e.title.lower()]
        return matches[:limit]

    def pan(self, dx: float, dy: float) -> Viewport:
        self.viewport = self.viewport.model_copy(
            update={
                "translate_x": self.viewport.translate_x + dx,
                "translate_y": self.viewport.translate_y + dy,
            }
        )
        return self.viewport

    def zoom(self, delta_y: float) -> Viewport:
        factor = ZOOM_OUT_FACTOR if delta_y > 0 else ZOOM_IN_FACTOR
        scale = min(MAX_SCALE, max(MIN_SCALE, self.viewport.scale * factor))
        self.viewport = self.viewport.model_copy(update={"scale": scale})
        return self.viewport

    def resize(self, width: float, height: float) -> Viewport:
        self.viewport = self.viewport.model_copy(update={"width": width, "height": height})
        return self.viewport

    def full_layout(self) -> ChartLayout:
        employees = focus_employees(self.employees, self.focused_id)
        return self.layout_engine.compute_layout(employees, self.collapsed)

    def layout(self) -> ChartLayout:
        return self.layout_engine.cull(self.full_layout(), self.viewport, self.viewport_buffer)

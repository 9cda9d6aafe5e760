"""Tree layout for the org chart.

Nodes are fixed-size boxes. Each node is centered over the horizontal space
its subtree needs; children wrap into rows of at most ``max_children_per_row``
so that wide teams grow downward instead of sideways, and every wrapped row is
pushed below the deepest subtree of the rows above it.

All traversals are iterative, so very deep reporting chains do not hit the
recursion limit. Output is a pure function of (employees, collapsed set,
spacing), which keeps coordinates stable across edits.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from orgchart.models.employee import Employee
from orgchart.models.layout import ChartLayout, Connector, LayoutNode, Point, Viewport

logger = logging.getLogger(__name__)

LARGE_HIERARCHY_THRESHOLD = 500
VIEWPORT_BUFFER = 300.0
EMPTY_CHART_WIDTH = 800.0
EMPTY_CHART_HEIGHT = 600.0
BOTTOM_MARGIN = 100.0


@dataclass(frozen=True)
class LayoutSpacing:
    node_width: float = 200.0
    node_height: float = 80.0
    level_height: float = 120.0
    sibling_spacing: float = 40.0
    max_children_per_row: int = 5
    top_margin: float = 50.0
    connector_drop: float = 20.0


DEFAULT_SPACING = LayoutSpacing()


@dataclass
class ChartNode:
    id: str
    name: str
    title: str
    level: int
    parent_id: str | None = None
    collapsed: bool = False
    has_children: bool = False
    children: list[ChartNode] = field(default_factory=list)


def children_by_manager(employees: Iterable[Employee]) -> dict[str, list[Employee]]:
    """Direct reports per manager id, in employee order, for managers that exist."""
    employees = list(employees)
    known = {e.id for e in employees}
    children: dict[str, list[Employee]] = {}
    for employee in employees:
        if employee.manager_id and employee.manager_id in known and employee.manager_id != employee.id:
            children.setdefault(employee.manager_id, []).append(employee)
    return children


def nodes_with_children(employees: Iterable[Employee]) -> set[str]:
    return set(children_by_manager(employees))


def auto_collapsed_ids(
    employees: Sequence[Employee],
    previous_count: int = 0,
    threshold: int = LARGE_HIERARCHY_THRESHOLD,
) -> set[str] | None:
    """Collapse every manager when a chart first grows past ``threshold``.

    Returns ``None`` when the current collapsed set should be left alone.
    """
    if len(employees) > threshold and previous_count < threshold:
        return nodes_with_children(employees)
    return None


def build_forest(employees: Sequence[Employee], collapsed: Iterable[str] = ()) -> list[ChartNode]:
    """Resolve employees into root trees, truncating collapsed subtrees.

    Roots are employees without a manager or whose manager is unknown.
    Employees reachable only through a reporting cycle have no root and are
    left out.
    """
    collapsed_ids = set(collapsed)
    known = {e.id for e in employees}
    children = children_by_manager(employees)

    def make(employee: Employee, level: int, parent_id: str | None) -> ChartNode:
        return ChartNode(
            id=employee.id,
            name=employee.name,
            title=employee.title,
            level=level,
            parent_id=parent_id,
            collapsed=employee.id in collapsed_ids,
            has_children=employee.id in children,
        )

    roots = [make(e, 0, None) for e in employees if not e.manager_id or e.manager_id not in known]
    visited = {root.id for root in roots}
    stack = list(reversed(roots))

    while stack:
        node = stack.pop()
        if node.collapsed:
            continue
        for child in children.get(node.id, []):
            if child.id in visited:
                continue
            visited.add(child.id)
            child_node = make(child, node.level + 1, node.id)
            node.children.append(child_node)
        stack.extend(reversed(node.children))

    return roots


def focus_employees(employees: Sequence[Employee], focused_id: str | None) -> list[Employee]:
    """Narrow a chart to one employee, their manager chain and their direct reports."""
    if not focused_id:
        return list(employees)

    by_id = {e.id: e for e in employees}
    if focused_id not in by_id:
        return list(employees)

    included = {focused_id}
    current = by_id[focused_id].manager_id
    while current and current in by_id and current not in included:
        included.add(current)
        current = by_id[current].manager_id

    included.update(e.id for e in employees if e.manager_id == focused_id)
    return [e for e in employees if e.id in included]


def _preorder(roots: list[ChartNode]) -> list[ChartNode]:
    ordered: list[ChartNode] = []
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        ordered.append(node)
        stack.extend(reversed(node.children))
    return ordered


def split_into_rows(children: list[ChartNode], per_row: int) -> list[list[ChartNode]]:
    if len(children) <= per_row:
        return [children]
    return [children[i : i + per_row] for i in range(0, len(children), per_row)]


class LayoutEngine:
    def __init__(self, spacing: LayoutSpacing = DEFAULT_SPACING) -> None:
        self.spacing = spacing

    def _rows(self, node: ChartNode) -> list[list[ChartNode]]:
        return split_into_rows(node.children, self.spacing.max_children_per_row)

    def _row_width(self, row: list[ChartNode], widths: dict[str, float]) -> float:
        return sum(widths[c.id] for c in row) + (len(row) - 1) * self.spacing.sibling_spacing

    def subtree_metrics(self, ordered: list[ChartNode]) -> tuple[dict[str, float], dict[str, int]]:
        """Subtree width (px) and height (levels) for every node, children first."""
        widths: dict[str, float] = {}
        heights: dict[str, int] = {}
        for node in reversed(ordered):
            if not node.children:
                widths[node.id] = self.spacing.node_width
                heights[node.id] = 1
                continue
            rows = self._rows(node)
            widest_row = max(self._row_width(row, widths) for row in rows)
            widths[node.id] = max(self.spacing.node_width, widest_row)
            heights[node.id] = 1 + (len(rows) - 1) + max(heights[c.id] for c in node.children)
        return widths, heights

    def _vertical_offsets(self, ordered: list[ChartNode], heights: dict[str, int]) -> dict[str, float]:
        offsets: dict[str, float] = {}
        for node in ordered:
            base = offsets.setdefault(node.id, 0.0)
            row_offset = 0.0
            for row in self._rows(node):
                for child in row:
                    offsets[child.id] = base + row_offset
                if row:
                    row_offset += max(heights[c.id] for c in row) * self.spacing.level_height
        return offsets

    def position(self, roots: list[ChartNode]) -> ChartLayout:
        s = self.spacing
        ordered = _preorder(roots)
        widths, heights = self.subtree_metrics(ordered)
        offsets = self._vertical_offsets(ordered, heights)

        xs: dict[str, float] = {}
        current_x = 0.0
        for root in roots:
            xs[root.id] = current_x + widths[root.id] / 2 - s.node_width / 2
            current_x += widths[root.id] + s.sibling_spacing

        for node in ordered:
            parent_center = xs[node.id] + s.node_width / 2
            for row in self._rows(node):
                child_x = parent_center - self._row_width(row, widths) / 2
                for child in row:
                    xs[child.id] = child_x + widths[child.id] / 2 - s.node_width / 2
                    child_x += widths[child.id] + s.sibling_spacing

        placed: dict[str, LayoutNode] = {}
        for node in ordered:
            placed[node.id] = LayoutNode(
                id=node.id,
                name=node.name,
                title=node.title,
                x=xs[node.id],
                y=s.top_margin + node.level * s.level_height + offsets[node.id],
                level=node.level,
                collapsed=node.collapsed,
                has_children=node.has_children,
                parent_id=node.parent_id,
                subtree_width=widths[node.id],
            )

        connectors = [
            self._connector(placed[node.id], placed[child.id]) for node in ordered for child in node.children
        ]
        nodes = [placed[node.id] for node in ordered]

        if nodes:
            width = max(n.x + s.node_width for n in nodes)
            height = max(n.y + s.node_height for n in nodes) + BOTTOM_MARGIN
        else:
            width, height = EMPTY_CHART_WIDTH, EMPTY_CHART_HEIGHT

        return ChartLayout(nodes=nodes, connectors=connectors, width=width, height=height)

    def _connector(self, parent: LayoutNode, child: LayoutNode) -> Connector:
        s = self.spacing
        from_x = parent.x + s.node_width / 2
        from_y = parent.y + s.node_height
        to_x = child.x + s.node_width / 2
        elbow_y = from_y + s.connector_drop
        return Connector(
            from_id=parent.id,
            to_id=child.id,
            level=parent.level,
            points=[
                Point(x=from_x, y=from_y),
                Point(x=from_x, y=elbow_y),
                Point(x=to_x, y=elbow_y),
                Point(x=to_x, y=child.y),
            ],
        )

    def compute_layout(self, employees: Sequence[Employee], collapsed: Iterable[str] = ()) -> ChartLayout:
        layout = self.position(build_forest(employees, collapsed))
        logger.debug("Laid out %d of %d employees", len(layout.nodes), len(employees))
        return layout

    def visible_bounds(self, viewport: Viewport, buffer: float = VIEWPORT_BUFFER) -> tuple[float, float, float, float]:
        """(left, top, right, bottom) of the viewport in chart coordinates."""
        left = -viewport.translate_x / viewport.scale - buffer
        right = (-viewport.translate_x + viewport.width) / viewport.scale + buffer
        top = -viewport.translate_y / viewport.scale - buffer
        bottom = (-viewport.translate_y + viewport.height) / viewport.scale + buffer
        return left, top, right, bottom

    def cull(self, layout: ChartLayout, viewport: Viewport, buffer: float = VIEWPORT_BUFFER) -> ChartLayout:
        s = self.spacing
        left, top, right, bottom = self.visible_bounds(viewport, buffer)

        visible = [
            n
            for n in layout.nodes
            if n.x + s.node_width >= left and n.x <= right and n.y + s.node_height >= top and n.y <= bottom
        ]
        visible_ids = {n.id for n in visible}
        connectors = [c for c in layout.connectors if c.from_id in visible_ids or c.to_id in visible_ids]

        return ChartLayout(nodes=visible, connectors=connectors, width=layout.width, height=layout.height)


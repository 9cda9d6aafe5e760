"""Models produced by the layout engine for rendering."""

from __future__ import annotations

from pydantic import Field

from orgchart.models.base import CamelModel

NODE_WIDTH = 200.0
NODE_HEIGHT = 80.0


class LayoutNode(CamelModel):
    """Positioned employee box; ``x``/``y`` is the top-left corner."""

    id: str
    name: str
    title: str
    x: float
    y: float
    level: int
    collapsed: bool = False
    has_children: bool = False
    parent_id: str | None = None
    subtree_width: float = NODE_WIDTH

    @property
    def center_x(self) -> float:
        return self.x + NODE_WIDTH / 2


class Point(CamelModel):
    x: float
    y: float


class Connector(CamelModel):
    """Elbow line from a manager's bottom edge to a report's top edge."""

    from_id: str
    to_id: str
    level: int
    points: list[Point]


class Viewport(CamelModel):
    translate_x: float = 0.0
    translate_y: float = 0.0
    scale: float = Field(default=1.0, gt=0.0)
    width: float = Field(default=800.0, ge=0.0)
    height: float = Field(default=600.0, ge=0.0)


class ChartLayout(CamelModel):
    nodes: list[LayoutNode] = Field(default_factory=list)
    connectors: list[Connector] = Field(default_factory=list)
    width: float = 800.0
    height: float = 600.0


class LayoutRequest(CamelModel):
    viewport: Viewport = Field(default_factory=Viewport)
    collapsed_ids: list[str] | None = None
    focused_employee_id: str | None = None

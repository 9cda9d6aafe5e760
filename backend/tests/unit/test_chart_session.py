from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from orgchart.models.employee import Employee
from orgchart.models.hierarchy import ImportResult
from orgchart.services.chart_session import (
    ChartSession,
    ChartSessionError,
    CircularReferenceError,
    SaveInProgressError,
    SaveState,
    UnknownEmployeeError,
)


def _employee(employee_id: str, manager_id: str | None = None, name: str | None = None, title: str = "Engineer"):
    return Employee(
        id=employee_id,
        name=name or employee_id.upper(),
        title=title,
        organization_id="org_1",
        manager_id=manager_id,
    )


@pytest.fixture
def session():
    chart = ChartSession()
    chart.load(
        ImportResult(
            organization_id="org_1",
            employees=[
                _employee("ceo", name="Ada Lovelace", title="CEO"),
                _employee("vp", "ceo", name="Grace Hopper", title="VP Engineering"),
                _employee("ic", "vp", name="Linus Torvalds"),
                _employee("peer", "ceo", name="Alan Turing", title="VP Research"),
            ],
        )
    )
    return chart


def test_load_exposes_roots_and_statistics(session):
    assert [e.id for e in session.root_employees] == ["ceo"]
    assert session.orphaned_employees == []
    assert session.statistics.total_employees == 4
    assert session.save_state == SaveState.IDLE


def test_load_large_chart_collapses_managers():
    chart = ChartSession(large_hierarchy_threshold=3)
    chart.load(
        ImportResult(
            organization_id="org_1",
            employees=[_employee("ceo")] + [_employee(f"r{i}", "ceo") for i in range(4)],
        )
    )
    assert chart.collapsed == {"ceo"}
    assert [n.id for n in chart.full_layout().nodes] == ["ceo"]


@pytest.mark.anyio
async def test_move_employee_commits(session):
    commit = AsyncMock(return_value=None)

    ok = await session.move_employee("ic", "peer", commit)

    assert ok is True
    commit.assert_awaited_once_with("ic", "peer")
    assert session.get("ic").manager_id == "peer"
    assert session.save_state == SaveState.APPLIED
    assert session.last_failed is None


@pytest.mark.anyio
async def test_failed_commit_reverts_and_allows_retry(session):
    failing = AsyncMock(side_effect=RuntimeError("Network error"))

    ok = await session.move_employee("ic", "peer", failing)

    assert ok is False
    assert session.get("ic").manager_id == "vp"
    assert session.save_state == SaveState.REVERTED
    assert session.error == "Network error"
    assert session.last_failed.new_manager_id == "peer"

    succeeding = AsyncMock(return_value=None)
    assert await session.retry(succeeding) is True
    succeeding.assert_awaited_once_with("ic", "peer")
    assert session.get("ic").manager_id == "peer"
    assert session.error is None


@pytest.mark.anyio
async def test_retry_without_failure_raises(session):
    with pytest.raises(ChartSessionError, match="No failed change"):
        await session.retry(AsyncMock())


def test_begin_move_rejects_cycle_without_changes(session):
    with pytest.raises(CircularReferenceError):
        session.begin_move("ceo", "ic")
    assert session.get("ceo").manager_id is None
    assert session.save_state == SaveState.IDLE


def test_begin_move_rejects_self(session):
    with pytest.raises(CircularReferenceError):
        session.begin_move("ic", "ic")


def test_only_one_save_in_flight(session):
    session.begin_move("ic", "peer")
    assert session.save_state == SaveState.SAVING
    assert session.get("ic").manager_id == "peer"

    with pytest.raises(SaveInProgressError):
        session.begin_move("vp", "peer")

    session.commit_failed("Server said no")
    assert session.get("ic").manager_id == "vp"
    session.begin_move("vp", "peer")


def test_unknown_employee_raises(session):
    with pytest.raises(UnknownEmployeeError):
        session.begin_move("ghost", "ceo")
    with pytest.raises(UnknownEmployeeError):
        session.focus("ghost")


def test_add_and_update_employee(session):
    session.add_employee(_employee("new", "peer", name="Ken Thompson"))
    updated = session.update_employee("new", title="Principal Engineer")

    assert updated.title == "Principal Engineer"
    assert updated.name == "Ken Thompson"
    assert session.statistics.total_employees == 5

    with pytest.raises(UnknownEmployeeError):
        session.add_employee(_employee("lost", "nobody"))


def test_collapse_controls(session):
    assert session.toggle_collapse("vp") is True
    assert "ic" not in {n.id for n in session.full_layout().nodes}
    assert session.toggle_collapse("vp") is False

    session.collapse_all()
    assert session.collapsed == {"ceo", "vp"}
    session.expand_all()
    assert session.collapsed == set()


def test_focus_narrows_layout(session):
    session.focus("vp")
    assert {n.id for n in session.full_layout().nodes} == {"ceo", "vp", "ic"}
    session.focus(None)
    assert len(session.full_layout().nodes) == 4


def test_search_matches_name_or_title(session):
    assert [e.id for e in session.search("grace")] == ["vp"]
    assert {e.id for e in session.search("vp ")} == {"vp", "peer"}
    assert session.search("   ") == []


def test_search_is_limited():
    chart = ChartSession()
    chart.load(ImportResult(employees=[_employee(f"e{i}", name=f"Dev {i}") for i in range(25)]))
    assert len(chart.search("dev")) == 10


def test_zoom_is_clamped(session):
    assert session.zoom(-1).scale == pytest.approx(1.1)
    assert session.zoom(1).scale == pytest.approx(0.99)
    for _ in range(100):
        session.zoom(1)
    assert session.viewport.scale == pytest.approx(0.1)
    for _ in range(100):
        session.zoom(-1)
    assert session.viewport.scale == pytest.approx(3.0)


def test_pan_moves_viewport_and_culls(session):
    session.resize(400, 300)
    session.pan(-10_000, 0)

    assert session.viewport.translate_x == -10_000
    assert session.layout().nodes == []
    assert len(session.full_layout().nodes) == 4


def test_statistics_count_orphans_and_cycles():
    chart = ChartSession()
    chart.load(
        ImportResult(
            employees=[
                _employee("root"),
                _employee("lost", "gone"),
                _employee("a", "b"),
                _employee("b", "a"),
                _employee("below", "a"),
            ]
        )
    )

    assert {e.id for e in chart.unreachable_employees} == {"a", "b", "below"}
    assert chart.statistics.orphaned_employees == 1
    assert chart.statistics.total_errors == 4


def test_statistics_without_errors(session):
    assert session.unreachable_employees == []
    assert session.statistics.total_errors == 0

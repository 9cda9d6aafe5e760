from __future__ import annotations

import itertools

import anyio
import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from orgchart.core.dependencies import get_current_user
from orgchart.main import app
from orgchart.models.auth import UserInfo
from orgchart.services.organization_service import organization_service

ORG_CHART_ROWS = [
    ["Employee Name", "Job Title", "Reports To", "Department"],
    ["Ada Lovelace", "CEO", "", "Executive"],
    ["Grace Hopper", "VP Engineering", "Ada Lovelace", "Engineering"],
    ["Alan Turing", "VP Research", "Ada Lovelace", "Research"],
    ["Linus Torvalds", "Engineer", "Grace Hopper", "Engineering"],
    ["Barbara Liskov", "Engineer", "Grace Hopper", "Engineering"],
]


@pytest.fixture(autouse=True)
def _fresh_organization_service():
    anyio.run(organization_service.close)
    yield
    anyio.run(organization_service.close)


@pytest.fixture
def org_rows():
    return [list(row) for row in ORG_CHART_ROWS]


@pytest.fixture
def org_csv_bytes():
    lines = [",".join(row) for row in ORG_CHART_ROWS]
    return ("\n".join(lines) + "\n").encode("utf-8")


@pytest.fixture
def sequential_ids():
    counter = itertools.count(1)

    def _factory(prefix: str) -> str:
        return f"{prefix}_{next(counter)}"

    return _factory


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def mock_user():
    return UserInfo(id="user-1", name="Test User", email="test@example.com")


@pytest.fixture
def mock_other_user():
    return UserInfo(id="user-2", name="Other User", email="other@example.com")


@pytest.fixture
def authenticated_client(mock_user):
    app.dependency_overrides[get_current_user] = lambda: mock_user
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

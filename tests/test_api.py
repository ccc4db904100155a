"""API tests for bulk payroll endpoints."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import delete

from bulk_payroll.api.app import create_app
from bulk_payroll.api.dependencies import get_db_session, get_pay_policy
from bulk_payroll.calculators import PayPolicy
from bulk_payroll.models import Profile

from .conftest import PERIOD_END, PERIOD_START, add_hours, add_profile

BASE = "/api/v1/bulk-payrolls"


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app, wired to the test database."""
    app = create_app()

    async def override_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_pay_policy] = lambda: PayPolicy()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def batch_payload(employees, **overrides) -> dict:
    payload = {
        "name": "January run",
        "pay_period_start": PERIOD_START.isoformat(),
        "pay_period_end": PERIOD_END.isoformat(),
        "employee_ids": [str(e.id) for e in employees],
    }
    payload.update(overrides)
    return payload


async def create(client, employees, **overrides) -> dict:
    response = await client.post(BASE, json=batch_payload(employees, **overrides))
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateEndpoint:
    async def test_create_returns_draft(self, client, employees):
        actor = uuid4()
        response = await client.post(
            BASE,
            json=batch_payload(employees, description="Biweekly"),
            headers={"X-Actor-ID": str(actor)},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "draft"
        assert data["total_records"] == 3
        assert data["processed_records"] == 0
        assert data["description"] == "Biweekly"
        assert data["created_by"] == str(actor)

    async def test_empty_selection_is_bad_request(self, client, employees):
        response = await client.post(BASE, json=batch_payload([]))

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert "At least one employee must be selected" in data["errors"]

        listing = await client.get(BASE)
        assert listing.json()["total"] == 0

    async def test_unknown_employee_is_bad_request(self, client, employees):
        payload = batch_payload(employees)
        payload["employee_ids"].append(str(uuid4()))

        response = await client.post(BASE, json=payload)

        assert response.status_code == 400

    async def test_invalid_actor_header(self, client, employees):
        response = await client.post(
            BASE, json=batch_payload(employees), headers={"X-Actor-ID": "nobody"}
        )

        assert response.status_code == 400

    async def test_malformed_body_is_unprocessable(self, client):
        response = await client.post(BASE, json={"name": "No dates"})

        assert response.status_code == 422


class TestReadEndpoints:
    async def test_get_batch(self, client, employees):
        created = await create(client, employees)

        response = await client.get(f"{BASE}/{created['id']}")

        assert response.status_code == 200
        assert response.json()["name"] == "January run"

    async def test_get_missing_batch(self, client):
        response = await client.get(f"{BASE}/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    async def test_list_with_status_filter(self, client, employees):
        await create(client, employees, name="First")
        await create(client, employees, name="Second")

        response = await client.get(BASE, params={"status": "draft", "page_size": 1})

        data = response.json()
        assert data["total"] == 2
        assert len(data["items"]) == 1
        assert data["page_size"] == 1

        response = await client.get(BASE, params={"status": "completed"})
        assert response.json()["total"] == 0

    async def test_items_in_order(self, client, employees):
        created = await create(client, employees)

        response = await client.get(f"{BASE}/{created['id']}/items")

        data = response.json()
        assert data["total"] == 3
        assert [i["position"] for i in data["items"]] == [0, 1, 2]
        assert [i["profile_id"] for i in data["items"]] == [str(e.id) for e in employees]
        assert {i["status"] for i in data["items"]} == {"pending"}

    async def test_items_of_missing_batch(self, client):
        response = await client.get(f"{BASE}/{uuid4()}/items")

        assert response.status_code == 404


class TestRunEndpoints:
    async def test_start_processes_batch(self, client, employees, approved_hours):
        created = await create(client, employees)

        response = await client.post(f"{BASE}/{created['id']}/start")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["message"] == "Bulk payroll processing completed successfully"
        assert data["processed"] == 3
        assert data["failures"] == []
        assert data["total_amount"] == "5760.00"

        batch = (await client.get(f"{BASE}/{created['id']}")).json()
        assert batch["status"] == "completed"
        assert batch["completed_at"] is not None

    async def test_amounts_presented_in_cents(self, client, session):
        emp = await add_profile(session, "Ivy Nolan", Decimal("17.35"))
        await add_hours(session, emp, date(2024, 1, 3), Decimal("7.25"))
        await session.commit()
        created = await create(client, [emp])

        run = (await client.post(f"{BASE}/{created['id']}/start")).json()
        batch = (await client.get(f"{BASE}/{created['id']}")).json()

        # Stored net is 113.2075
        assert run["total_amount"] == "113.21"
        assert batch["total_amount"] == "113.21"

    async def test_second_start_conflicts(self, client, employees, approved_hours):
        created = await create(client, employees)
        await client.post(f"{BASE}/{created['id']}/start")

        response = await client.post(f"{BASE}/{created['id']}/start")

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_TRANSITION"

    async def test_start_missing_batch(self, client):
        response = await client.post(f"{BASE}/{uuid4()}/start")

        assert response.status_code == 404

    async def test_failures_listed(self, client, session, employees, approved_hours):
        stranger = employees[2]
        created = await create(client, employees)
        await session.execute(delete(Profile).where(Profile.id == stranger.id))
        await session.commit()

        run = (await client.post(f"{BASE}/{created['id']}/start")).json()
        assert run["status"] == "completed_with_errors"
        assert run["failed"] == 1

        response = await client.get(f"{BASE}/{created['id']}/failures")

        assert response.status_code == 200
        failures = response.json()["failures"]
        assert len(failures) == 1
        assert failures[0]["profile_id"] == str(stranger.id)
        assert "not found" in failures[0]["error_message"]

    async def test_pause_draft_conflicts(self, client, employees):
        created = await create(client, employees)

        response = await client.post(f"{BASE}/{created['id']}/pause")

        assert response.status_code == 409

    async def test_pause_missing_batch(self, client):
        response = await client.post(f"{BASE}/{uuid4()}/pause")

        assert response.status_code == 404


class TestHealthEndpoints:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "healthy"

    async def test_liveness(self, client):
        response = await client.get("/live")

        assert response.json() == {"status": "alive"}

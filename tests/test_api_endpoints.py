"""API endpoint tests.

Requests run against the FastAPI app with the database dependency pointed at
the in-memory test database.
"""

from datetime import date, timedelta
from uuid import uuid4

from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from payroll_bureau import __version__
from payroll_bureau.api.app import create_app
from payroll_bureau.api.dependencies import get_db_session

REGISTRATION = {
    "email": "owner@brightpay-bureau.co.uk",
    "password": "Secure123",
    "companyName": "Bright Bureau Ltd",
    "adminName": "Olu Owner",
}


class _UnreachableDatabase:
    """Session stand-in whose every statement fails."""

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


async def _unreachable_db():
    yield _UnreachableDatabase()


class TestHealthEndpoints:
    """Test health check endpoints."""

    async def test_health_check(self, client: AsyncClient):
        """Health endpoint should return 200."""
        response = await client.get("/health")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "healthy"
        assert data["identity_provider"] == "memory"
        assert data["version"] == __version__
        assert "timestamp" in data

    async def test_readiness_check(self, client: AsyncClient):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    async def test_database_down(self, identity_provider):
        """Health degrades and readiness fails while the database is unreachable."""
        app = create_app(identity_provider=identity_provider)
        app.dependency_overrides[get_db_session] = _unreachable_db

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            health = await ac.get("/health")
            ready = await ac.get("/ready")

        assert health.status_code == 200
        assert health.json()["status"] == "degraded"
        assert health.json()["database"] == "unhealthy"
        assert ready.status_code == 503
        assert ready.json() == {"status": "unavailable"}


class TestRegisterEndpoint:
    """Test POST /api/auth/register."""

    async def test_register(self, client: AsyncClient, identity_provider):
        response = await client.post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["success"] is True
        assert "verify" in body["message"]
        assert body["data"]["email"] == REGISTRATION["email"]
        assert body["data"]["companyName"] == "Bright Bureau Ltd"
        assert body["data"]["userId"] in {str(i) for i in identity_provider.identities}
        assert "tenantId" in body["data"]

    async def test_register_validation_details(self, client: AsyncClient):
        response = await client.post(
            "/api/auth/register",
            json={**REGISTRATION, "email": "owner@gmail.com", "password": "short"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation error"
        assert body["code"] == "VALIDATION_ERROR"
        assert {d["field"] for d in body["details"]} == {"email", "password"}

    async def test_register_duplicate(self, client: AsyncClient):
        await client.post("/api/auth/register", json=REGISTRATION)

        response = await client.post("/api/auth/register", json=REGISTRATION)

        assert response.status_code == 400
        assert response.json()["error"] == "An account with this email already exists"

    async def test_register_non_object_body(self, client: AsyncClient):
        response = await client.post("/api/auth/register", json=["not", "an", "object"])

        assert response.status_code == 400
        assert response.json()["error"] == "Validation error"


class TestSessionRequired:
    """Endpoints behind the session reject anonymous calls."""

    async def test_stats_without_headers(self, client: AsyncClient):
        response = await client.get("/api/dashboard/stats")

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    async def test_malformed_user_id(self, client: AsyncClient):
        response = await client.get(
            "/api/onboarding",
            headers={"X-User-ID": "not-a-uuid", "X-User-Email": "a@b.co.uk"},
        )

        assert response.status_code == 401


class TestDashboardEndpoint:
    """Test GET /api/dashboard/stats."""

    async def test_stats_shape(self, client: AsyncClient, auth_headers, monthly_client, make_run):
        pay_date = date.today() + timedelta(days=2)
        run = await make_run(monthly_client, pay_date, rti_due_date=pay_date)

        response = await client.get("/api/dashboard/stats", headers=auth_headers)

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["totalClients"] == 1
        assert data["dueThisWeek"] == 1
        assert data["overdue"] == 0
        assert data["completedThisMonth"] == 0
        assert data["upcomingDeadlines"] == [
            {
                "clientName": "Garage Ltd",
                "type": "FPS",
                "date": pay_date.isoformat(),
                "payrollRunId": str(run.id),
            }
        ]

    async def test_first_visit_provisions(self, client: AsyncClient):
        headers = {"X-User-ID": str(uuid4()), "X-User-Email": "new@bureau.co.uk"}

        response = await client.get("/api/dashboard/stats", headers=headers)

        assert response.status_code == 200
        assert response.json()["totalClients"] == 0


class TestOnboardingEndpoints:
    """Test the onboarding checklist endpoints."""

    async def test_list(self, client: AsyncClient, auth_headers, onboarding_client):
        response = await client.get("/api/onboarding", headers=auth_headers)

        assert response.status_code == 200, response.text
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == str(onboarding_client.id)
        assert data[0]["client_onboarding"]["progress_percentage"] == 0

    async def test_list_unknown_user(self, client: AsyncClient):
        headers = {"X-User-ID": str(uuid4()), "X-User-Email": "new@bureau.co.uk"}

        response = await client.get("/api/onboarding", headers=headers)

        assert response.status_code == 404
        assert response.json()["error"] == "User not found"

    async def test_update_task(self, client: AsyncClient, auth_headers, onboarding_client):
        response = await client.post(
            "/api/onboarding",
            headers=auth_headers,
            json={"clientId": str(onboarding_client.id), "taskId": "a", "completed": True},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["progress_percentage"] == 50
        assert data["version"] == 1
        assert data["tasks"][0]["completed"] is True

    async def test_update_task_stale_version(self, client: AsyncClient, auth_headers, onboarding_client):
        response = await client.post(
            "/api/onboarding",
            headers=auth_headers,
            json={
                "clientId": str(onboarding_client.id),
                "taskId": "a",
                "completed": True,
                "version": 4,
            },
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONCURRENT_UPDATE"

    async def test_update_task_missing_fields(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/onboarding", headers=auth_headers, json={"taskId": "a"})

        assert response.status_code == 400
        fields = {d["field"] for d in response.json()["details"]}
        assert {"clientId", "completed"} <= fields

    async def test_get_client_onboarding(self, client: AsyncClient, auth_headers, onboarding_client):
        response = await client.get(
            f"/api/onboarding/{onboarding_client.id}", headers=auth_headers
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["client"]["name"] == "Bakery Co"
        assert len(data["onboarding"]["tasks"]) == 2

    async def test_get_unknown_client(self, client: AsyncClient, auth_headers):
        response = await client.get(f"/api/onboarding/{uuid4()}", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Client not found", "code": "NOT_FOUND"}

    async def test_complete_before_checklist_done(self, client: AsyncClient, auth_headers, onboarding_client):
        response = await client.post(
            f"/api/onboarding/{onboarding_client.id}/complete", headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Onboarding must be 100% complete"

    async def test_complete(self, client: AsyncClient, auth_headers, onboarding_client):
        for task_id in ("a", "b"):
            await client.post(
                "/api/onboarding",
                headers=auth_headers,
                json={"clientId": str(onboarding_client.id), "taskId": task_id, "completed": True},
            )

        response = await client.post(
            f"/api/onboarding/{onboarding_client.id}/complete", headers=auth_headers
        )

        assert response.status_code == 200, response.text
        body = response.json()
        assert body["success"] is True
        assert body["client"]["status"] == "active"


class TestPayrollRunEndpoints:
    """Test POST /api/payroll-runs/generate."""

    async def test_generate(self, client: AsyncClient, auth_headers, monthly_client):
        response = await client.post(
            "/api/payroll-runs/generate",
            headers=auth_headers,
            json={"client_id": str(monthly_client.id)},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "not_started"
        assert data["client_id"] == str(monthly_client.id)
        assert date.fromisoformat(data["pay_date"]).day == 28

    async def test_generate_unknown_client(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/payroll-runs/generate",
            headers=auth_headers,
            json={"client_id": str(uuid4())},
        )

        assert response.status_code == 404


NEW_CLIENT = {
    "name": "Florist Ltd",
    "pay_frequency": "monthly",
    "pay_day": "25",
    "contact_email": "accounts@florist.co.uk",
}


class TestClientEndpoints:
    """Test the /api/clients endpoints."""

    async def test_create_client(self, client: AsyncClient, auth_headers, test_user):
        response = await client.post("/api/clients", headers=auth_headers, json=NEW_CLIENT)

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["name"] == "Florist Ltd"
        assert data["status"] == "onboarding"
        assert data["tenant_id"] == str(test_user.tenant_id)
        assert data["client_onboarding"]["progress_percentage"] == 0
        assert [t["id"] for t in data["client_onboarding"]["tasks"]] == [1, 2, 3, 4, 5, 6, 7]
        run = data["payroll_run"]
        assert run["client_id"] == data["id"]
        assert date.fromisoformat(run["pay_date"]).day == 25
        assert run["rti_due_date"] == run["pay_date"]
        assert run["status"] in {"not_started", "due_soon"}

    async def test_create_with_own_checklist(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/clients",
            headers=auth_headers,
            json={**NEW_CLIENT, "checklist_items": [{"name": "Collect P45s", "sort_order": 0}]},
        )

        assert response.status_code == 200, response.text
        assert [t["name"] for t in response.json()["client_onboarding"]["tasks"]] == [
            "Collect P45s"
        ]

    async def test_create_validation(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/clients",
            headers=auth_headers,
            json={"name": "", "pay_frequency": "annually", "contact_email": "nope"},
        )

        assert response.status_code == 400
        fields = {d["field"] for d in response.json()["details"]}
        assert {"name", "pay_frequency", "pay_day", "contact_email"} <= fields

    async def test_create_bad_pay_day(self, client: AsyncClient, auth_headers):
        response = await client.post(
            "/api/clients", headers=auth_headers, json={**NEW_CLIENT, "pay_day": "someday"}
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid pay calendar")

    async def test_list_with_latest_run(
        self, client: AsyncClient, auth_headers, monthly_client, make_run
    ):
        await make_run(monthly_client, date(2026, 1, 28))
        latest = await make_run(monthly_client, date(2026, 2, 28))

        response = await client.get("/api/clients", headers=auth_headers)

        assert response.status_code == 200, response.text
        data = response.json()
        assert len(data) == 1
        assert data[0]["name"] == "Garage Ltd"
        assert data[0]["latestRun"]["id"] == str(latest.id)

    async def test_list_client_without_runs(self, client: AsyncClient, auth_headers, monthly_client):
        response = await client.get("/api/clients", headers=auth_headers)

        assert response.json()[0]["latestRun"] is None

    async def test_onboarding_lifecycle(self, client: AsyncClient, auth_headers):
        """Create, finish the checklist, activate, archive and delete a client."""
        created = (
            await client.post(
                "/api/clients",
                headers=auth_headers,
                json={
                    **NEW_CLIENT,
                    "checklist_items": [
                        {"name": "Collect P45s", "sort_order": 0},
                        {"name": "Set up pension", "sort_order": 1},
                    ],
                },
            )
        ).json()
        client_id = created["id"]

        listed = (await client.get("/api/onboarding", headers=auth_headers)).json()
        assert [c["id"] for c in listed] == [client_id]

        for task_id in (1, 2):
            record = (
                await client.post(
                    "/api/onboarding",
                    headers=auth_headers,
                    json={"clientId": client_id, "taskId": task_id, "completed": True},
                )
            ).json()
        assert record["progress_percentage"] == 100
        assert record["completed_at"] is not None

        detail = (await client.get(f"/api/clients/{client_id}", headers=auth_headers)).json()
        assert detail["next_statuses"] == ["active"]

        activated = await client.put(
            f"/api/clients/{client_id}", headers=auth_headers, json={"status": "active"}
        )
        assert activated.status_code == 200, activated.text
        assert activated.json()["status"] == "active"

        archived = await client.put(
            f"/api/clients/{client_id}", headers=auth_headers, json={"status": "archived"}
        )
        assert archived.json()["status"] == "archived"

        deleted = await client.delete(f"/api/clients/{client_id}", headers=auth_headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Client deleted successfully", "id": client_id}

        missing = await client.get(f"/api/clients/{client_id}", headers=auth_headers)
        assert missing.status_code == 404

    async def test_activation_needs_finished_checklist(
        self, client: AsyncClient, auth_headers, onboarding_client
    ):
        response = await client.put(
            f"/api/clients/{onboarding_client.id}", headers=auth_headers, json={"status": "active"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Onboarding must be 100% complete"

    async def test_invalid_transition(self, client: AsyncClient, auth_headers, onboarding_client):
        response = await client.put(
            f"/api/clients/{onboarding_client.id}",
            headers=auth_headers,
            json={"status": "archived"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_TRANSITION"

    async def test_update_fields(self, client: AsyncClient, auth_headers, monthly_client):
        response = await client.put(
            f"/api/clients/{monthly_client.id}",
            headers=auth_headers,
            json={"phone": "0161 496 0000", "pay_day": "last_friday"},
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["phone"] == "0161 496 0000"
        assert data["pay_day"] == "last_friday"
        assert data["name"] == "Garage Ltd"

    async def test_other_tenant_client_hidden(self, client: AsyncClient, monthly_client):
        headers = {"X-User-ID": str(uuid4()), "X-User-Email": "sam@newbureau.co.uk"}
        await client.get("/api/clients", headers=headers)

        for method in ("get", "delete"):
            response = await getattr(client, method)(
                f"/api/clients/{monthly_client.id}", headers=headers
            )
            assert response.status_code == 404
        response = await client.put(
            f"/api/clients/{monthly_client.id}", headers=headers, json={"name": "Taken Over"}
        )
        assert response.status_code == 404

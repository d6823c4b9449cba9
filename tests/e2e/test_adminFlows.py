"""
E2E: Garage-side administration and requester account endpoints.

Covers garage and staff management by admins, read-only access for
customer relations, the requester's profile and draft, and the issue
summary suggestion.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

from src.integrations.issueSummarizer import USER_FACING_ERROR, IssueSummaryError
from tests.e2e.conftest import (
    ADMIN,
    CUSTOMER_RELATIONS,
    MECHANIC,
    MECHANIC_STAFF_ID,
    REQUESTER,
    REQUESTER_LOCATION,
    REQUESTER_USER_ID,
    TOW_PROVIDER_ID,
    VEHICLE,
    assign,
    create_request_via_api,
)


pytestmark = pytest.mark.asyncio


NEW_GARAGE = {
    "name": "Auto Xpress - Entebbe",
    "phone": "(256) 772-345678",
    "eta_minutes": 45,
    "current_location": {"lat": 0.0476, "lng": 32.4606},
    "general_location": "Entebbe Town (Shell Petrol Station)",
    "services_offered": ["Tire Services", "  ", "Battery Check"],
}


class TestGarageAdministration:

    async def test_admin_creates_garage(self, client: AsyncClient):
        resp = await client.post("/api/v1/providers", json=NEW_GARAGE, headers=ADMIN)
        assert resp.status_code == 201
        body = resp.json()
        assert body["name"] == "Auto Xpress - Entebbe"
        assert body["services_offered"] == ["Tire Services", "Battery Check"]
        assert float(body["current_latitude"]) == pytest.approx(0.0476)

        listed = await client.get("/api/v1/providers", headers=REQUESTER)
        assert "Auto Xpress - Entebbe" in [p["name"] for p in listed.json()]

    async def test_non_admins_cannot_manage_garages(self, client: AsyncClient):
        for headers in (REQUESTER, MECHANIC, CUSTOMER_RELATIONS):
            resp = await client.post("/api/v1/providers", json=NEW_GARAGE, headers=headers)
            assert resp.status_code == 403

    async def test_admin_updates_location(self, client: AsyncClient):
        resp = await client.patch(
            f"/api/v1/providers/{TOW_PROVIDER_ID}",
            json={"current_location": {"lat": 0.4, "lng": 32.6}, "eta_minutes": 25},
            headers=ADMIN,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert float(body["current_latitude"]) == pytest.approx(0.4)
        assert body["eta_minutes"] == 25

    async def test_deleting_garage_keeps_request_snapshot(self, client: AsyncClient):
        created = (await create_request_via_api(client, provider_id=TOW_PROVIDER_ID)).json()

        resp = await client.delete(f"/api/v1/providers/{TOW_PROVIDER_ID}", headers=ADMIN)
        assert resp.status_code == 204
        assert (
            await client.get(f"/api/v1/providers/{TOW_PROVIDER_ID}", headers=ADMIN)
        ).status_code == 404

        detail = await client.get(f"/api/v1/requests/{created['id']}", headers=REQUESTER)
        assert detail.status_code == 200
        assert detail.json()["selected_provider_json"]["name"] == "Tow Garage"


class TestStaffAdministration:

    async def test_admin_adds_staff_member(self, client: AsyncClient):
        resp = await client.post(
            "/api/v1/staff",
            json={"name": "Peter Mugisha", "email": "Peter.M@Example.com", "role": "mechanic"},
            headers=ADMIN,
        )
        assert resp.status_code == 201
        assert resp.json()["email"] == "peter.m@example.com"

    async def test_duplicate_email_conflicts(self, client: AsyncClient):
        resp = await client.post(
            "/api/v1/staff",
            json={"name": "Copy", "email": "MECHANIC1@example.com", "role": "mechanic"},
            headers=ADMIN,
        )
        assert resp.status_code == 409

    async def test_customer_relations_reads_staff_list(self, client: AsyncClient):
        resp = await client.get(
            "/api/v1/staff", params={"role": "mechanic"}, headers=CUSTOMER_RELATIONS
        )
        assert resp.status_code == 200
        emails = {member["email"] for member in resp.json()}
        assert emails == {"mechanic1@example.com", "mechanic2@example.com"}

    async def test_customer_relations_cannot_add_staff(self, client: AsyncClient):
        resp = await client.post(
            "/api/v1/staff",
            json={"name": "X", "email": "x@example.com", "role": "mechanic"},
            headers=CUSTOMER_RELATIONS,
        )
        assert resp.status_code == 403

    async def test_mechanic_cannot_read_staff_list(self, client: AsyncClient):
        resp = await client.get("/api/v1/staff", headers=MECHANIC)
        assert resp.status_code == 403

    async def test_deleting_mechanic_unassigns_requests(self, client: AsyncClient):
        request_pk = (await create_request_via_api(client)).json()["id"]
        await assign(client, request_pk, MECHANIC_STAFF_ID)

        resp = await client.delete(f"/api/v1/staff/{MECHANIC_STAFF_ID}", headers=ADMIN)
        assert resp.status_code == 204

        detail = await client.get(f"/api/v1/requests/{request_pk}", headers=ADMIN)
        assert detail.json()["assigned_staff_id"] is None

    async def test_mechanic_moved_to_customer_relations_is_unassigned(self, client: AsyncClient):
        request_pk = (await create_request_via_api(client)).json()["id"]
        await assign(client, request_pk, MECHANIC_STAFF_ID)

        resp = await client.patch(
            f"/api/v1/staff/{MECHANIC_STAFF_ID}",
            json={"role": "customer_relations"},
            headers=ADMIN,
        )
        assert resp.status_code == 200
        assert resp.json()["role"] == "customer_relations"

        detail = await client.get(f"/api/v1/requests/{request_pk}", headers=ADMIN)
        assert detail.json()["assigned_staff_id"] is None

    async def test_renaming_mechanic_keeps_assignment(self, client: AsyncClient):
        request_pk = (await create_request_via_api(client)).json()["id"]
        await assign(client, request_pk, MECHANIC_STAFF_ID)

        resp = await client.patch(
            f"/api/v1/staff/{MECHANIC_STAFF_ID}",
            json={"name": "Moses K.", "role": "mechanic"},
            headers=ADMIN,
        )
        assert resp.status_code == 200

        detail = await client.get(f"/api/v1/requests/{request_pk}", headers=ADMIN)
        assert detail.json()["assigned_staff_id"] == str(MECHANIC_STAFF_ID)


class TestRequesterAccount:

    async def test_profile_created_on_first_call(self, client: AsyncClient):
        resp = await client.get("/api/v1/users/me", headers=REQUESTER)
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == REQUESTER_USER_ID
        assert body["role"] == "user"
        assert body["email"] == "driver@example.com"
        assert body["display_name"] == "Grace Driver"

    async def test_confirm_contact_phone(self, client: AsyncClient):
        resp = await client.put(
            "/api/v1/users/me/contact-phone",
            json={"phone_number": "+256 772 000111"},
            headers=REQUESTER,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["contact_phone_number"] == "+256 772 000111"
        assert body["contact_phone_confirmed_at"] is not None

    async def test_save_default_vehicle(self, client: AsyncClient):
        resp = await client.patch(
            "/api/v1/users/me", json={"vehicle_info": VEHICLE}, headers=REQUESTER
        )
        assert resp.status_code == 200
        assert resp.json()["vehicle_info_json"]["license_plate"] == "UBA 123X"

    async def test_draft_merges_fields(self, client: AsyncClient):
        await client.put(
            "/api/v1/drafts/me",
            json={"user_location": REQUESTER_LOCATION},
            headers=REQUESTER,
        )
        resp = await client.put(
            "/api/v1/drafts/me",
            json={"issue_summary": "Flat Tire", "vehicle_info": {"make": "Toyota"}},
            headers=REQUESTER,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert float(body["user_latitude"]) == pytest.approx(0.3136)
        assert body["issue_summary"] == "Flat Tire"
        assert body["vehicle_info_json"]["make"] == "Toyota"

        assert (await client.delete("/api/v1/drafts/me", headers=REQUESTER)).status_code == 204
        assert (await client.get("/api/v1/drafts/me", headers=REQUESTER)).status_code == 404


class TestIssueSummary:

    async def test_returns_suggestion(self, client: AsyncClient):
        with patch(
            "src.integrations.issueSummarizer.suggest_issue_summary",
            new_callable=AsyncMock,
            return_value="Flat Tire",
        ) as mock:
            resp = await client.post(
                "/api/v1/issues/summary",
                json={"issue_description": "My tyre burst near Kireka"},
                headers=REQUESTER,
            )
        assert resp.status_code == 200
        assert resp.json()["summary"] == "Flat Tire"
        mock.assert_awaited_once_with("My tyre burst near Kireka")

    async def test_failure_is_reported_not_raised(self, client: AsyncClient):
        with patch(
            "src.integrations.issueSummarizer.suggest_issue_summary",
            new_callable=AsyncMock,
            side_effect=IssueSummaryError("HTTP 500"),
        ):
            resp = await client.post(
                "/api/v1/issues/summary",
                json={"issue_description": "Engine will not start"},
                headers=REQUESTER,
            )
        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"] is None
        assert body["error"] == USER_FACING_ERROR

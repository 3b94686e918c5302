"""
Tests for API route endpoints.

Tests: response envelope, auth on protected endpoints, the order flow over
HTTP, payment callbacks, mapping administration, scheduler and health.
"""
import pytest

from domain.enums import OrderEvent


async def _create_order(client, headers, **body):
    body.setdefault("personalPhone", "+923001234567")
    body.setdefault("customerName", "Ali Raza")
    response = await client.post("/orders", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestHealthEndpoint:
    """Tests for GET /health."""

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_returns_200(self, client):
        response = await client.get("/health")
        assert response.status_code == 200

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_health_reports_database_and_scheduler(self, client):
        data = (await client.get("/health")).json()
        assert data["status"] is True
        assert data["data"]["status"] == "healthy"
        assert data["data"]["databaseConnected"] is True
        assert data["data"]["schedulerRunning"] is False


class TestEnvelope:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_unknown_route_is_wrapped(self, client):
        response = await client.get("/does-not-exist")
        assert response.status_code == 404
        body = response.json()
        assert body["status"] is False
        assert body["code"] == 404
        assert body["data"]["error"] == "http_error"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_body_validation_is_422(self, client, staff_headers):
        response = await client.post("/orders", json={}, headers=staff_headers)
        assert response.status_code == 422
        body = response.json()
        assert body["data"]["error"] == "request_validation_error"
        assert body["data"]["details"]["errors"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_domain_error_carries_code(self, client, staff_headers):
        response = await client.get("/events/REFUNDED/statuses", headers=staff_headers)
        assert response.status_code == 400
        body = response.json()
        assert body["status"] is False
        assert body["data"]["error"] == "validation_error"
        assert "REFUNDED" in body["message"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_malformed_order_uuid(self, client, staff_headers):
        response = await client.get("/orders/not-a-uuid", headers=staff_headers)
        assert response.status_code == 400


class TestAuth:

    @pytest.mark.api
    @pytest.mark.asyncio
    @pytest.mark.parametrize("method, path", [
        ("get", "/orders"),
        ("get", "/statuses"),
        ("get", "/events/mappings"),
        ("get", "/audit-logs"),
        ("get", "/scheduler/schedule"),
        ("get", "/inventory"),
    ])
    async def test_protected_endpoints_need_token(self, client, method, path):
        response = await getattr(client, method)(path)
        assert response.status_code == 401
        assert response.json()["data"]["error"] == "unauthorized"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_garbage_token_rejected(self, client):
        response = await client.get("/orders", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_staff_cannot_administer(self, client, staff_headers):
        responses = [
            await client.post("/statuses", json={"name": "Shipped"}, headers=staff_headers),
            await client.put("/events/CANCELED/statuses", json={"statusIds": []}, headers=staff_headers),
            await client.put("/scheduler/schedule", json={"schedule": "2:30"}, headers=staff_headers),
            await client.post("/scheduler/run", headers=staff_headers),
            await client.post("/inventory", json={"number": "03001110000"}, headers=staff_headers),
        ]
        assert [r.status_code for r in responses] == [403] * 5

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_event_list_is_public(self, client):
        response = await client.get("/events")
        assert response.status_code == 200
        assert response.json()["data"] == [e.value for e in OrderEvent]


class TestOrderFlow:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client, staff_headers, make_item):
        item = await make_item()
        created = await _create_order(client, staff_headers, inventoryItemId=item.id, nationalId="35202-1234567-1")

        assert created["orderId"] == "SO-1000"
        assert created["status"] == "Draft"
        assert created["number"] == item.number
        assert created["nationalId"].endswith("67-1")

        response = await client.get(f"/orders/{created['uuid']}", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["data"]["uuid"] == created["uuid"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_taken_number_is_409(self, client, staff_headers, make_item):
        item = await make_item()
        await _create_order(client, staff_headers, inventoryItemId=item.id)

        response = await client.post(
            "/orders",
            json={"personalPhone": "+923007654321", "inventoryItemId": item.id},
            headers=staff_headers,
        )
        assert response.status_code == 409
        assert response.json()["data"]["error"] == "business_rule_violation"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_list_is_paginated(self, client, staff_headers):
        for _ in range(3):
            await _create_order(client, staff_headers)

        body = (await client.get("/orders?limit=2", headers=staff_headers)).json()
        assert len(body["data"]) == 2
        assert body["meta"]["total"] == 3
        assert body["meta"]["hasMore"] is True

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_manual_change_and_audit_trail(self, client, staff_headers, make_status, make_item):
        cancelled = await make_status("Cancelled", OrderEvent.RELEASE_INVENTORY)
        item = await make_item()
        created = await _create_order(client, staff_headers, inventoryItemId=item.id)

        response = await client.patch(
            f"/orders/{created['uuid']}/status", json={"statusId": cancelled.id}, headers=staff_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "Cancelled"
        assert response.json()["data"]["number"] is None

        trail = (await client.get(f"/orders/{created['uuid']}/audit-logs", headers=staff_headers)).json()["data"]
        assert [e["action"] for e in trail] == ["order_created", "status_changed", "release_inventory"]
        assert trail[1]["actorEmail"] == "agent@example.com"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_apply_unmapped_event_is_404(self, client, staff_headers):
        created = await _create_order(client, staff_headers)
        response = await client.post(f"/orders/{created['uuid']}/events/CANCELED", headers=staff_headers)
        assert response.status_code == 404

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_delete_then_fetch_is_404(self, client, staff_headers):
        created = await _create_order(client, staff_headers)
        assert (await client.delete(f"/orders/{created['uuid']}", headers=staff_headers)).status_code == 200
        assert (await client.get(f"/orders/{created['uuid']}", headers=staff_headers)).status_code == 404

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_status_info_is_public(self, client, staff_headers):
        created = await _create_order(client, staff_headers)
        response = await client.get(f"/orders/status-info/{created['orderId']}")
        assert response.status_code == 200
        assert response.json()["data"] == {
            "orderId": created["orderId"],
            "currentStatus": "Draft",
            "isOrderInventoryAutoReleased": False,
        }


class TestPaymentCallback:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_callback_without_token_is_system(self, client, staff_headers, make_item):
        item = await make_item()
        created = await _create_order(client, staff_headers, inventoryItemId=item.id)

        response = await client.post("/payments/callback", json={
            "orderId": created["orderId"],
            "outcome": "payment_failed",
            "transactionRef": "TX-77",
        })
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "Cancelled: Payment Failed"
        assert data["paymentStatus"] == "payment_failed"
        assert data["number"] is None

        trail = (await client.get(f"/orders/{created['uuid']}/audit-logs", headers=staff_headers)).json()["data"]
        assert {e["doneBy"] for e in trail[1:]} == {"system"}

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_callback_by_uuid(self, client, staff_headers):
        created = await _create_order(client, staff_headers)
        response = await client.post("/payments/callback", json={"orderUuid": created["uuid"], "outcome": "paid"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "New Order"

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_callback_needs_an_order_reference(self, client):
        response = await client.post("/payments/callback", json={"outcome": "paid"})
        assert response.status_code == 400


class TestAdministration:

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_replace_mappings_is_idempotent(self, client, admin_headers):
        created = (await client.post("/statuses", json={"name": "Cancelled"}, headers=admin_headers)).json()["data"]

        url = "/events/CANCELED/statuses"
        first = await client.put(url, json={"statusIds": [created["id"]]}, headers=admin_headers)
        second = await client.put(url, json={"statusIds": [created["id"]]}, headers=admin_headers)
        assert first.json()["data"] == {"event": "CANCELED", "added": 1, "removed": 0}
        assert second.json()["data"] == {"event": "CANCELED", "added": 0, "removed": 0}

        listed = (await client.get(url, headers=admin_headers)).json()["data"]
        assert [s["name"] for s in listed["statuses"]] == ["Cancelled"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_replace_with_unknown_status_is_404(self, client, admin_headers):
        response = await client.put("/events/CANCELED/statuses", json={"statusIds": [9999]}, headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_statuses_list_includes_events(self, client, admin_headers):
        data = (await client.get("/statuses", headers=admin_headers)).json()["data"]
        draft = next(s for s in data if s["name"] == "Draft")
        assert draft["events"] == ["ORDER_CREATION"]

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_schedule_roundtrip(self, client, admin_headers):
        response = await client.put("/scheduler/schedule", json={"schedule": "2:30"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {"schedule": "30 2 * * *", "graceMinutes": 1440}

        data = (await client.get("/scheduler/schedule", headers=admin_headers)).json()["data"]
        assert data["schedule"] == "30 2 * * *"

        bad = await client.put("/scheduler/schedule", json={"schedule": "whenever"}, headers=admin_headers)
        assert bad.status_code == 400

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_manual_sweep(self, client, admin_headers):
        response = await client.post("/scheduler/run", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"] == {"processed": [], "count": 0}

        status = (await client.get("/scheduler/status", headers=admin_headers)).json()["data"]
        assert status["running"] is False
        assert status["metrics"]["sweeps_total"] >= 1

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_inventory_create_and_filter(self, client, admin_headers):
        response = await client.post(
            "/inventory", json={"number": "03001110000", "price": 200, "discount": 50}, headers=admin_headers,
        )
        assert response.status_code == 201

        body = (await client.get("/inventory?state=Available", headers=admin_headers)).json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["finalPrice"] == 150.0

    @pytest.mark.api
    @pytest.mark.asyncio
    async def test_audit_date_range_validated(self, client, admin_headers):
        response = await client.get(
            "/audit-logs?startDate=2025-02-01T00:00:00&endDate=2025-01-01T00:00:00", headers=admin_headers,
        )
        assert response.status_code == 400

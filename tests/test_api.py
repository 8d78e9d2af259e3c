import pytest
from httpx import AsyncClient, ASGITransport

from src.main import app
from src.api.dependencies import get_uow
from src.infrastructure.persistence.sqlalchemy_repositories import SQLAlchemyUnitOfWork


@pytest.fixture
async def client(test_db, seed):
    app.dependency_overrides[get_uow] = lambda: SQLAlchemyUnitOfWork(test_db)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


def headers_for(caller):
    headers = {"X-User-Id": str(caller.id), "X-User-Role": caller.role.value}
    if caller.company_id is not None:
        headers["X-Company-Id"] = str(caller.company_id)
    return headers


def booking_payload(seed, **overrides):
    payload = {
        "vehicle_id": seed.vehicle_id,
        "driver_id": seed.driver_id,
        "parking_lot_id": seed.lot_id,
        "start_time": "2024-01-01T08:00:00Z",
        "end_time": "2024-01-01T10:00:00Z",
    }
    payload.update(overrides)
    return payload


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_caller_headers_are_required(client, seed):
    response = await client.get("/api/reservations")
    assert response.status_code == 422


async def test_create_and_fetch_reservation(client, owner, seed):
    response = await client.post("/api/reservations", json=booking_payload(seed), headers=headers_for(owner))
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "PENDING"
    assert body["total_cost"] == "30.00"

    fetched = await client.get(f"/api/reservations/{body['id']}", headers=headers_for(owner))
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]


async def test_domain_errors_map_to_status_codes(client, owner, operator, foreign_owner, seed):
    first = await client.post("/api/reservations", json=booking_payload(seed), headers=headers_for(owner))
    reservation_id = first.json()["id"]

    overlap = await client.post(
        "/api/reservations",
        json=booking_payload(seed, start_time="2024-01-01T09:00:00Z", end_time="2024-01-01T11:00:00Z"),
        headers=headers_for(owner),
    )
    assert overlap.status_code == 409
    assert overlap.json()["detail"]["dimension"] == "vehicle"
    assert overlap.json()["detail"]["conflicting_id"] == reservation_id

    forbidden = await client.get(f"/api/reservations/{reservation_id}", headers=headers_for(foreign_owner))
    assert forbidden.status_code == 403

    missing = await client.get("/api/reservations/9999", headers=headers_for(owner))
    assert missing.status_code == 404

    illegal = await client.patch(
        f"/api/reservations/{reservation_id}", json={"status": "COMPLETED"}, headers=headers_for(operator)
    )
    assert illegal.status_code == 400
    assert "PENDING" in illegal.json()["detail"]["message"]

    cancelled = await client.post(f"/api/reservations/{reservation_id}/cancel", headers=headers_for(owner))
    assert cancelled.status_code == 200
    again = await client.post(f"/api/reservations/{reservation_id}/cancel", headers=headers_for(owner))
    assert again.status_code == 400


async def test_list_reservations_with_filters(client, owner, seed):
    await client.post("/api/reservations", json=booking_payload(seed), headers=headers_for(owner))
    response = await client.get(
        "/api/reservations", params={"status": "PENDING", "vehicle_id": seed.vehicle_id}, headers=headers_for(owner)
    )
    assert response.status_code == 200
    assert len(response.json()) == 1


async def test_occupy_and_free_over_http(client, operator, seed):
    space_id = seed.space_ids[0]
    occupied = await client.post(
        f"/api/parking-spaces/{space_id}/occupy", json={"license_plate": "abc-1234"}, headers=headers_for(operator)
    )
    assert occupied.status_code == 201
    assert occupied.json()["status"] == "IN_PROGRESS"
    assert occupied.json()["cost_is_provisional"] is True

    busy = await client.post(
        f"/api/parking-spaces/{space_id}/occupy", json={"vehicle_id": seed.second_vehicle_id},
        headers=headers_for(operator),
    )
    assert busy.status_code == 409

    board = await client.get("/api/parking-spaces/status", headers=headers_for(operator))
    assert board.status_code == 200
    assert board.json()["occupied"] == 1

    freed = await client.post(f"/api/parking-spaces/{space_id}/free", headers=headers_for(operator))
    assert freed.status_code == 200
    assert freed.json()["status"] == "COMPLETED"
    assert freed.json()["cost_is_provisional"] is False


async def test_space_inventory_over_http(client, operator, owner, seed):
    created = await client.post(
        "/api/parking-spaces",
        json={"parking_lot_id": seed.lot_id, "space_number": "b001", "space_type": "VAN"},
        headers=headers_for(operator),
    )
    assert created.status_code == 201
    assert created.json()["space_number"] == "B001"

    duplicate = await client.post(
        "/api/parking-spaces",
        json={"parking_lot_id": seed.lot_id, "space_number": "B001"},
        headers=headers_for(operator),
    )
    assert duplicate.status_code == 409

    listed = await client.get(
        "/api/parking-spaces", params={"parking_lot_id": seed.lot_id}, headers=headers_for(operator)
    )
    assert listed.status_code == 200
    assert len(listed.json()) == 4
    assert listed.json()[0]["space"]["space_number"] == "A001"
    assert listed.json()[0]["occupant"] is None

    refused = await client.get(
        "/api/parking-spaces", params={"parking_lot_id": seed.lot_id}, headers=headers_for(owner)
    )
    assert refused.status_code == 403

    removed = await client.delete(f"/api/parking-spaces/{created.json()['id']}", headers=headers_for(operator))
    assert removed.status_code == 200
    assert removed.json()["is_active"] is False

    bad_layout = await client.post(
        "/api/parking-spaces/generate",
        json={"parking_lot_id": seed.lot_id, "total": 4, "groups": [{"space_type": "TRUCK", "count": 3}]},
        headers=headers_for(operator),
    )
    assert bad_layout.status_code == 400

    layout = await client.post(
        "/api/parking-spaces/generate",
        json={
            "parking_lot_id": seed.lot_id,
            "total": 3,
            "groups": [{"space_type": "TRUCK", "count": 2}, {"space_type": "SEMI_TRUCK", "count": 1}],
            "prefix": "C",
        },
        headers=headers_for(operator),
    )
    assert layout.status_code == 200
    assert [s["space_number"] for s in layout.json()] == ["C001", "C002", "C003"]

    counters = await client.post(f"/api/parking-spaces/lots/{seed.lot_id}/reconcile", headers=headers_for(operator))
    assert counters.json()["total_spaces"] == 3
    assert counters.json()["available_spaces"] == 3


async def test_vehicle_search(client, operator, seed):
    response = await client.get("/api/parking-spaces/vehicles/search", params={"q": "xyz"}, headers=headers_for(operator))
    assert response.status_code == 200
    assert [v["license_plate"] for v in response.json()] == ["XYZ9876"]

"""End-to-end booking flow over HTTP against an in-memory ledger store."""

from httpx import AsyncClient

from src.tc_ledger.infrastructure.memory_store import InMemoryLedgerStore

API = "/api/v1"


async def _open(client: AsyncClient, *user_ids: str) -> None:
    for user_id in user_ids:
        resp = await client.post(f"{API}/accounts/{user_id}")
        assert resp.status_code == 200


async def _skill(client: AsyncClient, provider_id: str, price: int = 3, slots: int = 1) -> str:
    resp = await client.post(f"{API}/skills", json={
        "provider_id": provider_id,
        "title": "Sourdough baking",
        "category": "cooking",
        "credits_per_hour": price,
        "available_slots": slots,
    })
    assert resp.status_code == 201
    return resp.json()["data"]["id"]


async def _book(client: AsyncClient, skill_id: str, requester_id: str, **extra: object) -> dict:
    resp = await client.post(f"{API}/bookings", json={
        "skill_id": skill_id,
        "requester_id": requester_id,
        "date": "2026-11-02",
        "time": "18:00",
        **extra,
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def _transition(client: AsyncClient, booking_id: str, target: str) -> dict:
    resp = await client.post(
        f"{API}/bookings/{booking_id}/transition", json={"target_status": target}
    )
    return resp.json()


async def _credits(client: AsyncClient, user_id: str) -> int:
    resp = await client.get(f"{API}/accounts/{user_id}/balance")
    return resp.json()["data"]["credits"]


async def _invariants(client: AsyncClient) -> dict:
    resp = await client.get(f"{API}/admin/invariants")
    assert resp.status_code == 200
    return resp.json()["data"]


class TestHappyPath:
    async def test_book_confirm_complete_review(
        self, client: AsyncClient, memory_store: InMemoryLedgerStore
    ) -> None:
        await _open(client, "alice", "bob")
        skill_id = await _skill(client, "bob", price=3, slots=1)

        booking = await _book(client, skill_id, "alice")
        assert booking["status"] == "pending"
        assert booking["credits"] == 3
        assert booking["skill_title"] == "Sourdough baking"

        confirmed = await _transition(client, booking["id"], "confirmed")
        assert confirmed["data"]["status"] == "confirmed"
        await memory_store.feed.drain()
        skill = (await client.get(f"{API}/skills/{skill_id}")).json()["data"]
        assert skill["available_slots"] == 0

        resp = await client.post(
            f"{API}/bookings/{booking['id']}/complete-session",
            json={"meeting_ref": "room-42", "actor_id": "bob"},
        )
        completion = resp.json()["data"]
        assert completion["success"] is True
        assert completion["booking"]["status"] == "completed"
        assert completion["booking"]["meeting_ref"] == "room-42"
        assert await _credits(client, "alice") == 7
        assert await _credits(client, "bob") == 13

        resp = await client.post(f"{API}/reviews", json={
            "booking_id": booking["id"], "rating": 5, "comment": "Lovely loaf",
        })
        assert resp.status_code == 201
        skill = (await client.get(f"{API}/skills/{skill_id}")).json()["data"]
        assert skill["rating"] == 5.0
        assert skill["review_count"] == 1
        assert skill["total_sessions"] == 1
        assert skill["available_slots"] == 0

        summary = (await client.get(f"{API}/accounts/alice/summary")).json()["data"]
        assert summary["total_spent"] == 3
        assert summary["net_credits"] == -3
        assert summary["recent"][0]["skill_title"] == "Sourdough baking"

        audit = await _invariants(client)
        assert audit == {"ok": True, "violations": []}

    async def test_completed_booking_can_be_reversed(self, client: AsyncClient) -> None:
        await _open(client, "alice", "bob")
        skill_id = await _skill(client, "bob", price=4)
        booking = await _book(client, skill_id, "alice", status="confirmed")
        await _transition(client, booking["id"], "completed")

        cancelled = await _transition(client, booking["id"], "cancelled")

        assert cancelled["data"]["status"] == "cancelled"
        assert await _credits(client, "alice") == 10
        assert await _credits(client, "bob") == 10
        history = (await client.get(f"{API}/accounts/alice/transactions")).json()["data"]
        assert [item["status"] for item in history["items"]] == ["cancelled"]
        assert (await _invariants(client))["ok"] is True


class TestBusinessErrors:
    async def test_full_skill_declines_on_confirm(self, client: AsyncClient) -> None:
        await _open(client, "alice", "carol", "bob")
        skill_id = await _skill(client, "bob", slots=1)
        first = await _book(client, skill_id, "alice")
        second = await _book(client, skill_id, "carol")
        await _transition(client, first["id"], "confirmed")

        result = await _transition(client, second["id"], "confirmed")

        assert result["data"]["status"] == "declined"

    async def test_insufficient_credits_reported_by_complete_session(
        self, client: AsyncClient
    ) -> None:
        await _open(client, "alice", "bob")
        skill_id = await _skill(client, "bob", price=12)
        booking = await _book(client, skill_id, "alice", status="confirmed")

        resp = await client.post(f"{API}/bookings/{booking['id']}/complete-session", json={})

        data = resp.json()["data"]
        assert data["success"] is False
        assert data["error_code"] == 2001
        assert await _credits(client, "alice") == 10

    async def test_error_envelope(self, client: AsyncClient) -> None:
        resp = await client.get(f"{API}/bookings/bk_missing")
        assert resp.status_code == 404
        body = resp.json()
        assert body["code"] == 1003
        assert body["data"] is None
        assert body["request_id"] == resp.headers["X-Request-ID"]

    async def test_caller_request_id_is_echoed(self, client: AsyncClient) -> None:
        await _open(client, "alice")
        resp = await client.get(
            f"{API}/accounts/alice/balance", headers={"X-Request-ID": "trace-7"}
        )
        assert resp.headers["X-Request-ID"] == "trace-7"
        assert resp.json()["request_id"] == "trace-7"

    async def test_invalid_transition_is_conflict(self, client: AsyncClient) -> None:
        await _open(client, "alice", "bob")
        skill_id = await _skill(client, "bob")
        booking = await _book(client, skill_id, "alice")
        await _transition(client, booking["id"], "declined")

        resp = await client.post(
            f"{API}/bookings/{booking['id']}/transition", json={"target_status": "confirmed"}
        )

        assert resp.status_code == 409
        assert resp.json()["code"] == 3001

    async def test_booking_pair_is_reversed_only_by_cancel(self, client: AsyncClient) -> None:
        await _open(client, "alice", "bob")
        skill_id = await _skill(client, "bob", price=4)
        booking = await _book(client, skill_id, "alice", status="confirmed")
        await _transition(client, booking["id"], "completed")
        history = (await client.get(f"{API}/accounts/alice/transactions")).json()["data"]

        resp = await client.post(f"{API}/accounts/transfers/{history['items'][0]['id']}/reverse")

        assert resp.status_code == 412
        assert resp.json()["code"] == 4001
        assert (await _invariants(client))["ok"] is True
        cancelled = await _transition(client, booking["id"], "cancelled")
        assert cancelled["data"]["status"] == "cancelled"

    async def test_rating_out_of_range(self, client: AsyncClient) -> None:
        await _open(client, "alice", "bob")
        skill_id = await _skill(client, "bob")
        booking = await _book(client, skill_id, "alice", status="confirmed")
        await _transition(client, booking["id"], "completed")

        resp = await client.post(f"{API}/reviews", json={"booking_id": booking["id"], "rating": 9})

        assert resp.status_code == 422
        assert resp.json()["code"] == 3005

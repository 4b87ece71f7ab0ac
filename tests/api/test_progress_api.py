"""HTTP tests for bookings, milestones, tasks and progress endpoints."""
import pytest

from app.core.config import settings
from app.core.security import create_jwt_token

pytestmark = pytest.mark.unit


async def test_requires_authentication(client, booking):
    response = await client.get(f"/api/v1/bookings/{booking.booking_id}")
    assert response.status_code == 401


async def test_invalid_token_rejected(client, booking):
    response = await client.get(
        f"/api/v1/bookings/{booking.booking_id}",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


async def test_token_accepted_from_cookie(client, booking, parties):
    client.cookies.set(settings.AUTH_COOKIE_NAME, create_jwt_token({"sub": parties["client"].user_id}))
    response = await client.get(f"/api/v1/bookings/{booking.booking_id}")

    assert response.status_code == 200
    assert response.json()["project_progress"] == 0


async def test_get_booking_forbidden_for_stranger(client, auth, booking, parties):
    response = await client.get(f"/api/v1/bookings/{booking.booking_id}", headers=auth(parties["stranger"]))

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


async def test_get_missing_booking(client, auth, parties):
    response = await client.get("/api/v1/bookings/missing", headers=auth(parties["admin"]))

    assert response.status_code == 404
    assert response.json()["code"] == "BOOKING_NOT_FOUND"


async def test_full_flow_through_the_api(client, auth, booking, parties):
    provider = auth(parties["provider"])
    client_headers = auth(parties["client"])

    created = await client.post(
        "/api/v1/milestones/create",
        json={"booking_id": booking.booking_id, "title": "Design", "weight": 1},
        headers=provider,
    )
    assert created.status_code == 201
    milestone = created.json()["milestone"]
    assert milestone["order_index"] == 0

    heavy = await client.post(
        "/api/v1/milestones/create",
        json={"booking_id": booking.booking_id, "title": "Build", "weight": 3},
        headers=provider,
    )
    assert heavy.json()["milestone"]["order_index"] == 1

    task_ids = []
    for i in range(4):
        task = await client.post(
            "/api/v1/tasks/create",
            json={"milestone_id": milestone["milestone_id"], "title": f"Step {i}"},
            headers=provider,
        )
        assert task.status_code == 201
        assert task.json()["task"]["status"] == "pending"
        task_ids.append(task.json()["task"]["task_id"])

    updated = await client.patch(
        f"/api/v1/tasks/{task_ids[0]}/status",
        json={"status": "completed"},
        headers=client_headers,
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["milestone_progress"] == 25
    assert body["booking_progress"] == 6

    booking_body = (await client.get(f"/api/v1/bookings/{booking.booking_id}", headers=client_headers)).json()
    assert booking_body["project_progress"] == 6

    listing = await client.get(f"/api/v1/milestones/booking/{booking.booking_id}", headers=client_headers)
    assert listing.status_code == 200
    milestones = listing.json()["milestones"]
    assert [m["title"] for m in milestones] == ["Design", "Build"]
    assert len(milestones[0]["tasks"]) == 4


async def test_invalid_task_status_returns_400(client, auth, seed, booking, parties):
    milestone = await seed.milestone(booking)
    tasks = await seed.tasks(milestone, 1)

    response = await client.patch(
        f"/api/v1/tasks/{tasks[0].task_id}/status",
        json={"status": "finished"},
        headers=auth(parties["provider"]),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_STATUS"


async def test_update_missing_task_returns_404(client, auth, parties):
    response = await client.patch(
        "/api/v1/tasks/missing/status",
        json={"status": "completed"},
        headers=auth(parties["admin"]),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "TASK_NOT_FOUND"


async def test_client_cannot_create_milestone(client, auth, booking, parties):
    response = await client.post(
        "/api/v1/milestones/create",
        json={"booking_id": booking.booking_id, "title": "Sneaky"},
        headers=auth(parties["client"]),
    )

    assert response.status_code == 403


async def test_non_positive_weight_rejected(client, auth, booking, parties):
    response = await client.post(
        "/api/v1/milestones/create",
        json={"booking_id": booking.booking_id, "title": "Zero", "weight": 0},
        headers=auth(parties["provider"]),
    )

    assert response.status_code == 422


async def test_milestone_status_and_delete(client, auth, seed, booking, parties, service):
    done = await seed.milestone(booking, order_index=0)
    todo = await seed.milestone(booking, order_index=1)
    await seed.tasks(done, 1, completed=1)
    await seed.tasks(todo, 1)
    await service.calculate_booking_progress(booking.booking_id)
    provider = auth(parties["provider"])

    status_response = await client.patch(
        f"/api/v1/milestones/{done.milestone_id}/status",
        json={"status": "completed"},
        headers=provider,
    )
    assert status_response.status_code == 200
    assert status_response.json()["milestone"]["status"] == "completed"
    assert status_response.json()["booking_progress"] == 50

    deleted = await client.delete(f"/api/v1/milestones/{todo.milestone_id}", headers=provider)
    assert deleted.status_code == 200
    assert deleted.json()["booking_progress"] == 100


async def test_delete_task_endpoint(client, auth, seed, booking, parties):
    milestone = await seed.milestone(booking)
    tasks = await seed.tasks(milestone, 2, completed=1)

    response = await client.delete(f"/api/v1/tasks/{tasks[1].task_id}", headers=auth(parties["provider"]))

    assert response.status_code == 200
    assert response.json()["milestone_progress"] == 100


async def test_calculate_and_analytics(client, auth, seed, booking, parties):
    milestone = await seed.milestone(booking)
    await seed.tasks(milestone, 4, completed=3)
    headers = auth(parties["client"])

    before = await client.get(f"/api/v1/progress/{booking.booking_id}/analytics", headers=headers)
    assert before.status_code == 200
    assert before.json()["analytics"]["drift"] is True

    calculated = await client.post(f"/api/v1/progress/{booking.booking_id}/calculate", headers=headers)
    assert calculated.status_code == 200
    assert calculated.json()["booking_progress"] == 75

    after = await client.get(f"/api/v1/progress/{booking.booking_id}/analytics", headers=headers)
    analytics = after.json()["analytics"]
    assert analytics["drift"] is False
    assert analytics["completed_tasks"] == 3
    assert analytics["total_tasks"] == 4


async def test_backfill_requires_admin(client, auth, booking, parties):
    response = await client.post(
        "/api/v1/progress/backfill", json={"dry_run": True}, headers=auth(parties["provider"])
    )
    assert response.status_code == 403


async def test_backfill_as_admin(client, auth, seed, booking, parties):
    milestone = await seed.milestone(booking)
    await seed.tasks(milestone, 2, completed=1)

    response = await client.post(
        "/api/v1/progress/backfill", json={"dry_run": False}, headers=auth(parties["admin"])
    )

    assert response.status_code == 200
    body = response.json()
    assert body["processed"] == 1
    assert body["changed"] == [{"booking_id": booking.booking_id, "previous": 0, "current": 50}]
    assert body["failures"] == {}


async def test_edit_milestone_weight_through_api(client, auth, seed, booking, parties, service):
    done = await seed.milestone(booking, order_index=0)
    todo = await seed.milestone(booking, order_index=1)
    await seed.tasks(done, 1, completed=1)
    await seed.tasks(todo, 1)
    await service.calculate_booking_progress(booking.booking_id)

    response = await client.patch(
        f"/api/v1/milestones/{todo.milestone_id}",
        json={"weight": 3, "title": "Build and launch"},
        headers=auth(parties["provider"]),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["milestone"]["weight"] == 3.0
    assert body["milestone"]["title"] == "Build and launch"
    assert body["booking_progress"] == 25


async def test_weight_has_no_upper_cap(client, auth, booking, parties):
    response = await client.post(
        "/api/v1/milestones/create",
        json={"booking_id": booking.booking_id, "title": "Heavy", "weight": 150},
        headers=auth(parties["provider"]),
    )

    assert response.status_code == 201
    assert response.json()["milestone"]["weight"] == 150.0


async def test_client_cannot_edit_milestone(client, auth, seed, booking, parties):
    milestone = await seed.milestone(booking)

    response = await client.patch(
        f"/api/v1/milestones/{milestone.milestone_id}",
        json={"weight": 5},
        headers=auth(parties["client"]),
    )

    assert response.status_code == 403


async def test_client_approves_milestone(client, auth, seed, booking, parties):
    milestone = await seed.milestone(booking)

    response = await client.post(
        "/api/v1/milestones/approve",
        json={"milestone_id": milestone.milestone_id, "action": "approve", "feedback": "Thanks"},
        headers=auth(parties["client"]),
    )

    assert response.status_code == 200
    assert response.json()["approval_status"] == "approved"
    assert response.json()["milestone"]["status"] == "completed"


async def test_invalid_review_action(client, auth, seed, booking, parties):
    milestone = await seed.milestone(booking)

    response = await client.post(
        "/api/v1/milestones/approve",
        json={"milestone_id": milestone.milestone_id, "action": "maybe"},
        headers=auth(parties["client"]),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_ACTION"


async def test_edit_task_through_api(client, auth, seed, booking, parties):
    tasks = await seed.tasks(await seed.milestone(booking), 1)

    response = await client.patch(
        f"/api/v1/tasks/{tasks[0].task_id}",
        json={"title": "Final copy", "description": "Homepage and about"},
        headers=auth(parties["provider"]),
    )

    assert response.status_code == 200
    assert response.json()["task"]["title"] == "Final copy"
    assert response.json()["task"]["status"] == "pending"

"""Job Routes — HTTP contract for /api/v1/jobs.

Tests cover:
    - POST /jobs returns 201 with ordered slots; missing identity is 403
    - slot violations come back as one 400 listing every field
    - lifecycle endpoints and their error envelopes (403 / 404 / 409)
    - list filtering and pagination bounds
    - DELETE refused while live applications exist
    - PATCH edits sent fields and slots; past deadlines are 400 on create and edit
"""

from uuid import uuid4


async def _post_job(client, auth, employer, *slots, **extra):
    body = {"title": "Event staff", "slots": list(slots), **extra}
    return await client.post("/api/v1/jobs", json=body, headers=auth(employer))


async def test_create_job(client, auth, employer, future_slot):
    res = await _post_job(client, auth, employer, future_slot(2), future_slot(1, start=14))

    assert res.status_code == 201
    data = res.json()
    assert data["status"] == "active"
    assert data["employer_id"] == str(employer.principal_id)
    assert data["total_positions"] == 3
    assert [s["people_needed"] for s in data["slots"]] == [2, 1]
    assert all(s["people_assigned"] == 0 for s in data["slots"])


async def test_create_job_requires_identity(client, future_slot):
    res = await client.post(
        "/api/v1/jobs", json={"title": "Event staff", "slots": [future_slot()]},
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "PERMISSION_DENIED"


async def test_create_job_rejects_malformed_role(client, employer, future_slot):
    res = await client.post(
        "/api/v1/jobs",
        json={"title": "Event staff", "slots": [future_slot()]},
        headers={"X-Principal-Id": str(employer.principal_id), "X-Principal-Role": "boss"},
    )
    assert res.status_code == 403


async def test_applicant_cannot_post_job(client, auth, applicant, future_slot):
    res = await _post_job(client, auth, applicant, future_slot())
    assert res.status_code == 403


async def test_slot_violations_reported_together(client, auth, employer, future_slot):
    bad = future_slot(0)
    bad["end_time"] = bad["start_time"]
    res = await _post_job(client, auth, employer, future_slot(), bad)

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert {v["field"] for v in error["violations"]} == {
        "slots[1].people_needed", "slots[1].end_time",
    }


async def test_schema_errors_are_400(client, auth, employer):
    res = await client.post(
        "/api/v1/jobs", json={"title": "x", "slots": []}, headers=auth(employer),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_get_job_and_not_found(client, auth, employer, future_slot):
    created = (await _post_job(client, auth, employer, future_slot())).json()

    res = await client.get(f"/api/v1/jobs/{created['id']}")
    assert res.status_code == 200
    assert res.json()["id"] == created["id"]

    missing = await client.get(f"/api/v1/jobs/{uuid4()}")
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_draft_publish_close_reopen_cancel(client, auth, employer, future_slot):
    job = (await _post_job(client, auth, employer, future_slot(), publish=False)).json()
    assert job["status"] == "draft"
    base = f"/api/v1/jobs/{job['id']}"

    for action, expected in [
        ("publish", "active"), ("close", "closed"),
        ("reopen", "active"), ("cancel", "cancelled"),
    ]:
        res = await client.post(f"{base}/{action}", headers=auth(employer))
        assert res.status_code == 200, action
        assert res.json()["status"] == expected


async def test_invalid_job_transition_is_409(client, auth, employer, future_slot):
    job = (await _post_job(client, auth, employer, future_slot())).json()
    res = await client.post(f"/api/v1/jobs/{job['id']}/reopen", headers=auth(employer))

    assert res.status_code == 409
    error = res.json()["error"]
    assert error["code"] == "INVALID_TRANSITION"
    assert error["context"]["current_state"] == "active"
    assert error["context"]["attempted"] == "reopen"


async def test_other_employer_cannot_close(client, auth, employer, other_employer, future_slot):
    job = (await _post_job(client, auth, employer, future_slot())).json()
    res = await client.post(f"/api/v1/jobs/{job['id']}/close", headers=auth(other_employer))
    assert res.status_code == 403


async def test_list_jobs_filters(client, auth, employer, other_employer, future_slot):
    await _post_job(client, auth, employer, future_slot())
    await _post_job(client, auth, employer, future_slot(), publish=False)
    await _post_job(client, auth, other_employer, future_slot())

    drafts = (await client.get("/api/v1/jobs", params={"status": "draft"})).json()
    assert len(drafts["jobs"]) == 1

    mine = await client.get(
        "/api/v1/jobs", params={"employer_id": str(employer.principal_id)},
    )
    assert len(mine.json()["jobs"]) == 2


async def test_list_jobs_pagination_capped(client):
    res = await client.get("/api/v1/jobs", params={"limit": 1000})
    assert res.status_code == 200
    assert res.json()["limit"] == 100


async def test_list_jobs_unknown_status_is_400(client):
    res = await client.get("/api/v1/jobs", params={"status": "archived"})
    assert res.status_code == 400


async def test_delete_job(client, auth, employer, applicant, future_slot):
    job = (await _post_job(client, auth, employer, future_slot())).json()
    await client.post(
        "/api/v1/applications", json={"job_id": job["id"]}, headers=auth(applicant),
    )

    refused = await client.delete(f"/api/v1/jobs/{job['id']}", headers=auth(employer))
    assert refused.status_code == 409

    empty = (await _post_job(client, auth, employer, future_slot())).json()
    res = await client.delete(f"/api/v1/jobs/{empty['id']}", headers=auth(employer))
    assert res.status_code == 204
    assert (await client.get(f"/api/v1/jobs/{empty['id']}")).status_code == 404


async def test_create_job_with_past_deadline_is_400(client, auth, employer, future_slot):
    res = await _post_job(
        client, auth, employer, future_slot(),
        application_deadline="2020-01-01T00:00:00Z",
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert [v["field"] for v in error["violations"]] == ["application_deadline"]


async def test_patch_job_edits_sent_fields(client, auth, employer, future_slot):
    job = (await _post_job(client, auth, employer, future_slot(), description="Gates")).json()

    res = await client.patch(
        f"/api/v1/jobs/{job['id']}",
        json={"title": "  Stage crew  ", "category": "events"},
        headers=auth(employer),
    )

    assert res.status_code == 200
    data = res.json()
    assert data["title"] == "Stage crew"
    assert data["category"] == "events"
    assert data["description"] == "Gates"
    assert data["slots"][0]["id"] == job["slots"][0]["id"]


async def test_patch_job_slots(client, auth, employer, future_slot):
    job = (await _post_job(client, auth, employer, future_slot(1))).json()

    res = await client.patch(
        f"/api/v1/jobs/{job['id']}",
        json={"slots": [future_slot(4), future_slot(2, start=14)]},
        headers=auth(employer),
    )

    assert res.status_code == 200
    data = res.json()
    assert data["total_positions"] == 6
    assert [s["people_needed"] for s in data["slots"]] == [4, 2]
    assert data["slots"][0]["id"] == job["slots"][0]["id"]


async def test_patch_job_errors(client, auth, employer, other_employer, future_slot):
    job = (await _post_job(client, auth, employer, future_slot())).json()
    url = f"/api/v1/jobs/{job['id']}"

    stranger = await client.patch(url, json={"title": "Mine now"}, headers=auth(other_employer))
    assert stranger.status_code == 403

    late = await client.patch(
        url, json={"application_deadline": "2020-01-01T00:00:00Z"}, headers=auth(employer),
    )
    assert late.status_code == 400

    short = await client.patch(url, json={"title": "  a  "}, headers=auth(employer))
    assert short.status_code == 400

    await client.post(f"{url}/cancel", headers=auth(employer))
    cancelled = await client.patch(url, json={"title": "Revived"}, headers=auth(employer))
    assert cancelled.status_code == 409
    assert cancelled.json()["error"]["code"] == "INVALID_TRANSITION"

"""Application Routes — HTTP contract for /api/v1/applications and job application lists.

Tests cover:
    - submit / instant apply return 201; duplicates are 409
    - accept with and without a body, slot selection required is 400
    - capacity exhaustion is 409 with slot detail
    - withdraw twice: 200 then 409
    - read endpoints honour ownership
    - PATCH feedback is owner-only and refused once withdrawn
"""


async def _job(client, auth, employer, future_slot, *needed):
    slots = [future_slot(n, start=6 + 4 * i) for i, n in enumerate(needed or (1,))]
    body = {"title": "Harvest crew", "slots": slots}
    res = await client.post("/api/v1/jobs", json=body, headers=auth(employer))
    assert res.status_code == 201
    return res.json()


async def _apply(client, auth, applicant, job_id, slot_ids=()):
    return await client.post(
        "/api/v1/applications",
        json={"job_id": job_id, "slot_ids": list(slot_ids), "cover_letter": "  Keen  "},
        headers=auth(applicant),
    )


async def test_submit_application(client, auth, employer, applicant, future_slot):
    job = await _job(client, auth, employer, future_slot, 2)
    slot_id = job["slots"][0]["id"]

    res = await _apply(client, auth, applicant, job["id"], [slot_id])

    assert res.status_code == 201
    data = res.json()
    assert data["status"] == "pending"
    assert data["slot_ids"] == [slot_id]
    assert data["cover_letter"] == "Keen"
    assert data["applicant_id"] == str(applicant.principal_id)


async def test_duplicate_submission_is_409(client, auth, employer, applicant, future_slot):
    job = await _job(client, auth, employer, future_slot)
    await _apply(client, auth, applicant, job["id"])

    res = await _apply(client, auth, applicant, job["id"])
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "DUPLICATE_APPLICATION"


async def test_instant_apply(client, auth, employer, applicant, future_slot):
    job = await _job(client, auth, employer, future_slot, 1, 2)

    res = await client.post(
        "/api/v1/applications/instant", json={"job_id": job["id"]}, headers=auth(applicant),
    )

    assert res.status_code == 201
    data = res.json()
    assert data["is_instant_apply"] is True
    assert data["slot_ids"] == [s["id"] for s in job["slots"]]


async def test_accept_targeted_application(client, auth, employer, applicant, future_slot):
    job = await _job(client, auth, employer, future_slot, 1)
    slot_id = job["slots"][0]["id"]
    application = (await _apply(client, auth, applicant, job["id"], [slot_id])).json()

    res = await client.post(
        f"/api/v1/applications/{application['id']}/accept", headers=auth(employer),
    )

    assert res.status_code == 200
    assert res.json()["status"] == "accepted"
    refreshed = (await client.get(f"/api/v1/jobs/{job['id']}")).json()
    assert refreshed["status"] == "filled"
    assert refreshed["slots"][0]["people_assigned"] == 1


async def test_accept_whole_job_application_needs_slots(
    client, auth, employer, applicant, future_slot,
):
    job = await _job(client, auth, employer, future_slot, 1)
    application = (await _apply(client, auth, applicant, job["id"])).json()
    url = f"/api/v1/applications/{application['id']}/accept"

    missing = await client.post(url, json={}, headers=auth(employer))
    assert missing.status_code == 400
    assert missing.json()["error"]["code"] == "SLOT_SELECTION_REQUIRED"

    res = await client.post(
        url, json={"slot_ids": [job["slots"][0]["id"]], "feedback": "Welcome"},
        headers=auth(employer),
    )
    assert res.status_code == 200
    assert res.json()["employer_feedback"] == "Welcome"


async def test_accept_without_capacity_is_409(
    client, auth, employer, applicant, second_applicant, future_slot,
):
    job = await _job(client, auth, employer, future_slot, 1)
    slot_id = job["slots"][0]["id"]
    first = (await _apply(client, auth, applicant, job["id"], [slot_id])).json()
    second = (await _apply(client, auth, second_applicant, job["id"], [slot_id])).json()
    await client.post(f"/api/v1/applications/{first['id']}/accept", headers=auth(employer))

    res = await client.post(
        f"/api/v1/applications/{second['id']}/accept", headers=auth(employer),
    )

    assert res.status_code == 409
    error = res.json()["error"]
    assert error["code"] == "CAPACITY_EXCEEDED"
    assert error["context"]["slot_id"] == slot_id
    assert error["people_needed"] == 1
    assert error["people_assigned"] == 1


async def test_reject_then_accept_is_409(client, auth, employer, applicant, future_slot):
    job = await _job(client, auth, employer, future_slot, 1)
    application = (await _apply(client, auth, applicant, job["id"])).json()
    base = f"/api/v1/applications/{application['id']}"

    rejected = await client.post(
        f"{base}/reject", json={"feedback": "Filled internally"}, headers=auth(employer),
    )
    assert rejected.status_code == 200
    assert rejected.json()["status"] == "rejected"

    res = await client.post(
        f"{base}/accept", json={"slot_ids": [job["slots"][0]["id"]]}, headers=auth(employer),
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INVALID_TRANSITION"


async def test_withdraw_twice(client, auth, employer, applicant, future_slot):
    job = await _job(client, auth, employer, future_slot)
    application = (await _apply(client, auth, applicant, job["id"])).json()
    url = f"/api/v1/applications/{application['id']}/withdraw"

    first = await client.post(url, headers=auth(applicant))
    second = await client.post(url, headers=auth(applicant))

    assert first.status_code == 200
    assert first.json()["status"] == "withdrawn"
    assert second.status_code == 409


async def test_employer_cannot_withdraw_for_applicant(
    client, auth, employer, applicant, future_slot,
):
    job = await _job(client, auth, employer, future_slot)
    application = (await _apply(client, auth, applicant, job["id"])).json()
    res = await client.post(
        f"/api/v1/applications/{application['id']}/withdraw", headers=auth(employer),
    )
    assert res.status_code == 403


async def test_read_endpoints(
    client, auth, employer, other_employer, applicant, second_applicant, future_slot,
):
    job = await _job(client, auth, employer, future_slot, 2)
    application = (await _apply(client, auth, applicant, job["id"])).json()

    own = await client.get(f"/api/v1/applications/{application['id']}", headers=auth(applicant))
    assert own.status_code == 200
    stranger = await client.get(
        f"/api/v1/applications/{application['id']}", headers=auth(second_applicant),
    )
    assert stranger.status_code == 403

    mine = await client.get("/api/v1/applications/mine", headers=auth(applicant))
    assert [a["id"] for a in mine.json()["applications"]] == [application["id"]]

    for_job = await client.get(f"/api/v1/jobs/{job['id']}/applications", headers=auth(employer))
    assert for_job.status_code == 200
    assert len(for_job.json()["applications"]) == 1
    denied = await client.get(
        f"/api/v1/jobs/{job['id']}/applications", headers=auth(other_employer),
    )
    assert denied.status_code == 403


async def test_patch_feedback(client, auth, employer, other_employer, applicant, future_slot):
    job = await _job(client, auth, employer, future_slot)
    application = (await _apply(client, auth, applicant, job["id"])).json()
    base = f"/api/v1/applications/{application['id']}"
    await client.post(f"{base}/reject", json={"feedback": "Filled"}, headers=auth(employer))

    res = await client.patch(
        f"{base}/feedback", json={"feedback": "  Try the spring season  "},
        headers=auth(employer),
    )
    assert res.status_code == 200
    assert res.json()["status"] == "rejected"
    assert res.json()["employer_feedback"] == "Try the spring season"

    stranger = await client.patch(
        f"{base}/feedback", json={"feedback": "No"}, headers=auth(other_employer),
    )
    assert stranger.status_code == 403


async def test_patch_feedback_after_withdrawal_is_409(
    client, auth, employer, applicant, future_slot,
):
    job = await _job(client, auth, employer, future_slot)
    application = (await _apply(client, auth, applicant, job["id"])).json()
    base = f"/api/v1/applications/{application['id']}"
    await client.post(f"{base}/withdraw", headers=auth(applicant))

    res = await client.patch(f"{base}/feedback", json={"feedback": "Late"}, headers=auth(employer))
    assert res.status_code == 409
    assert res.json()["error"]["context"]["attempted"] == "update feedback"

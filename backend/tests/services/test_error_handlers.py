"""Error envelope — request validation shares the domain violation format."""

import pytest

from gigboard.api.error_handlers import field_path


@pytest.mark.parametrize("loc, expected", [
    (("body", "title"), "title"),
    (("body", "slots", 1, "date"), "slots[1].date"),
    (("query", "limit"), "limit"),
    (("body",), "body"),
    (("body", "slot_ids", 0), "slot_ids[0]"),
])
def test_field_path(loc, expected):
    assert field_path(loc) == expected


async def test_schema_violation_fields(client, auth, employer, future_slot):
    slot = future_slot()
    slot["date"] = "not-a-date"
    res = await client.post(
        "/api/v1/jobs", json={"title": "ab", "slots": [slot]}, headers=auth(employer),
    )

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["category"] == "validation"
    assert {v["field"] for v in error["violations"]} == {"title", "slots[0].date"}
    assert error["context"]["field"] == "title"

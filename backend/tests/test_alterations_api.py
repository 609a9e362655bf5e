from conftest import auth_headers, slot_payload


def _rejected_proposal(client, campus):
    client.post("/api/slot-assignments", json=slot_payload(campus), headers=auth_headers(campus.incharge))
    notification_id = client.get("/api/notifications/pending", headers=auth_headers(campus.alice)).json()[0]["id"]
    client.post(
        f"/api/notifications/{notification_id}/reject",
        json={"reason": "On sabbatical"},
        headers=auth_headers(campus.alice),
    )


def test_alteration_trail_is_department_scoped(client, campus):
    _rejected_proposal(client, campus)
    headers = auth_headers(campus.incharge)

    listed = client.get("/api/alterations", params={"timetable_id": campus.timetable_id}, headers=headers)
    assert listed.status_code == 200
    [record] = listed.json()
    assert record["status"] == "rejected"
    assert record["reason"] == "Faculty rejected assignment: On sabbatical"
    assert record["requested_by"] == campus.alice.faculty_id

    detail = client.get(f"/api/alterations/{record['id']}", headers=headers)
    assert detail.status_code == 200
    assert detail.json()["id"] == record["id"]

    assert client.get("/api/alterations", params={"status": "approved"}, headers=headers).json() == []


def test_alterations_require_incharge(client, campus):
    _rejected_proposal(client, campus)

    response = client.get("/api/alterations", headers=auth_headers(campus.alice))

    assert response.status_code == 403

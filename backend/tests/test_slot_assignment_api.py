from collections import Counter
from itertools import product

from app.models.faculty import Faculty
from app.services.identity import CallerIdentity
from conftest import auth_headers, slot_payload


def _propose(client, campus, **overrides):
    return client.post(
        "/api/slot-assignments",
        json=slot_payload(campus, **overrides),
        headers=auth_headers(campus.incharge),
    )


def _pending(client, caller):
    response = client.get("/api/notifications/pending", headers=auth_headers(caller))
    assert response.status_code == 200
    return response.json()


def _publish(client, campus):
    return client.post(f"/api/timetables/{campus.timetable_id}/publish", headers=auth_headers(campus.incharge))


def test_scenario_a_proposal_creates_pending_request(client, campus):
    response = _propose(client, campus, start_time="09:00", end_time="09:50")

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending_approval"
    assert body["start_time"] == "09:00"
    assert body["end_time"] == "09:50"
    assert body["year"] == "2nd"

    pending = _pending(client, campus.alice)
    assert len(pending) == 1
    assert pending[0]["slot_assignment_id"] == body["id"]
    assert pending[0]["requested_by"] == campus.incharge.faculty_id


def test_scenario_b_faculty_time_conflict(client, campus):
    assert _propose(client, campus, start_time="09:00", end_time="09:50").status_code == 201

    response = _propose(
        client,
        campus,
        class_id=campus.class_b,
        subject_code="CS202",
        room_number="R202",
        start_time="09:00",
        end_time="09:50",
    )

    assert response.status_code == 409
    assert response.json()["details"] == {"error": "conflict", "kind": "faculty_time_conflict"}
    assert len(_pending(client, campus.alice)) == 1


def test_scenario_c_accept_then_already_resolved(client, campus):
    assignment = _propose(client, campus).json()
    notification_id = _pending(client, campus.alice)[0]["id"]

    accepted = client.post(f"/api/notifications/{notification_id}/accept", headers=auth_headers(campus.alice))
    assert accepted.status_code == 200
    assert accepted.json()["assignment_id"] == assignment["id"]
    assert accepted.json()["assignment_status"] == "active"
    assert accepted.json()["notification"]["status"] == "accepted"

    again = client.post(f"/api/notifications/{notification_id}/accept", headers=auth_headers(campus.alice))
    assert again.status_code == 409
    assert again.json()["details"]["error"] == "already_resolved"

    listed = client.get(f"/api/timetables/{campus.timetable_id}/assignments", headers=auth_headers(campus.incharge))
    assert [item["status"] for item in listed.json()] == ["active"]


def test_scenario_d_reject_then_reassign(client, campus):
    assignment = _propose(client, campus).json()
    notification_id = _pending(client, campus.alice)[0]["id"]

    rejected = client.post(
        f"/api/notifications/{notification_id}/reject",
        json={"reason": "Clashes with my lab"},
        headers=auth_headers(campus.alice),
    )
    assert rejected.status_code == 200
    assert rejected.json()["assignment_status"] == "inactive"
    assert rejected.json()["notification"]["rejection_reason"] == "Clashes with my lab"

    reassigned = client.put(
        f"/api/slot-assignments/{assignment['id']}/faculty",
        json={"faculty_id": campus.bob.faculty_id, "reason": "Alice unavailable"},
        headers=auth_headers(campus.incharge),
    )
    assert reassigned.status_code == 200
    body = reassigned.json()
    assert body["assignment"]["faculty_id"] == campus.bob.faculty_id
    assert body["assignment"]["status"] == "pending_approval"
    assert body["notification"]["faculty_id"] == campus.bob.faculty_id
    assert body["alteration"]["status"] == "approved"
    assert body["alteration"]["old_faculty_id"] == campus.alice.faculty_id

    assert len(_pending(client, campus.bob)) == 1

    alterations = client.get("/api/alterations", headers=auth_headers(campus.incharge)).json()
    assert Counter(item["status"] for item in alterations) == {"rejected": 1, "approved": 1}


def test_scenario_e_publication_gate(client, campus):
    assignment = _propose(client, campus).json()

    blocked = _publish(client, campus)
    assert blocked.status_code == 409
    assert blocked.json()["details"] == {"error": "pending_approvals", "count": 1}
    assert blocked.json()["message"] == "Cannot publish: 1 assignments are still pending approval"

    removed = client.delete(f"/api/slot-assignments/{assignment['id']}", headers=auth_headers(campus.incharge))
    assert removed.status_code == 200
    assert removed.json() == {"deleted": assignment["id"]}
    assert _pending(client, campus.alice) == []

    published = _publish(client, campus)
    assert published.status_code == 200
    assert published.json()["is_published"] is True


def test_publish_succeeds_after_accept(client, campus):
    _propose(client, campus)
    notification_id = _pending(client, campus.alice)[0]["id"]
    client.post(f"/api/notifications/{notification_id}/accept", headers=auth_headers(campus.alice))

    assert _publish(client, campus).status_code == 200


def test_booked_slots_never_double_book_faculty_or_room(client, campus):
    faculty = [campus.alice, campus.bob]
    classes = [campus.class_a, campus.class_b]
    rooms = ["R101", "R102"]
    subjects = ["CS201", "CS202"]
    outcomes = Counter()

    for caller, class_id, room, subject in product(faculty, classes, rooms, subjects):
        response = _propose(
            client,
            campus,
            faculty_id=caller.faculty_id,
            class_id=class_id,
            room_number=room,
            subject_code=subject,
        )
        outcomes[response.status_code] += 1
        if response.status_code == 409:
            assert response.json()["details"]["kind"] in {
                "duplicate_assignment",
                "faculty_time_conflict",
                "room_conflict",
            }

    assert outcomes[201] == 2
    rows = client.get(f"/api/timetables/{campus.timetable_id}/assignments", headers=auth_headers(campus.incharge))
    booked = [row for row in rows.json() if row["status"] in {"pending_approval", "active"}]
    faculty_slots = Counter((row["faculty_id"], row["day_of_week"], row["start_time"], row["end_time"]) for row in booked)
    room_slots = Counter(
        (row["class_id"], row["day_of_week"], row["start_time"], row["end_time"], row["room_number"]) for row in booked
    )
    assert max(faculty_slots.values()) == 1
    assert max(room_slots.values()) == 1


def test_validation_and_lookup_errors(client, campus):
    blank = _propose(client, campus, room_number="  ")
    assert blank.status_code == 400
    assert blank.json()["details"] == {"error": "invalid_argument", "field": "room_number"}

    inverted = _propose(client, campus, start_time="11:00", end_time="10:00")
    assert inverted.status_code == 400

    malformed = _propose(client, campus, start_time="9am")
    assert malformed.status_code == 422

    missing_faculty = _propose(client, campus, faculty_id=campus.eve.faculty_id)
    assert missing_faculty.status_code == 404
    assert missing_faculty.json()["details"]["error"] == "not_found"


def test_plain_faculty_cannot_propose_or_publish(client, campus):
    response = client.post(
        "/api/slot-assignments",
        json=slot_payload(campus),
        headers=auth_headers(campus.alice),
    )
    assert response.status_code == 403
    assert response.json()["details"] == {"error": "authorization"}

    assert client.post(
        f"/api/timetables/{campus.timetable_id}/publish", headers=auth_headers(campus.alice)
    ).status_code == 403


def test_invalid_token_is_unauthorized(client, campus):
    response = client.get("/api/notifications", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_remove_from_other_department_is_forbidden(client, campus, session_factory):
    session = session_factory()
    session.add(
        Faculty(
            id="fac-ece-incharge",
            name="Esha Incharge",
            email="ece-incharge@college.edu",
            department_id=campus.ece,
            is_timetable_incharge=True,
        )
    )
    session.commit()
    session.close()

    assignment = _propose(client, campus).json()
    outsider = CallerIdentity("fac-ece-incharge", campus.ece)
    response = client.delete(f"/api/slot-assignments/{assignment['id']}", headers=auth_headers(outsider))

    assert response.status_code == 403


def test_available_faculty_endpoint(client, campus):
    _propose(client, campus)

    response = client.get(
        "/api/slot-assignments/available-faculty",
        params={"day": "Monday", "start_time": "09:00", "end_time": "10:00", "year": "2nd"},
        headers=auth_headers(campus.incharge),
    )

    assert response.status_code == 200
    ids = {item["id"] for item in response.json()}
    assert campus.alice.faculty_id not in ids
    assert campus.bob.faculty_id in ids

    bad = client.get(
        "/api/slot-assignments/available-faculty",
        params={"day": "Monday", "start_time": "nine", "end_time": "10:00", "year": "2nd"},
        headers=auth_headers(campus.incharge),
    )
    assert bad.status_code == 400


def test_timetable_endpoints(client, campus):
    created = client.post(
        "/api/timetables",
        json={"year": "3rd", "session_start": "2026-07-01", "session_end": "2026-11-30"},
        headers=auth_headers(campus.incharge),
    )
    assert created.status_code == 201
    timetable_id = created.json()["id"]

    duplicate = client.post(
        "/api/timetables",
        json={"year": "3rd", "session_start": "2026-07-01", "session_end": "2026-11-30"},
        headers=auth_headers(campus.incharge),
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["details"]["kind"] == "duplicate_timetable"

    patched = client.patch(
        f"/api/timetables/{timetable_id}",
        json={"session_end": "2026-12-20"},
        headers=auth_headers(campus.incharge),
    )
    assert patched.status_code == 200
    assert patched.json()["session_end"] == "2026-12-20"

    sneaky = client.patch(
        f"/api/timetables/{timetable_id}",
        json={"is_published": True},
        headers=auth_headers(campus.incharge),
    )
    assert sneaky.status_code == 422

    listed = client.get("/api/timetables", params={"year": "3rd"}, headers=auth_headers(campus.incharge))
    assert [item["id"] for item in listed.json()] == [timetable_id]

    foreign = client.get(f"/api/timetables/{campus.ece_timetable_id}", headers=auth_headers(campus.incharge))
    assert foreign.status_code == 404

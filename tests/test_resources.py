from dispatch_board.services.time_rules import today_local


RADIO = {
    "equipment_type": "Radio",
    "equipment_id_number": "R-44",
    "title": "Unit 12 radio",
    "status": "Down",
}

ABSENCE = {
    "badge_number": "1182",
    "location_name": "North Precinct",
    "covering_badge_number": "1204",
    "absence_date": "2024-03-01",
    "notes": "Court appearance",
}


def test_public_list_starts_empty(client):
    for kind in ("absences", "equipment", "oncall", "notices", "alerts"):
        resp = client.get(f"/api/{kind}")
        assert resp.status_code == 200
        assert resp.json() == []


def test_create_returns_201_with_empty_body_and_appears_in_list(admin):
    resp = admin.post("/api/absences", json=ABSENCE)
    assert resp.status_code == 201
    assert resp.content == b""

    rows = admin.get("/api/absences").json()
    assert len(rows) == 1
    row = rows[0]
    assert isinstance(row["id"], int)
    assert row["badge_number"] == "1182"
    assert row["absence_date"] == "2024-03-01"
    assert row["covering_badge_number"] == "1204"


def test_create_assigns_fresh_ids(admin):
    for badge in ("1", "2", "3"):
        admin.post("/api/absences", json={**ABSENCE, "badge_number": badge})
    seen = {r["id"] for r in admin.get("/api/absences").json()}
    newest = max(seen)
    admin.delete(f"/api/absences/{newest}")

    admin.post("/api/absences", json={**ABSENCE, "badge_number": "4"})
    rows = admin.get("/api/absences").json()
    new_row = next(r for r in rows if r["badge_number"] == "4")
    assert new_row["id"] not in seen
    assert len(rows) == 3


def test_equipment_scenario_create_then_fix(admin):
    admin.post("/api/equipment", json={**RADIO, "equipment_id_number": "R-01", "title": "Older radio"})
    assert admin.post("/api/equipment", json=RADIO).status_code == 201

    rows = admin.get("/api/equipment").json()
    first = rows[0]
    assert first["equipment_id_number"] == "R-44"
    assert first["status"] == "Down"

    resp = admin.put(f"/api/equipment/{first['id']}", json={**RADIO, "status": "Fixed"})
    assert resp.status_code == 200
    assert resp.content == b""

    rows = admin.get("/api/equipment").json()
    fixed = next(r for r in rows if r["id"] == first["id"])
    assert fixed["status"] == "Fixed"
    assert fixed["equipment_type"] == "Radio"
    assert fixed["title"] == "Unit 12 radio"


def test_update_replaces_fields_and_restamps_updater_only(admin):
    admin.post("/api/absences", json=ABSENCE)
    row = admin.get("/api/absences").json()[0]
    assert row["created_by_email"] == "unknown"

    replacement = {**ABSENCE, "location_name": "South Precinct", "notes": None, "covering_badge_number": ""}
    admin.put(f"/api/absences/{row['id']}", json=replacement)

    updated = admin.get("/api/absences").json()[0]
    assert updated["id"] == row["id"]
    assert updated["location_name"] == "South Precinct"
    assert updated["notes"] is None
    assert updated["covering_badge_number"] is None
    assert updated["badge_number"] == row["badge_number"]
    assert updated["created_by_email"] == row["created_by_email"]
    assert updated["created_at"] == row["created_at"]
    assert updated["version"] == row["version"] + 1


def test_update_missing_id_is_not_found(admin):
    resp = admin.put("/api/notices/999", json={"title": "x", "text_content": "y"})
    assert resp.status_code == 404
    assert resp.json()["kind"] == "NotFoundError"


def test_delete_removes_record_and_missing_id_is_noop(admin):
    admin.post("/api/oncall", json={"department_name": "Patrol", "person_name": "Lt. Okafor", "phone_number": "555-0101"})
    admin.post("/api/oncall", json={"department_name": "K9", "person_name": "Ofc. Lind", "phone_number": "555-0102"})
    rows = admin.get("/api/oncall").json()

    assert admin.delete(f"/api/oncall/{rows[0]['id']}").status_code == 200
    remaining = admin.get("/api/oncall").json()
    assert [r["id"] for r in remaining] == [rows[1]["id"]]

    assert admin.delete("/api/oncall/424242").status_code == 200
    assert admin.get("/api/oncall").json() == remaining


def test_list_ordering_per_kind(admin):
    for d in ("2024-03-01", "2024-03-05", "2024-02-20"):
        admin.post("/api/absences", json={**ABSENCE, "absence_date": d})
    assert [r["absence_date"] for r in admin.get("/api/absences").json()] == ["2024-03-05", "2024-03-01", "2024-02-20"]

    for name in ("First", "Second"):
        admin.post("/api/oncall", json={"department_name": "Patrol", "person_name": name, "phone_number": "555"})
    assert [r["person_name"] for r in admin.get("/api/oncall").json()] == ["First", "Second"]

    for d in ("2024-01-10", "2024-04-01"):
        admin.post("/api/notices", json={"notice_date": d, "title": d, "text_content": "Roll call moved"})
    assert [r["notice_date"] for r in admin.get("/api/notices").json()] == ["2024-04-01", "2024-01-10"]


def test_missing_required_field_is_rejected_server_side(admin):
    resp = admin.post("/api/absences", json={**ABSENCE, "badge_number": "   "})
    assert resp.status_code == 422
    body = resp.json()
    assert body["kind"] == "ValidationError"
    assert "badge_number" in body["message"]

    resp = admin.post("/api/oncall", json={"department_name": "Patrol", "person_name": "X"})
    assert resp.status_code == 422
    assert "phone_number" in resp.json()["message"]
    assert admin.get("/api/oncall").json() == []


def test_empty_date_defaults_to_local_today(admin):
    admin.post("/api/notices", json={"notice_date": "", "title": "Range day", "text_content": "Bring ear protection"})
    admin.post("/api/absences", json={k: v for k, v in ABSENCE.items() if k != "absence_date"})
    today = today_local("America/Vancouver").isoformat()
    assert admin.get("/api/notices").json()[0]["notice_date"] == today
    assert admin.get("/api/absences").json()[0]["absence_date"] == today


def test_equipment_status_vocabulary_comes_from_config(make_settings, session_factory):
    from fastapi.testclient import TestClient
    from dispatch_board.main import create_app

    cfg = make_settings(EQUIPMENT_STATUSES="Broken,Fixed")
    admin = TestClient(create_app(cfg, session_factory=session_factory), cookies={"dispatch_session": "true"})

    resp = admin.post("/api/equipment", json=RADIO)
    assert resp.status_code == 422
    assert "Broken, Fixed" in resp.json()["message"]
    assert admin.post("/api/equipment", json={**RADIO, "status": "Broken"}).status_code == 201


def test_stale_version_is_a_conflict(admin):
    admin.post("/api/equipment", json=RADIO)
    row = admin.get("/api/equipment").json()[0]

    first = admin.put(f"/api/equipment/{row['id']}", json={**RADIO, "status": "Pending", "version": row["version"]})
    assert first.status_code == 200

    stale = admin.put(f"/api/equipment/{row['id']}", json={**RADIO, "status": "Repairing", "version": row["version"]})
    assert stale.status_code == 409
    assert stale.json()["kind"] == "ConflictError"
    assert admin.get("/api/equipment").json()[0]["status"] == "Pending"


def test_update_without_version_is_last_write_wins(admin):
    admin.post("/api/equipment", json=RADIO)
    row = admin.get("/api/equipment").json()[0]
    admin.put(f"/api/equipment/{row['id']}", json={**RADIO, "status": "Pending"})
    admin.put(f"/api/equipment/{row['id']}", json={**RADIO, "status": "Repairing"})
    assert admin.get("/api/equipment").json()[0]["status"] == "Repairing"


def test_writes_require_admin_session(client):
    resp = client.post("/api/equipment", json=RADIO)
    assert resp.status_code == 401
    assert resp.json()["kind"] == "AuthError"
    assert client.delete("/api/equipment/1").status_code == 401
    assert client.get("/api/equipment").json() == []


def test_absences_today_view(admin):
    today = today_local("America/Vancouver").isoformat()
    admin.post("/api/absences", json={**ABSENCE, "absence_date": today, "badge_number": "today"})
    admin.post("/api/absences", json={**ABSENCE, "absence_date": "2001-01-01", "badge_number": "old"})
    rows = admin.get("/api/absences/today").json()
    assert [r["badge_number"] for r in rows] == ["today"]


def test_malformed_requests_use_error_envelope(admin):
    resp = admin.post("/api/equipment", json=[RADIO])
    assert resp.status_code == 422
    assert resp.json()["kind"] == "ValidationError"
    assert "detail" not in resp.json()

    resp = admin.put("/api/equipment/not-a-number", json=RADIO)
    assert resp.status_code == 422
    body = resp.json()
    assert body["kind"] == "ValidationError"
    assert "record_id" in body["message"]

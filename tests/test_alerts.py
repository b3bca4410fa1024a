def _raise(admin, title, severity="High"):
    resp = admin.post("/api/alerts", json={"severity_level": severity, "title": title})
    assert resp.status_code == 201


def test_new_alerts_are_active_and_listed_newest_first(admin, client):
    _raise(admin, "Shelter in place", "Critical")
    _raise(admin, "Road closure on 5th", "Low")
    rows = client.get("/api/alerts").json()
    assert [r["title"] for r in rows] == ["Road closure on 5th", "Shelter in place"]
    assert all(r["active"] is True for r in rows)


def test_unknown_severity_is_rejected(admin):
    resp = admin.post("/api/alerts", json={"severity_level": "Apocalyptic", "title": "x"})
    assert resp.status_code == 422
    assert resp.json()["kind"] == "ValidationError"


def test_dismiss_flips_exactly_one_alert(admin, client):
    for title in ("A", "B", "C"):
        _raise(admin, title)
    rows = client.get("/api/alerts").json()
    target = next(r for r in rows if r["title"] == "B")

    assert admin.put(f"/api/alerts/{target['id']}/dismiss").status_code == 200

    active = client.get("/api/alerts").json()
    assert sorted(r["title"] for r in active) == ["A", "C"]

    history = {r["title"]: r for r in admin.get("/api/alerts/history").json()}
    assert history["B"]["active"] is False
    assert history["B"]["updated_by_email"] == "unknown"
    assert history["A"]["active"] is True and history["C"]["active"] is True


def test_dismiss_twice_is_harmless_and_missing_id_is_not_found(admin):
    _raise(admin, "Suspicious package")
    alert_id = admin.get("/api/alerts").json()[0]["id"]
    assert admin.put(f"/api/alerts/{alert_id}/dismiss").status_code == 200
    assert admin.put(f"/api/alerts/{alert_id}/dismiss").status_code == 200

    resp = admin.put("/api/alerts/9999/dismiss")
    assert resp.status_code == 404
    assert resp.json()["kind"] == "NotFoundError"


def test_clear_all_is_idempotent_and_keeps_history(admin, client):
    for title in ("One", "Two"):
        _raise(admin, title)

    assert admin.post("/api/alerts/clear").status_code == 200
    assert client.get("/api/alerts").json() == []

    assert admin.post("/api/alerts/clear").status_code == 200
    assert client.get("/api/alerts").json() == []

    history = admin.get("/api/alerts/history").json()
    assert len(history) == 2
    assert all(r["active"] is False for r in history)


def test_alerts_have_no_generic_update_or_delete(admin):
    _raise(admin, "Stay")
    alert_id = admin.get("/api/alerts").json()[0]["id"]
    assert admin.put(f"/api/alerts/{alert_id}", json={"severity_level": "Low", "title": "x"}).status_code in (404, 405)
    assert admin.delete(f"/api/alerts/{alert_id}").status_code in (404, 405)
    assert len(admin.get("/api/alerts").json()) == 1


def test_history_is_admin_only(client):
    assert client.get("/api/alerts/history").status_code == 401

from conftest import auth


# ---------------------------------------------------------------------------
# Manual assignment
# ---------------------------------------------------------------------------

def test_assign_shift_creates_slot_and_notifies(client, db, manager, er_staff):
    dan = er_staff[0]
    response = client.post("/api/shifts", headers=auth(manager), json={
        "date": "2025-05-10", "type": "24h", "staff_id": dan["id"]
    })

    assert response.status_code == 201
    shift = response.json()["shift"]
    assert shift["department"] == "Urgențe"
    assert shift["status"] == "assigned"
    assert (shift["start_time"], shift["end_time"]) == ("08:00", "08:00")

    notification = db.rows("notifications", user_id=dan["id"])[0]
    assert notification["type"] == "shift_assigned"
    assert db.rows("activities", type="shift_assigned")


def test_reassigning_a_slot_updates_it_in_place(client, db, manager, er_staff):
    for member in er_staff:
        client.post("/api/shifts", headers=auth(manager), json={"date": "2025-05-10", "staff_id": member["id"]})

    rows = db.rows("shifts", date="2025-05-10")
    assert len(rows) == 1
    assert rows[0]["staff_id"] == er_staff[1]["id"]


def test_staff_cannot_hold_two_shifts_on_a_date(client, db, manager, er_staff, hospital):
    dan = er_staff[0]
    db.add("shifts", date="2025-05-10", type="day", start_time="08:00", end_time="20:00", staff_id=dan["id"],
           hospital_id=hospital["id"], department="Urgențe", status="assigned")

    response = client.post("/api/shifts", headers=auth(manager), json={
        "date": "2025-05-10", "type": "night", "staff_id": dan["id"]
    })

    assert response.status_code == 409
    assert response.json()["error"] == "Staff member already has a shift on this date"


def test_assign_requires_manager(client, er_staff):
    response = client.post("/api/shifts", headers=auth(er_staff[0]), json={"date": "2025-05-10"})
    assert response.status_code == 403


def test_department_manager_cannot_assign_elsewhere(client, manager, ati_staff):
    response = client.post("/api/shifts", headers=auth(manager), json={
        "date": "2025-05-10", "department": "ATI", "staff_id": ati_staff[0]["id"]
    })
    assert response.status_code == 403


def test_list_month_with_names_and_reservations(client, db, manager, er_staff, hospital):
    dan, elena = er_staff
    db.add("shifts", date="2025-05-02", type="24h", staff_id=dan["id"], hospital_id=hospital["id"],
           department="Urgențe", status="assigned")
    db.add("shifts", date="2025-05-03", type="24h", staff_id=None, hospital_id=hospital["id"],
           department="Urgențe", status="open")
    db.add("shifts", date="2025-06-01", type="24h", staff_id=dan["id"], hospital_id=hospital["id"],
           department="Urgențe", status="assigned")
    db.add("shift_reservations", staff_id=elena["id"], hospital_id=hospital["id"], shift_date="2025-05-03",
           department="Urgențe")

    response = client.get("/api/shifts", params={"year": 2025, "month": 5}, headers=auth(manager))

    shifts = response.json()["shifts"]
    assert [s["date"] for s in shifts] == ["2025-05-02", "2025-05-03"]
    assert shifts[0]["staff_name"] == "Dr. Dan"
    assert shifts[1]["reserved_by_name"] == "Dr. Elena"


def test_unassign_and_delete(client, db, manager, er_staff, hospital):
    shift = db.add("shifts", date="2025-05-02", type="24h", staff_id=er_staff[0]["id"],
                   hospital_id=hospital["id"], department="Urgențe", status="assigned")

    response = client.post(f"/api/shifts/{shift['id']}/unassign", headers=auth(manager))
    assert response.json()["shift"]["status"] == "open"
    assert response.json()["shift"]["staff_id"] is None

    response = client.delete(f"/api/shifts/{shift['id']}", headers=auth(manager))
    assert response.status_code == 200
    assert not db.rows("shifts", id=shift["id"])


def test_clear_month_is_scoped_to_manager_department(client, db, manager, hospital):
    for department in ("Urgențe", "ATI"):
        db.add("shifts", date="2025-05-02", type="24h", hospital_id=hospital["id"], department=department)
    db.add("shifts", date="2025-06-02", type="24h", hospital_id=hospital["id"], department="Urgențe")

    response = client.post("/api/shifts/clear", headers=auth(manager), json={"year": 2025, "month": 5})

    assert response.json()["deleted"] == 1
    assert [s["department"] for s in db.rows("shifts")] == ["ATI", "Urgențe"]


def test_list_rejects_bad_ranges(client, manager):
    assert client.get("/api/shifts", params={"year": 0}, headers=auth(manager)).status_code == 400
    response = client.get("/api/shifts", headers=auth(manager),
                          params={"start_date": "2025-05-10", "end_date": "2025-05-01"})
    assert response.status_code == 400
    assert response.json()["error"] == "start_date must not be after end_date"


def test_clear_refused_for_unknown_manager_department(client, db, hospital):
    cardio = db.add("staff", name="Dr. Cardio", role="manager", hospital_id=hospital["id"], department="Cardiologie")
    db.add("shifts", date="2025-05-02", type="24h", hospital_id=hospital["id"], department="ATI")

    response = client.post("/api/shifts/clear", headers=auth(cardio), json={"year": 2025, "month": 5})

    assert response.status_code == 403
    assert len(db.rows("shifts")) == 1


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

def test_generate_month_for_department(client, db, admin, ati_staff, hospital):
    db.add("staff_unavailability", staff_id=ati_staff[0]["id"], hospital_id=hospital["id"], date="2025-02-01")

    response = client.post("/api/shifts/generate", headers=auth(admin), json={
        "hospital_id": hospital["id"], "department": "ATI", "year": 2025, "month": 2
    })

    assert response.status_code == 200
    body = response.json()
    assert body["stats"]["generated"] == 28
    assert body["stats"]["open"] == 0
    assert body["saved"] == 28

    rows = db.rows("shifts", department="ATI")
    assert len(rows) == 28
    first_day = [r for r in rows if r["date"] == "2025-02-01"][0]
    assert first_day["staff_id"] != ati_staff[0]["id"]

    totals = sorted(stat["total"] for stat in body["fairness"]["staff"].values())
    assert totals[-1] - totals[0] <= 1
    assert db.rows("activities", type="schedule_generated")


def test_generate_dry_run_saves_nothing(client, db, admin, ati_staff, hospital):
    response = client.post("/api/shifts/generate", headers=auth(admin), json={
        "hospital_id": hospital["id"], "department": "ATI",
        "start_date": "2025-02-01", "end_date": "2025-02-07", "dry_run": True
    })

    assert response.json()["stats"]["generated"] == 7
    assert db.rows("shifts") == []


def test_generate_fills_existing_open_slots(client, db, admin, ati_staff, hospital):
    db.add("shifts", date="2025-02-01", type="24h", staff_id=None, hospital_id=hospital["id"],
           department="ATI", status="open")

    client.post("/api/shifts/generate", headers=auth(admin), json={
        "hospital_id": hospital["id"], "department": "ATI",
        "start_date": "2025-02-01", "end_date": "2025-02-02"
    })

    rows = db.rows("shifts", date="2025-02-01")
    assert len(rows) == 1
    assert rows[0]["staff_id"] is not None


def test_generate_uses_department_shift_type(client, db, admin, hospital):
    db.tables["hospitals"][0]["department_rules"] = {"Laborator": {"enabled": True, "shift_type": "12h"}}
    db.add("staff", name="Maria", role="staff", hospital_id=hospital["id"], specialization="laborator")

    response = client.post("/api/shifts/generate", headers=auth(admin), json={
        "hospital_id": hospital["id"], "department": "Laborator",
        "start_date": "2025-02-03", "end_date": "2025-02-03"
    })

    assert response.json()["shifts"][0]["type"] == "12h"


def test_disabled_department_generates_nothing(client, db, admin, ati_staff, hospital):
    db.tables["hospitals"][0]["department_rules"] = {"ATI": {"enabled": False}}

    response = client.post("/api/shifts/generate", headers=auth(admin), json={
        "hospital_id": hospital["id"], "department": "ATI", "year": 2025, "month": 2
    })

    assert response.status_code == 200
    assert response.json()["shifts"] == []
    assert db.rows("shifts") == []


def test_generate_failure_leaves_schedule_untouched(client, db, admin, ati_staff, hospital):
    db.fail_next("shifts", "upsert")

    response = client.post("/api/shifts/generate", headers=auth(admin), json={
        "hospital_id": hospital["id"], "department": "ATI", "year": 2025, "month": 2
    })

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert db.rows("shifts") == []


def test_staff_need_generation_permission(client, db, manager, er_staff):
    dan = er_staff[0]
    request = {"department": "Urgențe", "start_date": "2025-02-01", "end_date": "2025-02-02"}

    assert client.post("/api/shifts/generate", headers=auth(dan), json=request).status_code == 403

    granted = client.post("/api/shifts/permissions", headers=auth(manager), json={
        "staff_id": dan["id"], "department": "Urgențe"
    })
    assert granted.status_code == 201

    assert client.post("/api/shifts/generate", headers=auth(dan), json=request).status_code == 200

    listed = client.get("/api/shifts/permissions", headers=auth(manager)).json()["permissions"]
    assert listed[0]["staff_name"] == "Dr. Dan"

    client.delete("/api/shifts/permissions", headers=auth(manager),
                  params={"staff_id": dan["id"], "department": "Urgențe"})
    assert client.post("/api/shifts/generate", headers=auth(dan), json=request).status_code == 403


def test_generate_requires_a_range(client, admin, hospital):
    response = client.post("/api/shifts/generate", headers=auth(admin), json={
        "hospital_id": hospital["id"], "department": "ATI"
    })
    assert response.status_code == 400

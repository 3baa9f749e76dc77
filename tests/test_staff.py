from datetime import date, timedelta

from services.auth_service import hash_secret
from conftest import auth


def test_list_staff_hides_passwords(client, manager, er_staff, ati_staff):
    response = client.get("/api/staff", headers=auth(manager))

    assert response.status_code == 200
    staff = response.json()["staff"]
    assert len(staff) == 6
    assert all("password" not in member for member in staff)


def test_list_staff_by_department(client, manager, er_staff, ati_staff):
    response = client.get("/api/staff", params={"department": "ATI"}, headers=auth(manager))
    assert sorted(s["name"] for s in response.json()["staff"]) == ["Dr. Ana", "Dr. Bogdan", "Dr. Carmen"]


def test_staff_cannot_see_another_hospital(client, er_staff, other_hospital):
    response = client.get("/api/staff", params={"hospital_id": other_hospital["id"]}, headers=auth(er_staff[0]))
    assert response.status_code == 403


def test_manager_creates_staff_in_own_department(client, db, manager):
    response = client.post("/api/staff", headers=auth(manager), json={
        "name": "Dr. Nou",
        "email": "nou@test.ro",
        "specialization": "UPA",
        "password": "secret123"
    })

    assert response.status_code == 201
    created = response.json()["staff"]
    assert created["department"] == "Urgențe"
    assert created["hospital_id"] == manager["hospital_id"]
    assert "password" not in created
    assert db.rows("staff", id=created["id"])[0]["password"].startswith("$2")
    assert db.rows("activities", type="staff_created")


def test_department_manager_cannot_create_outside_department(client, manager):
    response = client.post("/api/staff", headers=auth(manager), json={"name": "Dr. X", "department": "ATI"})

    assert response.status_code == 403
    assert response.json()["error"] == "Managers can only add to their own department"


def test_duplicate_email_conflicts(client, manager, er_staff):
    response = client.post("/api/staff", headers=auth(manager), json={
        "name": "Dr. Copie", "email": "dan@test.ro", "department": "Urgențe"
    })
    assert response.status_code == 409


def test_invalid_department_is_rejected(client, admin):
    response = client.post("/api/staff", headers=auth(admin), json={"name": "Dr. X", "department": "Cardiologie"})
    assert response.status_code == 400


def test_staff_cannot_create_staff(client, er_staff):
    response = client.post("/api/staff", headers=auth(er_staff[0]), json={"name": "Dr. X"})
    assert response.status_code == 403


def test_department_manager_cannot_edit_outside_department(client, manager, ati_staff):
    response = client.put(f"/api/staff/{ati_staff[0]['id']}", headers=auth(manager), json={"name": "Renamed"})

    assert response.status_code == 403
    assert response.json()["error"] == "Managers can only edit users in their department"


def test_manager_updates_staff_and_records_changes(client, db, manager, er_staff):
    response = client.put(f"/api/staff/{er_staff[0]['id']}", headers=auth(manager), json={"name": "Dr. Dan Pop"})

    assert response.status_code == 200
    assert response.json()["staff"]["name"] == "Dr. Dan Pop"
    activity = db.rows("activities", type="staff_updated")[0]
    assert activity["metadata"]["changed_fields"]["name"] == {"old": "Dr. Dan", "new": "Dr. Dan Pop"}


def test_deactivate_refused_with_future_shifts(client, db, manager, er_staff, hospital):
    dan = er_staff[0]
    db.add("shifts", date=(date.today() + timedelta(days=3)).isoformat(), type="24h", staff_id=dan["id"],
           hospital_id=hospital["id"], department="Urgențe", status="assigned")

    response = client.delete(f"/api/staff/{dan['id']}", headers=auth(manager))

    assert response.status_code == 400
    assert db.rows("staff", id=dan["id"])[0]["is_active"] is True


def test_deactivate_staff(client, db, manager, er_staff):
    response = client.delete(f"/api/staff/{er_staff[1]['id']}", headers=auth(manager))

    assert response.status_code == 200
    assert db.rows("staff", id=er_staff[1]["id"])[0]["is_active"] is False
    listed = client.get("/api/staff", headers=auth(manager)).json()["staff"]
    assert er_staff[1]["id"] not in [s["id"] for s in listed]


def test_cannot_delete_yourself(client, admin):
    response = client.delete(f"/api/staff/{admin['id']}", headers=auth(admin))
    assert response.status_code == 403


def test_manager_with_unknown_department_is_not_hospital_wide(client, db, hospital, ati_staff):
    db.add("staff", name="Dr. Cardio", email="cardio@test.ro", password=hash_secret("cardio123"),
           role="manager", hospital_id=hospital["id"], department="Cardiologie")
    login = client.post("/api/auth/login", json={"email": "cardio@test.ro", "password": "cardio123"})
    assert login.json()["user"]["department"] == "Cardiologie"
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    response = client.put(f"/api/staff/{ati_staff[0]['id']}", headers=headers, json={"name": "Renamed"})

    assert response.status_code == 403
    assert db.rows("staff", id=ati_staff[0]["id"])[0]["name"] == "Dr. Ana"

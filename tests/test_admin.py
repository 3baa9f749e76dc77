from datetime import date

from services.auth_service import verify_secret
from conftest import auth


# ---------------------------------------------------------------------------
# Access codes
# ---------------------------------------------------------------------------

def test_manager_issues_staff_code_that_logs_in(client, db, manager, er_staff):
    response = client.post("/api/admin/access-codes", headers=auth(manager), json={
        "role": "staff", "staff_id": er_staff[0]["id"]
    })

    assert response.status_code == 201
    code = response.json()["code"]
    stored = db.rows("access_codes")[0]
    assert stored["code_hash"] != code
    assert verify_secret(code, stored["code_hash"])

    login = client.post("/api/auth/access-code", json={"access_code": code})
    assert login.json()["user"]["id"] == er_staff[0]["id"]


def test_only_admins_issue_manager_codes(client, manager, admin):
    assert client.post("/api/admin/access-codes", headers=auth(manager), json={"role": "manager"}).status_code == 403

    response = client.post("/api/admin/access-codes", headers=auth(admin), json={"role": "manager"})
    assert response.status_code == 201
    assert len(response.json()["code"]) == 6


def test_staff_cannot_manage_codes(client, er_staff):
    assert client.get("/api/admin/access-codes", headers=auth(er_staff[0])).status_code == 403


def test_list_hides_codes_and_revoke(client, db, manager):
    client.post("/api/admin/access-codes", headers=auth(manager), json={"role": "staff"})

    codes = client.get("/api/admin/access-codes", headers=auth(manager)).json()["codes"]
    assert codes[0]["code"] == "[HIDDEN]"
    assert "code_hash" not in codes[0]

    response = client.delete(f"/api/admin/access-codes/{codes[0]['id']}", headers=auth(manager))
    assert response.status_code == 200
    assert db.rows("access_codes")[0]["is_active"] is False
    assert client.delete("/api/admin/access-codes/999", headers=auth(manager)).status_code == 404


# ---------------------------------------------------------------------------
# Hospitals
# ---------------------------------------------------------------------------

def test_admin_manages_hospitals(client, db, admin):
    created = client.post("/api/hospitals", headers=auth(admin), json={
        "name": "Spitalul Nou",
        "city": "Brașov",
        "department_rules": {"Laborator": {"enabled": True, "shift_type": "12h"}}
    })
    assert created.status_code == 201
    hospital_id = created.json()["hospital"]["id"]
    assert db.rows("hospitals", id=hospital_id)[0]["department_rules"]["Laborator"]["shift_type"] == "12h"
    assert db.rows("activities", type="hospital_created")

    updated = client.put(f"/api/hospitals/{hospital_id}", headers=auth(admin), json={"city": "Sibiu"})
    assert updated.json()["hospital"]["city"] == "Sibiu"

    listed = client.get("/api/hospitals", headers=auth(admin)).json()["hospitals"]
    assert len(listed) == 2

    assert client.delete(f"/api/hospitals/{hospital_id}", headers=auth(admin)).status_code == 200
    assert client.get(f"/api/hospitals/{hospital_id}", headers=auth(admin)).status_code == 404


def test_unknown_department_rule_is_rejected(client, admin):
    response = client.post("/api/hospitals", headers=auth(admin), json={
        "name": "X", "department_rules": {"Cardiologie": {"enabled": True}}
    })
    assert response.status_code == 400


def test_hospital_details_and_tenancy(client, manager, er_staff, ati_staff, other_hospital, hospital):
    details = client.get(f"/api/hospitals/{hospital['id']}", headers=auth(manager)).json()["hospital"]
    assert details["staff_count"] == 6
    assert details["departments"] == ["ATI", "Urgențe"]

    assert client.get(f"/api/hospitals/{other_hospital['id']}", headers=auth(manager)).status_code == 403
    assert [h["id"] for h in client.get("/api/hospitals", headers=auth(manager)).json()["hospitals"]] == [hospital["id"]]
    assert client.post("/api/hospitals", headers=auth(manager), json={"name": "X"}).status_code == 403


# ---------------------------------------------------------------------------
# Unavailability and activities
# ---------------------------------------------------------------------------

def test_mark_and_unmark_unavailability(client, db, er_staff):
    dan = er_staff[0]
    response = client.post("/api/unavailability", headers=auth(dan), json={"date": "2025-05-10", "reason": "Congres"})
    assert response.status_code == 201
    assert client.post("/api/unavailability", headers=auth(dan), json={"date": "2025-05-10"}).status_code == 409

    listed = client.get("/api/unavailability", params={"staff_id": dan["id"]}, headers=auth(dan)).json()
    assert [r["date"] for r in listed["unavailability"]] == ["2025-05-10"]

    assert client.delete("/api/unavailability", params={"date": "2025-05-10"}, headers=auth(dan)).status_code == 200
    assert db.rows("staff_unavailability") == []


def test_staff_cannot_mark_colleague_unavailable(client, er_staff):
    response = client.post("/api/unavailability", headers=auth(er_staff[0]), json={
        "date": date.today().isoformat(), "staff_id": er_staff[1]["id"]
    })
    assert response.status_code == 403


def test_recent_activities_with_user_names(client, db, manager, hospital):
    db.add("activities", user_id=manager["id"], hospital_id=hospital["id"], type="login", description="in")

    activities = client.get("/api/activities", headers=auth(manager)).json()["activities"]

    assert activities[0]["user_name"] == "Dr. Manager"


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------

def test_db_check(client, admin):
    body = client.get("/api/db/check", headers=auth(admin)).json()

    assert body["success"] is True
    assert body["tables"]["shift_swaps"] == "ok"


def test_db_check_requires_admin(client, manager):
    assert client.get("/api/db/check", headers=auth(manager)).status_code == 403


def test_health_and_root(client, db):
    assert client.get("/").json()["status"] == "running"
    assert client.get("/health").json()["database"] == "connected"


def test_manage_schema_command(capsys):
    import manage

    assert manage.main(["schema"]) == 0
    assert "CREATE TABLE IF NOT EXISTS shift_swaps" in capsys.readouterr().out


def test_manage_verify_schema(db, capsys):
    import manage

    assert manage.main(["verify-schema"]) == 0
    assert "Schema OK" in capsys.readouterr().out


def test_routers_mounted_with_api_prefixes(client):
    paths = {route.path for route in client.app.routes}

    assert {
        "/api/auth/login",
        "/api/hospitals/{hospital_id}",
        "/api/staff",
        "/api/shifts/permissions",
        "/api/swaps/{swap_id}/reject",
        "/api/db/check",
        "/api/admin/access-codes/{code_id}",
    } <= paths

import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, List
from database.supabase_client import get_supabase
from services.auth_service import hash_secret
from services.access_code_service import AccessCodeService
from services.hospitals_service import HospitalsService

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "database" / "schema.sql"

REQUIRED_TABLES = [
    "hospitals",
    "staff",
    "shifts",
    "shift_reservations",
    "shift_swaps",
    "staff_unavailability",
    "notifications",
    "activities",
    "access_codes",
    "shift_generation_permissions",
]

DEMO_HOSPITAL = {
    "name": "Spitalul Clinic Județean de Urgență Demo",
    "city": "Cluj-Napoca",
    "department_rules": {
        "ATI": {"enabled": True, "shift_type": "24h"},
        "Urgențe": {"enabled": True, "shift_type": "24h"},
        "Laborator": {"enabled": True, "shift_type": "12h"},
        "Medicină Internă": {"enabled": True, "shift_type": "24h"},
        "Chirurgie": {"enabled": True, "shift_type": "24h"},
    },
}

DEMO_STAFF = [
    {"name": "Dr. Ana Popescu", "type": "medic", "department": "Urgențe", "role": "manager"},
    {"name": "Dr. Mihai Ionescu", "type": "medic", "department": "Urgențe", "role": "staff"},
    {"name": "Dr. Elena Dumitrescu", "type": "medic", "department": "Urgențe", "role": "staff"},
    {"name": "Dr. Andrei Stan", "type": "medic", "department": "Urgențe", "role": "staff"},
    {"name": "Dr. Ioana Marin", "type": "medic", "department": "ATI", "role": "staff"},
    {"name": "Dr. Radu Georgescu", "type": "medic", "department": "ATI", "role": "staff"},
    {"name": "Dr. Cristina Pavel", "type": "medic", "department": "ATI", "role": "staff"},
    {"name": "Maria Vasile", "type": "biolog", "department": "Laborator", "role": "staff"},
    {"name": "Dan Toma", "type": "chimist", "department": "Laborator", "role": "staff"},
]


def read_schema() -> str:
    return SCHEMA_PATH.read_text(encoding="utf-8")


def check_tables() -> Dict[str, Any]:
    """Try a one-row read on every table the API needs"""
    supabase = get_supabase()
    tables = {}

    for table in REQUIRED_TABLES:
        try:
            supabase.table(table).select("id").limit(1).execute()
            tables[table] = "ok"
        except Exception as e:
            logger.error(f"Table check failed for {table}: {e}")
            tables[table] = f"error: {e}"

    return {
        "healthy": all(state == "ok" for state in tables.values()),
        "tables": tables,
        "timestamp": datetime.utcnow().isoformat()
    }


async def seed_demo_data(admin_email: str, admin_password: str) -> Dict[str, Any]:
    """
    Create a demo hospital with an admin, a department manager and staff.

    Returns the created hospital, the staff ids and one fresh access code
    per role. Re-running creates another demo hospital; the admin is
    only created once.
    """
    supabase = get_supabase()

    hospital = await HospitalsService().create_hospital(DEMO_HOSPITAL)
    hospital_id = hospital["id"]
    logger.info(f"Seeded hospital {hospital_id}")

    existing_admin = supabase.table("staff").select("id").eq("email", admin_email).execute()
    if not existing_admin.data:
        supabase.table("staff").insert({
            "name": "Administrator",
            "email": admin_email,
            "password": hash_secret(admin_password),
            "role": "admin",
            "type": "medic",
            "hospital_id": hospital_id,
            "is_active": True
        }).execute()

    rows: List[Dict[str, Any]] = [
        {**member, "hospital_id": hospital_id, "specialization": member["department"], "is_active": True}
        for member in DEMO_STAFF
    ]
    staff = supabase.table("staff").insert(rows).execute().data or []

    codes = AccessCodeService()
    return {
        "hospital": hospital,
        "staff_ids": [s["id"] for s in staff],
        "codes": {
            "manager": await codes.generate_access_code(hospital_id, "manager"),
            "staff": await codes.generate_access_code(hospital_id, "staff"),
        }
    }

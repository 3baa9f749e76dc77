import logging
import secrets
import string
from datetime import datetime
from typing import Optional, Dict, Any, List
from database.supabase_client import get_supabase
from services.auth_service import hash_secret, verify_secret
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

STAFF_CODE_LETTERS = 2
MANAGER_CODE_LENGTH = 6
MANAGER_CODE_ALPHABET = string.ascii_lowercase + string.digits


def mask_code(code: str) -> str:
    return code[:2] + "***"


def make_access_code(role: str) -> str:
    """
    Staff codes are two letters and a digit ("gt5"); manager codes are six
    lowercase alphanumerics ("a7k9m3").
    """
    if role == "staff":
        letters = "".join(secrets.choice(string.ascii_lowercase) for _ in range(STAFF_CODE_LETTERS))
        return f"{letters}{secrets.choice(string.digits)}"
    if role == "manager":
        return "".join(secrets.choice(MANAGER_CODE_ALPHABET) for _ in range(MANAGER_CODE_LENGTH))
    raise ValidationError(f"Access codes cannot be issued for role: {role}")


class AccessCodeService:
    def __init__(self):
        self.supabase = get_supabase()

    async def generate_access_code(
        self,
        hospital_id: int,
        role: str,
        staff_id: Optional[int] = None,
        expires_at: Optional[datetime] = None
    ) -> str:
        """Create a code, store only its hash and return the plain code once"""
        code = make_access_code(role)

        try:
            self.supabase.table("access_codes").insert({
                "code_hash": hash_secret(code),
                "hospital_id": hospital_id,
                "role": role,
                "staff_id": staff_id,
                "expires_at": expires_at.isoformat() if expires_at else None,
                "is_active": True
            }).execute()

            logger.info(f"Access code generated for hospital {hospital_id} role {role}: {mask_code(code)}")
            return code

        except Exception as e:
            logger.error(f"Generate access code error: {e}")
            raise e

    async def _active_codes(self) -> List[Dict[str, Any]]:
        result = self.supabase.table("access_codes") \
            .select("*") \
            .eq("is_active", True) \
            .execute()

        now = datetime.utcnow().isoformat()
        return [c for c in result.data or [] if not c.get("expires_at") or str(c["expires_at"]) > now]

    async def authenticate_with_code(self, access_code: str) -> Optional[Dict[str, Any]]:
        """
        Resolve an access code to the user it logs in.

        Staff-bound codes resolve to that staff member. Role codes resolve
        to the earliest created active staff member with that role in the
        code's hospital. Returns None when nothing matches.
        """
        code = (access_code or "").strip()
        if not code:
            return None

        for stored in await self._active_codes():
            if not verify_secret(code, stored["code_hash"]):
                continue

            if stored.get("staff_id"):
                users = self.supabase.table("staff") \
                    .select("*") \
                    .eq("id", stored["staff_id"]) \
                    .eq("is_active", True) \
                    .execute()
            else:
                users = self.supabase.table("staff") \
                    .select("*") \
                    .eq("hospital_id", stored["hospital_id"]) \
                    .eq("role", stored["role"]) \
                    .eq("is_active", True) \
                    .order("created_at") \
                    .limit(1) \
                    .execute()

            if not users.data:
                logger.warning(f"Access code {stored['id']} matched but no active user found")
                return None

            return users.data[0]

        logger.warning(f"Invalid access code attempt: {mask_code(code)}")
        return None

    async def list_hospital_codes(self, hospital_id: int) -> List[Dict[str, Any]]:
        """Codes for a hospital without their hashes"""
        result = self.supabase.table("access_codes") \
            .select("id, hospital_id, role, staff_id, is_active, expires_at, created_at") \
            .eq("hospital_id", hospital_id) \
            .order("created_at", desc=True) \
            .execute()

        codes = result.data or []
        staff_ids = list({c["staff_id"] for c in codes if c.get("staff_id")})
        names = {}
        if staff_ids:
            staff = self.supabase.table("staff").select("id, name").in_("id", staff_ids).execute()
            names = {s["id"]: s["name"] for s in staff.data or []}

        return [{**c, "code": "[HIDDEN]", "staff_name": names.get(c.get("staff_id"))} for c in codes]

    async def get_code(self, code_id: int) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("access_codes") \
            .select("id, hospital_id, role, staff_id, is_active") \
            .eq("id", code_id) \
            .execute()

        if result.data and len(result.data) > 0:
            return result.data[0]
        return None

    async def revoke_access_code(self, code_id: int) -> Dict[str, Any]:
        existing = await self.get_code(code_id)
        if not existing:
            raise NotFoundError("Access code not found")

        result = self.supabase.table("access_codes") \
            .update({"is_active": False, "updated_at": datetime.utcnow().isoformat()}) \
            .eq("id", code_id) \
            .execute()

        logger.info(f"Access code revoked: {code_id}")
        return result.data[0] if result.data else {**existing, "is_active": False}

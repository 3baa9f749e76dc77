import logging
from datetime import datetime
from typing import Dict, Any, Optional, List
from database.supabase_client import get_supabase

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = [
    "login",
    "logout",
    "shift_assigned",
    "shift_swapped",
    "shift_reserved",
    "staff_created",
    "staff_updated",
    "hospital_created",
    "schedule_generated",
]


async def log_activity(
    user_id: Optional[int],
    hospital_id: Optional[int],
    activity_type: str,
    description: str,
    metadata: Optional[Dict[str, Any]] = None
):
    """Log an activity. Never fails the calling operation."""
    try:
        supabase = get_supabase()

        entry = {
            "user_id": user_id,
            "hospital_id": hospital_id,
            "type": activity_type,
            "description": description,
            "metadata": metadata or {},
            "created_at": datetime.utcnow().isoformat()
        }

        result = supabase.table("activities").insert(entry).execute()
        logger.info(f"Activity logged: {activity_type} by {user_id}")

        return result.data

    except Exception as e:
        logger.error(f"Failed to log activity: {e}")
        return None


async def get_recent_activities(hospital_id: Optional[int], limit: int = 10) -> List[Dict[str, Any]]:
    """Most recent activities, newest first, with the acting user's name"""
    supabase = get_supabase()

    query = supabase.table("activities").select("*")
    if hospital_id is not None:
        query = query.eq("hospital_id", hospital_id)
    result = query.order("created_at", desc=True).limit(limit).execute()
    activities = result.data or []

    user_ids = list({a["user_id"] for a in activities if a.get("user_id") is not None})
    names = {}
    if user_ids:
        staff = supabase.table("staff").select("id, name").in_("id", user_ids).execute()
        names = {s["id"]: s["name"] for s in staff.data or []}

    for activity in activities:
        activity["user_name"] = names.get(activity.get("user_id"))

    return activities

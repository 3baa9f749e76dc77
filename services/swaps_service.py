import logging
from datetime import datetime
from typing import Optional, Dict, Any, List
from database.supabase_client import get_supabase
from models.departments import staff_department
from services.activity_service import log_activity
from services.notifications_service import NotificationsService
from services.shifts_service import ShiftsService
from services.permissions import (
    can_manage_staff_member,
    check_can_approve_swap,
    check_can_reject_swap,
    ensure
)
from services.errors import NotFoundError, ValidationError, ConflictError, PermissionDeniedError

logger = logging.getLogger(__name__)

SWAP_STATUSES = ["pending", "approved", "rejected", "cancelled"]


class SwapsService:
    """
    Shift swap requests.

    A swap starts ``pending`` and ends in exactly one of ``approved``,
    ``rejected`` or ``cancelled``. Every transition is a conditional update
    on ``status = 'pending'``, so two reviewers racing on the same request
    cannot both win.
    """

    def __init__(self):
        self.supabase = get_supabase()
        self.notifications = NotificationsService()

    async def _staff(self, staff_id: int) -> Optional[Dict[str, Any]]:
        result = self.supabase.table("staff") \
            .select("id, name, role, hospital_id, department, specialization, is_active") \
            .eq("id", staff_id) \
            .execute()
        return result.data[0] if result.data else None

    async def get_swap(self, swap_id: int) -> Optional[Dict[str, Any]]:
        try:
            result = self.supabase.table("shift_swaps") \
                .select("*") \
                .eq("id", swap_id) \
                .execute()

            if result.data and len(result.data) > 0:
                return result.data[0]
            return None

        except Exception as e:
            logger.error(f"Get swap error: {e}")
            raise e

    async def get_swaps(
        self,
        hospital_id: int,
        status: Optional[str] = "pending",
        staff_id: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Swap requests of a hospital, newest first, with shift and staff details"""
        try:
            query = self.supabase.table("shift_swaps") \
                .select("*") \
                .eq("hospital_id", hospital_id)

            if status:
                query = query.eq("status", status)

            swaps = query.order("created_at", desc=True).execute().data or []

            if staff_id:
                swaps = [s for s in swaps if staff_id in (s["from_staff_id"], s.get("to_staff_id"))]

            if not swaps:
                return []

            shift_ids = list({s["shift_id"] for s in swaps})
            shifts = self.supabase.table("shifts") \
                .select("id, date, type, department") \
                .in_("id", shift_ids) \
                .execute().data or []
            shifts_by_id = {s["id"]: s for s in shifts}

            staff_ids = list({s["from_staff_id"] for s in swaps} | {s["to_staff_id"] for s in swaps if s.get("to_staff_id")})
            staff = self.supabase.table("staff").select("id, name").in_("id", staff_ids).execute().data or []
            names = {s["id"]: s["name"] for s in staff}

            for swap in swaps:
                shift = shifts_by_id.get(swap["shift_id"], {})
                swap["shift_date"] = shift.get("date")
                swap["shift_type"] = shift.get("type")
                swap["department"] = shift.get("department")
                swap["from_staff_name"] = names.get(swap["from_staff_id"])
                swap["to_staff_name"] = names.get(swap.get("to_staff_id"))

            return swaps

        except Exception as e:
            logger.error(f"Get swaps error: {e}")
            raise e

    async def create_swap(
        self,
        current_user: Dict[str, Any],
        shift_id: int,
        reason: str,
        from_staff_id: Optional[int] = None,
        to_staff_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Ask for a shift to be handed over, to a named colleague or to anyone"""
        from_staff_id = from_staff_id or current_user["staff_id"]
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Missing required fields")

        shift = await ShiftsService().get_shift_by_id(shift_id)
        if not shift:
            raise NotFoundError("Shift not found")
        hospital_id = shift["hospital_id"]

        requester = await self._staff(from_staff_id)
        if not requester or requester["hospital_id"] != hospital_id:
            raise NotFoundError("Staff member not found in this hospital")

        if from_staff_id != current_user["staff_id"] and not can_manage_staff_member(
            current_user, requester, staff_department(requester)
        ):
            raise PermissionDeniedError("You can only request swaps for your own shifts")

        if shift.get("staff_id") != from_staff_id:
            raise ValidationError("Shift is not assigned to the requesting staff member")

        if to_staff_id is not None:
            if to_staff_id == from_staff_id:
                raise ValidationError("Cannot swap a shift with yourself")
            target = await self._staff(to_staff_id)
            if not target or target["hospital_id"] != hospital_id or not target.get("is_active", True):
                raise NotFoundError("Target staff member not found in this hospital")
            if await ShiftsService().staff_shift_on(to_staff_id, str(shift["date"])[:10]):
                raise ConflictError("Target staff member already works on this date")

        pending = self.supabase.table("shift_swaps") \
            .select("id") \
            .eq("shift_id", shift_id) \
            .eq("status", "pending") \
            .execute()
        if pending.data:
            raise ConflictError("A swap request for this shift is already pending")

        try:
            result = self.supabase.table("shift_swaps").insert({
                "from_staff_id": from_staff_id,
                "to_staff_id": to_staff_id,
                "shift_id": shift_id,
                "hospital_id": hospital_id,
                "reason": reason,
                "status": "pending"
            }).execute()

            if not result.data:
                raise Exception("Insert returned no data")
            swap = result.data[0]

        except Exception as e:
            logger.error(f"Create swap error: {e}")
            raise e

        shift_date = str(shift["date"])[:10]
        if to_staff_id is not None:
            await self.notifications.notify_swap_request(to_staff_id, requester["name"], shift_date, swap["id"])
        else:
            managers = self.supabase.table("staff") \
                .select("id") \
                .eq("hospital_id", hospital_id) \
                .eq("role", "manager") \
                .eq("is_active", True) \
                .execute()
            for manager in managers.data or []:
                await self.notifications.notify_swap_request(manager["id"], requester["name"], shift_date, swap["id"])

        logger.info(f"Swap {swap['id']} requested for shift {shift_id} by staff {from_staff_id}")
        return swap

    async def _transition(self, swap_id: int, new_status: str, fields: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Move a pending swap to ``new_status``; 409 when it is no longer pending"""
        result = self.supabase.table("shift_swaps") \
            .update({"status": new_status, **(fields or {})}) \
            .eq("id", swap_id) \
            .eq("status", "pending") \
            .execute()

        if not result.data:
            raise ConflictError("Swap request is no longer pending")
        return result.data[0]

    async def _load_pending(self, swap_id: int):
        swap = await self.get_swap(swap_id)
        if not swap:
            raise NotFoundError("Swap request not found")
        if swap["status"] != "pending":
            raise ConflictError(f"Swap request is already {swap['status']}")

        shift = await ShiftsService().get_shift_by_id(swap["shift_id"])
        if not shift:
            raise NotFoundError("Shift not found")
        return swap, shift

    async def approve_swap(
        self,
        current_user: Dict[str, Any],
        swap_id: int,
        review_comment: Optional[str] = None,
        cover_staff_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Approve a pending swap and move the shift.

        With a target the shift goes to the target. An open request goes to
        ``cover_staff_id`` when given, otherwise the shift is released.
        """
        swap, shift = await self._load_pending(swap_id)
        ensure(check_can_approve_swap(current_user, swap, shift.get("department")))
        if shift.get("staff_id") != swap["from_staff_id"]:
            raise ConflictError("Shift is no longer held by the requester")

        new_staff_id = swap.get("to_staff_id") or cover_staff_id
        shift_date = str(shift["date"])[:10]
        shifts = ShiftsService()

        if new_staff_id is not None:
            if new_staff_id == swap["from_staff_id"]:
                raise ValidationError("Covering staff must differ from the requester")
            covering = await self._staff(new_staff_id)
            if not covering or covering["hospital_id"] != shift["hospital_id"] or not covering.get("is_active", True):
                raise NotFoundError("Covering staff member not found in this hospital")
            if await shifts.staff_shift_on(new_staff_id, shift_date, exclude_shift_id=shift["id"]):
                raise ConflictError("Covering staff member already works on this date")

        approved = await self._transition(swap_id, "approved", {
            "to_staff_id": new_staff_id,
            "reviewed_by": current_user["staff_id"],
            "review_comment": review_comment,
            "reviewed_at": datetime.utcnow().isoformat()
        })

        try:
            updated = await shifts.reassign_shift(shift["id"], new_staff_id, current_staff_id=swap["from_staff_id"])
            if not updated:
                raise ConflictError("Shift is no longer held by the requester")
        except Exception as e:
            logger.error(f"Swap {swap_id} approval failed while moving the shift: {e}")
            self.supabase.table("shift_swaps") \
                .update({"status": "pending", "to_staff_id": swap.get("to_staff_id"), "reviewed_by": None,
                         "review_comment": None, "reviewed_at": None}) \
                .eq("id", swap_id) \
                .execute()
            raise e

        await self.notifications.notify_swap_decision(swap["from_staff_id"], "approved", shift_date, swap_id)
        if new_staff_id is not None:
            await self.notifications.notify_shift_assignment(new_staff_id, shift_date, current_user.get("hospital_name"))

        await log_activity(
            user_id=current_user["staff_id"],
            hospital_id=shift["hospital_id"],
            activity_type="shift_swapped",
            description=f"approved swap {swap_id} for {shift_date}",
            metadata={"swap_id": swap_id, "shift_id": shift["id"], "from_staff_id": swap["from_staff_id"],
                      "to_staff_id": new_staff_id}
        )

        logger.info(f"Swap {swap_id} approved by {current_user['staff_id']}")
        return approved

    async def reject_swap(
        self,
        current_user: Dict[str, Any],
        swap_id: int,
        review_comment: Optional[str] = None
    ) -> Dict[str, Any]:
        swap, shift = await self._load_pending(swap_id)
        ensure(check_can_reject_swap(current_user, swap, shift.get("department")))

        rejected = await self._transition(swap_id, "rejected", {
            "reviewed_by": current_user["staff_id"],
            "review_comment": review_comment,
            "reviewed_at": datetime.utcnow().isoformat()
        })

        if current_user["staff_id"] != swap["from_staff_id"]:
            await self.notifications.notify_swap_decision(
                swap["from_staff_id"], "rejected", str(shift["date"])[:10], swap_id
            )

        logger.info(f"Swap {swap_id} rejected by {current_user['staff_id']}")
        return rejected

    async def cancel_swap(self, current_user: Dict[str, Any], swap_id: int) -> Dict[str, Any]:
        swap = await self.get_swap(swap_id)
        if not swap:
            raise NotFoundError("Swap request not found")
        if swap["from_staff_id"] != current_user["staff_id"]:
            raise PermissionDeniedError("Only the requester can cancel a swap request")
        if swap["status"] != "pending":
            raise ConflictError(f"Swap request is already {swap['status']}")

        cancelled = await self._transition(swap_id, "cancelled")
        logger.info(f"Swap {swap_id} cancelled")
        return cancelled

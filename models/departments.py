import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)

VALID_DEPARTMENTS = ["ATI", "Urgențe", "Laborator", "Medicină Internă", "Chirurgie"]

# Free-text specializations seen in staff records, lower-cased.
# A value of None marks a role word that is not a department.
DEPARTMENT_ALIASES: Dict[str, Optional[str]] = {
    # ATI
    "ati": "ATI",
    "a.t.i": "ATI",
    "a.t.i.": "ATI",
    "terapie intensiva": "ATI",
    "terapie intensivă": "ATI",
    # Urgențe
    "urgente": "Urgențe",
    "urgențe": "Urgențe",
    "urgența": "Urgențe",
    "urgenta": "Urgențe",
    "upa": "Urgențe",
    "u.p.a": "Urgențe",
    "u.p.a.": "Urgențe",
    # Laborator
    "laborator": "Laborator",
    "lab": "Laborator",
    "laborator analize": "Laborator",
    "laborator analize medicale": "Laborator",
    # Medicină Internă
    "medicina interna": "Medicină Internă",
    "medicină internă": "Medicină Internă",
    "medicina internă": "Medicină Internă",
    "interna": "Medicină Internă",
    "internă": "Medicină Internă",
    "mi": "Medicină Internă",
    "m.i.": "Medicină Internă",
    # Chirurgie
    "chirurgie": "Chirurgie",
    "chir": "Chirurgie",
    "chirurgie generala": "Chirurgie",
    "chirurgie generală": "Chirurgie",
    # Roles, not departments
    "medic": None,
    "doctor": None,
    "biolog": None,
    "chimist": None,
    "asistent": None,
    "asistent medical": None,
    "infirmier": None,
    "infirmiera": None,
    "infirmieră": None,
}


def normalize_department(value: Optional[str]) -> Optional[str]:
    """Map a free-text department or specialization to a canonical department."""
    if not value or not value.strip():
        return None

    key = value.strip().lower()
    if key in DEPARTMENT_ALIASES:
        return DEPARTMENT_ALIASES[key]

    if value.strip() in VALID_DEPARTMENTS:
        return value.strip()

    logger.warning(f"Unknown department '{value}', cannot normalize")
    return None


def staff_department(staff: Dict) -> Optional[str]:
    """Department of a staff row, falling back to its specialization."""
    return normalize_department(staff.get("department")) or normalize_department(staff.get("specialization"))


def department_rule(department_rules: Optional[Dict], department: str) -> Dict:
    return (department_rules or {}).get(department) or {}


def is_department_enabled(department_rules: Optional[Dict], department: str) -> bool:
    # Departments without a rule are enabled
    return department_rule(department_rules, department).get("enabled", True) is not False


def shift_type_for_department(department_rules: Optional[Dict], department: str, default: str = "24h") -> str:
    return department_rule(department_rules, department).get("shift_type") or default


def scope_department(staff: Dict) -> Optional[str]:
    """
    Department a staff row is scoped to in its session.

    Unlike ``staff_department`` an unrecognized value is kept as written so
    it never matches a real department; only a row with no department (or
    just a role word) is unscoped.
    """
    department = staff_department(staff)
    if department:
        return department

    raw = (staff.get("department") or "").strip() or (staff.get("specialization") or "").strip()
    if not raw or raw.lower() in DEPARTMENT_ALIASES:
        return None
    return raw

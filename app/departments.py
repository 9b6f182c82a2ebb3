from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class Department(str, Enum):
    RL = "RL"
    AL = "AL"
    OFFICE = "Office"


# Older sheets filed payroll staff under their own label.
LEGACY_DEPARTMENT_ALIASES: Dict[str, Department] = {
    "Finanz/Lohnbuchhaltung": Department.OFFICE,
}

DEFAULT_DEPARTMENT = Department.RL


def department_key(label: Any) -> Department:
    """Map a raw department label onto one of the known categories."""
    if isinstance(label, Department):
        return label
    raw = str(label).strip() if label is not None else ""
    if raw in LEGACY_DEPARTMENT_ALIASES:
        return LEGACY_DEPARTMENT_ALIASES[raw]
    for department in Department:
        if raw == department.value:
            return department
    return DEFAULT_DEPARTMENT


def is_office(label: Any) -> bool:
    return department_key(label) is Department.OFFICE

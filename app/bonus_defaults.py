from __future__ import annotations

import copy
from typing import Any, Dict, List, Tuple

from departments import Department, department_key


PILLAR_KEYS: Tuple[str, str, str] = ("fin", "ops", "ind")
FACTOR_MODES = {"multiply", "average"}
GOALS_MODES = {"dept", "emp"}
BONUS_YEARS: Tuple[int, ...] = (2025, 2026, 2027, 2028, 2029, 2030)
DEFAULT_GOAL_NAME = "Ziel"


def _goal(name: str, weight: float) -> Dict[str, Any]:
    return {"name": name, "w": max(0.0, min(float(weight), 100.0))}


def _pillar(
    name: str,
    weight: float,
    goals: List[Tuple[str, float]],
    *,
    enabled: bool = True,
) -> Dict[str, Any]:
    return {
        "name": name,
        "weight": max(0.0, min(float(weight), 1.0)),
        "enabled": enabled,
        "goals": [_goal(goal_name, goal_weight) for goal_name, goal_weight in goals],
    }


DEFAULT_SETTINGS: Dict[str, Any] = {
    "base_months": 3.0,
    "cap_pct": 120.0,
    "factor_mode": "multiply",
    "cap_factor": True,
}

LEADERSHIP_PILLARS: Dict[str, Dict[str, Any]] = {
    "fin": _pillar("Finanz", 0.5, [("Umsatz", 40), ("Kostenquote", 30), ("Gewinn", 30)]),
    "ops": _pillar(
        "Operation",
        0.3,
        [
            ("Personalfluktuation", 20),
            ("Krankheitsquote", 15),
            ("Audit / Qualität", 25),
            ("Gästezufriedenheit", 40),
        ],
    ),
    "ind": _pillar("Individuell", 0.2, [("Führung", 40), ("Projekte", 30), ("Entwicklung", 30)]),
}

OFFICE_PILLARS: Dict[str, Dict[str, Any]] = {
    "fin": _pillar("Finanz", 0.5, [("Office Ziel 1", 100)]),
    "ops": _pillar("Operation", 0.3, [("Office Ziel 2 (optional)", 100)]),
    "ind": _pillar("Individuell", 0.2, [("Individuell", 100)]),
}

DEFAULT_PILLARS_BY_DEPT: Dict[str, Dict[str, Dict[str, Any]]] = {
    Department.RL.value: LEADERSHIP_PILLARS,
    Department.AL.value: LEADERSHIP_PILLARS,
    Department.OFFICE.value: OFFICE_PILLARS,
}

DEFAULT_UI: Dict[str, Any] = {
    "goals_dept": Department.RL.value,
    "goals_mode": "dept",
    "goals_emp_id": None,
    "selected_emp_id": None,
    "selected_year": BONUS_YEARS[0],
}


def default_settings() -> Dict[str, Any]:
    return copy.deepcopy(DEFAULT_SETTINGS)


def default_pillars() -> Dict[str, Dict[str, Any]]:
    """Return the restaurant leadership goal structure as a fresh copy."""
    return copy.deepcopy(LEADERSHIP_PILLARS)


def default_pillars_for(department: Any) -> Dict[str, Dict[str, Any]]:
    return copy.deepcopy(DEFAULT_PILLARS_BY_DEPT[department_key(department).value])


def build_default_state() -> Dict[str, Any]:
    """Return a deepcopy so callers can mutate the state safely."""
    return {
        "settings": default_settings(),
        # Copied per department so RL and AL never share goal lists.
        "pillars_by_dept": {dept: default_pillars_for(dept) for dept in DEFAULT_PILLARS_BY_DEPT},
        "emp_goal_overrides": {},
        "employees": [],
        "ui": copy.deepcopy(DEFAULT_UI),
    }

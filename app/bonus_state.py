"""Canonical bonus state built from whatever a host last stored.

``sanitize`` never raises: every field is coerced or replaced with its default,
so a corrupt or outdated sheet still yields a state the scoring functions can
work with. Older sheets used camelCase keys (``pillarsByDept``, ``baseMonths``
and so on); those are read as well and written back in the current layout.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Set

from bonus_defaults import (
    BONUS_YEARS,
    DEFAULT_SETTINGS,
    DEFAULT_UI,
    FACTOR_MODES,
    GOALS_MODES,
    PILLAR_KEYS,
    build_default_state,
    default_pillars_for,
)
from departments import LEGACY_DEPARTMENT_ALIASES, Department, department_key
from numeric import clamp_factor, num
from pillars import FULFILLMENT_FILL, looks_like_pillar_set, sanitize_pillar_set, sync_all


logger = logging.getLogger(__name__)


def _first(source: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in source and source[key] is not None:
            return source[key]
    return default


def _is_choice(value: Any, choices: Set[str]) -> bool:
    return isinstance(value, str) and value in choices


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def sanitize_settings(raw: Any) -> Dict[str, Any]:
    source = _mapping(raw)
    cap_factor = _first(source, "cap_factor", "capFactor", default=DEFAULT_SETTINGS["cap_factor"])
    factor_mode = _first(source, "factor_mode", "factorMode")
    return {
        "base_months": max(0.0, num(_first(source, "base_months", "baseMonths"), DEFAULT_SETTINGS["base_months"])),
        "cap_pct": max(0.0, num(_first(source, "cap_pct", "capPct"), DEFAULT_SETTINGS["cap_pct"])),
        "factor_mode": factor_mode if _is_choice(factor_mode, FACTOR_MODES) else DEFAULT_SETTINGS["factor_mode"],
        "cap_factor": cap_factor if isinstance(cap_factor, bool) else bool(cap_factor),
    }


def sanitize_department_defaults(raw: Any) -> Dict[str, Dict[str, Any]]:
    source = _mapping(raw)
    legacy_office = [label for label, dept in LEGACY_DEPARTMENT_ALIASES.items() if dept is Department.OFFICE]
    result: Dict[str, Dict[str, Any]] = {}
    for department in Department:
        entry = source.get(department.value)
        if entry is None and department is Department.OFFICE:
            entry = _first(source, *legacy_office)
        result[department.value] = sanitize_pillar_set(entry, default_pillars_for(department))
    return result


def sanitize_overrides(raw: Any, departments_by_id: Mapping[str, Department]) -> Dict[str, Dict[str, Any]]:
    result: Dict[str, Dict[str, Any]] = {}
    for emp_id, pillars in _mapping(raw).items():
        if not looks_like_pillar_set(pillars):
            logger.debug("Dropping malformed goal override for employee %s", emp_id)
            continue
        department = departments_by_id.get(str(emp_id), Department.RL)
        result[str(emp_id)] = sanitize_pillar_set(pillars, default_pillars_for(department))
    return result


def _sanitize_fulfillment(raw: Any) -> Dict[str, List[float]]:
    source = _mapping(raw)
    result: Dict[str, List[float]] = {}
    for key in PILLAR_KEYS:
        values = source.get(key)
        if not isinstance(values, list):
            values = []
        result[key] = [num(value, FULFILLMENT_FILL) for value in values]
    return result


def sanitize_employee(raw: Mapping[str, Any], index: int, settings: Mapping[str, Any]) -> Dict[str, Any]:
    emp_id = raw.get("id")
    if emp_id is None or str(emp_id).strip() == "":
        emp_id = uuid.uuid4().hex
        logger.debug("Assigned id %s to employee at position %s", emp_id, index)
    name = raw.get("name")
    factors = _mapping(raw.get("factors"))
    base_months = _first(raw, "base_months", "baseMonths", default=settings["base_months"])
    return {
        "id": str(emp_id),
        "name": str(name) if name is not None else f"MA {index + 1}",
        "dept": department_key(_first(raw, "dept", "department")).value,
        "salary": max(0.0, num(raw.get("salary"), 0.0)),
        "base_months": max(0.0, num(base_months, settings["base_months"])),
        "factors": {
            "tenure": clamp_factor(factors.get("tenure")),
            "size": clamp_factor(factors.get("size")),
            "office": clamp_factor(factors.get("office")),
        },
        "fulfill": _sanitize_fulfillment(_first(raw, "fulfill", "fulfillment")),
    }


def _existing_id(value: Any, employee_ids: List[str]) -> Optional[str]:
    if value is not None and str(value) in employee_ids:
        return str(value)
    return employee_ids[0] if employee_ids else None


def sanitize_ui(raw: Any, employee_ids: List[str]) -> Dict[str, Any]:
    source = _mapping(raw)
    year = int(num(_first(source, "selected_year", "selectedYear"), DEFAULT_UI["selected_year"]))
    goals_mode = _first(source, "goals_mode", "goalsMode")
    return {
        "goals_dept": department_key(_first(source, "goals_dept", "goalsDept")).value,
        "goals_mode": goals_mode if _is_choice(goals_mode, GOALS_MODES) else DEFAULT_UI["goals_mode"],
        "goals_emp_id": _existing_id(_first(source, "goals_emp_id", "goalsEmpId"), employee_ids),
        "selected_emp_id": _existing_id(_first(source, "selected_emp_id", "selectedEmpId"), employee_ids),
        "selected_year": year if BONUS_YEARS[0] <= year <= BONUS_YEARS[-1] else BONUS_YEARS[0],
    }


def sanitize(raw: Any) -> Dict[str, Any]:
    """Return a well-formed state for any input; the input is never mutated."""
    if not isinstance(raw, Mapping):
        state = build_default_state()
        sync_all(state)
        return state
    data = copy.deepcopy(dict(raw))
    settings = sanitize_settings(data.get("settings"))

    raw_employees = data.get("employees")
    employees: List[Dict[str, Any]] = []
    if isinstance(raw_employees, list):
        for index, entry in enumerate(raw_employees):
            if isinstance(entry, Mapping):
                employees.append(sanitize_employee(entry, index, settings))
    employee_ids = [employee["id"] for employee in employees]
    departments_by_id = {employee["id"]: department_key(employee["dept"]) for employee in employees}

    state: Dict[str, Any] = {
        "settings": settings,
        "pillars_by_dept": sanitize_department_defaults(_first(data, "pillars_by_dept", "pillarsByDept")),
        "emp_goal_overrides": sanitize_overrides(
            _first(data, "emp_goal_overrides", "empGoalOverrides"), departments_by_id
        ),
        "employees": employees,
        "ui": sanitize_ui(data.get("ui"), employee_ids),
    }
    sync_all(state)
    return state

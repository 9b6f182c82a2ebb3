from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional

from bonus_defaults import DEFAULT_GOAL_NAME, PILLAR_KEYS, default_pillars_for
from departments import Department, department_key
from numeric import clamp, num


FULFILLMENT_FILL = 100.0


@dataclass(frozen=True)
class PillarSource:
    """Which goal structure applies to an employee and where it came from."""

    kind: Literal["default", "override"]
    pillars: Dict[str, Dict[str, Any]]
    department: Department

    @property
    def is_override(self) -> bool:
        return self.kind == "override"


def _overrides(state: Mapping[str, Any]) -> Dict[str, Any]:
    overrides = state.get("emp_goal_overrides")
    return overrides if isinstance(overrides, dict) else {}


def find_employee(emp_id: Any, state: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    for employee in state.get("employees") or []:
        if isinstance(employee, dict) and str(employee.get("id")) == str(emp_id):
            return employee
    return None


def resolve_pillar_source(employee: Mapping[str, Any], state: Mapping[str, Any]) -> PillarSource:
    department = department_key(employee.get("dept"))
    override = _overrides(state).get(str(employee.get("id")))
    if isinstance(override, dict):
        return PillarSource("override", override, department)
    by_dept = state.get("pillars_by_dept") or {}
    pillars = by_dept.get(department.value) if isinstance(by_dept, dict) else None
    if not isinstance(pillars, dict):
        # Unsanitized state without a table for this department.
        pillars = default_pillars_for(department)
    return PillarSource("default", pillars, department)


def pillars_for_employee(employee: Mapping[str, Any], state: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    return resolve_pillar_source(employee, state).pillars


def _pillar_goals(pillars: Mapping[str, Any], key: str) -> List[Dict[str, Any]]:
    pillar = pillars.get(key) if isinstance(pillars, Mapping) else None
    goals = pillar.get("goals") if isinstance(pillar, Mapping) else None
    return goals if isinstance(goals, list) else []


def effective_weights(pillars: Mapping[str, Any]) -> Dict[str, float]:
    """Redistribute pillar weights across the enabled pillars so they sum to 1."""
    enabled: List[str] = []
    for key in PILLAR_KEYS:
        pillar = pillars.get(key) if isinstance(pillars, Mapping) else None
        if isinstance(pillar, Mapping) and pillar.get("enabled") is False:
            continue
        enabled.append(key)
    nominal = {key: _pillar_weight(pillars, key) for key in enabled}
    base_sum = sum(nominal.values())
    eff: Dict[str, float] = {key: 0.0 for key in PILLAR_KEYS}
    eff["base_sum"] = base_sum
    if base_sum <= 0:
        return eff
    for key in enabled:
        eff[key] = nominal[key] / base_sum
    return eff


def _pillar_weight(pillars: Mapping[str, Any], key: str) -> float:
    pillar = pillars.get(key) if isinstance(pillars, Mapping) else None
    if not isinstance(pillar, Mapping):
        return 0.0
    return num(pillar.get("weight"), 0.0)


def goal_weight_sum(pillar: Mapping[str, Any]) -> float:
    goals = pillar.get("goals") if isinstance(pillar, Mapping) else None
    if not isinstance(goals, list):
        return 0.0
    return sum(num(goal.get("w"), 0.0) for goal in goals if isinstance(goal, Mapping))


def looks_like_pillar_set(value: Any) -> bool:
    if not isinstance(value, Mapping):
        return False
    return any(isinstance(value.get(key), Mapping) for key in PILLAR_KEYS)


def sanitize_goal(goal: Mapping[str, Any]) -> Dict[str, Any]:
    name = goal.get("name")
    return {
        "name": DEFAULT_GOAL_NAME if name is None else str(name),
        "w": clamp(num(goal.get("w"), 0.0), 0.0, 100.0),
    }


def sanitize_pillar(pillar: Any, fallback: Mapping[str, Any]) -> Dict[str, Any]:
    source = pillar if isinstance(pillar, Mapping) else fallback
    name = source.get("name")
    enabled = source.get("enabled")
    goals = source.get("goals")
    if not isinstance(goals, list):
        goals = fallback.get("goals") or []
    return {
        "name": str(fallback.get("name", "")) if name is None else str(name),
        "enabled": enabled if isinstance(enabled, bool) else bool(fallback.get("enabled", True)),
        "weight": clamp(num(source.get("weight"), num(fallback.get("weight"), 0.0)), 0.0, 1.0),
        # Malformed entries keep their slot so fulfillment stays aligned by position.
        "goals": [sanitize_goal(goal if isinstance(goal, Mapping) else {}) for goal in goals],
    }


def sanitize_pillar_set(pillars: Any, fallback: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Coerce a pillar set into shape, borrowing missing parts from ``fallback``."""
    source = pillars if isinstance(pillars, Mapping) else {}
    return {key: sanitize_pillar(source.get(key), fallback[key]) for key in PILLAR_KEYS}


def sync_employee(employee: Dict[str, Any], state: Mapping[str, Any]) -> None:
    """Pad or truncate fulfillment lists to match the resolved goal counts.

    Alignment is by position: fulfillment ``i`` belongs to whichever goal sits at
    index ``i`` of the resolved pillar.
    """
    pillars = pillars_for_employee(employee, state)
    fulfill = employee.get("fulfill")
    if not isinstance(fulfill, dict):
        fulfill = {}
        employee["fulfill"] = fulfill
    for key in PILLAR_KEYS:
        values = fulfill.get(key)
        values = list(values) if isinstance(values, list) else []
        goal_count = len(_pillar_goals(pillars, key))
        if len(values) < goal_count:
            values.extend([FULFILLMENT_FILL] * (goal_count - len(values)))
        fulfill[key] = values[:goal_count]


def sync_all(state: Mapping[str, Any]) -> None:
    for employee in state.get("employees") or []:
        if isinstance(employee, dict):
            sync_employee(employee, state)


def has_override(emp_id: Any, state: Mapping[str, Any]) -> bool:
    return isinstance(_overrides(state).get(str(emp_id)), dict)


def set_override(emp_id: Any, pillars: Any, state: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Replace the department goals of one employee with a complete pillar set."""
    employee = find_employee(emp_id, state)
    department = department_key(employee.get("dept")) if employee else Department.RL
    fallback = default_pillars_for(department)
    overrides = state.get("emp_goal_overrides")
    if not isinstance(overrides, dict):
        overrides = {}
        state["emp_goal_overrides"] = overrides
    overrides[str(emp_id)] = sanitize_pillar_set(copy.deepcopy(pillars), fallback)
    if employee is not None:
        sync_employee(employee, state)
    return overrides[str(emp_id)]


def clear_override(emp_id: Any, state: Dict[str, Any]) -> bool:
    overrides = _overrides(state)
    removed = overrides.pop(str(emp_id), None) is not None
    if removed:
        employee = find_employee(emp_id, state)
        if employee is not None:
            sync_employee(employee, state)
    return removed

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from bonus_defaults import DEFAULT_SETTINGS, PILLAR_KEYS
from departments import is_office
from numeric import FACTOR_MAX, FACTOR_MIN, SCORE_CEILING, clamp, clamp_factor, num, pct01
from pillars import effective_weights, resolve_pillar_source


def _setting(state: Mapping[str, Any], key: str) -> Any:
    settings = state.get("settings")
    value = settings.get(key) if isinstance(settings, Mapping) else None
    return DEFAULT_SETTINGS[key] if value is None else value


def pillar_score(employee: Mapping[str, Any], key: str, state: Mapping[str, Any]) -> float:
    """Weighted achievement of one pillar, capped at 120 %."""
    pillar = resolve_pillar_source(employee, state).pillars.get(key)
    goals = pillar.get("goals") if isinstance(pillar, Mapping) else None
    fulfill = employee.get("fulfill") if isinstance(employee.get("fulfill"), Mapping) else {}
    values = fulfill.get(key) if isinstance(fulfill.get(key), list) else []
    total = 0.0
    for index, goal in enumerate(goals if isinstance(goals, list) else []):
        if not isinstance(goal, Mapping):
            continue
        weight = num(goal.get("w"), 0.0) / 100.0
        achieved = pct01(values[index] if index < len(values) else None)
        total += weight * achieved
    return clamp(total, 0.0, SCORE_CEILING)


def total_score(employee: Mapping[str, Any], state: Mapping[str, Any]) -> Dict[str, Any]:
    eff = effective_weights(resolve_pillar_source(employee, state).pillars)
    scores = {key: pillar_score(employee, key, state) for key in PILLAR_KEYS}
    blended = sum(scores[key] * eff[key] for key in PILLAR_KEYS)
    return {
        **scores,
        "total": clamp(blended, 0.0, SCORE_CEILING),
        "eff": eff,
    }


def factor_for(employee: Mapping[str, Any], state: Mapping[str, Any]) -> float:
    factors = employee.get("factors") if isinstance(employee.get("factors"), Mapping) else {}
    if is_office(employee.get("dept")):
        return clamp_factor(factors.get("office"))
    tenure = clamp_factor(factors.get("tenure"))
    size = clamp_factor(factors.get("size"))
    if _setting(state, "factor_mode") == "average":
        factor = (tenure + size) / 2.0
    else:
        factor = tenure * size
    if bool(_setting(state, "cap_factor")):
        factor = clamp(factor, FACTOR_MIN, FACTOR_MAX)
    return factor


def payout(employee: Mapping[str, Any], state: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the score breakdown together with the raw and capped payout."""
    score = total_score(employee, state)
    default_months = num(_setting(state, "base_months"), DEFAULT_SETTINGS["base_months"])
    months = num(employee.get("base_months"), default_months)
    base = num(employee.get("salary"), 0.0) * months
    factor = factor_for(employee, state)
    raw = base * score["total"] * factor
    cap = base * num(_setting(state, "cap_pct"), DEFAULT_SETTINGS["cap_pct"]) / 100.0
    return {
        **score,
        "base": base,
        "factor": factor,
        "cap": cap,
        "payout": clamp(raw, 0.0, max(0.0, cap)),
        "raw": raw,
    }


def payout_report(state: Mapping[str, Any]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for employee in state.get("employees") or []:
        if not isinstance(employee, Mapping):
            continue
        source = resolve_pillar_source(employee, state)
        rows.append(
            {
                "id": employee.get("id"),
                "name": employee.get("name"),
                "dept": source.department.value,
                "override": source.is_override,
                "salary": num(employee.get("salary"), 0.0),
                **payout(employee, state),
            }
        )
    return rows


def _empty_totals() -> Dict[str, Any]:
    return {"employees": 0, "salary": 0.0, "base": 0.0, "cap": 0.0, "raw": 0.0, "payout": 0.0, "capped": 0}


def _add_row(totals: Dict[str, Any], row: Mapping[str, Any]) -> None:
    totals["employees"] += 1
    for key in ("salary", "base", "cap", "raw", "payout"):
        totals[key] += row.get(key, 0.0)
    if row.get("raw", 0.0) > row.get("payout", 0.0):
        totals["capped"] += 1


def roster_totals(rows: List[Mapping[str, Any]]) -> Dict[str, Any]:
    """Sum a payout report overall and per department, in first-seen department order."""
    totals = _empty_totals()
    by_dept: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        _add_row(totals, row)
        _add_row(by_dept.setdefault(str(row.get("dept")), _empty_totals()), row)
    totals["by_dept"] = by_dept
    return totals

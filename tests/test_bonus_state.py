from __future__ import annotations

import copy
import json
import sys
from pathlib import Path

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from bonus_defaults import build_default_state  # noqa: E402
from bonus_state import sanitize  # noqa: E402
from pillars import pillars_for_employee  # noqa: E402
from scoring import pillar_score  # noqa: E402


LEGACY_SHEET = {
    "settings": {"baseMonths": "4", "capPct": -10, "factorMode": "weird", "capFactor": 0},
    "pillarsByDept": {
        "RL": {
            "fin": {"name": "Finanzen", "weight": 3, "goals": [{"name": "Umsatz", "w": 250}, {"w": "x"}]},
            "ops": None,
        },
        "Finanz/Lohnbuchhaltung": {"ind": {"name": "Team", "weight": 0.4, "enabled": False, "goals": []}},
        "Bar": {"fin": {"weight": 1}},
    },
    "empGoalOverrides": {
        "e2": {"fin": {"weight": 1, "goals": [{"name": "Einzelziel", "w": 100}]}},
        "e3": "not a pillar set",
        "e4": {"unrelated": True},
    },
    "employees": [
        {
            "id": 7,
            "name": "Jonas Weber",
            "dept": "Finanz/Lohnbuchhaltung",
            "salary": "3100.50",
            "factors": {"office": 5},
            "fulfill": {"fin": ["95", None], "ops": "bad"},
        },
        {"id": "e2", "dept": "AL", "salary": -5, "baseMonths": 2, "fulfill": {"fin": [110, 90, 80]}},
        "garbage",
        {"dept": "Küche"},
    ],
    "ui": {"selectedEmpId": "gone", "goalsMode": "emp", "selectedYear": 2040, "goalsDept": "Finanz/Lohnbuchhaltung"},
}


@pytest.mark.parametrize("raw", [None, 42, "state", [], {}])
def test_non_mapping_or_empty_input_falls_back_to_defaults(raw) -> None:
    state = sanitize(raw)
    expected = build_default_state()

    assert state["settings"] == expected["settings"]
    assert state["pillars_by_dept"] == expected["pillars_by_dept"]
    assert state["employees"] == []
    assert state["emp_goal_overrides"] == {}
    assert state["ui"]["selected_emp_id"] is None


def test_settings_are_restricted() -> None:
    settings = sanitize(LEGACY_SHEET)["settings"]

    assert settings == {"base_months": 4.0, "cap_pct": 0.0, "factor_mode": "multiply", "cap_factor": False}


def test_department_defaults_are_completed_and_clamped() -> None:
    pillars = sanitize(LEGACY_SHEET)["pillars_by_dept"]

    assert set(pillars) == {"RL", "AL", "Office"}
    fin = pillars["RL"]["fin"]
    assert fin["name"] == "Finanzen"
    assert fin["weight"] == 1.0
    assert fin["enabled"] is True
    assert fin["goals"] == [{"name": "Umsatz", "w": 100.0}, {"name": "Ziel", "w": 0.0}]
    assert pillars["RL"]["ops"]["name"] == "Operation"
    assert len(pillars["RL"]["ops"]["goals"]) == 4
    # Legacy office label feeds the Office table.
    assert pillars["Office"]["ind"]["enabled"] is False
    assert pillars["Office"]["ind"]["goals"] == []


def test_overrides_are_shape_checked() -> None:
    overrides = sanitize(LEGACY_SHEET)["emp_goal_overrides"]

    assert set(overrides) == {"e2"}
    assert overrides["e2"]["fin"]["goals"] == [{"name": "Einzelziel", "w": 100.0}]
    # Missing pillars are borrowed from the employee's department defaults.
    assert overrides["e2"]["ops"]["name"] == "Operation"
    assert len(overrides["e2"]["ops"]["goals"]) == 4


def test_employees_are_coerced() -> None:
    employees = sanitize(LEGACY_SHEET)["employees"]

    assert len(employees) == 3
    office, leader, unnamed = employees
    assert office["id"] == "7"
    assert office["dept"] == "Office"
    assert office["salary"] == pytest.approx(3100.5)
    assert office["base_months"] == 4.0
    assert office["factors"] == {"tenure": 1.0, "size": 1.0, "office": 1.2}
    assert office["fulfill"]["fin"] == [95.0]
    assert leader["salary"] == 0.0
    assert leader["base_months"] == 2.0
    assert unnamed["dept"] == "RL"
    assert unnamed["name"] == "MA 4"
    assert unnamed["id"]


def test_fulfillment_matches_resolved_goal_counts() -> None:
    state = sanitize(LEGACY_SHEET)

    for employee in state["employees"]:
        pillars = pillars_for_employee(employee, state)
        for key in ("fin", "ops", "ind"):
            assert len(employee["fulfill"][key]) == len(pillars[key]["goals"])
    leader = state["employees"][1]
    assert leader["fulfill"]["fin"] == [110.0]
    assert leader["fulfill"]["ops"] == [100.0, 100.0, 100.0, 100.0]


def test_ui_selection_is_rederived() -> None:
    ui = sanitize(LEGACY_SHEET)["ui"]

    assert ui["selected_emp_id"] == "7"
    assert ui["goals_emp_id"] == "7"
    assert ui["goals_mode"] == "emp"
    assert ui["goals_dept"] == "Office"
    assert ui["selected_year"] == 2025


def test_sanitize_is_idempotent_and_json_safe() -> None:
    once = sanitize(LEGACY_SHEET)
    twice = sanitize(once)

    assert twice == once
    assert json.loads(json.dumps(once)) == once


def test_sanitize_does_not_mutate_input() -> None:
    raw = copy.deepcopy(LEGACY_SHEET)
    sanitize(raw)

    assert raw == LEGACY_SHEET


def test_non_finite_numbers_fall_back() -> None:
    state = sanitize(
        {
            "settings": {"base_months": float("nan"), "cap_pct": float("inf")},
            "employees": [{"id": "a", "salary": "inf", "factors": {"tenure": float("-inf")}}],
        }
    )

    assert state["settings"]["base_months"] == 3.0
    assert state["settings"]["cap_pct"] == 120.0
    assert state["employees"][0]["salary"] == 0.0
    assert state["employees"][0]["factors"]["tenure"] == 1.0


def test_malformed_goal_entries_keep_their_position() -> None:
    state = sanitize(
        {
            "pillarsByDept": {"RL": {"fin": {"goals": [5, {"name": "A", "w": 100}]}}},
            "employees": [{"id": "a", "dept": "RL", "fulfill": {"fin": [0, 90]}}],
        }
    )
    employee = state["employees"][0]

    assert state["pillars_by_dept"]["RL"]["fin"]["goals"] == [{"name": "Ziel", "w": 0.0}, {"name": "A", "w": 100.0}]
    assert employee["fulfill"]["fin"] == [0.0, 90.0]
    assert pillar_score(employee, "fin", state) == pytest.approx(0.9)

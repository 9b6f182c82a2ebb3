"""Lightweight FastAPI wrapper around the bonus engine.

The service is stateless: every request carries the state snapshot it works on,
and edit endpoints answer with the updated, resynchronized state. Storing that
state is left to the caller.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict

from fastapi import Body, Depends, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Ensure flat imports (e.g., "import scoring") resolve when run as a script.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from audit import AuditLogger, audit_logger  # noqa: E402
from bonus_defaults import PILLAR_KEYS, build_default_state, default_pillars  # noqa: E402
from bonus_state import sanitize  # noqa: E402
from departments import LEGACY_DEPARTMENT_ALIASES, Department  # noqa: E402
from pillars import (  # noqa: E402
    clear_override,
    effective_weights,
    find_employee,
    goal_weight_sum,
    has_override,
    sanitize_pillar_set,
    set_override,
)
from scoring import payout, payout_report, roster_totals  # noqa: E402


app = FastAPI(title="Bonus Engine API", version="0.1")


def get_audit_logger() -> AuditLogger:
    return audit_logger


def _require_object(payload: Any) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return payload


def _actor(payload: Dict[str, Any]) -> str:
    return (str(payload.get("actor") or "api")).strip() or "api"


def _require_employee(emp_id: str, state: Dict[str, Any]) -> Dict[str, Any]:
    employee = find_employee(emp_id, state)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/bonus/defaults")
def defaults() -> JSONResponse:
    payload = {
        "state": sanitize(build_default_state()),
        "departments": [dept.value for dept in Department],
        "legacy_aliases": {label: dept.value for label, dept in LEGACY_DEPARTMENT_ALIASES.items()},
    }
    return JSONResponse(content=jsonable_encoder(payload))


@app.post("/api/v1/bonus/sanitize")
def sanitize_state(payload: Any = Body(default=None)) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder(sanitize(payload)))


@app.post("/api/v1/bonus/payouts")
def roster_payouts(payload: Any = Body(default=None)) -> JSONResponse:
    state = sanitize(_require_object(payload))
    rows = payout_report(state)
    return JSONResponse(content=jsonable_encoder({"rows": rows, "totals": roster_totals(rows)}))


@app.post("/api/v1/bonus/employees/{emp_id}/payout")
def employee_payout(emp_id: str, payload: Any = Body(default=None)) -> JSONResponse:
    state = sanitize(_require_object(payload))
    employee = _require_employee(emp_id, state)
    result = payout(employee, state)
    result["override"] = has_override(emp_id, state)
    return JSONResponse(content=jsonable_encoder(result))


@app.put("/api/v1/bonus/employees/{emp_id}/override")
def put_override(
    emp_id: str,
    payload: Any = Body(default=None),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    body = _require_object(payload)
    state = sanitize(body.get("state"))
    _require_employee(emp_id, state)
    pillars = body.get("pillars")
    if not isinstance(pillars, dict):
        raise HTTPException(status_code=400, detail="pillars must be a JSON object")
    stored = set_override(emp_id, pillars, state)
    audit.log(
        "BONUS_OVERRIDE_SET",
        _actor(body),
        target=emp_id,
        details={key: goal_weight_sum(stored[key]) for key in PILLAR_KEYS},
    )
    return JSONResponse(content=jsonable_encoder(state))


@app.post("/api/v1/bonus/employees/{emp_id}/override/clear")
def post_clear_override(
    emp_id: str,
    payload: Any = Body(default=None),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    body = _require_object(payload)
    state = sanitize(body.get("state"))
    _require_employee(emp_id, state)
    if clear_override(emp_id, state):
        audit.log("BONUS_OVERRIDE_CLEAR", _actor(body), target=emp_id)
    return JSONResponse(content=jsonable_encoder(state))


@app.post("/api/v1/bonus/effective-weights")
def weights(payload: Any = Body(default=None)) -> JSONResponse:
    pillars = sanitize_pillar_set(_require_object(payload), default_pillars())
    result = {
        **effective_weights(pillars),
        "goal_weight_sums": {key: goal_weight_sum(pillars[key]) for key in PILLAR_KEYS},
    }
    return JSONResponse(content=jsonable_encoder(result))


@app.get("/api/v1/bonus/audit")
def audit_entries(
    limit: int = Query(default=100, ge=1, le=1000),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    return JSONResponse(content=jsonable_encoder({"entries": audit.entries()[-limit:]}))

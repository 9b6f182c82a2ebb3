from __future__ import annotations

import datetime
import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional


DATA_DIR = Path(__file__).resolve().parent / "data"
AUDIT_FILE = Path(os.environ.get("BONUS_AUDIT_FILE") or DATA_DIR / "bonus_audit.log")


class AuditLogger:
    """Append-only JSON line logger for bonus sheet edits."""

    def __init__(self, file_path: Path) -> None:
        self.file_path = Path(file_path)

    def log(
        self,
        event: str,
        username: Optional[str],
        *,
        target: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        entry: Dict[str, Any] = {
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "event": event,
            "username": username,
        }
        if target:
            entry["target"] = target
        if details:
            entry["details"] = details

        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with self.file_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(entry))
            handle.write("\n")
        return entry

    def entries(self) -> List[Dict[str, Any]]:
        if not self.file_path.exists():
            return []
        rows: List[Dict[str, Any]] = []
        for line in self.file_path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return rows


audit_logger = AuditLogger(AUDIT_FILE)

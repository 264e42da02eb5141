"""
Local JSON storage for saved equation graphs, their constraints, and settings.

Data is persisted in ``<project>/data/eqbuilder.json``.
"""

import json
import logging
import os
import time
import uuid
from datetime import datetime
from typing import Optional

from common.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

_DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "data")
_DATA_FILE = os.path.join(_DATA_DIR, "eqbuilder.json")

# ── Default settings ────────────────────────────────────────────────────
DEFAULT_SETTINGS = {
    "tick_interval_ms": 1000,     # how often the session clock is fed
    "auto_play_ms": 2000,         # delay between auto-played steps
    "log_level": "INFO",
}

MAX_SAVED = 200


def _empty_db() -> dict:
    return {"settings": dict(DEFAULT_SETTINGS), "equations": [], "constraints": {}}


class EquationStore:
    """Persistence gateway backed by a single JSON file.

    Every public method raises :class:`StoreUnavailableError` when the file
    cannot be read or written; callers that must not fail wrap it (see
    ``builder.workspace.Workspace``).
    """

    def __init__(self, data_file: Optional[str] = None) -> None:
        self._data_file = data_file

    @property
    def data_file(self) -> str:
        # Resolved lazily so tests can monkeypatch the module constant.
        return self._data_file or _DATA_FILE

    # ── Raw file access ──────────────────────────────────────────────

    def _load_db(self) -> dict:
        path = self.data_file
        if not os.path.exists(path):
            return _empty_db()
        try:
            with open(path, "r", encoding="utf-8") as f:
                db = json.load(f)
        except json.JSONDecodeError:
            logger.warning("Ignoring corrupt data file %s", path)
            return _empty_db()
        except OSError as exc:
            raise StoreUnavailableError(f"Could not read {path}: {exc}") from exc
        if not isinstance(db, dict):
            return _empty_db()
        db.setdefault("settings", dict(DEFAULT_SETTINGS))
        db.setdefault("equations", [])
        db.setdefault("constraints", {})
        return db

    def _save_db(self, db: dict) -> None:
        path = self.data_file
        try:
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(db, f, indent=2, ensure_ascii=False)
        except OSError as exc:
            raise StoreUnavailableError(f"Could not write {path}: {exc}") from exc

    # ── Equations ────────────────────────────────────────────────────

    def save(self, record: dict) -> str:
        """Insert or replace *record*; returns its id."""
        db = self._load_db()
        record = dict(record)
        record_id = record.get("id") or uuid.uuid4().hex[:12]
        record["id"] = record_id
        record["timestamp"] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        record["epoch"] = time.time()

        equations = [r for r in db["equations"] if r.get("id") != record_id]
        equations.insert(0, record)  # newest first
        db["equations"] = equations[:MAX_SAVED]

        constraints = record.get("constraints")
        if constraints:
            db["constraints"][record_id] = list(constraints)
        else:
            db["constraints"].pop(record_id, None)
        # Drop constraints whose equation fell off the end of the list.
        kept = {r.get("id") for r in db["equations"]}
        db["constraints"] = {k: v for k, v in db["constraints"].items() if k in kept}
        self._save_db(db)
        logger.info("Saved equation %s (%s)", record_id, record.get("name", ""))
        return record_id

    def load(self, record_id: str) -> Optional[dict]:
        db = self._load_db()
        for record in db["equations"]:
            if record.get("id") == record_id:
                return record
        return None

    def remove(self, record_id: str) -> bool:
        db = self._load_db()
        before = len(db["equations"])
        db["equations"] = [r for r in db["equations"] if r.get("id") != record_id]
        removed = len(db["equations"]) != before
        db["constraints"].pop(record_id, None)
        if removed:
            self._save_db(db)
            logger.info("Deleted equation %s", record_id)
        return removed

    def constraints_for(self, equation_id: str) -> list[dict]:
        db = self._load_db()
        return list(db["constraints"].get(equation_id, []))

    # ── Settings ─────────────────────────────────────────────────────

    def get_settings(self) -> dict:
        """Return settings merged over the defaults so new keys are present."""
        merged = dict(DEFAULT_SETTINGS)
        merged.update(self._load_db().get("settings", {}))
        return merged

    def save_settings(self, settings: dict) -> None:
        db = self._load_db()
        db["settings"] = settings
        self._save_db(db)

    def clear_all_data(self) -> None:
        self._save_db(_empty_db())

    # Kept last: the name shadows the builtin inside the class body.
    def list(self):
        """Summaries of the saved equations, newest first."""
        db = self._load_db()
        return [
            {
                "id": r.get("id"),
                "name": r.get("name", ""),
                "expression": r.get("expression", ""),
                "timestamp": r.get("timestamp", ""),
                "node_count": len(r.get("graph", {}).get("nodes", [])),
            }
            for r in db["equations"]
        ]

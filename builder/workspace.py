"""
Workspace: one editable graph plus the store and notifier around it.

Persistence is opportunistic.  When the store is unavailable the workspace
answers ``None`` / ``False`` and tells the user, instead of raising.
"""

import logging
from typing import Optional

from builder.graph import Graph
from builder.synthesis import SynthesisResult, synthesize_detailed
from common.errors import CyclicGraphError, StoreUnavailableError
from common.notify import NotificationLevel, Notifier, notify

logger = logging.getLogger(__name__)


class Workspace:

    def __init__(self, store=None, notifier: Optional[Notifier] = None,
                 graph: Optional[Graph] = None) -> None:
        self.store = store
        self.notifier = notifier
        self.graph = graph if graph is not None else Graph()
        self.current_id: Optional[str] = None
        self.name = "Untitled"

    def result(self, sink_id: Optional[str] = None) -> SynthesisResult:
        return synthesize_detailed(self.graph, sink_id)

    def expression(self, sink_id: Optional[str] = None) -> str:
        return self.result(sink_id).expression

    def new(self) -> None:
        self.graph = Graph()
        self.current_id = None
        self.name = "Untitled"

    # ── Persistence ──────────────────────────────────────────────────

    def _store_failed(self, action: str, exc: StoreUnavailableError) -> None:
        logger.warning("Could not %s: %s", action, exc)
        notify(self.notifier, f"Could not {action}. Storage is unavailable.",
               NotificationLevel.ERROR)

    def save(self, name: Optional[str] = None, constraints: Optional[list] = None) -> Optional[str]:
        if self.store is None:
            return None
        if name:
            self.name = name
        try:
            expression = self.expression()
        except CyclicGraphError as exc:
            # A half-edited graph may loop; keep the work, with no expression.
            logger.warning("Saving %s without an expression: %s", self.name, exc)
            expression = ""
        if constraints is None:
            constraints = self.graph.constraints.to_records()
        record = {
            "id": self.current_id,
            "name": self.name,
            "expression": expression,
            "graph": self.graph.to_dict(),
        }
        if constraints:
            record["constraints"] = constraints
        try:
            record_id = self.store.save(record)
        except StoreUnavailableError as exc:
            self._store_failed("save the equation", exc)
            return None
        self.current_id = record_id
        notify(self.notifier, f'Saved "{self.name}"', NotificationLevel.SUCCESS)
        return record_id

    def open(self, record_id: str) -> Optional[dict]:
        """Replace the current graph with a saved one; returns the record."""
        if self.store is None:
            return None
        try:
            record = self.store.load(record_id)
        except StoreUnavailableError as exc:
            self._store_failed("load the equation", exc)
            return None
        if record is None:
            notify(self.notifier, "Equation not found", NotificationLevel.ERROR)
            return None
        try:
            graph = Graph.from_dict(record.get("graph", {}))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Saved equation %s is damaged: %s", record_id, exc)
            notify(self.notifier, "Could not open the equation. The saved data is damaged.",
                   NotificationLevel.ERROR)
            return None
        self.graph = graph
        self.current_id = record["id"]
        self.name = record.get("name", "Untitled")
        notify(self.notifier, f'Loaded "{self.name}"', NotificationLevel.SUCCESS)
        return record

    def saved(self) -> list:
        if self.store is None:
            return []
        try:
            return self.store.list()
        except StoreUnavailableError as exc:
            self._store_failed("list saved equations", exc)
            return []

    def delete(self, record_id: str) -> bool:
        if self.store is None:
            return False
        try:
            removed = self.store.remove(record_id)
        except StoreUnavailableError as exc:
            self._store_failed("delete the equation", exc)
            return False
        if removed and record_id == self.current_id:
            self.current_id = None
        if removed:
            notify(self.notifier, "Equation deleted", NotificationLevel.INFO)
        return removed

    def constraints(self, record_id: Optional[str] = None) -> list:
        record_id = record_id or self.current_id
        if self.store is None or record_id is None:
            return []
        try:
            return self.store.constraints_for(record_id)
        except StoreUnavailableError as exc:
            self._store_failed("read constraints", exc)
            return []

"""
Version Snapshot Service.

Listens to a page's change events. It keeps a serialized baseline of the
tree after each event, so the state *before* any operation is always at
hand:

- destructive operations (delete) record that previous state as a
  numbered version
- every operation pushes it onto a bounded undo history
"""
from __future__ import annotations

import logging
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, Iterable, List, Optional

from pagebuilder.domain.events import ChangeEvent, OpKind
from pagebuilder.domain.invariants.exceptions import NodeNotFound
from pagebuilder.utils.versioning import restore_page, snapshot_page

logger = logging.getLogger(__name__)

DESTRUCTIVE_OPS = frozenset({OpKind.DELETE})


@dataclass(frozen=True)
class Snapshot:
    version: int
    page_id: str
    status: str
    snapshot: Dict = field(repr=False)
    node_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class VersionSnapshotService:
    def __init__(
        self,
        engine,
        limit: int = 50,
        undo_limit: int = 50,
        first_version: int = 1,
        sink: Optional[Callable[[Snapshot], None]] = None,
    ):
        self.engine = engine
        self.sink = sink
        self._baseline = snapshot_page(engine.page)
        self._versions: Deque[Snapshot] = deque(maxlen=limit)
        self._undo: Deque[Dict] = deque(maxlen=undo_limit)
        self._redo: List[Dict] = []
        self._next_version = first_version
        self._restoring = False

        engine.events.subscribe(self.on_change)

    def close(self):
        self.engine.events.unsubscribe(self.on_change)

    # -------------------------------------------------
    # Event handling
    # -------------------------------------------------
    def on_change(self, event: ChangeEvent) -> None:
        previous = self._baseline
        self._baseline = snapshot_page(self.engine.page)

        if self._restoring:
            return

        self._undo.append(previous)
        self._redo.clear()

        if event.op_kind in DESTRUCTIVE_OPS:
            self._record(previous, status=event.op_kind.value, node_id=event.node_id)

    def _record(self, data: Dict, status: str, node_id: Optional[str] = None) -> Snapshot:
        snapshot = Snapshot(
            version=self._next_version,
            page_id=self.engine.page.id,
            status=status,
            snapshot=data,
            node_id=node_id,
        )
        self._next_version += 1
        self._versions.append(snapshot)
        logger.info("Recorded version %s of page %s (%s)", snapshot.version, snapshot.page_id, status)

        if self.sink is not None:
            self.sink(snapshot)
        return snapshot

    @contextmanager
    def _restoring_state(self):
        self._restoring = True
        try:
            yield
        finally:
            self._restoring = False

    # -------------------------------------------------
    # Versions
    # -------------------------------------------------
    def preload(self, snapshots: Iterable[Snapshot]) -> None:
        """Seed the version list with versions recorded by earlier sessions."""
        for snapshot in snapshots:
            self._versions.append(snapshot)
            self._next_version = max(self._next_version, snapshot.version + 1)

    def versions(self) -> List[Snapshot]:
        return list(self._versions)

    def get(self, version: int) -> Snapshot:
        for snapshot in self._versions:
            if snapshot.version == version:
                return snapshot
        raise NodeNotFound(f"version {version}")

    def rollback(self, version: int) -> Snapshot:
        """
        Restore a recorded version.

        The restored tree is itself recorded as a new ``rollback`` version,
        and the state it replaced can be brought back with ``undo``.
        """
        target = self.get(version)
        current = self._baseline

        with self._restoring_state():
            self.engine.restore(restore_page(target.snapshot))

        self._undo.append(current)
        self._redo.clear()
        return self._record(self._baseline, status="rollback", node_id=target.node_id)

    # -------------------------------------------------
    # Undo / redo
    # -------------------------------------------------
    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo(self) -> bool:
        if not self._undo:
            return False
        previous = self._undo[-1]
        current = self._baseline

        with self._restoring_state():
            self.engine.restore(restore_page(previous))

        self._undo.pop()
        self._redo.append(current)
        return True

    def redo(self) -> bool:
        if not self._redo:
            return False
        following = self._redo[-1]
        current = self._baseline

        with self._restoring_state():
            self.engine.restore(restore_page(following))

        self._redo.pop()
        self._undo.append(current)
        return True

    def history_info(self) -> Dict:
        return {
            "undo": len(self._undo),
            "redo": len(self._redo),
            "can_undo": self.can_undo(),
            "can_redo": self.can_redo(),
            "versions": [s.version for s in self._versions],
        }

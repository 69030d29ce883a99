# pagebuilder/application/builder/editor.py
"""
Open editing sessions, one per page.

A session wires a page's mutation engine to database persistence and to
its version history. Sessions live for the life of the app process.
"""
import threading
from typing import Dict, List, Optional

from flask import current_app

from pagebuilder.domain.mutations import TreeMutationEngine
from pagebuilder.domain.registry import BlockTypeRegistry, default_registry
from pagebuilder.domain.snapshots import Snapshot, VersionSnapshotService
from pagebuilder.extensions import db
from pagebuilder.models.page import Page as PageRow
from pagebuilder.models.page_version import PageVersion
from pagebuilder.utils.transaction import transactional
from pagebuilder.utils.versioning import next_version
from .persistence import PersistenceSubscriber, SqlAlchemyPersistence


def store_version(snapshot: Snapshot) -> PageVersion:
    pv = PageVersion()
    pv.page_id = snapshot.page_id
    pv.version = snapshot.version
    pv.status = snapshot.status
    pv.node_id = snapshot.node_id
    pv.snapshot = snapshot.snapshot

    with transactional():
        db.session.add(pv)
    return pv


def load_versions(page_id: str, limit: int) -> List[Snapshot]:
    rows = (
        PageVersion.query
        .filter_by(page_id=page_id)
        .order_by(PageVersion.version.desc())
        .limit(limit)
        .all()
    )
    return [
        Snapshot(
            version=row.version,
            page_id=row.page_id,
            status=row.status,
            snapshot=row.snapshot,
            node_id=row.node_id,
            created_at=row.created_at,
        )
        for row in reversed(rows)
    ]


def history_limit(config) -> int:
    return config.get("SNAPSHOT_HISTORY_LIMIT", 50)


PAGE_METADATA_FIELDS = ("title", "slug", "is_home", "is_published")


class EditorSession:
    def __init__(self, engine, history, persistence):
        self.engine = engine
        self.history = history
        self.persistence = persistence
        # serializes request handling on this page
        self.lock = threading.RLock()

    @property
    def page_id(self):
        return self.engine.page.id

    def close(self):
        self.history.close()
        self.engine.events.unsubscribe(self.persistence)


class EditorWorkspace:
    def __init__(self, registry: Optional[BlockTypeRegistry] = None, store=None):
        self.registry = registry or default_registry
        self.store = store or SqlAlchemyPersistence()
        self._sessions: Dict[str, EditorSession] = {}
        self._guard = threading.Lock()

    def open(self, page_id: str) -> EditorSession:
        with self._guard:
            session = self._sessions.get(page_id)
            if session is not None:
                return session

            page = self.store.load_page(page_id)
            engine = TreeMutationEngine(page, registry=self.registry)

            persistence = PersistenceSubscriber(engine, self.store)
            engine.events.subscribe(persistence)

            config = current_app.config
            history = VersionSnapshotService(
                engine,
                limit=history_limit(config),
                undo_limit=config.get("UNDO_HISTORY_LIMIT", 50),
                first_version=next_version(page_id),
                sink=store_version,
            )

            history.preload(load_versions(page_id, history_limit(config)))

            session = EditorSession(engine, history, persistence)
            self._sessions[page_id] = session
            current_app.logger.info("Opened editing session for page %s", page_id)
            return session

    def session_for_node(self, node_id: str) -> EditorSession:
        """Session of the page owning a section or block."""
        with self._guard:
            for session in self._sessions.values():
                if session.engine.contains(node_id):
                    return session
        return self.open(self.store.page_id_for(node_id))

    def sync_page_metadata(self, website_id: str) -> None:
        """
        Reload page metadata into every open session of a website.

        Page updates may change sibling rows (only one home page per site),
        which open documents would otherwise keep stale.
        """
        with self._guard:
            sessions = [
                s for s in self._sessions.values()
                if s.engine.page.website_id == website_id
            ]
        for session in sessions:
            row = db.session.get(PageRow, session.page_id)
            if row is None:
                continue
            with session.lock:
                for field in PAGE_METADATA_FIELDS:
                    setattr(session.engine.page, field, getattr(row, field))

    def close(self, page_id: str) -> None:
        with self._guard:
            session = self._sessions.pop(page_id, None)
        if session is not None:
            session.close()

    def close_all(self) -> None:
        for page_id in list(self._sessions):
            self.close(page_id)

    def __contains__(self, page_id) -> bool:
        return page_id in self._sessions


def get_workspace() -> EditorWorkspace:
    return current_app.extensions["pagebuilder"]

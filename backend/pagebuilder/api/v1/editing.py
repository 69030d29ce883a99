# pagebuilder/api/v1/editing.py
from contextlib import contextmanager

from pagebuilder.application.builder.editor import get_workspace
from pagebuilder.utils.optimistic_lock import enforce_optimistic_lock


def page_session(page_id):
    return get_workspace().open(page_id)


def node_session(node_id):
    return get_workspace().session_for_node(node_id)


@contextmanager
def editing(session):
    """
    Serialize a mutating request on its page and honor If-Unmodified-Since.
    Yields the page's mutation engine.
    """
    with session.lock:
        enforce_optimistic_lock(get_workspace().store.get_page_row(session.page_id))
        yield session.engine


def page_stamp(session):
    """Timestamp clients send back as If-Unmodified-Since."""
    row = get_workspace().store.get_page_row(session.page_id)
    return row.updated_at.isoformat() if row.updated_at else None

from contextlib import contextmanager
from pagebuilder.extensions import db

@contextmanager
def transactional():
    """Commit on success, roll back and re-raise on any error."""
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

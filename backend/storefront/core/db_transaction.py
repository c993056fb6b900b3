from contextlib import contextmanager
from sqlalchemy.orm import Session
from storefront.core.database import SessionLocal
from storefront.core.logging_config import get_logger

logger = get_logger("db_transaction")


@contextmanager
def db_transaction(db: Session = None):
    """Commit on success, roll back and re-raise on any error.

    Opens (and closes) its own session when none is given.
    """
    if db is None:
        db = SessionLocal()
        should_close = True
    else:
        should_close = False
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Transaction rolled back: {str(e)}", exc_info=True)
        raise
    finally:
        if should_close:
            db.close()

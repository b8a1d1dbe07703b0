# backend/database.py
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from config import settings
from errors import translate_integrity_error

logger = logging.getLogger(__name__)

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL


def install_sqlite_hooks(engine) -> None:
    """
    Make SQLite behave like a transactional store for the ledger.

    pysqlite's own transaction handling is disabled so SQLAlchemy controls
    BEGIN/SAVEPOINT itself; every transaction starts with BEGIN IMMEDIATE so
    concurrent writers serialize instead of losing updates.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# Connection arguments depend on the backend
if "sqlite" in SQLALCHEMY_DATABASE_URL:
    connect_args = {
        "check_same_thread": False,
        "timeout": settings.DB_STATEMENT_TIMEOUT_MS / 1000,
    }
else:
    connect_args = {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args=connect_args, pool_pre_ping=True
)

if "sqlite" in SQLALCHEMY_DATABASE_URL:
    install_sqlite_hooks(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Import every model module so all tables are registered on Base.metadata
def import_models():
    import models.users  # noqa: F401
    import models.category  # noqa: F401
    import models.location  # noqa: F401
    import models.supplier  # noqa: F401
    import models.customer  # noqa: F401
    import models.product  # noqa: F401
    import models.stock  # noqa: F401
    import models.order  # noqa: F401
    import models.transaction  # noqa: F401
    import models.notification  # noqa: F401
    import models.log  # noqa: F401

def init_db():
    import_models()
    Base.metadata.create_all(bind=engine)


class UnitOfWork:
    """
    One atomic unit: every mutation made through ``session`` inside the
    ``with`` block is committed together or rolled back together.

    Notification events collected with :meth:`emit` are handed to the
    notifier only after a successful commit. A rollback discards them.
    """

    def __init__(self, session: Session, notifier=None):
        self.session = session
        self.notifier = notifier
        self.events = []

    def emit(self, event) -> None:
        self.events.append(event)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self.session.rollback()
            self.events.clear()
            if isinstance(exc, IntegrityError):
                raise translate_integrity_error(exc) from exc
            return False

        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            self.events.clear()
            raise translate_integrity_error(e) from e
        except Exception:
            self.session.rollback()
            self.events.clear()
            logger.exception("Commit failed; unit of work rolled back")
            raise

        self._publish()
        return False

    def _publish(self) -> None:
        events, self.events = self.events, []
        if self.notifier is None:
            return
        for ev in events:
            try:
                self.notifier.publish(ev)
            except Exception:
                logger.exception("Failed to publish notification event %r", ev)

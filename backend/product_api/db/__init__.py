import logging
import importlib

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, declarative_base

from product_api.config import settings

log = logging.getLogger("product_api.db")


def _connect_args(url: str) -> dict:
    """
    Bound every statement by DB_TIMEOUT_SECONDS so no request can hang on the store.
    SQLite: busy timeout (seconds). PostgreSQL: server-side statement_timeout (ms).
    """
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        return {"check_same_thread": False, "timeout": settings.DB_TIMEOUT_SECONDS}
    if backend == "postgresql":
        return {"options": f"-c statement_timeout={settings.DB_TIMEOUT_SECONDS * 1000}"}
    return {}


DATABASE_URL = settings.DATABASE_URL
engine = create_engine(
    DATABASE_URL,
    future=True,
    echo=False,
    pool_pre_ping=True,
    connect_args=_connect_args(DATABASE_URL),
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# modules whose tables must be registered on Base.metadata before create_all
MODEL_MODULES = [
    "product_api.models.product",
]


def init_db(reset: bool = None):
    """
    Initialize DB schema.

    With reset=True (or RESET_DB set in the environment) all tables are dropped
    and recreated; otherwise existing tables are left in place.
    """
    if reset is None:
        reset = settings.RESET_DB

    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    if reset:
        log.warning("Resetting database schema at %s", engine.url.render_as_string(hide_password=True))
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    log.info("Database initialized.")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

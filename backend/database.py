import logging
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from config import settings

log = logging.getLogger("Tally.Database")


def _engine_kwargs(url: str) -> dict:
    kwargs = {"echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}  # SQLite specific
        # An in-memory database only lives as long as its connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for FastAPI endpoints."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _default_clause(column) -> str:
    """SQL DEFAULT for a scalar column default; callables (uuid, utcnow) get none."""
    if column.default is None or callable(column.default.arg):
        return ""
    value = column.default.arg
    if isinstance(value, bool):
        return f" DEFAULT {int(value)}"
    if isinstance(value, str):
        return f" DEFAULT '{value}'"
    if isinstance(value, (int, float)):
        return f" DEFAULT {value}"
    return ""


def _auto_migrate() -> dict:
    """Add model columns missing from existing tables (forward-only, no Alembic).

    Brand-new tables are left to ``create_all``. Returns the added column
    names per table.
    """
    inspector = inspect(engine)
    existing_tables = set(inspector.get_table_names())
    added = {}

    for table in Base.metadata.sorted_tables:
        if table.name not in existing_tables:
            continue

        live = {col["name"] for col in inspector.get_columns(table.name)}
        missing = [col for col in table.columns if col.name not in live]
        if not missing:
            continue

        log.warning(f"Table '{table.name}' is missing columns {[c.name for c in missing]}, running ALTER TABLE")
        with engine.begin() as conn:
            for col in missing:
                stmt = (
                    f"ALTER TABLE {table.name} ADD COLUMN {col.name} "
                    f"{col.type.compile(engine.dialect)}{_default_clause(col)}"
                )
                log.info(f"  ➜ {stmt}")
                conn.execute(text(stmt))
        added[table.name] = [col.name for col in missing]

    return added


def init_db():
    """Create all tables and migrate any missing columns."""
    import models  # noqa: F401  registers the models with Base
    Base.metadata.create_all(bind=engine)
    _auto_migrate()

# estore/database.py
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

import structlog
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError

from .errors import InternalError

# Table definitions, engine construction and transaction helpers.
# Queries elsewhere are SQLAlchemy Core statements against these tables.

logger = structlog.get_logger(__name__)

metadata = MetaData()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", String(255), nullable=False),
    Column("role", String(20), nullable=False, default="user"),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
)

products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, default=""),
    Column("price", Numeric(10, 2), nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("category", String(100), nullable=False, default=""),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    CheckConstraint("price >= 0", name="ck_products_price"),
    CheckConstraint("stock >= 0", name="ck_products_stock"),
)

orders = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("product_id", Integer, ForeignKey("products.id"), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("total_price", Numeric(10, 2), nullable=False),
    Column("delivery_address", Text, nullable=False),
    Column("status", String(20), nullable=False, default="Pending"),
    Column("created_at", DateTime(timezone=True), nullable=False, default=_utcnow),
    CheckConstraint("quantity > 0", name="ck_orders_quantity"),
)


def _setup_sqlite(engine: Engine) -> None:
    # Every transaction takes the write lock at BEGIN; writers queue on the
    # busy timeout.
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": 15}
    engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        _setup_sqlite(engine)
    return engine


def init_db(engine: Engine) -> None:
    metadata.create_all(engine)
    logger.info("Database schema ready", url=engine.url.render_as_string(hide_password=True))


def drop_db(engine: Engine) -> None:
    metadata.drop_all(engine)
    logger.info("Database schema dropped", url=engine.url.render_as_string(hide_password=True))


def _driver_message(exc: DBAPIError) -> str:
    orig = getattr(exc, "orig", None)
    if orig is not None and str(orig):
        return str(orig).splitlines()[0]
    return "Database error"


@contextmanager
def transaction(engine: Engine) -> Iterator[Connection]:
    """Run the block as one unit of work.

    Commits when the block exits normally; any exception rolls back every
    statement issued inside it. Driver failures surface as InternalError.
    """
    try:
        with engine.begin() as conn:
            yield conn
    except DBAPIError as exc:
        logger.error("Transaction failed", error=_driver_message(exc))
        raise InternalError(_driver_message(exc)) from exc


@contextmanager
def connection(engine: Engine) -> Iterator[Connection]:
    """Read-only access; nothing issued here is committed."""
    try:
        with engine.connect() as conn:
            yield conn
    except DBAPIError as exc:
        logger.error("Query failed", error=_driver_message(exc))
        raise InternalError(_driver_message(exc)) from exc


def ping(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except DBAPIError as exc:
        logger.warning("Database ping failed", error=_driver_message(exc))
        return False

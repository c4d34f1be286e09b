from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import MetaData, event

metadata = MetaData(naming_convention={
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
})

db = SQLAlchemy(metadata=metadata)


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every datetime column is stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def enable_sqlite_transactions(engine):
    """
    Let SQLAlchemy drive transactions on pysqlite connections.

    pysqlite defers BEGIN until the first DML statement, which breaks
    SAVEPOINT handling. Transactions are opened with BEGIN IMMEDIATE so
    concurrent writers queue on the busy timeout instead of failing on a
    lock upgrade.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from guestdesk.core.config import settings

_url = make_url(settings.DATABASE_URL)
connect_args: dict = {}
engine_kwargs: dict = {"pool_pre_ping": True}
is_sqlite = _url.get_backend_name() == "sqlite"

if _url.get_backend_name().startswith("postgresql"):
    connect_args["options"] = "-c timezone=utc"
elif is_sqlite:
    # Local dev/tests: FastAPI runs sync endpoints in a threadpool
    connect_args["check_same_thread"] = False
    if _url.database in (None, "", ":memory:"):
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, **engine_kwargs)

if is_sqlite:
    # pysqlite defers BEGIN on its own; let SQLAlchemy emit it so SAVEPOINTs nest correctly

    @event.listens_for(engine, "connect")
    def _sqlite_disable_implicit_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _sqlite_emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

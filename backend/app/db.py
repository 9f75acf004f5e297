from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from backend.app.config import INSTANCE_DIR, load_settings

Base = declarative_base()


def make_engine(database_url: str, **kwargs) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # SQLite connections are handed to threadpool workers
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, **kwargs)


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


INSTANCE_DIR.mkdir(parents=True, exist_ok=True)

SQLALCHEMY_DATABASE_URL = load_settings().database_url

engine = make_engine(SQLALCHEMY_DATABASE_URL)

SessionLocal = make_session_factory(engine)


def init_db(bind: Engine = engine) -> None:
    from backend.app import models  # noqa: F401  registers tables on Base
    Base.metadata.create_all(bind=bind)

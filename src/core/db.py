from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from core.config import settings


def make_engine(database_uri: str, **kwargs) -> Engine:
    if database_uri.startswith("sqlite"):
        # the SQL repository keeps one session per thread
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(database_uri, **kwargs)


engine = make_engine(str(settings.SQLALCHEMY_DATABASE_URI))


# make sure all SQLModel models are imported (models) before initializing DB
# otherwise, SQLModel might fail to create the tables
def init_db(db_engine: Engine = engine) -> None:
    import models  # noqa: F401

    SQLModel.metadata.create_all(db_engine)

import os

from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from proofpass import models  # noqa: F401  (registers the tables on SQLModel.metadata)


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine, anchoring relative SQLite paths to the working directory."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite:///") and not database_url.startswith("sqlite:////"):
        db_path = os.path.abspath(os.path.join(os.getcwd(), database_url.split("///")[-1]))
        database_url = f"sqlite:///{db_path}"
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, echo=echo, connect_args=connect_args)


def create_db_and_tables(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)

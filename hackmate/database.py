from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from hackmate.config import DATABASE_URL, SQL_ECHO

Base = declarative_base()


def make_engine(url: str = DATABASE_URL):
    # For SQLite we must add connect_args
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    return create_engine(
        url,
        connect_args=connect_args,
        echo=SQL_ECHO,
    )


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine = make_engine()
SessionLocal = make_session_factory(engine)


def init_db(bind=None) -> None:
    # tables must be registered in metadata before create_all
    from hackmate.models.document import Document  # noqa: F401
    from hackmate.models.auth_user import AuthUser  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

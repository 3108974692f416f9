# cardshop/data/database.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from cardshop.utils.settings import DATABASE_URL

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def make_engine(url: str | None = None, **kwargs):
    return create_engine(url or DATABASE_URL, **kwargs)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

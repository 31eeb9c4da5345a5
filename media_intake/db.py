import os
from functools import lru_cache
from typing import Optional
from sqlmodel import SQLModel, create_engine
from .core.config import settings


@lru_cache(maxsize=None)
def get_engine(database_url: Optional[str] = None):
    url = database_url or settings.database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


def init_db(database_url: Optional[str] = None):
    url = database_url or settings.database_url
    if url.startswith("sqlite:///"):
        path = url[len("sqlite:///"):]
        if path and path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    engine = get_engine(url)
    SQLModel.metadata.create_all(engine)
    return engine

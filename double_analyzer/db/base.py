from sqlmodel import SQLModel, create_engine
from double_analyzer.config import settings
import os

# Create the data directory when using the default SQLite file
if settings.db_dsn.startswith("sqlite:///./data"):
    os.makedirs("data", exist_ok=True)

# the collector writes from its own worker thread
_connect_args = {"check_same_thread": False} if settings.db_dsn.startswith("sqlite") else {}

engine = create_engine(settings.db_dsn, echo=False, pool_pre_ping=True, connect_args=_connect_args)


def init_db(bind=None):
    # import models so SQLModel registers the tables
    from double_analyzer.db import models  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)

# backend/quote_intake/db/init_db.py
import logging
import os

from quote_intake.db.base import Base
from quote_intake.db.session import engine

# Models must be imported so their tables are registered on Base.metadata
from quote_intake import models  # noqa: F401

logger = logging.getLogger(__name__)


def init_db() -> None:
    url = engine.url
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(url.database)), exist_ok=True)

    Base.metadata.create_all(bind=engine)
    logger.info("Database ready (%s)", url.get_backend_name())

"""Database engine factory for the relational search path."""
from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from .config import Settings, settings

logger = logging.getLogger(__name__)


def create_db_engine(config: Settings = settings) -> Engine:
    # pool_pre_ping drops connections the server closed while idle.
    logger.info("Connecting to database %s", config.database_url.split("@")[-1])
    return create_engine(config.database_url, pool_pre_ping=True, future=True)

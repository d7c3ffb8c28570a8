"""Elasticsearch client factory.

The client is created once at startup and handed to the health gate and the
engine search path; nothing below the service wiring creates its own.
"""
from __future__ import annotations

import logging

from elasticsearch import Elasticsearch

from .config import Settings, settings

logger = logging.getLogger(__name__)


def create_client(config: Settings = settings) -> Elasticsearch:
    logger.info("Connecting to Elasticsearch at %s", config.es_host)
    return Elasticsearch(
        config.es_host,
        request_timeout=config.es_request_timeout,
        # One attempt per call; the dispatcher owns the only fallback hop.
        max_retries=0,
        retry_on_status=(),
        retry_on_timeout=False,
    )

"""Wire a DirectoryService to the store backend chosen in settings."""

import logging
from typing import Optional

from signs_directory.core.config import Settings, get_settings
from signs_directory.core.db import PostgresRowStore
from signs_directory.core.query import RowStore
from signs_directory.directory.service import DirectoryService
from signs_directory.vendors.supabase_rest import SupabaseRowStore, configure_session

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> RowStore:
    if settings.store_backend == "postgres":
        return PostgresRowStore()
    configure_session(settings.http_max_retries)
    return SupabaseRowStore(settings.supabase_url, settings.supabase_key, timeout=settings.http_timeout)


def build_service(settings: Optional[Settings] = None) -> DirectoryService:
    settings = settings or get_settings()
    logger.info("Using %s store for table %s", settings.store_backend, settings.table_name)
    return DirectoryService(build_store(settings), table=settings.table_name, batch_size=settings.batch_size)

import logging
from typing import Optional

from logic.ai_client import AIProxyClient, build_ai_client
from logic.app_state import AppState
from logic.record_store import JsonFileStore, RecordStore
from logic.settings import Settings

logger = logging.getLogger(__name__)


def open_store(settings: Settings) -> RecordStore:
    if settings.store == "mongo":
        # pymongo is only needed for this backend
        from logic.mongo_db import MongoStore
        logger.info("[Store] MongoDB database '%s'", settings.mongo_db_name)
        return MongoStore(settings)
    logger.info("[Store] JSON files in %s", settings.data_dir)
    return JsonFileStore(settings.data_dir)


def get_initial_state(settings: Settings, store: Optional[RecordStore] = None) -> AppState:
    return AppState.load(store or open_store(settings))


def get_ai_client(settings: Settings) -> AIProxyClient:
    return build_ai_client(settings)

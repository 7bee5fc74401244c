"""
Store and change feed dependencies.
The backend is picked once from STORE_BACKEND; tests override get_store / get_change_feed.
"""
from config import STORE_BACKEND, AsyncSessionLocal, get_supabase_async_client
from store.base import MarketplaceStore
from utils.change_feed import ChangeFeed
import logging

logger = logging.getLogger(__name__)

_store = None
_change_feed = None


def get_change_feed() -> ChangeFeed:
    global _change_feed
    if _change_feed is None:
        if STORE_BACKEND == "supabase":
            from utils.realtime import SupabaseRealtimeFeed
            _change_feed = SupabaseRealtimeFeed(get_supabase_async_client)
        else:
            _change_feed = ChangeFeed()
    return _change_feed


def get_store() -> MarketplaceStore:
    global _store
    if _store is None:
        if STORE_BACKEND == "sql":
            if AsyncSessionLocal is None:
                raise ValueError("DATABASE_URL must be set when STORE_BACKEND is 'sql'")
            from store.sql_store import SqlStore
            _store = SqlStore(AsyncSessionLocal, get_change_feed())
        elif STORE_BACKEND == "supabase":
            from store.supabase_store import SupabaseStore
            _store = SupabaseStore(get_supabase_async_client)
        elif STORE_BACKEND == "memory":
            from store.memory_store import MemoryStore
            _store = MemoryStore(get_change_feed())
        else:
            raise ValueError(f"Unknown STORE_BACKEND '{STORE_BACKEND}'")
        logger.info(f"Using {type(_store).__name__} ({STORE_BACKEND})")
    return _store

# Services package
from .catalog import CatalogService, CollectionStats
from .search_session import SearchSession
from .shelves import SHELF_DEFINITIONS, ShelfPerfume, shelf_perfumes
from .sync import RemoteSyncBackend, SyncPropagator, sync_on_login, stop_listeners

__all__ = [
    "CatalogService",
    "CollectionStats",
    "SearchSession",
    "SHELF_DEFINITIONS",
    "ShelfPerfume",
    "shelf_perfumes",
    "RemoteSyncBackend",
    "SyncPropagator",
    "sync_on_login",
    "stop_listeners",
]

import logging
import threading

from django.conf import settings

from .backends import build_backend
from .store import RecordStore

logger = logging.getLogger(__name__)

_store = None
_lock = threading.Lock()


def build_store(config=None):
    config = config or settings.HEMOLINK
    store = RecordStore(build_backend(config))
    store.load()
    if config.get('REMOTE_SYNC', True):
        store.start_sync()
    logger.info("Record store ready (backend: %s)", config.get('BACKEND'))
    return store


def get_store():
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                _store = build_store()
    return _store


def set_store(store):
    """Swap the process store (tests, management commands). Returns the previous one."""
    global _store
    with _lock:
        previous, _store = _store, store
    return previous

import logging
import queue
import threading

logger = logging.getLogger(__name__)

_STOP = object()


class SyncWorker:
    """
    Pushes cached writes to the durable backend on a background thread.

    Writes are fire-and-forget: a failed write is logged and dropped, the
    local cache keeps its optimistic value until the next remote sync.
    """

    def __init__(self, backend):
        self.backend = backend
        self._queue = queue.Queue()
        self._thread = None
        self._lock = threading.Lock()

    def start(self):
        with self._lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._run, name='hemolink-sync', daemon=True)
                self._thread.start()

    def submit(self, op, collection, record_id, *args):
        self.start()
        self._queue.put((op, collection, record_id, args))

    def wait(self):
        """Block until every submitted write has been attempted."""
        self._queue.join()

    def stop(self, timeout=5):
        if self._thread is None:
            return
        self._queue.put(_STOP)
        self._thread.join(timeout)
        self._thread = None

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._apply(*item)
            except Exception:
                op, collection, record_id, _ = item
                logger.exception("Backend write failed (%s %s/%s)", op, collection, record_id)
            finally:
                self._queue.task_done()

    def _apply(self, op, collection, record_id, args):
        if op == 'insert':
            self.backend.insert(collection, record_id, *args)
        elif op == 'update':
            self.backend.update(collection, record_id, *args)
        elif op == 'update_if':
            if not self.backend.update_if(collection, record_id, *args):
                logger.warning("Conditional write to %s/%s lost to a concurrent update", collection, record_id)
        elif op == 'delete':
            self.backend.delete(collection, record_id)
        else:
            raise ValueError(f"Unknown write operation: {op}")

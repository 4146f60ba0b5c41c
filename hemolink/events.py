import logging
import threading
from contextlib import contextmanager

from django.dispatch import Signal

logger = logging.getLogger(__name__)


def next_tick(callback):
    timer = threading.Timer(0, callback)
    timer.daemon = True
    timer.start()


class ChangeNotifier:
    """
    Coalescing change fan-out over a Django signal.

    notify() only marks the store dirty; the signal is sent once on the
    next tick no matter how many mutations happened before it. Inside
    hold() nothing is scheduled until the outermost block exits.
    """

    def __init__(self, defer=next_tick, signal=None):
        self._defer = defer
        self.signal = signal if signal is not None else Signal()
        self._lock = threading.Lock()
        self._scheduled = False
        self._held = 0
        self._dirty = False

    def subscribe(self, callback):
        def receiver(sender, **kwargs):
            callback()

        self.signal.connect(receiver, sender=self, weak=False)

        def unsubscribe():
            self.signal.disconnect(receiver, sender=self)

        return unsubscribe

    def notify(self):
        with self._lock:
            if self._held:
                self._dirty = True
                return
            if self._scheduled:
                return
            self._scheduled = True
        self._defer(self.flush)

    def flush(self):
        with self._lock:
            self._scheduled = False
        for receiver, response in self.signal.send_robust(sender=self):
            if isinstance(response, Exception):
                logger.error("Change listener %r failed", receiver, exc_info=response)

    @contextmanager
    def hold(self):
        with self._lock:
            self._held += 1
        try:
            yield
        finally:
            with self._lock:
                self._held -= 1
                release = self._held == 0 and self._dirty
                if release:
                    self._dirty = False
            if release:
                self.notify()

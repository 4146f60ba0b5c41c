"""
Local-first record store.

Reads are served from an in-memory cache. Writes update the cache
immediately, then go to the durable backend through a SyncWorker; a failed
backend write is logged and never rolled back locally. Changes coming from
other clients are merged in through apply_remote(). Any mutation, local or
remote, fires one coalesced change event.
"""
import copy
import logging
import threading
from collections import defaultdict
from functools import partial

from bson import ObjectId

from .backends import COLLECTIONS
from .events import ChangeNotifier
from .sync import SyncWorker

logger = logging.getLogger(__name__)


def new_id():
    return str(ObjectId())


class RecordStore:
    def __init__(self, backend, notifier=None, worker=None):
        self.backend = backend
        self.notifier = notifier or ChangeNotifier()
        self.worker = worker or SyncWorker(backend)
        self._lock = threading.RLock()
        self._cache = {name: {} for name in COLLECTIONS}
        # foreign-key indexes over requests
        self._requests_by_hospital = defaultdict(set)
        self._requests_by_donor = defaultdict(set)
        self._listening = False

    def _records(self, collection):
        try:
            return self._cache[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    # ---- reads ----

    def list(self, collection):
        """Snapshot of a collection. Order is unspecified."""
        with self._lock:
            return [copy.deepcopy(r) for r in self._records(collection).values()]

    def get(self, collection, record_id):
        with self._lock:
            record = self._records(collection).get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def find(self, collection, **criteria):
        with self._lock:
            return [
                copy.deepcopy(r) for r in self._records(collection).values()
                if all(r.get(k) == v for k, v in criteria.items())
            ]

    def requests_for_hospital(self, hospital_id):
        with self._lock:
            ids = list(self._requests_by_hospital.get(hospital_id, ()))
            return [copy.deepcopy(self._cache['requests'][i]) for i in ids]

    def requests_for_donor(self, donor_id):
        """Requests the donor has accepted (including completed ones)."""
        with self._lock:
            ids = list(self._requests_by_donor.get(donor_id, ()))
            return [copy.deepcopy(self._cache['requests'][i]) for i in ids]

    # ---- writes ----

    def create(self, collection, data):
        record = copy.deepcopy(dict(data))
        record['id'] = new_id()
        with self._lock:
            self._records(collection)[record['id']] = record
            self._index(collection, record)
            snapshot = copy.deepcopy(record)
        self.worker.submit('insert', collection, record['id'], copy.deepcopy(record))
        self.notifier.notify()
        return snapshot

    def patch(self, collection, record_id, fields):
        """
        Merge fields into a record.

        An id missing from the cache is still patched remotely; the cache
        may simply be behind the backend.
        """
        fields = copy.deepcopy(dict(fields))
        fields.pop('id', None)
        with self._lock:
            current = self._records(collection).get(record_id)
            if current is not None:
                self._unindex(collection, current)
                current.update(fields)
                self._index(collection, current)
        self.worker.submit('update', collection, record_id, copy.deepcopy(fields))
        if current is not None:
            self.notifier.notify()
        else:
            logger.debug("Patch for uncached %s/%s sent to backend only", collection, record_id)

    def compare_and_patch(self, collection, record_id, expected, fields):
        """
        Patch only if the cached record still holds the expected values.

        The check and the local update are atomic; the backend write is a
        conditional update on the same expectation. Returns False, changing
        nothing, when the expectation fails.
        """
        fields = copy.deepcopy(dict(fields))
        fields.pop('id', None)
        with self._lock:
            current = self._records(collection).get(record_id)
            if current is None or any(current.get(k) != v for k, v in expected.items()):
                return False
            self._unindex(collection, current)
            current.update(fields)
            self._index(collection, current)
        self.worker.submit('update_if', collection, record_id, dict(expected), copy.deepcopy(fields))
        self.notifier.notify()
        return True

    def delete(self, collection, record_id):
        with self._lock:
            removed = self._records(collection).pop(record_id, None)
            if removed is not None:
                self._unindex(collection, removed)
        self.worker.submit('delete', collection, record_id)
        if removed is not None:
            self.notifier.notify()
        return removed

    def batch(self):
        """Group several writes into one change event."""
        return self.notifier.hold()

    def on_change(self, callback):
        return self.notifier.subscribe(callback)

    # ---- indexes ----

    def _index(self, collection, record):
        if collection != 'requests':
            return
        if record.get('hospitalId'):
            self._requests_by_hospital[record['hospitalId']].add(record['id'])
        if record.get('donorId'):
            self._requests_by_donor[record['donorId']].add(record['id'])

    def _unindex(self, collection, record):
        if collection != 'requests':
            return
        for index, key in ((self._requests_by_hospital, record.get('hospitalId')),
                           (self._requests_by_donor, record.get('donorId'))):
            if key and key in index:
                index[key].discard(record['id'])
                if not index[key]:
                    del index[key]

    def _replace(self, collection, records):
        if collection == 'requests':
            self._requests_by_hospital.clear()
            self._requests_by_donor.clear()
        cache = {}
        for record in records:
            record = copy.deepcopy(record)
            cache[record['id']] = record
            self._index(collection, record)
        self._cache[collection] = cache

    # ---- sync ----

    def load(self):
        """Seed the cache from the backend."""
        for collection in COLLECTIONS:
            records = self.backend.fetch_all(collection)
            with self._lock:
                self._replace(collection, records)
            logger.info("Loaded %d %s", len(records), collection)
        self.notifier.notify()

    def start_sync(self):
        if self._listening:
            return
        self._listening = True
        for collection in COLLECTIONS:
            self.backend.listen(collection, partial(self.apply_remote, collection))

    def apply_remote(self, collection, event):
        """Merge a change made elsewhere into the cache."""
        with self._lock:
            records = self._records(collection)
            if event.kind == 'snapshot':
                self._replace(collection, event.data)
            elif event.kind == 'delete':
                removed = records.pop(event.record_id, None)
                if removed is not None:
                    self._unindex(collection, removed)
            elif event.kind in ('put', 'patch'):
                current = records.get(event.record_id)
                if current is not None:
                    self._unindex(collection, current)
                if event.kind == 'put' or current is None:
                    current = copy.deepcopy(event.data)
                else:
                    current.update(copy.deepcopy(event.data))
                current['id'] = event.record_id
                records[event.record_id] = current
                self._index(collection, current)
            else:
                logger.warning("Ignoring unknown remote event %r on %s", event.kind, collection)
                return
        self.notifier.notify()

    def wait_for_writes(self):
        self.worker.wait()

    def close(self):
        self.worker.stop()
        self.backend.close()

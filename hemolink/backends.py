"""
Durable storage adapters for the record store.

Every backend stores the same six collections as flat documents keyed by
the store-assigned id, and reports changes made by other clients through
listen() as RemoteEvent values.
"""
import copy
import logging
import threading
from collections import namedtuple

from firebase_admin import db as rtdb
from pymongo import MongoClient
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

COLLECTIONS = ('donors', 'hospitals', 'requests', 'donations', 'notifications', 'rejections')

# kind: 'snapshot' (data = list of records), 'put' (data = full record),
# 'patch' (data = partial fields) or 'delete' (data = None)
RemoteEvent = namedtuple('RemoteEvent', ['kind', 'record_id', 'data'])


class BackendError(Exception):
    pass


class Backend:
    def fetch_all(self, collection):
        raise NotImplementedError

    def insert(self, collection, record_id, record):
        raise NotImplementedError

    def update(self, collection, record_id, fields):
        raise NotImplementedError

    def update_if(self, collection, record_id, expected, fields):
        """Apply fields only if the stored record still has the expected values."""
        raise NotImplementedError

    def delete(self, collection, record_id):
        raise NotImplementedError

    def listen(self, collection, callback):
        pass

    def close(self):
        pass


class MemoryBackend(Backend):
    """In-process durable store for development and tests."""

    def __init__(self, initial=None):
        self.collections = {name: {} for name in COLLECTIONS}
        for collection, records in (initial or {}).items():
            for record in records:
                self.collections[collection][record['id']] = copy.deepcopy(record)
        self.fail_writes = False
        self.writes = []
        self._listeners = {name: [] for name in COLLECTIONS}
        self._lock = threading.Lock()

    def _check(self, op, collection, record_id):
        if self.fail_writes:
            raise BackendError(f"{op} {collection}/{record_id} rejected")
        self.writes.append((op, collection, record_id))

    def fetch_all(self, collection):
        with self._lock:
            return [copy.deepcopy(r) for r in self.collections[collection].values()]

    def insert(self, collection, record_id, record):
        with self._lock:
            self._check('insert', collection, record_id)
            self.collections[collection][record_id] = copy.deepcopy(record)

    def update(self, collection, record_id, fields):
        with self._lock:
            self._check('update', collection, record_id)
            current = self.collections[collection].get(record_id)
            if current is not None:
                current.update(copy.deepcopy(fields))

    def update_if(self, collection, record_id, expected, fields):
        with self._lock:
            self._check('update_if', collection, record_id)
            current = self.collections[collection].get(record_id)
            if current is None or any(current.get(k) != v for k, v in expected.items()):
                return False
            current.update(copy.deepcopy(fields))
            return True

    def delete(self, collection, record_id):
        with self._lock:
            self._check('delete', collection, record_id)
            self.collections[collection].pop(record_id, None)

    def listen(self, collection, callback):
        self._listeners[collection].append(callback)

    def push_remote(self, collection, record):
        """Simulate another client writing a full record."""
        with self._lock:
            self.collections[collection][record['id']] = copy.deepcopy(record)
        for callback in list(self._listeners[collection]):
            callback(RemoteEvent('put', record['id'], copy.deepcopy(record)))

    def remove_remote(self, collection, record_id):
        with self._lock:
            self.collections[collection].pop(record_id, None)
        for callback in list(self._listeners[collection]):
            callback(RemoteEvent('delete', record_id, None))


class MongoBackend(Backend):
    def __init__(self, uri, db_name, client=None):
        self.client = client or MongoClient(uri)
        self.db = self.client[db_name]
        self._streams = []
        self._closing = False
        logger.info("Connected to MongoDB database %s", db_name)

    @staticmethod
    def _to_doc(record_id, record):
        doc = {k: v for k, v in record.items() if k != 'id'}
        doc['_id'] = record_id
        return doc

    @staticmethod
    def _from_doc(doc):
        record = dict(doc)
        record['id'] = str(record.pop('_id'))
        return record

    def fetch_all(self, collection):
        return [self._from_doc(doc) for doc in self.db[collection].find()]

    def insert(self, collection, record_id, record):
        self.db[collection].replace_one({"_id": record_id}, self._to_doc(record_id, record), upsert=True)

    def update(self, collection, record_id, fields):
        fields = {k: v for k, v in fields.items() if k != 'id'}
        if fields:
            self.db[collection].update_one({"_id": record_id}, {"$set": fields})

    def update_if(self, collection, record_id, expected, fields):
        query = {"_id": record_id}
        query.update(expected)
        res = self.db[collection].update_one(query, {"$set": fields})
        return res.matched_count == 1

    def delete(self, collection, record_id):
        self.db[collection].delete_one({"_id": record_id})

    def listen(self, collection, callback):
        thread = threading.Thread(
            target=self._watch, args=(collection, callback),
            name=f'hemolink-watch-{collection}', daemon=True,
        )
        thread.start()

    def _watch(self, collection, callback):
        try:
            with self.db[collection].watch(full_document='updateLookup') as stream:
                self._streams.append(stream)
                for change in stream:
                    record_id = str(change['documentKey']['_id'])
                    if change['operationType'] == 'delete':
                        callback(RemoteEvent('delete', record_id, None))
                    elif change.get('fullDocument') is not None:
                        callback(RemoteEvent('put', record_id, self._from_doc(change['fullDocument'])))
        except PyMongoError as e:
            if not self._closing:
                logger.warning("Change stream for %s unavailable, remote sync disabled: %s", collection, e)

    def close(self):
        self._closing = True
        for stream in self._streams:
            stream.close()
        self.client.close()


class FirebaseBackend(Backend):
    """Firebase Realtime Database, one node per collection."""

    def __init__(self, app=None):
        self.app = app
        self._registrations = []

    def _ref(self, collection, record_id=None):
        path = collection if record_id is None else f"{collection}/{record_id}"
        return rtdb.reference(path, app=self.app)

    def fetch_all(self, collection):
        data = self._ref(collection).get() or {}
        return [dict(value, id=key) for key, value in data.items() if isinstance(value, dict)]

    def insert(self, collection, record_id, record):
        self._ref(collection, record_id).set(record)

    def update(self, collection, record_id, fields):
        fields = {k: v for k, v in fields.items() if k != 'id'}
        if fields:
            self._ref(collection, record_id).update(fields)

    def update_if(self, collection, record_id, expected, fields):
        applied = []

        def apply(current):
            applied.clear()
            if not current or any(current.get(k) != v for k, v in expected.items()):
                return current
            updated = dict(current)
            updated.update(fields)
            applied.append(True)
            return updated

        self._ref(collection, record_id).transaction(apply)
        return bool(applied)

    def delete(self, collection, record_id):
        self._ref(collection, record_id).delete()

    def listen(self, collection, callback):
        def handle(event):
            for remote_event in self._translate(collection, event):
                callback(remote_event)

        self._registrations.append(self._ref(collection).listen(handle))

    def _translate(self, collection, event):
        segments = [s for s in (event.path or '/').split('/') if s]
        data = event.data
        if not segments:
            if event.event_type == 'put':
                records = [dict(v, id=k) for k, v in (data or {}).items() if isinstance(v, dict)]
                return [RemoteEvent('snapshot', None, records)]
            # a root-level update replaces whole children
            return [
                RemoteEvent('delete', key, None) if value is None else RemoteEvent('put', key, dict(value, id=key))
                for key, value in (data or {}).items()
            ]
        record_id = segments[0]
        if len(segments) == 1:
            if data is None:
                return [RemoteEvent('delete', record_id, None)]
            if event.event_type == 'patch':
                return [RemoteEvent('patch', record_id, data)]
            return [RemoteEvent('put', record_id, dict(data, id=record_id))]
        if len(segments) == 2:
            return [RemoteEvent('patch', record_id, {segments[1]: data})]
        # nested field change, re-read the whole record
        record = self._ref(collection, record_id).get()
        if record is None:
            return [RemoteEvent('delete', record_id, None)]
        return [RemoteEvent('put', record_id, dict(record, id=record_id))]

    def close(self):
        for registration in self._registrations:
            registration.close()
        self._registrations = []


def build_backend(config):
    kind = (config.get('BACKEND') or 'memory').lower()
    if kind == 'memory':
        return MemoryBackend()
    if kind == 'mongo':
        return MongoBackend(config['MONGO_URI'], config['MONGO_DB_NAME'])
    if kind == 'firebase':
        from .firebase_config import initialize_firebase
        app = initialize_firebase(config.get('FIREBASE_DATABASE_URL'))
        if app is None:
            raise BackendError("Firebase backend selected but no credentials are configured")
        return FirebaseBackend(app)
    raise ValueError(f"Unknown HEMOLINK backend: {kind}")

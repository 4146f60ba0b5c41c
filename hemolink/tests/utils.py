import datetime

from hemolink.backends import MemoryBackend
from hemolink.events import ChangeNotifier
from hemolink.store import RecordStore

NOW = datetime.datetime(2026, 3, 1, 10, 0, tzinfo=datetime.timezone.utc)

HOSPITAL_LOCATION = {"lat": 0.0, "lng": 0.001}


class ManualTick:
    """Stands in for the event loop: deferred callbacks run only when run() is called."""

    def __init__(self):
        self.pending = []

    def __call__(self, callback):
        self.pending.append(callback)

    def run(self):
        pending, self.pending = self.pending, []
        for callback in pending:
            callback()


def make_store(backend=None, tick=None):
    backend = backend or MemoryBackend()
    notifier = ChangeNotifier(defer=tick if tick is not None else (lambda callback: None))
    return RecordStore(backend, notifier=notifier)


def add_donor(store, name='Donor One', blood_group='O+', location=None, **extra):
    data = {
        "name": name,
        "email": f"{name.replace(' ', '.').lower()}@test.com",
        "bloodGroup": blood_group,
        "location": {"lat": 0.0, "lng": 0.0} if location is None else location,
        "status": "active",
        "donationCount": 0,
    }
    data.update(extra)
    return store.create('donors', data)


def add_hospital(store, name='City Hospital', location=None):
    return store.create('hospitals', {
        "name": name,
        "license": "LIC-0001",
        "email": f"{name.replace(' ', '.').lower()}@test.com",
        "location": dict(location or HOSPITAL_LOCATION),
        "status": "active",
    })


def days_ago(days, seconds=0, now=NOW):
    return (now - datetime.timedelta(days=days, seconds=seconds)).isoformat()

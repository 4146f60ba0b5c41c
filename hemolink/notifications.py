from .timeutils import sort_key, to_iso, utcnow

DONOR_ACCEPTED = 'donor_accepted'
DONOR_REJECTED = 'donor_rejected'
DONATION_APPROVED = 'donation_approved'


def _create(store, target_field, target_id, kind, message, now=None, **extra):
    record = {key: value for key, value in extra.items() if value is not None}
    record.update({
        "type": kind,
        target_field: target_id,
        "message": message,
        "createdAt": to_iso(now or utcnow()),
        "read": False,
    })
    return store.create('notifications', record)


def notify_hospital(store, hospital_id, kind, message, now=None, **extra):
    return _create(store, 'hospitalId', hospital_id, kind, message, now, **extra)


def notify_donor(store, donor_id, kind, message, now=None, **extra):
    return _create(store, 'donorId', donor_id, kind, message, now, **extra)


def _newest_first(notifications):
    return sorted(notifications, key=sort_key('createdAt'), reverse=True)


def for_donor(store, donor_id):
    return _newest_first(store.find('notifications', donorId=donor_id))


def for_hospital(store, hospital_id):
    return _newest_first(store.find('notifications', hospitalId=hospital_id))


def mark_read(store, notification_id):
    if store.get('notifications', notification_id) is None:
        return False
    store.patch('notifications', notification_id, {"read": True})
    return True


def mark_all_read(store, donor_id=None, hospital_id=None):
    """Mark every unread notification of one donor or one hospital as read."""
    criteria = {"donorId": donor_id} if donor_id else {"hospitalId": hospital_id}
    unread = [n for n in store.find('notifications', **criteria) if not n.get('read')]
    with store.batch():
        for n in unread:
            store.patch('notifications', n['id'], {"read": True})
    return len(unread)

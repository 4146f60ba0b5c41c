import logging

from django.contrib.auth.hashers import make_password

from .cooldown import COOLDOWN_DAYS, is_on_cooldown, next_eligible_at, reactivate_expired, remaining_days
from .eligibility import visible_requests
from .exceptions import InvalidInput, RecordNotFound, StateConflict
from .geo import GPS_RADIUS_KM
from .timeutils import sort_key, to_iso, utcnow

logger = logging.getLogger(__name__)

# changed only by the lifecycle or the availability toggle
PROTECTED_FIELDS = {'id', 'status', 'donationCount', 'lastDonationApproved', 'registeredAt'}


def find_by_email(store, email):
    email = (email or '').strip().lower()
    for donor in store.list('donors'):
        if (donor.get('email') or '').lower() == email:
            return donor
    return None


def get_donor(store, donor_id):
    donor = store.get('donors', donor_id)
    if donor is None:
        raise RecordNotFound("Donor not found")
    return donor


def register(store, data, now=None):
    data = dict(data)
    data['email'] = (data.get('email') or '').strip().lower()
    if find_by_email(store, data['email']):
        raise InvalidInput("Email already exists")
    if data.get('password'):
        data['password'] = make_password(data['password'])

    data.update({
        "status": "active",
        "donationCount": 0,
        "lastDonation": data.get('lastDonation'),
        "registeredAt": to_iso(now or utcnow()),
    })
    donor = store.create('donors', data)
    logger.info("Donor %s registered (%s)", donor['id'], donor.get('bloodGroup'))
    return donor


def update_profile(store, donor_id, fields):
    """Partial profile edit. Returns the fields actually written."""
    fields = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}
    if 'email' in fields:
        fields['email'] = (fields['email'] or '').strip().lower()
        other = find_by_email(store, fields['email'])
        if other and other['id'] != donor_id:
            raise InvalidInput("Email already exists")
    if fields.get('password'):
        fields['password'] = make_password(fields['password'])
    if not fields:
        raise InvalidInput("No updatable fields supplied")
    store.patch('donors', donor_id, fields)
    return fields


def set_availability(store, donor_id, status, now=None, cooldown_days=COOLDOWN_DAYS):
    """Manual active/inactive toggle; refused while the donor is on cooldown."""
    donor = get_donor(store, donor_id)
    days = remaining_days(donor, now, cooldown_days)
    if days is not None:
        raise StateConflict(f"Availability is locked during the post-donation cooldown ({days} day(s) left).")
    store.patch('donors', donor_id, {"status": status})
    logger.info("Donor %s set availability to %s", donor_id, status)
    return {"id": donor_id, "status": status}


def donations(store, donor_id):
    return sorted(store.find('donations', donorId=donor_id), key=sort_key('donatedAt'), reverse=True)


def dashboard(store, donor_id, now=None, radius_km=GPS_RADIUS_KM, cooldown_days=COOLDOWN_DAYS):
    """Requests a donor can see plus their cooldown state."""
    now = now or utcnow()
    reactivate_expired(store, now, cooldown_days)
    donor = get_donor(store, donor_id)
    rejected = {r['requestId'] for r in store.find('rejections', donorId=donor_id)}
    return {
        "donor": donor,
        "requests": visible_requests(donor, store.list('requests'), rejected, radius_km),
        "onCooldown": is_on_cooldown(donor, now, cooldown_days),
        "cooldownDaysRemaining": remaining_days(donor, now, cooldown_days),
        "nextEligibleAt": next_eligible_at(donor, now, cooldown_days),
    }

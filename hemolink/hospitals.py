import logging

from django.contrib.auth.hashers import make_password

from .cooldown import COOLDOWN_DAYS, reactivate_expired
from .eligibility import BLOOD_GROUPS, eligible_donors, nearby_donors
from .exceptions import InvalidInput, RecordNotFound
from .geo import GPS_RADIUS_KM
from .lifecycle import PENDING
from .timeutils import sort_key, to_iso, utcnow

logger = logging.getLogger(__name__)


def find_by_email_and_license(store, email, license_no):
    email = (email or '').strip().lower()
    license_no = (license_no or '').strip().lower()
    for hospital in store.list('hospitals'):
        if (hospital.get('email') or '').lower() == email and (hospital.get('license') or '').lower() == license_no:
            return hospital
    return None


def find_by_license(store, license_no):
    license_no = (license_no or '').strip().lower()
    if not license_no:
        return None
    for hospital in store.list('hospitals'):
        if (hospital.get('license') or '').strip().lower() == license_no:
            return hospital
    return None


def get_hospital(store, hospital_id):
    hospital = store.get('hospitals', hospital_id)
    if hospital is None:
        raise RecordNotFound("Hospital not found")
    return hospital


def register(store, data, now=None):
    data = dict(data)
    data['email'] = (data.get('email') or '').strip().lower()
    if any((h.get('email') or '').lower() == data['email'] for h in store.list('hospitals')):
        raise InvalidInput("Email already exists")
    if find_by_license(store, data.get('license')):
        raise InvalidInput("Hospital already registered")
    if data.get('password'):
        data['password'] = make_password(data['password'])
    data.update({"status": "active", "registeredAt": to_iso(now or utcnow())})
    hospital = store.create('hospitals', data)
    logger.info("Hospital %s registered", hospital['id'])
    return hospital


def requests_by_hospital(store, hospital_id):
    return sorted(store.requests_for_hospital(hospital_id), key=sort_key('createdAt'), reverse=True)


def pending_requests_for_group(store, blood_group):
    """Open requests tagged with exactly this blood group."""
    return sorted(
        store.find('requests', bloodGroup=blood_group, status=PENDING),
        key=sort_key('createdAt'), reverse=True,
    )


def eligible_donors_for_request(store, request_id, now=None, radius_km=GPS_RADIUS_KM,
                                cooldown_days=COOLDOWN_DAYS):
    req = store.get('requests', request_id)
    if req is None:
        raise RecordNotFound("Request not found")
    now = now or utcnow()
    reactivate_expired(store, now, cooldown_days)
    return eligible_donors(req['bloodGroup'], req['hospitalLocation'], store.list('donors'),
                           now, radius_km, cooldown_days)


def nearby_donors_for_hospital(store, hospital_id, now=None, radius_km=GPS_RADIUS_KM,
                               cooldown_days=COOLDOWN_DAYS):
    hospital = get_hospital(store, hospital_id)
    if not hospital.get('location'):
        raise InvalidInput("Hospital has no location on record")
    now = now or utcnow()
    reactivate_expired(store, now, cooldown_days)
    return nearby_donors(hospital['location'], store.list('donors'), now, radius_km, cooldown_days)


def stats(store):
    donors = store.list('donors')
    total_donations = len(store.list('donations'))
    by_blood = {bg: 0 for bg in BLOOD_GROUPS}
    for d in donors:
        bg = d.get('bloodGroup') or 'Unknown'
        by_blood[bg] = by_blood.get(bg, 0) + 1
    return {
        "donorCount": len(donors),
        "hospitalCount": len(store.list('hospitals')),
        "activeDonors": sum(1 for d in donors if d.get('status') == 'active'),
        "totalDonations": total_donations,
        "livesImpacted": total_donations * 3,
        "byBlood": by_blood,
    }

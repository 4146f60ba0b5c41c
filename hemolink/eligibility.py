"""
Donor/request matching.

Blood groups match literally: a request for "O+" is only shown to "O+"
donors, and "Any" matches every donor. ABO cross-compatibility is not
modelled.
"""
from .cooldown import COOLDOWN_DAYS, is_on_cooldown
from .geo import GPS_RADIUS_KM, distance_between, has_location
from .timeutils import sort_key, utcnow

BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'O+', 'O-', 'AB+', 'AB-']
ANY_GROUP = 'Any'


def group_matches(request_group, donor_group):
    return request_group == ANY_GROUP or (donor_group or '') == request_group


def is_eligible(donor, blood_group, hospital_location, now=None,
                radius_km=GPS_RADIUS_KM, cooldown_days=COOLDOWN_DAYS):
    if donor.get('status') != 'active':
        return False
    if is_on_cooldown(donor, now, cooldown_days):
        return False
    if not group_matches(blood_group, donor.get('bloodGroup')):
        return False
    if not has_location(donor.get('location')):
        return False
    return distance_between(hospital_location, donor['location']) <= radius_km


def eligible_donors(blood_group, hospital_location, donors, now=None,
                    radius_km=GPS_RADIUS_KM, cooldown_days=COOLDOWN_DAYS):
    """Donors that may be shown a request, in input order."""
    now = now or utcnow()
    return [
        d for d in donors
        if is_eligible(d, blood_group, hospital_location, now, radius_km, cooldown_days)
    ]


def nearby_donors(location, donors, now=None, radius_km=GPS_RADIUS_KM,
                  cooldown_days=COOLDOWN_DAYS):
    """
    Every located donor within radius_km of location, nearest first.

    Inactive donors and donors on cooldown are included and flagged; this
    is the hospital's map view, not the matching set.
    """
    now = now or utcnow()
    results = []
    for donor in donors:
        if not has_location(donor.get('location')):
            continue
        dist = distance_between(location, donor['location'])
        if dist > radius_km:
            continue
        results.append({
            'donor': donor,
            'distanceKm': round(dist, 2),
            'onCooldown': is_on_cooldown(donor, now, cooldown_days),
        })
    results.sort(key=lambda x: x['distanceKm'])
    return results


def is_visible_to_donor(request, donor, rejected_ids=(), radius_km=GPS_RADIUS_KM):
    # A donor always keeps sight of requests they took on.
    if request.get('donorId') and request.get('donorId') == donor.get('id'):
        return True
    if request.get('id') in rejected_ids:
        return False
    if not group_matches(request.get('bloodGroup'), donor.get('bloodGroup')):
        return False
    if request.get('status') != 'pending':
        return False
    if has_location(donor.get('location')) and has_location(request.get('hospitalLocation')):
        if distance_between(donor['location'], request['hospitalLocation']) > radius_km:
            return False
    return True


def visible_requests(donor, requests, rejected_ids=(), radius_km=GPS_RADIUS_KM):
    """Requests shown on a donor's dashboard, newest first."""
    rejected_ids = set(rejected_ids)
    matching = [
        r for r in requests
        if is_visible_to_donor(r, donor, rejected_ids, radius_km)
    ]
    matching.sort(key=sort_key('createdAt'), reverse=True)
    return matching

"""
Blood request lifecycle: pending -> accepted -> completed.

A donor declining a request does not change the request; it leaves a
rejection marker that hides the request from that donor only.

Approval touches four collections. The store has no cross-collection
transaction, so the effects are applied in a fixed order (request,
donation, donor, notification) and a failure part-way leaves the earlier
effects in place.
"""
import logging
import secrets
import string

from . import notifications
from .cooldown import COOLDOWN_DAYS, is_on_cooldown
from .exceptions import InvalidInput, RecordNotFound, StateConflict
from .geo import has_location
from .timeutils import to_iso, utcnow

logger = logging.getLogger(__name__)

PENDING = 'pending'
ACCEPTED = 'accepted'
COMPLETED = 'completed'

URGENCY_LEVELS = ['critical', 'high', 'medium', 'low']

_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def blood_group_code(blood_group):
    return blood_group.replace('+', 'P').replace('-', 'N').upper()


def generate_donation_number(blood_group, now=None, taken=()):
    """DON-YYYYMMDD-<group code>-<6 random chars>, e.g. DON-20260301-AP-7K2Q9Z."""
    now = now or utcnow()
    while True:
        suffix = ''.join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
        number = f"DON-{now:%Y%m%d}-{blood_group_code(blood_group)}-{suffix}"
        if number not in taken:
            return number


class RequestLifecycle:
    def __init__(self, store, clock=utcnow, cooldown_days=COOLDOWN_DAYS):
        self.store = store
        self.clock = clock
        self.cooldown_days = cooldown_days

    def _request(self, request_id):
        req = self.store.get('requests', request_id)
        if req is None:
            raise RecordNotFound("Request not found")
        return req

    def create(self, hospital_id, blood_group, units, urgency):
        hospital = self.store.get('hospitals', hospital_id)
        if hospital is None:
            raise InvalidInput("Hospital not found")
        if not has_location(hospital.get('location')):
            raise InvalidInput("Hospital has no location on record")

        req = self.store.create('requests', {
            "hospitalId": hospital_id,
            "hospitalName": hospital.get('name', ''),
            # snapshot, later hospital moves do not affect open requests
            "hospitalLocation": dict(hospital['location']),
            "bloodGroup": blood_group,
            "units": units,
            "urgency": urgency,
            "status": PENDING,
            "createdAt": to_iso(self.clock()),
        })
        logger.info("Request %s created by hospital %s (%s x%s, %s)",
                    req['id'], hospital_id, blood_group, units, urgency)
        return req

    def accept(self, request_id, donor_id, donor_name=''):
        now = self.clock()
        req = self._request(request_id)
        donor = self.store.get('donors', donor_id)
        if donor is not None and is_on_cooldown(donor, now, self.cooldown_days):
            raise StateConflict("You cannot accept requests during your post-donation cooldown.")
        if req.get('status') != PENDING:
            logger.warning("Accept of %s by %s refused, status is %s", request_id, donor_id, req.get('status'))
            raise StateConflict("This request has already been accepted by another donor.")

        name = donor_name or (donor or {}).get('name', '')
        blood_group = (donor or {}).get('bloodGroup') or req.get('bloodGroup')
        with self.store.batch():
            claimed = self.store.compare_and_patch('requests', request_id, {"status": PENDING}, {
                "status": ACCEPTED,
                "donorId": donor_id,
                "acceptedBy": name,
                "acceptedAt": to_iso(now),
            })
            if not claimed:
                logger.warning("Accept of %s by %s lost the race", request_id, donor_id)
                raise StateConflict("This request has already been accepted by another donor.")

            notifications.notify_hospital(
                self.store, req['hospitalId'], notifications.DONOR_ACCEPTED,
                f"{name} ({blood_group}) has accepted your blood request.",
                now=now, donorName=name, fromDonorId=donor_id,
                bloodGroup=blood_group, requestId=request_id,
            )
        logger.info("Request %s accepted by donor %s", request_id, donor_id)
        return self.store.get('requests', request_id)

    def reject(self, request_id, donor_id, donor_name=''):
        """
        Hide a pending request from one donor.

        Rejecting twice is a no-op: no second marker and no second
        notification. Returns True when a new rejection was recorded.
        """
        req = self._request(request_id)
        if req.get('status') != PENDING:
            raise StateConflict("Only pending requests can be declined.")
        if self.store.find('rejections', requestId=request_id, donorId=donor_id):
            return False

        donor = self.store.get('donors', donor_id) or {}
        name = donor_name or donor.get('name', 'A donor')
        with self.store.batch():
            self.store.create('rejections', {"requestId": request_id, "donorId": donor_id})
            notifications.notify_hospital(
                self.store, req['hospitalId'], notifications.DONOR_REJECTED,
                f"{name} declined your {req.get('bloodGroup')} blood request.",
                now=self.clock(), donorName=name, fromDonorId=donor_id,
                bloodGroup=req.get('bloodGroup'), requestId=request_id,
            )
        logger.info("Request %s declined by donor %s", request_id, donor_id)
        return True

    def approve(self, request_id, donor_id=None, donation_number=None):
        """Hospital confirms the donation; the donor enters cooldown."""
        now = self.clock()
        req = self._request(request_id)
        if req.get('status') != ACCEPTED or not req.get('donorId'):
            raise StateConflict("Only accepted requests can be approved.")
        if donor_id and donor_id != req['donorId']:
            raise InvalidInput("donorId does not match the donor who accepted this request")
        donor_id = req['donorId']

        taken = {d.get('donationNumber') for d in self.store.list('donations')}
        if donation_number and donation_number in taken:
            raise InvalidInput("Donation number already issued")
        donation_number = donation_number or generate_donation_number(req['bloodGroup'], now, taken)
        stamp = to_iso(now)

        with self.store.batch():
            approved = self.store.compare_and_patch(
                'requests', request_id, {"status": ACCEPTED, "donorId": donor_id},
                {"status": COMPLETED, "donationApproved": True,
                 "donationNumber": donation_number, "approvedAt": stamp},
            )
            if not approved:
                raise StateConflict("This request was changed while it was being approved.")

            self.store.create('donations', {
                "donationNumber": donation_number,
                "donorId": donor_id,
                "requestId": request_id,
                "hospitalId": req['hospitalId'],
                "hospitalName": req.get('hospitalName', ''),
                "bloodGroup": req['bloodGroup'],
                "units": req['units'],
                "donatedAt": stamp,
                "approvedAt": stamp,
            })

            donor = self.store.get('donors', donor_id)
            donor_update = {"status": "inactive", "lastDonationApproved": stamp}
            if donor is not None:
                donor_update["donationCount"] = (donor.get('donationCount') or 0) + 1
            else:
                logger.warning("Donor %s not cached, donation count not incremented", donor_id)
            self.store.patch('donors', donor_id, donor_update)

            notifications.notify_donor(
                self.store, donor_id, notifications.DONATION_APPROVED,
                f"Your donation has been approved! Donation Number: {donation_number}",
                now=now, hospitalName=req.get('hospitalName'),
                donationNumber=donation_number, requestId=request_id,
            )
        logger.info("Request %s completed, donation %s by donor %s", request_id, donation_number, donor_id)
        return self.store.get('requests', request_id)

    def delete(self, request_id):
        """Administrative removal; the store drops its hospital/donor index entries."""
        req = self._request(request_id)
        self.store.delete('requests', request_id)
        logger.info("Request %s deleted (status was %s)", request_id, req.get('status'))
        return req

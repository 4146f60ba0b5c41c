"""
Post-donation cooldown.

A donor whose last approved donation is less than COOLDOWN_DAYS old is
ineligible for matching whatever their manual status says. Expired
cooldowns are reactivated lazily from the read paths; there is no
scheduler.
"""
import datetime
import logging
import math

from .timeutils import parse_timestamp, to_iso, utcnow

logger = logging.getLogger(__name__)

COOLDOWN_DAYS = 56

DAY = datetime.timedelta(days=1)


def cooldown_end(donor, cooldown_days=COOLDOWN_DAYS):
    last = parse_timestamp(donor.get('lastDonationApproved'))
    if last is None:
        return None
    return last + datetime.timedelta(days=cooldown_days)


def is_on_cooldown(donor, now=None, cooldown_days=COOLDOWN_DAYS):
    end = cooldown_end(donor, cooldown_days)
    if end is None:
        return False
    return (now or utcnow()) < end


def remaining_days(donor, now=None, cooldown_days=COOLDOWN_DAYS):
    """Whole days left (rounded up), or None when the donor is not on cooldown."""
    now = now or utcnow()
    end = cooldown_end(donor, cooldown_days)
    if end is None or now >= end:
        return None
    return math.ceil((end - now) / DAY)


def next_eligible_at(donor, now=None, cooldown_days=COOLDOWN_DAYS):
    if not is_on_cooldown(donor, now, cooldown_days):
        return None
    return to_iso(cooldown_end(donor, cooldown_days))


def reactivate_expired(store, now=None, cooldown_days=COOLDOWN_DAYS):
    """
    Flip inactive donors whose cooldown has elapsed back to active.

    Only donors that went inactive because of a donation (they carry a
    lastDonationApproved) are touched; a donor who switched themselves off
    without ever donating stays off. Returns the reactivated donor ids.
    """
    now = now or utcnow()
    reactivated = []
    with store.batch():
        for donor in store.list('donors'):
            if donor.get('status') != 'inactive' or not donor.get('lastDonationApproved'):
                continue
            if is_on_cooldown(donor, now, cooldown_days):
                continue
            store.patch('donors', donor['id'], {'status': 'active'})
            reactivated.append(donor['id'])
    if reactivated:
        logger.info("Reactivated %d donor(s) after cooldown: %s", len(reactivated), reactivated)
    return reactivated

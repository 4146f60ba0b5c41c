import datetime


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


def to_iso(moment):
    return moment.isoformat()


def parse_timestamp(value):
    """
    Parse an ISO-8601 timestamp as stored on records.

    Accepts the trailing 'Z' the web clients write and treats naive values
    as UTC. Returns None for empty values.
    """
    if not value:
        return None
    if isinstance(value, datetime.datetime):
        moment = value
    else:
        moment = datetime.datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment


def age_from_dob(dob, today=None):
    """Completed years between a 'YYYY-MM-DD' date of birth and today."""
    birth = datetime.date.fromisoformat(str(dob)[:10])
    today = today or utcnow().date()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


EPOCH = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)


def sort_key(field):
    """Key function ordering records by a timestamp field; missing values sort first."""
    return lambda record: parse_timestamp(record.get(field)) or EPOCH

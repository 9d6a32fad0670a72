# apps/services/relay_protocol.py
"""
Wire format and payload rules for the real-time relay.

Frames are JSON envelopes ``{"event": <name>, "data": <payload>}``. The hub only
needs the envelope; payload checks, the family-code filter and the cache merge
policy live here as plain functions so the device subscriber and the hub's
optional strict mode share the same logic.
"""
import json
import math
from datetime import timezone as dt_timezone

from django.utils.dateparse import parse_datetime

LOCATION_UPDATE_EVENT = 'childLocationUpdate'
SOS_ALERT_EVENT = 'sosAlert'
RELAYED_EVENTS = frozenset({LOCATION_UPDATE_EVENT, SOS_ALERT_EVENT})


class MalformedFrame(ValueError):
    pass


def encode_frame(event, data):
    return json.dumps({'event': event, 'data': data})


def decode_frame(text):
    """Return ``(event, data)`` from a text frame, raising MalformedFrame when the envelope is unusable."""
    try:
        frame = json.loads(text)
    except (TypeError, ValueError) as e:
        raise MalformedFrame(f"Frame is not valid JSON: {e}") from e

    if not isinstance(frame, dict):
        raise MalformedFrame("Frame must be a JSON object.")
    event = frame.get('event')
    if not isinstance(event, str) or not event:
        raise MalformedFrame("Frame has no event name.")
    return event, frame.get('data')


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _has_coordinates(value):
    return isinstance(value, dict) and _is_number(value.get('latitude')) and _is_number(value.get('longitude'))


def is_valid_location_update(payload):
    return (
        _has_coordinates(payload)
        and isinstance(payload.get('familyCode'), str)
        and bool(payload['familyCode'])
        and isinstance(payload.get('timestamp'), str)
    )


def is_valid_sos_alert(payload):
    return (
        isinstance(payload, dict)
        and isinstance(payload.get('message'), str)
        and _has_coordinates(payload.get('location'))
        and isinstance(payload.get('familyCode'), str)
        and bool(payload['familyCode'])
    )


def is_valid_payload(event, payload):
    if event == LOCATION_UPDATE_EVENT:
        return is_valid_location_update(payload)
    if event == SOS_ALERT_EVENT:
        return is_valid_sos_alert(payload)
    return False


def matches_family_codes(payload, family_codes):
    """
    True when the payload is tagged with one of ``family_codes``.

    Anything without a string ``familyCode`` is treated as no match.
    """
    if not isinstance(payload, dict):
        return False
    family_code = payload.get('familyCode')
    return isinstance(family_code, str) and family_code in family_codes


def cache_entry_from_update(payload):
    family_code = payload['familyCode']
    return {
        'id': family_code,
        'familyCode': family_code,
        'latitude': payload['latitude'],
        'longitude': payload['longitude'],
        'timestamp': payload['timestamp'],
    }


def merge_cache_entry(existing, incoming):
    """Arrival order wins: the incoming entry replaces the existing one entirely."""
    return dict(incoming)


def _parse_timestamp(entry):
    try:
        moment = parse_datetime(entry.get('timestamp'))
    except (TypeError, ValueError):
        return None
    if moment is not None and moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt_timezone.utc)
    return moment


def merge_latest_timestamp(existing, incoming):
    """
    Alternative policy keeping whichever entry carries the later timestamp.

    Timestamps are compared as datetimes, so precision and UTC offsets do not
    matter; naive values are read as UTC. An existing entry without a usable
    timestamp is always replaced, while an incoming entry without one never
    replaces a usable existing entry. Ties go to the incoming entry.
    """
    if existing is None:
        return dict(incoming)
    existing_at = _parse_timestamp(existing)
    incoming_at = _parse_timestamp(incoming)
    if existing_at is None or (incoming_at is not None and incoming_at >= existing_at):
        return dict(incoming)
    return existing

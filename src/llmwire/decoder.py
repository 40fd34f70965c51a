"""Frame -> typed event decoding."""

import json

from pydantic import ValidationError

from .errors import EventDecodeError
from .events import EVENT_TYPES, StreamEvent, UnknownEvent
from .sse import Frame


def _event_name(frame: Frame, payload: object) -> str:
    # Without an "event:" line the name comes from the JSON "type" field
    if frame.event != "message":
        return frame.event
    if isinstance(payload, dict) and isinstance(payload.get("type"), str):
        return payload["type"]
    return frame.event


def _unknown(name: str, payload: object, frame: Frame) -> UnknownEvent:
    return UnknownEvent(name=name, raw=payload, data=frame.data)


def decode_event(frame: Frame) -> StreamEvent:
    """Decode one frame into a typed event.

    Unregistered names decode to ``UnknownEvent`` carrying the raw JSON (or the
    data text if it is not JSON).

    Raises:
        EventDecodeError: Known event name with a payload that is not a JSON
            object, whose ``type`` disagrees with the name, or that does not
            match the event model.
    """
    try:
        payload = json.loads(frame.data)
    except ValueError as e:
        payload = None
        parse_error: ValueError | None = e
    else:
        parse_error = None

    name = _event_name(frame, payload)
    model = EVENT_TYPES.get(name)
    if model is None:
        return _unknown(name, frame.data if parse_error else payload, frame)

    if parse_error is not None:
        raise EventDecodeError(
            f"event {name!r}: data is not valid JSON: {parse_error}",
            event_name=name,
            data=frame.data,
        )
    if not isinstance(payload, dict):
        raise EventDecodeError(
            f"event {name!r}: data is not a JSON object",
            event_name=name,
            data=frame.data,
        )

    declared = payload.get("type")
    if declared is None:
        payload = {**payload, "type": name}
    elif declared != name:
        raise EventDecodeError(
            f"event {name!r}: payload type {declared!r} does not match",
            event_name=name,
            data=frame.data,
        )

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise EventDecodeError(
            f"event {name!r}: {e.error_count()} invalid field(s): {e}",
            event_name=name,
            data=frame.data,
        ) from e

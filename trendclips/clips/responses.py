"""
Decoding of language model replies into JSON objects.

A reply is either raw text (plain JSON, or JSON buried in prose or code
fences) or an already-parsed envelope such as ``{"caption": "..."}``. Every
decoder here is total: bad input yields None, never an exception.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

# Keys whose value may hold the real payload
ENVELOPE_FIELDS = ("caption", "moment", "moments", "clips")

_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class RawText:
    text: str


@dataclass(frozen=True)
class Enveloped:
    payload: dict


ModelResponse = Union[RawText, Enveloped]


def as_model_response(raw: Any) -> Optional[ModelResponse]:
    """Tag a raw client reply."""
    if isinstance(raw, dict):
        return Enveloped(raw)
    if isinstance(raw, str):
        return RawText(raw)
    return None


def _loads_object(text: str) -> Optional[dict]:
    try:
        value = json.loads(text)
    except (TypeError, ValueError):
        return None
    return value if isinstance(value, dict) else None


def _extract_object(text: str) -> Optional[dict]:
    match = _OBJECT_PATTERN.search(text)
    if not match:
        return None
    return _loads_object(match.group(0))


def _unwrap(payload: dict, fields: tuple[str, ...]) -> Optional[ModelResponse]:
    for key in fields:
        if key not in payload:
            continue
        inner = payload[key]
        if isinstance(inner, list):
            inner = inner[0] if inner else None
        tagged = as_model_response(inner)
        if tagged is not None:
            return tagged
    return None


def decode_response(
    response: Optional[ModelResponse],
    envelope_fields: tuple[str, ...] = ENVELOPE_FIELDS,
    _unwrapped: bool = False,
) -> Optional[dict]:
    """Turn a tagged reply into a JSON object.

    Tries, in order: parsing the whole text, parsing the first ``{...}``
    block, and unwrapping a known envelope field (recursing once).

    Returns:
        The decoded object, or None if nothing usable was found.
    """
    if response is None:
        return None

    if isinstance(response, Enveloped):
        payload = response.payload
    else:
        text = response.text.strip()
        payload = _loads_object(text) or _extract_object(text)
        if payload is None:
            return None

    if "start" in payload or "end" in payload or _unwrapped:
        return payload

    inner = _unwrap(payload, envelope_fields)
    if inner is None:
        return payload
    return decode_response(inner, envelope_fields, _unwrapped=True) or payload

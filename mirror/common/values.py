"""
Document-store value kinds and the typed-JSON wire decoder.
"""
import base64
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

RESOURCE_NAME_MARKER = "/documents/"
DOCUMENT_KEYS = {"name", "fields", "createTime", "updateTime"}


class WireFormatError(ValueError):
    """Raised when a wire value cannot be decoded."""


@dataclass(frozen=True)
class GeoPoint:
    """Geographic point stored in a document."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Timestamp:
    """Store-native timestamp with nanosecond precision."""
    seconds: int
    nanos: int = 0

    @classmethod
    def from_datetime(cls, value: datetime) -> "Timestamp":
        """Build a timestamp from a datetime; naive datetimes are taken as UTC."""
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds=seconds, nanos=delta.microseconds * 1000)

    @classmethod
    def from_rfc3339(cls, text: str) -> "Timestamp":
        """
        Parse an RFC 3339 timestamp such as ``2024-03-01T12:00:00.123456789Z``.

        Fractional seconds beyond microseconds are kept in ``nanos``.
        """
        if not isinstance(text, str):
            raise WireFormatError(f"Timestamp must be a string, got {type(text).__name__}")

        body = text.strip()
        if body.endswith('Z') or body.endswith('z'):
            body = body[:-1] + '+00:00'

        nanos = 0
        if '.' in body:
            head, rest = body.split('.', 1)
            digits = ''
            for ch in rest:
                if not ch.isdigit():
                    break
                digits += ch
            offset = rest[len(digits):]
            nanos = int((digits + '000000000')[:9]) if digits else 0
            body = head + offset

        try:
            parsed = datetime.fromisoformat(body)
        except ValueError as e:
            raise WireFormatError(f"Invalid timestamp '{text}': {e}") from e

        whole = cls.from_datetime(parsed)
        return cls(seconds=whole.seconds, nanos=nanos)

    def to_datetime(self) -> datetime:
        """Return an aware UTC datetime (microsecond precision)."""
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc).replace(
            microsecond=self.nanos // 1000
        )


@dataclass(frozen=True)
class DocumentReference:
    """Reference to another document, addressed by its slash-separated path."""
    path: str

    @property
    def id(self) -> str:
        return self.path.rsplit('/', 1)[-1]

    @property
    def parent(self) -> str:
        """Path of the collection holding the referenced document."""
        return self.path.rsplit('/', 1)[0] if '/' in self.path else ''

    @classmethod
    def from_resource_name(cls, name: str) -> "DocumentReference":
        """
        Build a reference from a full resource name.

        ``projects/p/databases/(default)/documents/users/alice`` becomes
        ``users/alice``. Names without the documents marker are kept as-is.
        """
        if RESOURCE_NAME_MARKER in name:
            return cls(path=name.split(RESOURCE_NAME_MARKER, 1)[1])
        return cls(path=name.strip('/'))


def decode_value(wire: Dict[str, Any]) -> Any:
    """
    Decode a single typed wire value into a Python value.

    Args:
        wire: Mapping with exactly one ``<kind>Value`` key

    Returns:
        Decoded value (primitive, list, dict or value-model object)
    """
    if not isinstance(wire, dict) or len(wire) != 1:
        raise WireFormatError(f"Wire value must hold exactly one kind: {wire!r}")

    kind, payload = next(iter(wire.items()))

    if kind == 'nullValue':
        return None
    if kind == 'booleanValue':
        if not isinstance(payload, bool):
            raise WireFormatError(f"Invalid booleanValue: {payload!r}")
        return payload
    if kind == 'integerValue':
        try:
            return int(payload)
        except (TypeError, ValueError, OverflowError) as e:
            raise WireFormatError(f"Invalid integerValue: {payload!r}") from e
    if kind == 'doubleValue':
        # NaN and infinities arrive as strings
        try:
            return float(payload)
        except (TypeError, ValueError) as e:
            raise WireFormatError(f"Invalid doubleValue: {payload!r}") from e
    if kind == 'stringValue':
        if not isinstance(payload, str):
            raise WireFormatError(f"Invalid stringValue: {payload!r}")
        return payload
    if kind == 'bytesValue':
        try:
            return base64.b64decode(payload)
        except (TypeError, ValueError) as e:
            raise WireFormatError(f"Invalid bytesValue: {e}") from e
    if kind == 'timestampValue':
        return Timestamp.from_rfc3339(payload)
    if kind == 'geoPointValue':
        payload = _payload_object(kind, payload)
        try:
            return GeoPoint(
                latitude=float(payload.get('latitude', 0.0)),
                longitude=float(payload.get('longitude', 0.0)),
            )
        except (TypeError, ValueError) as e:
            raise WireFormatError(f"Invalid geoPointValue: {payload!r}") from e
    if kind == 'referenceValue':
        if not isinstance(payload, str):
            raise WireFormatError(f"Invalid referenceValue: {payload!r}")
        return DocumentReference.from_resource_name(payload)
    if kind == 'arrayValue':
        values = _payload_object(kind, payload).get('values') or []
        if not isinstance(values, list):
            raise WireFormatError(f"arrayValue values must be a list: {values!r}")
        return [decode_value(item) for item in values]
    if kind == 'mapValue':
        return decode_fields(_payload_object(kind, payload).get('fields') or {})

    raise WireFormatError(f"Unknown wire value kind: {kind}")


def _payload_object(kind: str, payload: Any) -> Dict[str, Any]:
    # Empty objects may be sent as null
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise WireFormatError(f"{kind} must be an object: {payload!r}")
    return payload


def decode_fields(fields: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    """Decode a ``fields`` mapping of wire values."""
    if not isinstance(fields, dict):
        raise WireFormatError(f"Fields must be an object: {fields!r}")
    return {name: decode_value(wire) for name, wire in fields.items()}


def decode_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode an exported document into a plain record.

    Accepts a REST document (``{"name": ..., "fields": {...}}``) or a bare
    ``fields`` mapping.
    """
    if is_rest_document(document):
        return decode_fields(document.get('fields') or {})
    return decode_fields(document)


def is_rest_document(document: Dict[str, Any]) -> bool:
    """Tell a REST document envelope apart from a bare ``fields`` mapping."""
    if isinstance(document.get('name'), str):
        return True
    if 'fields' not in document or not set(document) <= DOCUMENT_KEYS:
        return False
    # A bare mapping may hold a field literally called "fields"
    fields = document['fields']
    return isinstance(fields, dict) and not (
        len(fields) == 1 and next(iter(fields)).endswith('Value')
    )


def document_name(document: Dict[str, Any]) -> Optional[str]:
    """Return the document path of a REST document, if it carries one."""
    name = document.get('name')
    if isinstance(name, str) and name:
        return DocumentReference.from_resource_name(name).path
    return None


def kind_of(value: Any) -> str:
    """Name the observed kind of a dynamic value, for diagnostics."""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, (list, tuple)):
        return 'array'
    if isinstance(value, GeoPoint):
        return 'geopoint'
    if isinstance(value, (Timestamp, datetime)):
        return 'timestamp'
    if isinstance(value, DocumentReference):
        return 'reference'
    if isinstance(value, (bytes, bytearray)):
        return 'bytes'
    return 'object'


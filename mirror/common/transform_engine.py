"""
Schema transform engine for turning document-store records into warehouse rows.

The schema is an ordered list of field descriptors. Each descriptor names a
field, declares one of a closed set of types and may be repeated (an array
of that type) or, for ``map`` fields, carry a nested list of descriptors.

Bad data never aborts a record: an invalid scalar is dropped, an invalid
array element is replaced by ``HOLE`` and a warning is logged for each.
A descriptor with an unknown type is a configuration error and raises
``SchemaDefinitionError``.
"""
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, List, Optional, Union, Callable

from .values import GeoPoint, Timestamp, DocumentReference, kind_of

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    BOOLEAN = "boolean"
    GEOPOINT = "geopoint"
    JSON = "json"
    MAP = "map"
    NUMBER = "number"
    REFERENCE = "reference"
    STRING = "string"
    TIMESTAMP = "timestamp"


class _Marker:
    """Named sentinel that never compares equal to real data."""

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Array position whose source element failed validation
HOLE = _Marker("HOLE")

# Returned by extract_field when the field is left out of the row
OMITTED = _Marker("OMITTED")


class SchemaDefinitionError(ValueError):
    """Raised when a field descriptor declares an unrecognised type."""

    def __init__(self, descriptor: "FieldDescriptor"):
        self.descriptor = descriptor
        super().__init__(
            f"Invalid field definition: {json.dumps(descriptor.to_dict(), default=str)}"
        )


@dataclass
class FieldDescriptor:
    """One schema entry: name, declared type, repetition and nested fields."""
    name: str
    type: str
    repeated: bool = False
    fields: List["FieldDescriptor"] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDescriptor":
        return cls(
            name=data.get('name'),
            type=data.get('type'),
            repeated=bool(data.get('repeated', False)),
            fields=[cls.from_dict(child) for child in data.get('fields') or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "type": self.type}
        if self.repeated:
            data["repeated"] = True
        if self.fields:
            data["fields"] = [child.to_dict() for child in self.fields]
        return data

    @property
    def field_type(self) -> FieldType:
        """Resolve the declared type, raising SchemaDefinitionError if unknown."""
        try:
            return FieldType(self.type)
        except ValueError:
            raise SchemaDefinitionError(self) from None


Schema = List[Union[FieldDescriptor, Dict[str, Any]]]


def as_descriptor(entry: Union[FieldDescriptor, Dict[str, Any]]) -> FieldDescriptor:
    if isinstance(entry, FieldDescriptor):
        return entry
    return FieldDescriptor.from_dict(entry)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_structured(value: Any) -> bool:
    """True for any object-shaped value: mappings, arrays and store values."""
    return isinstance(value, (Mapping, list, tuple, GeoPoint, Timestamp, DocumentReference, datetime))


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def timestamp_seconds(value: Union[Timestamp, datetime]) -> int:
    if isinstance(value, datetime):
        value = Timestamp.from_datetime(value)
    return int(value.seconds)


def _json_default(value: Any) -> Any:
    if isinstance(value, GeoPoint):
        return {"latitude": value.latitude, "longitude": value.longitude}
    if isinstance(value, (Timestamp, datetime)):
        return timestamp_seconds(value)
    if isinstance(value, DocumentReference):
        return value.path
    if isinstance(value, (bytes, bytearray)):
        return value.decode('utf-8', errors='replace')
    if isinstance(value, tuple):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _with_string_keys(value: Any) -> Any:
    """Copy nested mappings with string keys so mixed key types still sort."""
    if isinstance(value, Mapping):
        return {str(k): _with_string_keys(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_with_string_keys(v) for v in value]
    return value


def to_json_text(value: Any) -> str:
    """
    Serialise a structured value to canonical JSON text.

    Raises TypeError for values with no JSON form (sets, arbitrary objects)
    and ValueError for NaN or infinite floats.
    """
    return json.dumps(
        _with_string_keys(value), sort_keys=True, separators=(',', ':'),
        allow_nan=False, default=_json_default,
    )


VALIDATORS: Dict[FieldType, Callable[[Any], bool]] = {
    FieldType.BOOLEAN: lambda v: isinstance(v, bool),
    FieldType.GEOPOINT: lambda v: isinstance(v, GeoPoint),
    FieldType.JSON: is_structured,
    FieldType.MAP: lambda v: isinstance(v, Mapping),
    FieldType.NUMBER: is_number,
    FieldType.REFERENCE: lambda v: isinstance(v, DocumentReference),
    FieldType.STRING: lambda v: isinstance(v, str),
    FieldType.TIMESTAMP: lambda v: isinstance(v, (Timestamp, datetime)),
}

PROCESSORS: Dict[FieldType, Callable[[Any, List[FieldDescriptor]], Any]] = {
    FieldType.BOOLEAN: lambda v, fields: v,
    FieldType.GEOPOINT: lambda v, fields: {"latitude": v.latitude, "longitude": v.longitude},
    FieldType.JSON: lambda v, fields: to_json_text(v),
    FieldType.MAP: lambda v, fields: extract_record(v, fields),
    FieldType.NUMBER: lambda v, fields: v,
    FieldType.REFERENCE: lambda v, fields: v.path,
    FieldType.STRING: lambda v, fields: v,
    FieldType.TIMESTAMP: lambda v, fields: timestamp_seconds(v),
}


def extract_record(record: Mapping, schema: Schema) -> Dict[str, Any]:
    """
    Extract the fields named in the schema from a record.

    Args:
        record: Document data keyed by field name
        schema: Ordered field descriptors (dataclasses or plain dicts)

    Returns:
        Row holding only the fields that were present and valid

    Raises:
        SchemaDefinitionError: if a descriptor declares an unknown type
    """
    row: Dict[str, Any] = {}

    for entry in schema:
        descriptor = as_descriptor(entry)
        value = record.get(descriptor.name)

        if value is None:
            # Missing and explicit null are both left out
            continue

        extracted = extract_field(descriptor, value)
        if extracted is not OMITTED:
            row[descriptor.name] = extracted

    return row


def _convert(process: Callable, value: Any, descriptor: FieldDescriptor, label: str) -> Any:
    """Run a converter; a value it cannot convert is warned about and omitted."""
    try:
        return process(value, descriptor.fields)
    except SchemaDefinitionError:
        raise
    except (TypeError, ValueError) as e:
        logger.warning(f"{descriptor.type} {label} '{descriptor.name}': Invalid data value: {e}")
        return OMITTED


def extract_field(descriptor: Union[FieldDescriptor, Dict[str, Any]], value: Any) -> Any:
    """
    Validate and convert one field value.

    Repeated fields keep their length: an invalid element becomes ``HOLE``.
    An invalid scalar, or a repeated field given something other than an
    array, returns ``OMITTED`` so the caller drops the field.
    """
    descriptor = as_descriptor(descriptor)
    # Resolved before any data checks so a bad type is fatal even for arrays
    field_type = descriptor.field_type
    is_valid = VALIDATORS[field_type]
    process = PROCESSORS[field_type]

    if descriptor.repeated:
        if not is_array(value):
            logger.warning(f"Array field '{descriptor.name}' does not contain an array, skipping")
            return OMITTED

        converted = []
        for item in value:
            if is_valid(item):
                result = _convert(process, item, descriptor, "array field")
                converted.append(HOLE if result is OMITTED else result)
            else:
                logger.warning(
                    f"{field_type.value} array field '{descriptor.name}': Invalid data type: {kind_of(item)}"
                )
                converted.append(HOLE)
        return converted

    if is_valid(value):
        return _convert(process, value, descriptor, "field")

    logger.warning(f"{field_type.value} field '{descriptor.name}': Invalid data type: {kind_of(value)}")
    return OMITTED


def extract_snapshot_data(snapshot: Any, schema: Schema) -> Dict[str, Any]:
    """
    Extract schema fields from a document snapshot.

    Accepts anything exposing ``to_dict()`` or a plain mapping. A snapshot
    of a deleted document (no data) yields an empty row.
    """
    data: Optional[Mapping] = snapshot.to_dict() if hasattr(snapshot, 'to_dict') else snapshot
    if data is None:
        return {}
    return extract_record(data, schema)

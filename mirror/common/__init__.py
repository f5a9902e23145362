from .transform_engine import (
    FieldDescriptor,
    FieldType,
    HOLE,
    OMITTED,
    SchemaDefinitionError,
    extract_field,
    extract_record,
    extract_snapshot_data,
)
from .values import DocumentReference, GeoPoint, Timestamp, WireFormatError, decode_document

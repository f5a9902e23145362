"""
Schema loading utilities for mirror operations.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Tuple, Optional, Union
import jsonschema
import yaml
from jsonschema import ValidationError

from .transform_engine import FieldDescriptor

logger = logging.getLogger(__name__)

# Structural shape of a field list. Type names are left open on purpose:
# unknown types are reported by the transform engine as SchemaDefinitionError.
FIELD_LIST_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "definitions": {
        "field": {
            "type": "object",
            "required": ["name", "type"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "type": {"type": "string"},
                "repeated": {"type": "boolean"},
                "description": {"type": "string"},
                "fields": {
                    "type": "array",
                    "items": {"$ref": "#/definitions/field"},
                },
            },
        },
    },
    "type": "array",
    "items": {"$ref": "#/definitions/field"},
}


class SchemaLoadError(ValueError):
    """Raised when a schema file cannot be read or has the wrong shape."""


def read_schema_file(schema_path: Path) -> Any:
    """Read a JSON or YAML schema file."""
    schema_path = Path(schema_path)
    try:
        with open(schema_path, 'r') as f:
            if schema_path.suffix.lower() in ('.yaml', '.yml'):
                return yaml.safe_load(f)
            return json.load(f)
    except FileNotFoundError as e:
        logger.error(f"Failed to load schema from {schema_path}: {e}")
        raise
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        logger.error(f"Failed to load schema from {schema_path}: {e}")
        raise SchemaLoadError(f"Unreadable schema file {schema_path}: {e}") from e


def field_list(raw: Any) -> Any:
    """Return the field list of a raw schema (a list, or a mapping with ``fields``)."""
    if isinstance(raw, dict) and 'fields' in raw:
        return raw['fields']
    return raw


def validate_schema_shape(raw: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate the structure of a raw schema definition.

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        jsonschema.validate(instance=field_list(raw), schema=FIELD_LIST_SCHEMA)
    except ValidationError as e:
        return False, e.message

    duplicate = find_duplicate_name(field_list(raw))
    if duplicate:
        return False, f"Duplicate field name: {duplicate}"
    return True, None


def find_duplicate_name(fields: List[Dict[str, Any]], prefix: str = '') -> Optional[str]:
    """Return the dotted path of the first name repeated among siblings."""
    seen = set()
    for entry in fields:
        name = entry['name']
        if name in seen:
            return f"{prefix}{name}"
        seen.add(name)
        nested = find_duplicate_name(entry.get('fields') or [], f"{prefix}{name}.")
        if nested:
            return nested
    return None


def parse_schema(raw: Any) -> List[FieldDescriptor]:
    """Validate a raw schema definition and build field descriptors."""
    is_valid, error_msg = validate_schema_shape(raw)
    if not is_valid:
        raise SchemaLoadError(f"Invalid schema: {error_msg}")
    return [FieldDescriptor.from_dict(entry) for entry in field_list(raw)]


def load_schema(schema_path: Union[str, Path]) -> List[FieldDescriptor]:
    """Load and validate a schema file into field descriptors."""
    raw = read_schema_file(Path(schema_path))
    try:
        fields = parse_schema(raw)
    except SchemaLoadError as e:
        logger.error(f"{e} ({schema_path})")
        raise
    logger.info(f"Loaded schema with {len(fields)} top-level fields from {schema_path}")
    return fields

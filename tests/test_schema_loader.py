"""
Tests for schema file loading.
"""
import json

import pytest

from mirror.common.schema_loader import (
    SchemaLoadError,
    load_schema,
    parse_schema,
    validate_schema_shape,
)
from mirror.common.transform_engine import FieldType, SchemaDefinitionError, extract_record


class TestValidateSchemaShape:
    """Test structural validation of raw schemas."""

    def test_valid_list(self):
        is_valid, error = validate_schema_shape([{"name": "a", "type": "string"}])
        assert is_valid
        assert error is None

    def test_valid_mapping_with_fields(self):
        raw = {"fields": [{"name": "a", "type": "map", "fields": [{"name": "b", "type": "number"}]}]}
        is_valid, _ = validate_schema_shape(raw)
        assert is_valid

    def test_missing_type(self):
        is_valid, error = validate_schema_shape([{"name": "a"}])
        assert not is_valid
        assert "type" in error

    def test_repeated_must_be_boolean(self):
        is_valid, _ = validate_schema_shape([{"name": "a", "type": "string", "repeated": "yes"}])
        assert not is_valid

    def test_nested_shape_checked(self):
        is_valid, _ = validate_schema_shape([{"name": "a", "type": "map", "fields": [{"type": "string"}]}])
        assert not is_valid

    def test_duplicate_sibling_names(self):
        raw = [{"name": "a", "type": "map", "fields": [
            {"name": "b", "type": "string"},
            {"name": "b", "type": "number"},
        ]}]
        is_valid, error = validate_schema_shape(raw)
        assert not is_valid
        assert error == "Duplicate field name: a.b"

    def test_unknown_type_passes_shape_check(self):
        """Unknown types are left for the engine to report."""
        is_valid, _ = validate_schema_shape([{"name": "price", "type": "currency"}])
        assert is_valid


class TestLoadSchema:
    """Test loading schema files."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "schema.yaml"
        path.write_text(
            "fields:\n"
            "  - name: tags\n"
            "    type: string\n"
            "    repeated: true\n"
            "  - name: address\n"
            "    type: map\n"
            "    fields:\n"
            "      - name: city\n"
            "        type: string\n"
        )

        schema = load_schema(path)

        assert [d.name for d in schema] == ["tags", "address"]
        assert schema[0].repeated is True
        assert schema[1].field_type is FieldType.MAP
        assert schema[1].fields[0].name == "city"

    def test_load_json(self, tmp_path):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps([{"name": "n", "type": "number"}]))
        assert load_schema(path)[0].type == "number"

    def test_bundled_schema(self, repo_root):
        schema = load_schema(repo_root / "schemas" / "mirror.schema.yaml")
        assert {d.name for d in schema} >= {"active", "location", "address", "tags"}

    def test_bad_shape_raises(self, tmp_path):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps({"fields": "nope"}))
        with pytest.raises(SchemaLoadError):
            load_schema(path)

    def test_unreadable_file_raises(self, tmp_path):
        path = tmp_path / "schema.yaml"
        path.write_text("fields: [unclosed\n")
        with pytest.raises(SchemaLoadError):
            load_schema(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_schema(tmp_path / "absent.json")

    def test_unknown_type_fails_at_extraction(self):
        schema = parse_schema([{"name": "price", "type": "currency"}])
        with pytest.raises(SchemaDefinitionError):
            extract_record({"price": 1}, schema)

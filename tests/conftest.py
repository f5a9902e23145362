import json
import pathlib
import sys

import pytest

# Allow running the tests from a checkout without installing the package
sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1]))


@pytest.fixture(scope="session")
def repo_root():
    """Return the root directory of the project."""
    return pathlib.Path(__file__).resolve().parents[1]


@pytest.fixture
def user_schema():
    """Schema covering every field type, including a nested map."""
    return [
        {"name": "active", "type": "boolean"},
        {"name": "score", "type": "number"},
        {"name": "displayName", "type": "string"},
        {"name": "settings", "type": "json"},
        {"name": "location", "type": "geopoint"},
        {"name": "createdAt", "type": "timestamp"},
        {"name": "team", "type": "reference"},
        {"name": "tags", "type": "string", "repeated": True},
        {"name": "address", "type": "map", "fields": [
            {"name": "city", "type": "string"},
            {"name": "postcode", "type": "string"},
        ]},
    ]


@pytest.fixture
def write_jsonl(tmp_path):
    """Write a list of objects as a JSONL file under tmp_path."""
    def _write(name, objects, directory=None):
        target_dir = directory or tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        with open(path, 'w') as f:
            for obj in objects:
                f.write((obj if isinstance(obj, str) else json.dumps(obj)) + '\n')
        return path
    return _write

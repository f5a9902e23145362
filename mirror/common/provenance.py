"""
Lineage tracking for mirrored files.
"""
import hashlib
import json
import logging
from pathlib import Path
from typing import Dict, Any, List

from .transform_engine import FieldDescriptor

logger = logging.getLogger(__name__)

MIRROR_VERSION = "1.0"


def calculate_checksum(data: bytes) -> str:
    """Calculate SHA-256 checksum of data."""
    return hashlib.sha256(data).hexdigest()


def file_checksum(path: Path) -> str:
    """Checksum a file's bytes in chunks."""
    digest = hashlib.sha256()
    with open(path, 'rb') as f:
        for chunk in iter(lambda: f.read(65536), b''):
            digest.update(chunk)
    return digest.hexdigest()


def schema_checksum(schema: List[FieldDescriptor]) -> str:
    """Checksum the canonical JSON form of a schema, so a lineage entry pins the schema used."""
    text = json.dumps([d.to_dict() for d in schema], sort_keys=True, separators=(',', ':'))
    return calculate_checksum(text.encode('utf-8'))


def create_lineage_info(source_file: Path, source_checksum: str, schema_sum: str,
                        mirror_timestamp: str) -> Dict[str, Any]:
    return {
        "source_file": str(source_file),
        "source_checksum": source_checksum,
        "schema_checksum": schema_sum,
        "mirror_timestamp": mirror_timestamp,
        "mirror_version": MIRROR_VERSION
    }


def write_lineage_file(output_dir: Path, source_file: Path, lineage_data: Dict[str, Any]) -> Path:
    """Write lineage information to JSON file."""
    lineage_file = output_dir / f"{source_file.stem}_lineage.json"
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        with open(lineage_file, 'w') as f:
            json.dump(lineage_data, f, indent=2)
        logger.info(f"Wrote lineage file: {lineage_file}")
        return lineage_file
    except OSError as e:
        logger.error(f"Failed to write lineage file {lineage_file}: {e}")
        raise

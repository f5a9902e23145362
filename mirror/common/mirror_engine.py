"""
Mirror engine: applies a field schema to exported documents and writes rows to the data lake.
"""
import logging
from pathlib import Path
from typing import Dict, Any, List
from datetime import datetime, UTC

from .transform_engine import FieldDescriptor, SchemaDefinitionError, extract_record
from .values import WireFormatError, decode_document, document_name
from .provenance import file_checksum, schema_checksum, create_lineage_info, write_lineage_file
from .io_utils import read_jsonl_file, write_jsonl_file, write_rejected_record, get_output_filename

logger = logging.getLogger(__name__)

DOCUMENT_NAME_COLUMN = "document_name"


class MirrorEngine:
    """Engine for mirroring exported documents into warehouse-ready rows."""

    def __init__(self, data_lake_root: Path, schema: List[FieldDescriptor]):
        """
        Initialize mirror engine.

        Args:
            data_lake_root: Root path to data lake directory
            schema: Field descriptors applied to every document
        """
        self.data_lake_root = Path(data_lake_root)
        self.schema = schema
        self.mirrored_dir = self.data_lake_root / "mirrored"
        self.rejected_dir = self.data_lake_root / "rejected"

        self.mirrored_dir.mkdir(parents=True, exist_ok=True)
        self.rejected_dir.mkdir(parents=True, exist_ok=True)

    def transform_document(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        Decode an exported document and extract its row.

        Raises:
            WireFormatError: if a field value cannot be decoded
            SchemaDefinitionError: if the schema declares an unknown type
        """
        row = extract_record(decode_document(document), self.schema)

        name = document_name(document)
        if name and DOCUMENT_NAME_COLUMN not in row:
            row[DOCUMENT_NAME_COLUMN] = name
        return row

    def mirror_file(self, source_file: Path) -> Dict[str, Any]:
        """
        Mirror a single JSONL export file.

        Args:
            source_file: Path to the exported documents

        Returns:
            Dictionary with mirror statistics
        """
        source_file = Path(source_file)
        logger.info(f"Starting mirror of {source_file}")

        stats = {
            "source_file": str(source_file),
            "total_records": 0,
            "mirrored_records": 0,
            "rejected_records": 0,
            "schema_error": False,
            "errors": []
        }

        rows = []
        rejects = []
        mirror_timestamp = datetime.now(UTC).isoformat()

        try:
            for line_num, document in read_jsonl_file(source_file):
                stats["total_records"] += 1

                if "error" in document and "raw_line" in document:
                    rejects.append((document, document["error"]))
                    stats["rejected_records"] += 1
                    stats["errors"].append(f"Line {line_num}: {document['error']}")
                    continue

                try:
                    rows.append(self.transform_document(document))
                    stats["mirrored_records"] += 1
                except WireFormatError as e:
                    error_msg = f"Wire format error: {e}"
                    rejects.append((document, error_msg))
                    stats["rejected_records"] += 1
                    stats["errors"].append(f"Line {line_num}: {error_msg}")

        except SchemaDefinitionError as e:
            # The schema is broken, so nothing from this file is written
            logger.error(f"Schema error while mirroring {source_file}: {e}")
            stats["schema_error"] = True
            stats["mirrored_records"] = 0
            stats["rejected_records"] = 0
            stats["errors"].append(str(e))
            return stats

        for document, reason in rejects:
            write_rejected_record(document, reason, self.rejected_dir, source_file)

        if rows:
            output_path = self.mirrored_dir / get_output_filename(source_file, "_rows")
            write_jsonl_file(rows, output_path)

            lineage_data = create_lineage_info(
                source_file, file_checksum(source_file), schema_checksum(self.schema), mirror_timestamp
            )
            lineage_data.update({
                "mirrored_records": stats["mirrored_records"],
                "rejected_records": stats["rejected_records"],
                "output_file": str(output_path)
            })
            write_lineage_file(self.mirrored_dir, source_file, lineage_data)

        logger.info(
            f"Completed mirror of {source_file}: {stats['mirrored_records']} mirrored, "
            f"{stats['rejected_records']} rejected"
        )
        return stats

    def mirror_directory(self, source_dir: Path, pattern: str = "*.jsonl") -> List[Dict[str, Any]]:
        """
        Mirror all export files in a directory.

        Args:
            source_dir: Directory containing exported documents
            pattern: File pattern to match

        Returns:
            List of mirror statistics for each file
        """
        source_path = Path(source_dir)
        if not source_path.exists():
            logger.error(f"Source directory does not exist: {source_dir}")
            return []

        files = sorted(source_path.glob(pattern))
        if not files:
            logger.warning(f"No files found in {source_dir} matching pattern '{pattern}'")
            return []

        logger.info(f"Found {len(files)} files to mirror")
        return [self.mirror_file(file_path) for file_path in files]

"""
IO utilities for reading exported documents and writing mirrored rows.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Any, List, Iterator, Tuple
from datetime import datetime, UTC

from .transform_engine import HOLE

logger = logging.getLogger(__name__)


def encode_row_value(value: Any) -> Any:
    """JSON fallback for rows: holes are written as null."""
    if value is HOLE:
        return None
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def read_jsonl_file(file_path: Path) -> Iterator[Tuple[int, Dict[str, Any]]]:
    """
    Read JSONL file and yield (line_number, data) tuples.

    Undecodable lines are yielded as ``{"error": ..., "raw_line": ...}``.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.error(f"JSON decode error at line {line_num} in {file_path}: {e}")
                    yield line_num, {"error": f"JSON decode error: {e}", "raw_line": line}
                    continue
                if not isinstance(data, dict):
                    yield line_num, {"error": f"Expected a JSON object, got {type(data).__name__}", "raw_line": line}
                    continue
                yield line_num, data
    except FileNotFoundError:
        logger.error(f"File not found: {file_path}")
        raise


def write_jsonl_file(rows: List[Dict[str, Any]], output_path: Path) -> None:
    """Write rows to a JSONL file, one compact object per line."""
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            for row in rows:
                f.write(json.dumps(row, default=encode_row_value) + '\n')
        logger.info(f"Wrote {len(rows)} rows to {output_path}")
    except OSError as e:
        logger.error(f"Error writing to {output_path}: {e}")
        raise


def write_rejected_record(record: Dict[str, Any], error_reason: str, output_dir: Path, source_file: Path) -> Path:
    """Append a rejected document, with the reason, to the rejected directory."""
    output_dir.mkdir(parents=True, exist_ok=True)

    rejected_record = {
        "original_record": record,
        "error_reason": error_reason,
        "source_file": str(source_file),
        "rejected_at": datetime.now(UTC).isoformat()
    }

    output_path = output_dir / f"{source_file.stem}_rejected.jsonl"
    try:
        with open(output_path, 'a', encoding='utf-8') as f:
            f.write(json.dumps(rejected_record, default=str) + '\n')
    except OSError as e:
        logger.error(f"Error writing rejected record: {e}")
        raise

    logger.warning(f"Rejected record from {source_file}: {error_reason}")
    return output_path


def get_output_filename(source_file: Path, suffix: str = "") -> str:
    """Generate output filename based on source file."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{source_file.stem}{suffix}_{timestamp}.jsonl"

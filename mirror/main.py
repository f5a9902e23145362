"""
Main orchestrator for mirroring exported document collections.
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Dict, Any, Optional

from mirror.common.config import MirrorConfig, load_config
from mirror.common.mirror_engine import MirrorEngine
from mirror.common.notifier import SlackNotifier
from mirror.common.schema_loader import SchemaLoadError, load_schema


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def run_mirror_for_source(engine: MirrorEngine, source_dir: Path, pattern: str) -> Dict[str, Any]:
    """Run the mirror for one source directory."""
    logging.info(f"Processing source: {source_dir}")

    if not source_dir.exists():
        logging.warning(f"Source directory does not exist: {source_dir}")
        return {
            "source": str(source_dir),
            "status": "skipped",
            "reason": "Directory does not exist",
            "stats": None
        }

    try:
        file_stats = engine.mirror_directory(source_dir, pattern)
    except Exception as e:
        logging.error(f"Error processing source {source_dir}: {e}")
        return {
            "source": str(source_dir),
            "status": "failed",
            "reason": str(e),
            "stats": None
        }

    failed_files = [s["source_file"] for s in file_stats if s["schema_error"]]

    return {
        "source": str(source_dir),
        "status": "failed" if failed_files else "completed",
        "reason": f"Schema error in {', '.join(failed_files)}" if failed_files else "Success",
        "stats": {
            "mirrored_records": sum(s["mirrored_records"] for s in file_stats),
            "rejected_records": sum(s["rejected_records"] for s in file_stats),
            "files_processed": len(file_stats)
        }
    }


def summarize(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate per-source results into run totals."""
    summary = {"mirrored_records": 0, "rejected_records": 0, "files_processed": 0}
    for result in results:
        stats = result["stats"] or {}
        for key in summary:
            summary[key] += stats.get(key, 0)
    return summary


def build_config(args: argparse.Namespace) -> MirrorConfig:
    config = load_config(args.config)
    if args.schema_path:
        config.schema_path = args.schema_path
    if args.data_lake_root:
        config.data_lake_root = args.data_lake_root
    if args.webhook_url:
        config.slack_webhook_url = args.webhook_url
    if args.pattern:
        config.source_pattern = args.pattern
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Mirror exported documents into warehouse rows")
    parser.add_argument("sources", nargs="+", help="Directories containing exported JSONL documents")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument("--config", help="Path to YAML configuration file")
    parser.add_argument("--schema-path", help="Path to field schema file (JSON or YAML)")
    parser.add_argument("--data-lake-root", help="Data lake root directory")
    parser.add_argument("--webhook-url", help="Slack incoming webhook URL for lifecycle messages")
    parser.add_argument("--pattern", help="File pattern to mirror in each source directory")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    config = build_config(args)
    notifier = SlackNotifier(config.slack_webhook_url)
    notifier.start({**config.to_dict(), "sources": args.sources})

    try:
        schema = load_schema(config.schema_path)
    except (SchemaLoadError, OSError) as e:
        notifier.error(e)
        return 1

    engine = MirrorEngine(Path(config.data_lake_root), schema)
    results = [
        run_mirror_for_source(engine, Path(source), config.source_pattern)
        for source in args.sources
    ]

    logging.info("=== Mirror Summary ===")
    for result in results:
        if result["status"] == "completed":
            stats = result["stats"]
            logging.info(
                f"{result['source']}: {result['status']} - {stats['mirrored_records']} mirrored, "
                f"{stats['rejected_records']} rejected"
            )
        else:
            logging.warning(f"{result['source']}: {result['status']} - {result['reason']}")

    summary = summarize(results)
    logging.info(f"Total: {summary['mirrored_records']} mirrored, {summary['rejected_records']} rejected")

    unsuccessful = [r for r in results if r["status"] != "completed"]
    if unsuccessful:
        notifier.error(RuntimeError(f"Sources not mirrored: {[r['source'] for r in unsuccessful]}"))
        return 1

    notifier.complete(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""
Configuration for mirror runs: YAML file plus environment overrides.
"""
import logging
import os
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional, Mapping

import yaml

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "MIRROR_DATA_LAKE_ROOT": "data_lake_root",
    "MIRROR_SCHEMA_PATH": "schema_path",
    "SLACK_WEBHOOK_URL": "slack_webhook_url",
}


@dataclass
class MirrorConfig:
    data_lake_root: str = "data_lake"
    schema_path: str = "schemas/mirror.schema.yaml"
    slack_webhook_url: Optional[str] = None
    source_pattern: str = "*.jsonl"

    def to_dict(self, redact: bool = True) -> Dict[str, Any]:
        """Dictionary form; the webhook URL is a secret and is redacted by default."""
        data = asdict(self)
        if redact and data["slack_webhook_url"]:
            data["slack_webhook_url"] = "<redacted>"
        return data


def load_config(config_path: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None) -> MirrorConfig:
    """
    Load mirror configuration.

    Args:
        config_path: Optional YAML file; missing keys keep their defaults
        environ: Environment to read overrides from (``os.environ`` by default)

    Returns:
        Resolved configuration
    """
    values: Dict[str, Any] = {}

    if config_path:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

        known = set(MirrorConfig.__dataclass_fields__)
        for key, value in loaded.items():
            if key in known:
                values[key] = value
            else:
                logger.warning(f"Ignoring unknown config key: {key}")

    environ = os.environ if environ is None else environ
    for env_name, key in ENV_OVERRIDES.items():
        if environ.get(env_name):
            values[key] = environ[env_name]

    return MirrorConfig(**values)

"""Configuration for import runs.

An import is configured from command-line flags, optionally layered over a
YAML file. Flags win over file values.

Example YAML (users_import.yaml):
    projectId: ${GCP_PROJECT}
    sourceCollectionPath: events/{eventId}/rounds/{roundId}/participants
    datasetId: firestore_export
    tableId: participants
    batchSize: 500
    checkpointDir: s3://my-bucket/firestore-export/state

Usage:
    python -m firestore_export --config users_import.yaml
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from firestore_export.lib.checkpoint import DEFAULT_STATE_DIR
from firestore_export.lib.env import expand_options
from firestore_export.lib.errors import ConfigurationError, ValidationError
from firestore_export.lib.paths import WILDCARD_SEGMENT
from firestore_export.lib.walker import DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)

__all__ = [
    "ImportConfig",
    "DEFAULT_DATASET_ID",
    "load_config_file",
    "build_import_config",
]

DEFAULT_DATASET_ID = "firestore_export"
STATE_DIR_ENV = "FIRESTORE_EXPORT_STATE_DIR"

BIGQUERY_VALID_CHARACTERS = re.compile(r"^[a-zA-Z0-9_]+$")
BIGQUERY_RESOURCE_NAME_MAX_CHARS = 1024
FIRESTORE_COLLECTION_NAME_MAX_CHARS = 6144

# YAML / CLI spelling -> dataclass field
_KEY_ALIASES = {
    "projectId": "project_id",
    "sourceCollectionPath": "source_collection_path",
    "datasetId": "dataset_id",
    "tableId": "table_id",
    "batchSize": "batch_size",
    "checkpointDir": "checkpoint_dir",
    "datasetLocation": "dataset_location",
}


def _default_state_dir() -> str:
    return os.environ.get(STATE_DIR_ENV, DEFAULT_STATE_DIR)


@dataclass
class ImportConfig:
    """Parameters of one import run.

    Attributes:
        project_id: GCP project holding both Firestore and BigQuery
        source_collection_path: Collection path, may contain ``{token}`` segments
        dataset_id: Destination BigQuery dataset
        table_id: Destination table stem (``<stem>_raw_changelog``)
        batch_size: Documents fetched and inserted per page
        checkpoint_dir: Local directory or ``s3://`` URI for the resume checkpoint
        dataset_location: Location used when the dataset has to be created
    """

    project_id: str = ""
    source_collection_path: str = ""
    dataset_id: str = DEFAULT_DATASET_ID
    table_id: str = ""
    batch_size: int = DEFAULT_PAGE_SIZE
    checkpoint_dir: str = field(default_factory=_default_state_dir)
    dataset_location: Optional[str] = None

    def validate(self) -> List[str]:
        """Return a list of problems; empty when the config is usable."""
        issues: List[str] = []

        if not self.project_id or not self.project_id.strip():
            issues.append("projectId is required")

        issues.extend(_collection_path_issues(self.source_collection_path))

        for name, value in (("datasetId", self.dataset_id), ("tableId", self.table_id)):
            if not value:
                issues.append(f"{name} is required")
            elif len(value) >= BIGQUERY_RESOURCE_NAME_MAX_CHARS:
                issues.append(
                    f"{name} must be at most {BIGQUERY_RESOURCE_NAME_MAX_CHARS} characters long"
                )
            elif not BIGQUERY_VALID_CHARACTERS.match(value):
                issues.append(f"{name} must only contain letters, numbers and underscores")

        if not isinstance(self.batch_size, int) or self.batch_size < 1:
            issues.append(f"batchSize must be a positive integer, got {self.batch_size!r}")

        if not self.checkpoint_dir:
            issues.append("checkpointDir must not be empty")

        return issues

    def ensure_valid(self) -> "ImportConfig":
        issues = self.validate()
        if issues:
            raise ValidationError("Invalid import configuration", issues=issues)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _collection_path_issues(path: str) -> List[str]:
    if not path or not path.strip("/"):
        return ["sourceCollectionPath is required"]
    if len(path) >= FIRESTORE_COLLECTION_NAME_MAX_CHARS:
        return [
            "sourceCollectionPath must be at most "
            f"{FIRESTORE_COLLECTION_NAME_MAX_CHARS} characters long"
        ]

    segments = path.strip("/").split("/")
    if any(not segment for segment in segments):
        return [f"sourceCollectionPath '{path}' contains an empty segment"]
    # A leading wildcard stands for any parent document, at any depth
    if len(segments) % 2 == 0 and not WILDCARD_SEGMENT.match(segments[0]):
        return [
            f"sourceCollectionPath '{path}' points at a document; "
            "a collection path has an odd number of segments"
        ]
    if WILDCARD_SEGMENT.match(segments[-1]):
        return [f"sourceCollectionPath '{path}' must end in a collection name"]
    return []


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """Read a YAML config file into ``ImportConfig`` keyword arguments.

    ``${VAR}`` references are expanded from the environment.

    Raises:
        ConfigurationError: If the file is missing, unparsable or has unknown keys
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError("Config file not found", field="config", value=config_path)

    try:
        raw_config = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Could not parse YAML config: {e}", field="config", value=config_path
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigurationError(
            "Config file must contain a mapping at the top level",
            field="config",
            value=config_path,
        )

    options = _normalize_keys(expand_options(raw_config))
    logger.debug("Loaded import config from %s: %s", config_path, sorted(options))
    return options


def _normalize_keys(options: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(ImportConfig)}
    normalized: Dict[str, Any] = {}
    for key, value in options.items():
        name = _KEY_ALIASES.get(key, key)
        if name not in known:
            raise ConfigurationError(f"Unknown config key '{key}'", field=key, value=value)
        normalized[name] = value
    return normalized


def build_import_config(
    file_options: Optional[Dict[str, Any]] = None,
    **overrides: Any,
) -> ImportConfig:
    """Merge file options with explicit overrides (None means "not given")."""
    options: Dict[str, Any] = dict(file_options or {})
    options.update({key: value for key, value in overrides.items() if value is not None})

    if "batch_size" in options:
        try:
            options["batch_size"] = int(options["batch_size"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                "batchSize must be an integer", field="batchSize", value=options["batch_size"]
            ) from e

    return ImportConfig(**options).ensure_valid()

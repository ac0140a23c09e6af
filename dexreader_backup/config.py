"""Runtime configuration for the backup engine."""

from dataclasses import dataclass, fields
import json
import logging
import os

from . import __version__

logger = logging.getLogger(__name__)

# Tachiyomi/Mihon source id of the MangaDex (English) extension
MANGADEX_SOURCE_ID = 2499283573021220255


@dataclass
class BackupConfig:
    """Settings shared by the export and import pipelines.

    Attributes:
        app_version: Stamped into native backups as appVersion
        mangadex_source_id: Foreign source id whose rows are imported
        mangadex_source_name: Source name written into Mihon backups
        default_language: Chapter language for chapters imported from Mihon
        imported_collection_description: Description of collections created by a Mihon import
    """
    app_version: str = __version__
    mangadex_source_id: int = MANGADEX_SOURCE_ID
    mangadex_source_name: str = "MangaDex"
    default_language: str = "en"
    imported_collection_description: str = "Import from Tachiyomi/Mihon backup"


def load_config(config_file=None):
    """Load configuration from a JSON file.

    A missing file yields the defaults. Keys that are not BackupConfig
    fields are ignored with a warning.

    Args:
        config_file: Path to the JSON config file, or None for defaults

    Returns:
        BackupConfig

    Raises:
        ValueError: If the file is not a JSON object
    """
    if not config_file or not os.path.exists(config_file):
        if config_file:
            logger.info("No config file found at %s, using defaults", config_file)
        return BackupConfig()

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            config_data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Error loading config file {config_file}: {e}") from e
    if not isinstance(config_data, dict):
        raise ValueError(f"Config file {config_file} must contain a JSON object")

    known = {f.name for f in fields(BackupConfig)}
    for key in sorted(set(config_data) - known):
        logger.warning("Ignoring unknown config key '%s' in %s", key, config_file)

    config = BackupConfig(**{k: v for k, v in config_data.items() if k in known})
    config.mangadex_source_id = int(config.mangadex_source_id)
    logger.debug("Loaded config from %s", config_file)
    return config

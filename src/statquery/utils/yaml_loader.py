"""
Utility for loading the schema catalog from YAML.

Expected file layout:

    description: >
      Formula One race results, drivers and constructor championships.
    schemas:
      - schema_name: f1
        tables:
          - Drivers
          - ConstructorChampionships
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..config import CatalogConfig
from ..domain.catalog import SchemaCatalog
from ..domain.errors import ConfigurationError
from ..utils.logging import get_module_logger


logger = get_module_logger()


def load_yaml_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load and parse a YAML file into a dictionary.

    Raises:
        ConfigurationError: If the file is missing, unreadable or not a mapping
    """
    path = Path(file_path)

    logger.info("Loading YAML file", file_path=str(path))

    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Catalog file not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Catalog file could not be read: {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Catalog file is not valid YAML: {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(
            f"Catalog file must contain a mapping at the top level: {path}"
        )

    return content


def parse_catalog(yaml_content: Dict[str, Any]) -> SchemaCatalog:
    """
    Parse catalog YAML content into a SchemaCatalog.

    Raises:
        ConfigurationError: If the content does not describe a valid catalog
    """
    try:
        catalog = SchemaCatalog.model_validate(yaml_content)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid schema catalog: {e}") from e

    logger.info(
        "Parsed schema catalog",
        schema_count=len(catalog.schemas),
        table_count=len(catalog.all_tables()),
    )

    return catalog


def load_catalog(config: CatalogConfig, base_dir: Optional[Path] = None) -> SchemaCatalog:
    """
    Build the SchemaCatalog from configuration.

    A configured catalog_path takes precedence over inline schemas. Relative
    paths are resolved against base_dir (default: current directory).

    Raises:
        ConfigurationError: If the catalog cannot be loaded or declares no tables
    """
    if config.catalog_path:
        path = Path(config.catalog_path)
        if not path.is_absolute() and base_dir is not None:
            path = base_dir / path
        content = load_yaml_file(path)
        # Inline description fills in when the file does not declare one
        content.setdefault("description", config.description)
        catalog = parse_catalog(content)
    else:
        catalog = SchemaCatalog(description=config.description, schemas=config.schemas)

    if catalog.is_empty():
        raise ConfigurationError("Schema catalog declares no tables")

    return catalog

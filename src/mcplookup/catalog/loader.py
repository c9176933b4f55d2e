"""Load catalog files (YAML or JSON) or built-in presets into an InMemoryCatalog."""

from __future__ import annotations

import importlib.resources
import json
import logging
from pathlib import Path

import yaml

from mcplookup.catalog.base import SERVERS_COLLECTION
from mcplookup.catalog.memory import InMemoryCatalog
from mcplookup.errors import CatalogFileError

logger = logging.getLogger(__name__)

# Built-in catalog names
BUILTIN_CATALOGS = {"sample"}
DEFAULT_CATALOG = "sample"


def load_catalog(name_or_path: str = DEFAULT_CATALOG) -> InMemoryCatalog:
    """Load a catalog by built-in name or file path.

    Args:
        name_or_path: Either a built-in catalog name (e.g. "sample") or a
            path to a .yaml/.yml/.json file.

    Returns:
        Populated in-memory catalog.

    Raises:
        CatalogFileError: If the catalog cannot be read or parsed.
    """
    path = Path(name_or_path)
    if path.suffix in (".yaml", ".yml", ".json") or path.exists():
        return _load_from_file(path)

    if name_or_path in BUILTIN_CATALOGS:
        return _load_builtin(name_or_path)

    raise CatalogFileError(
        f"Unknown catalog '{name_or_path}'. "
        f"Available built-in catalogs: {', '.join(sorted(BUILTIN_CATALOGS))}. "
        "Or provide a path to a .yaml or .json file."
    )


def _load_builtin(name: str) -> InMemoryCatalog:
    try:
        ref = importlib.resources.files("mcplookup") / "catalog" / "presets" / f"{name}.yaml"
        text = ref.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise CatalogFileError(f"Built-in catalog '{name}' not found.") from None
    return build_catalog(_parse_text(text, source=f"builtin:{name}", as_json=False))


def _load_from_file(path: Path) -> InMemoryCatalog:
    if not path.exists():
        raise CatalogFileError(f"Catalog file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CatalogFileError(f"Failed to read catalog file '{path}': {exc}") from exc
    entries = _parse_text(text, source=str(path), as_json=path.suffix == ".json")
    return build_catalog(entries)


def _parse_text(text: str, source: str, as_json: bool) -> list[object]:
    """Parse catalog text into a list of raw entries.

    Accepts either a bare list of records or a mapping with a ``servers`` list.
    """
    try:
        data = json.loads(text) if as_json else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise CatalogFileError(f"Failed to parse catalog '{source}': {exc}") from exc

    if isinstance(data, dict):
        data = data.get("servers", [])
    if data is None:
        return []
    if not isinstance(data, list):
        raise CatalogFileError(
            f"Invalid catalog format in {source}: expected a list of servers."
        )
    return data


def build_catalog(entries: list[object]) -> InMemoryCatalog:
    """Index raw entries by lowercased domain; entries without one are skipped."""
    catalog = InMemoryCatalog()
    for position, entry in enumerate(entries):
        domain = entry.get("domain") if isinstance(entry, dict) else None
        if not isinstance(domain, str) or not domain.strip():
            logger.warning("Skipping catalog entry #%d: no domain", position)
            continue
        catalog.put(SERVERS_COLLECTION, domain.strip().lower(), entry)
    logger.debug("Loaded %d catalog records", len(catalog))
    return catalog

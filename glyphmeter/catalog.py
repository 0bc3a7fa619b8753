"""Catalog loading: font key -> FontDescriptor, validated up front."""

import json
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import CatalogValidationError
from .models import FontDescriptor, first_family

# accepted input field names, first match wins
IMPORT_FIELDS = ("importUrl", "importResource")
STYLE_FIELDS = ("cssFamily", "styleDeclaration")
NAME_FIELDS = ("displayName", "name")


def _first_present(entry: Mapping[str, Any], names) -> Any:
    for name in names:
        value = entry.get(name)
        if value:
            return value
    return None


def descriptor_from_entry(key: str, entry: Mapping[str, Any]) -> FontDescriptor:
    if not isinstance(entry, Mapping):
        raise CatalogValidationError(f"Font {key} must be a JSON object")

    import_resource = _first_present(entry, IMPORT_FIELDS)
    style_declaration = _first_present(entry, STYLE_FIELDS)
    if not import_resource or not style_declaration:
        raise CatalogValidationError(
            f"Font {key} missing required properties (importUrl, cssFamily)"
        )

    display_name = (
        _first_present(entry, NAME_FIELDS) or first_family(style_declaration) or key
    )
    return FontDescriptor(
        key=key,
        display_name=str(display_name),
        import_resource=str(import_resource),
        style_declaration=str(style_declaration),
        fields=dict(entry),
    )


def parse_catalog(data: Any) -> Dict[str, FontDescriptor]:
    """Validate every entry before returning any; no partial catalogs."""
    if not isinstance(data, Mapping):
        raise CatalogValidationError("Input file must contain a valid JSON object")
    return {str(key): descriptor_from_entry(str(key), entry) for key, entry in data.items()}


def load_catalog(path: Path) -> Dict[str, FontDescriptor]:
    if not path.exists():
        raise CatalogValidationError(f"Input file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise CatalogValidationError(f"Invalid JSON in input file: {e}") from e
    except OSError as e:
        raise CatalogValidationError(f"Could not read input file {path}: {e}") from e
    return parse_catalog(data)

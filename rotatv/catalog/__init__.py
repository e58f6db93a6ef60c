"""Media catalog types and loading."""

from rotatv.catalog.loader import CatalogLoadError, catalog_from_dict, load_catalog, parse_duration
from rotatv.catalog.models import Catalog, MediaItem

__all__ = [
    "Catalog",
    "CatalogLoadError",
    "MediaItem",
    "catalog_from_dict",
    "load_catalog",
    "parse_duration",
]

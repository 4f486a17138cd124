from .version_resolver import (
    VersionResolver,
    is_version_less,
    normalize_version,
    parse_version,
    sort_versions,
)

__all__ = [
    "VersionResolver",
    "is_version_less",
    "normalize_version",
    "parse_version",
    "sort_versions",
]

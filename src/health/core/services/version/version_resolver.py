"""Maps a client's app version to the nearest supported configuration version."""

from __future__ import annotations

import re
from collections.abc import Iterable

from loguru import logger

from src.health.core.errors import InvalidVersionFormat, UnsupportedVersion
from src.health.core.services.events import ApplicationListener
from src.health.core.storage.storage import Storage

_VERSION_RE = re.compile(r"[0-9]+\.[0-9]+(?:\.[0-9]+)?")


def parse_version(version: str) -> tuple[int, int, int]:
    """Split ``major.minor[.patch]`` into integers; a missing patch is 0.

    Raises:
        InvalidVersionFormat: If ``version`` is not two or three dotted integers
    """
    if not isinstance(version, str) or not _VERSION_RE.fullmatch(version):
        raise InvalidVersionFormat(f"Invalid version format: {version!r}")
    parts = [int(p) for p in version.split(".")]
    if len(parts) == 2:
        parts.append(0)
    return parts[0], parts[1], parts[2]


def normalize_version(version: str) -> str:
    """Canonical spelling: ``3.5.0`` -> ``3.5``, ``03.05.1`` -> ``3.5.1``."""
    major, minor, patch = parse_version(version)
    if patch == 0:
        return f"{major}.{minor}"
    return f"{major}.{minor}.{patch}"


def is_version_less(v1: str, v2: str) -> bool:
    return parse_version(v1) < parse_version(v2)


def sort_versions(versions: Iterable[str]) -> tuple[str, ...]:
    """Newest first. Malformed entries are logged and dropped."""
    valid = []
    for version in versions:
        try:
            parse_version(version)
        except InvalidVersionFormat:
            logger.warning("Ignoring malformed supported version {!r}", version)
            continue
        valid.append(version)
    return tuple(sorted(valid, key=parse_version, reverse=True))


class VersionResolver(ApplicationListener):
    """Holds the supported versions newest-first and resolves requests against them.

    The list is an immutable tuple replaced by reference, so ``resolve`` never
    needs a lock and always sees one consistent snapshot.
    """

    def __init__(self, storage: Storage, versions: Iterable[str] = ()):
        self._storage = storage
        self._versions: tuple[str, ...] = sort_versions(versions)

    @property
    def versions(self) -> tuple[str, ...]:
        return self._versions

    def set_versions(self, versions: Iterable[str]) -> None:
        self._versions = sort_versions(versions)

    async def load(self) -> tuple[str, ...]:
        """Reload from storage; on failure the current list is kept."""
        try:
            versions = await self._storage.read_all_supported_versions()
        except Exception:
            logger.exception("Error reading the app versions")
            return self._versions
        self.set_versions(versions)
        logger.info("Loaded supported app versions: {}", list(self._versions))
        return self._versions

    def resolve(self, requested: str | None) -> str:
        """Return the supported version serving ``requested``.

        ``None`` means the latest version. Otherwise an exact match (after
        normalizing a zero patch) wins, then the newest supported version
        older than ``requested``.

        Raises:
            UnsupportedVersion: If nothing qualifies
        """
        versions = self._versions
        if not versions:
            raise UnsupportedVersion("No supported app versions are configured")

        if requested is None:
            return versions[0]

        try:
            wanted = parse_version(requested)
        except InvalidVersionFormat as exc:
            raise UnsupportedVersion(f"Not supported version {requested!r}") from exc

        for current in versions:
            if parse_version(current) == wanted:
                return current
        for current in versions:
            if parse_version(current) < wanted:
                return current

        raise UnsupportedVersion(f"Not supported version {requested!r}")

    async def create_version(self, version: str) -> str:
        """Validate, persist and activate a new supported version.

        Raises:
            InvalidVersionFormat: If ``version`` is malformed
        """
        normalized = normalize_version(version.strip())
        await self._storage.create_app_version(normalized)
        logger.info("Created app version {}", normalized)
        await self.load()
        return normalized

    async def on_configs_changed(self) -> None:
        await self.load()

from unittest.mock import AsyncMock

import pytest

from src.health.core.errors import InvalidVersionFormat, UnsupportedVersion
from src.health.core.services import VersionResolver
from src.health.core.services.version.version_resolver import (
    is_version_less,
    normalize_version,
    parse_version,
    sort_versions,
)
from src.health.core.storage import InMemoryStorage


class TestVersionHelpers:
    def test_parse_fills_missing_patch(self):
        assert parse_version("2.1") == (2, 1, 0)
        assert parse_version("2.1.3") == (2, 1, 3)

    @pytest.mark.parametrize(
        "version", ["", "2", "2.x", "1.2.3.4", "v1.2", " 1.2", "1.2\n", "\uff11.2"]
    )
    def test_parse_rejects_malformed(self, version):
        with pytest.raises(InvalidVersionFormat):
            parse_version(version)

    def test_normalize_drops_zero_patch_only(self):
        assert normalize_version("3.5.0") == "3.5"
        assert normalize_version("3.5.1") == "3.5.1"
        assert normalize_version("3.5") == "3.5"
        assert normalize_version("03.05.1") == "3.5.1"
        assert normalize_version("2.2.00") == "2.2"

    def test_numeric_comparison(self):
        assert is_version_less("2.9", "2.10")
        assert not is_version_less("2.10", "2.9")
        assert not is_version_less("2.1", "2.1.0")

    def test_sort_newest_first_and_drop_malformed(self):
        assert sort_versions(["2.0", "bad", "2.10", "2.2.1"]) == ("2.10", "2.2.1", "2.0")


class TestVersionResolver:
    """Supported versions in the shared fixture: 3.0, 2.2, 2.1.3, 2.0."""

    async def test_load_sorts_newest_first(self, version_resolver):
        versions = await version_resolver.load()
        assert versions == ("3.0", "2.2", "2.1.3", "2.0")

    @pytest.mark.parametrize(
        ("requested", "expected"),
        [
            (None, "3.0"),
            ("2.2", "2.2"),
            ("2.2.0", "2.2"),
            ("2.1.3", "2.1.3"),
            ("2.1.9", "2.1.3"),
            ("2.2.5", "2.2"),
            ("2.15", "2.2"),
            ("9.0", "3.0"),
            ("2.2.00", "2.2"),
            ("02.2", "2.2"),
            ("2.1.03", "2.1.3"),
        ],
    )
    async def test_resolve(self, version_resolver, requested, expected):
        await version_resolver.load()
        assert version_resolver.resolve(requested) == expected

    async def test_older_than_every_supported_version(self, version_resolver):
        await version_resolver.load()
        with pytest.raises(UnsupportedVersion):
            version_resolver.resolve("1.9")

    async def test_malformed_request_is_unsupported(self, version_resolver):
        await version_resolver.load()
        with pytest.raises(UnsupportedVersion):
            version_resolver.resolve("latest")

    def test_nothing_configured(self):
        with pytest.raises(UnsupportedVersion):
            VersionResolver(InMemoryStorage()).resolve(None)

    async def test_failed_load_keeps_current_list(self, storage):
        resolver = VersionResolver(storage, versions=["1.0"])
        storage.read_all_supported_versions = AsyncMock(side_effect=RuntimeError("down"))

        assert await resolver.load() == ("1.0",)

    async def test_create_version_normalizes_and_activates(self, storage):
        resolver = VersionResolver(storage)

        created = await resolver.create_version(" 4.1.0 ")

        assert created == "4.1"
        assert "4.1" in await storage.read_all_supported_versions()
        assert resolver.resolve(None) == "4.1"

    async def test_create_version_rejects_malformed(self, storage):
        with pytest.raises(InvalidVersionFormat):
            await VersionResolver(storage).create_version("4")

    async def test_configs_changed_reloads(self, storage):
        resolver = VersionResolver(storage)
        await storage.create_app_version("5.0")

        await resolver.on_configs_changed()

        assert resolver.versions[0] == "5.0"

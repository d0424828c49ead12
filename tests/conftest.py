"""Pytest configuration and fixtures."""

import pytest

from peerfix.manifest import parse_package_json
from peerfix.registry import NpmRegistryClient


class FakeRegistry(NpmRegistryClient):
    """Registry client serving packuments from memory.

    A packument value that is an exception instance is raised on lookup.
    """

    def __init__(self, packuments: dict):
        super().__init__(registry_url="https://registry.invalid")
        self.packuments = packuments
        self.fetched: list[str] = []

    async def _fetch_packument(self, name: str) -> dict | None:
        self.fetched.append(name)
        value = self.packuments.get(name)
        if isinstance(value, Exception):
            raise value
        return value


def packument(name: str, versions: dict) -> dict:
    """Build a minimal registry document from ``{version: {...}}``."""
    return {
        "name": name,
        "versions": versions,
        "dist-tags": {"latest": list(versions)[-1]} if versions else {},
    }


@pytest.fixture
def sample_package_json():
    """Sample package.json content for testing."""
    return """{
  "name": "test-project",
  "version": "1.0.0",
  "private": true,
  "dependencies": {
    "core": "^1.0.0",
    "libB": "1.5.0"
  },
  "devDependencies": {
    "pluginX": "1.0.0"
  },
  "scripts": {
    "test": "jest"
  }
}
"""


@pytest.fixture
def sample_manifest(sample_package_json):
    return parse_package_json(sample_package_json)


@pytest.fixture
def plugin_registry():
    """core 1.x/2.x plus pluginX whose 2.0.0 release moves its core peer to ^2."""
    return FakeRegistry({
        "core": packument("core", {"1.0.0": {}, "1.4.0": {}, "2.0.0": {}}),
        "pluginX": packument("pluginX", {
            "1.0.0": {"peerDependencies": {"core": "^1.0.0"}},
            "1.5.0": {"peerDependencies": {"core": "^1.0.0"}},
            "2.0.0": {"peerDependencies": {"core": "^2.0.0"}},
        }),
        "libB": packument("libB", {"1.5.0": {}, "1.9.0": {}, "2.1.0": {}, "2.4.0": {}}),
    })


@pytest.fixture
def temp_manifest_file(tmp_path, sample_package_json):
    """Create a temporary package.json for testing."""
    manifest = tmp_path / "package.json"
    manifest.write_text(sample_package_json)
    return manifest

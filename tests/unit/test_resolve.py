"""Tests for peer-dependency conflict resolution."""

import asyncio

import pytest
from conftest import FakeRegistry, packument

from peerfix.advisories import OVERRIDE_HINT, Advisory, advice_for
from peerfix.errors import RegistryError
from peerfix.models import ConflictInfo, Marker
from peerfix.resolve import ConflictResolver


def plugin_conflict(target: str = "2.0.0", package_name: str = "pluginX") -> ConflictInfo:
    return ConflictInfo(
        package_name=package_name,
        current_version="1.0.0",
        conflicts_with_package_name="core",
        conflicts_with_version=target,
        reason=f"requires core@^1.0.0 but updating to {target}",
    )


class TestConflictResolver:
    """Test searching for a compatible version of the conflicting package."""

    @pytest.mark.asyncio
    async def test_updates_conflicting_package(self, sample_manifest, plugin_registry):
        resolver = ConflictResolver(plugin_registry)

        lines = await resolver.resolve_conflicts(sample_manifest, [plugin_conflict()])

        assert sample_manifest.dev_dependencies["pluginX"] == "^2.0.0"
        assert "pluginX" not in sample_manifest.dependencies
        assert lines[0] == Marker.CONFLICT.line("CONFLICT: pluginX@1.0.0 requires core@^1.0.0 but updating to 2.0.0")
        assert lines[1] == Marker.SOLUTION.line("SOLUTION: Update pluginX to 2.0.0 to support core@2.0.0")
        assert lines[2] == Marker.SUCCESS.line("Auto-updated pluginX to ^2.0.0")

    @pytest.mark.asyncio
    async def test_never_touches_the_updated_package(self, sample_manifest, plugin_registry):
        resolver = ConflictResolver(plugin_registry)

        await resolver.resolve_conflicts(sample_manifest, [plugin_conflict()])

        assert sample_manifest.dependencies["core"] == "^1.0.0"

    @pytest.mark.asyncio
    async def test_prefers_newest_working_version_by_semver(self, sample_manifest):
        registry = FakeRegistry({
            "pluginX": packument("pluginX", {
                "2.9.0": {"peerDependencies": {"core": "^2.0.0"}},
                "2.10.0": {"peerDependencies": {"core": "^2.0.0"}},
                "3.0.0": {"peerDependencies": {"core": "^3.0.0"}},
            }),
        })
        resolver = ConflictResolver(registry)

        await resolver.resolve_conflicts(sample_manifest, [plugin_conflict()])

        assert sample_manifest.dev_dependencies["pluginX"] == "^2.10.0"

    @pytest.mark.asyncio
    async def test_no_compatible_version_leaves_manifest(self, sample_manifest):
        registry = FakeRegistry({
            "pluginX": packument("pluginX", {
                "1.0.0": {"peerDependencies": {"core": "^1.0.0"}},
                "1.5.0": {"peerDependencies": {"core": "^1.0.0"}},
            }),
        })
        resolver = ConflictResolver(registry)

        lines = await resolver.resolve_conflicts(sample_manifest, [plugin_conflict()])

        assert sample_manifest.dev_dependencies["pluginX"] == "1.0.0"
        assert Marker.ERROR.line("No compatible version of pluginX found for core@2.0.0") in lines
        assert lines[-1] == f"   {Marker.INFO.line(OVERRIDE_HINT)}"

    @pytest.mark.asyncio
    async def test_unparsable_target_version(self, sample_manifest, plugin_registry):
        resolver = ConflictResolver(plugin_registry)

        lines = await resolver.resolve_conflicts(sample_manifest, [plugin_conflict(target="next")])

        assert lines[-1] == Marker.ERROR.line("Could not parse update version: next")
        assert sample_manifest.dev_dependencies["pluginX"] == "1.0.0"

    @pytest.mark.asyncio
    async def test_registry_failure_does_not_abort_batch(self, sample_manifest, plugin_registry):
        plugin_registry.packuments["broken"] = RegistryError("HTTP error fetching broken")
        resolver = ConflictResolver(plugin_registry)

        lines = await resolver.resolve_conflicts(
            sample_manifest, [plugin_conflict(package_name="broken"), plugin_conflict()]
        )

        assert Marker.ERROR.line("Failed to analyze broken: HTTP error fetching broken") in lines
        assert sample_manifest.dev_dependencies["pluginX"] == "^2.0.0"

    @pytest.mark.asyncio
    async def test_preserve_exact_pins(self, sample_manifest, plugin_registry):
        resolver = ConflictResolver(plugin_registry, preserve_exact_pins=True)

        lines = await resolver.resolve_conflicts(sample_manifest, [plugin_conflict()])

        assert sample_manifest.dev_dependencies["pluginX"] == "2.0.0"
        assert lines[-1] == Marker.SUCCESS.line("Auto-updated pluginX to 2.0.0")

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self, sample_manifest, plugin_registry):
        resolver = ConflictResolver(plugin_registry)
        cancel = asyncio.Event()
        cancel.set()

        lines = await resolver.resolve_conflicts(sample_manifest, [plugin_conflict()], cancel)

        assert lines == []
        assert sample_manifest.dev_dependencies["pluginX"] == "1.0.0"


class TestAdvisories:
    """Test ecosystem hints for unresolved conflicts."""

    def test_storybook_wins_over_angular(self):
        lines = advice_for("@storybook/angular")
        assert "Storybook 7.x or 8.x" in lines[0]
        assert not any("Angular-related" in line for line in lines)
        assert lines[-1] == f"   {Marker.INFO.line(OVERRIDE_HINT)}"

    def test_angular_hint(self):
        lines = advice_for("@angular/cdk")
        assert lines[0] == f"   {Marker.SOLUTION.value} TIP: This Angular-related package may need a major version update"

    def test_unknown_package_gets_generic_hint_only(self):
        assert advice_for("left-pad") == [f"   {Marker.INFO.line(OVERRIDE_HINT)}"]

    def test_custom_table(self):
        table = (Advisory(pattern="eslint", tips=("TIP: Check the flat config migration guide",)),)
        assert "flat config" in advice_for("eslint-plugin-react", table)[0]
        assert Marker.of(advice_for("eslint-plugin-react", table)[0]) is Marker.SOLUTION

    @pytest.mark.parametrize("package_name", ["@storybook/angular", "@angular/cdk", "left-pad"])
    def test_every_advice_line_carries_a_marker(self, package_name):
        assert all(Marker.of(line) is not None for line in advice_for(package_name))

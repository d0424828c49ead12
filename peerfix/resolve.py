"""Resolution of peer-dependency conflicts by bumping the conflicting package."""

import asyncio
import logging

from .advisories import ADVISORIES, Advisory, advice_for
from .manifest import get_all_dependencies, is_dev_dependency, rewrite_spec, update_dependency
from .models import ConflictInfo, Manifest, Marker
from .registry import NpmRegistryClient
from .versions import clean_version, satisfies_range, sort_versions_desc


class ConflictResolver:
    """Searches for the newest version of a conflicting package that accepts the update."""

    def __init__(
        self,
        registry: NpmRegistryClient,
        preserve_exact_pins: bool = False,
        advisories: tuple[Advisory, ...] = ADVISORIES,
        logger: logging.Logger | None = None,
    ):
        self.registry = registry
        self.preserve_exact_pins = preserve_exact_pins
        self.advisories = advisories
        self.logger = logger or logging.getLogger(__name__)

    async def resolve_conflicts(
        self,
        manifest: Manifest,
        conflicts: list[ConflictInfo],
        cancel_event: asyncio.Event | None = None,
    ) -> list[str]:
        """Try to resolve each conflict in order, mutating ``manifest``.

        Only the conflicting package's entry is ever rewritten; the package
        being updated is left alone.

        Returns:
            Ordered narration lines
        """
        self.logger.info("Starting conflict resolution for %d conflicts", len(conflicts))
        resolutions: list[str] = []

        for conflict in conflicts:
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info("Conflict resolution cancelled before %s", conflict.package_name)
                break

            resolutions.append(
                Marker.CONFLICT.line(f"CONFLICT: {conflict.package_name}@{conflict.current_version} {conflict.reason}")
            )
            try:
                resolutions.extend(await self._resolve_one(manifest, conflict))
            except Exception as e:
                resolutions.append(Marker.ERROR.line(f"Failed to analyze {conflict.package_name}: {e}"))
                self.logger.error("Failed to resolve conflict on %s: %s", conflict.package_name, e)

        self.logger.info("Conflict resolution completed with %d narration lines", len(resolutions))
        return resolutions

    async def _resolve_one(self, manifest: Manifest, conflict: ConflictInfo) -> list[str]:
        registry_data = await self.registry.get_package_data(conflict.package_name)
        versions = registry_data["versions"]

        target = clean_version(conflict.conflicts_with_version)
        if target is None:
            self.logger.error("Could not parse update version %s", conflict.conflicts_with_version)
            return [Marker.ERROR.line(f"Could not parse update version: {conflict.conflicts_with_version}")]

        compatible = None
        for version in sort_versions_desc(list(versions)):
            peer_range = ((versions[version] or {}).get("peerDependencies") or {}).get(
                conflict.conflicts_with_package_name
            )
            if peer_range and satisfies_range(target, peer_range):
                compatible = version
                break

        wanted = f"{conflict.conflicts_with_package_name}@{conflict.conflicts_with_version}"
        if compatible is None:
            self.logger.warning("No compatible version of %s found for %s", conflict.package_name, wanted)
            return [
                Marker.ERROR.line(f"No compatible version of {conflict.package_name} found for {wanted}"),
                *advice_for(conflict.package_name, self.advisories),
            ]

        is_dev = is_dev_dependency(manifest, conflict.package_name)
        current_spec = get_all_dependencies(manifest).get(conflict.package_name)
        new_spec = rewrite_spec(current_spec, compatible, self.preserve_exact_pins)
        update_dependency(manifest, conflict.package_name, new_spec, is_dev)

        self.logger.info("Resolved conflict: %s -> %s", conflict.package_name, new_spec)
        return [
            Marker.SOLUTION.line(f"SOLUTION: Update {conflict.package_name} to {compatible} to support {wanted}"),
            Marker.SUCCESS.line(f"Auto-updated {conflict.package_name} to {new_spec}"),
        ]

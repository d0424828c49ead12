"""Detection of peer-dependency conflicts caused by planned updates."""

import asyncio
import logging

from .manifest import get_all_dependencies
from .models import ConflictInfo, ConflictResolution, Manifest, Marker, PlannedUpdate
from .registry import NpmRegistryClient
from .versions import clean_version, satisfies_range


class ConflictAnalyzer:
    """Finds existing packages whose peer requirements a planned update breaks."""

    def __init__(self, registry: NpmRegistryClient, logger: logging.Logger | None = None):
        self.registry = registry
        self.logger = logger or logging.getLogger(__name__)

    async def analyze_conflicts(
        self,
        manifest: Manifest,
        planned_updates: list[PlannedUpdate],
        cancel_event: asyncio.Event | None = None,
    ) -> ConflictResolution:
        """Check every existing dependency against every planned update.

        Args:
            manifest: Manifest as it is before the updates are applied
            planned_updates: Updates about to be applied
            cancel_event: Checked between planned updates

        Returns:
            Conflicts found, plus warnings for packages that could not be analyzed
        """
        self.logger.info("Starting conflict analysis for %d planned updates", len(planned_updates))
        result = ConflictResolution()

        for update in planned_updates:
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info("Conflict analysis cancelled before %s", update.name)
                break

            planned_clean = clean_version(update.version)
            if planned_clean is None:
                result.resolutions.append(
                    Marker.WARNING.line(
                        f"Warning: Could not parse planned version {update.version} for {update.name}, "
                        "skipping conflict analysis"
                    )
                )
                continue

            for existing_name, existing_spec in get_all_dependencies(manifest).items():
                if existing_name == update.name:
                    continue

                try:
                    conflict = await self._check_peer(existing_name, existing_spec, update, planned_clean)
                except Exception as e:
                    result.resolutions.append(
                        Marker.WARNING.line(f"Warning: Could not analyze {existing_name} for conflicts: {e}")
                    )
                    self.logger.error("Failed to analyze %s for conflicts: %s", existing_name, e)
                    continue

                if conflict is not None:
                    result.conflicts.append(conflict)
                    self.logger.warning("Conflict detected: %s@%s %s", conflict.package_name,
                                        conflict.current_version, conflict.reason)

        self.logger.info(
            "Conflict analysis completed: %d conflicts, %d warnings",
            len(result.conflicts),
            len(result.resolutions),
        )
        return result

    async def _check_peer(
        self,
        existing_name: str,
        existing_spec: str,
        update: PlannedUpdate,
        planned_clean: str,
    ) -> ConflictInfo | None:
        existing_version = clean_version(existing_spec)
        if existing_version is None:
            return None

        registry_data = await self.registry.get_package_data(existing_name)
        version_data = registry_data["versions"].get(existing_version) or {}
        peer_range = (version_data.get("peerDependencies") or {}).get(update.name)
        if not peer_range:
            return None

        if satisfies_range(planned_clean, peer_range):
            return None

        return ConflictInfo(
            package_name=existing_name,
            current_version=existing_spec,
            conflicts_with_package_name=update.name,
            conflicts_with_version=update.version,
            reason=f"requires {update.name}@{peer_range} but updating to {update.version}",
        )

"""Forward checking of what updated packages require from the manifest."""

import asyncio
import logging

from .errors import VersionNotFoundError
from .manifest import get_all_dependencies, is_dev_dependency, rewrite_spec, update_dependency
from .models import AppliedUpdate, Manifest, Marker
from .registry import NpmRegistryClient
from .versions import clean_version, find_best_satisfying, satisfies_range


class TransitiveResolver:
    """Brings declared dependencies in line with what updated packages require.

    For every applied update, each dependency and peer dependency of the new
    version that the manifest also declares ends in one of three states:
    satisfied (no change), resolved (rewritten to the highest satisfying
    version) or unresolved (reported only). Nothing is retried.
    """

    def __init__(
        self,
        registry: NpmRegistryClient,
        preserve_exact_pins: bool = False,
        logger: logging.Logger | None = None,
    ):
        self.registry = registry
        self.preserve_exact_pins = preserve_exact_pins
        self.logger = logger or logging.getLogger(__name__)

    async def update_transitive_dependencies(
        self,
        manifest: Manifest,
        applied_updates: list[AppliedUpdate],
        cancel_event: asyncio.Event | None = None,
    ) -> list[str]:
        """Check and fix the requirements of each applied update.

        Args:
            manifest: Manifest with the updates already written
            applied_updates: Updates that were applied
            cancel_event: Checked between applied updates

        Returns:
            Ordered narration lines
        """
        self.logger.info("Starting transitive dependency resolution for %d updates", len(applied_updates))
        results: list[str] = []

        for update in applied_updates:
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info("Transitive resolution cancelled before %s", update.name)
                break

            try:
                results.extend(await self._process_update(manifest, update))
            except Exception as e:
                results.append(Marker.ERROR.line(f"Failed to process {update.name}: {e}"))
                self.logger.error("Error processing transitive dependencies of %s: %s", update.name, e)

        self.logger.info("Transitive dependency resolution completed with %d results", len(results))
        return results

    async def _process_update(self, manifest: Manifest, update: AppliedUpdate) -> list[str]:
        clean = clean_version(update.version)
        if clean is None:
            return [Marker.ERROR.line(f"Invalid version specification: {update.version} for {update.name}")]

        try:
            version_data = await self.registry.get_package_version_data(update.name, clean)
        except VersionNotFoundError:
            self.logger.warning("Version %s of %s not found in registry", clean, update.name)
            return [Marker.ERROR.line(f"Version {clean} of {update.name} not found in registry")]

        # Peer dependencies constrain the tree just as much as regular ones
        required = {
            **(version_data.get("dependencies") or {}),
            **(version_data.get("peerDependencies") or {}),
        }
        self.logger.debug("%s@%s declares %d requirements", update.name, clean, len(required))

        results = []
        for dep_name, required_range in required.items():
            line = await self._check_dependency(manifest, update, dep_name, required_range)
            if line is not None:
                results.append(line)
        return results

    async def _check_dependency(
        self,
        manifest: Manifest,
        update: AppliedUpdate,
        dep_name: str,
        required_range: str,
    ) -> str | None:
        current_spec = get_all_dependencies(manifest).get(dep_name)
        if not current_spec:
            return None

        current = clean_version(current_spec)
        if current is None:
            return Marker.ERROR.line(f"Invalid version specification: {current_spec} for {dep_name}")

        if satisfies_range(current, required_range):
            return Marker.SUCCESS.line(f"{dep_name}@{current_spec} satisfies {required_range}")

        self.logger.warning(
            "%s@%s does not satisfy %s required by %s", dep_name, current_spec, required_range, update.name
        )
        versions = await self.registry.get_package_versions(dep_name)
        suitable = find_best_satisfying(versions, required_range)
        if suitable is None:
            self.logger.error("No version of %s satisfies %s (%d available)", dep_name, required_range, len(versions))
            return Marker.ERROR.line(f"No suitable version found for {dep_name} to satisfy {required_range}")

        new_spec = rewrite_spec(current_spec, suitable, self.preserve_exact_pins)
        update_dependency(manifest, dep_name, new_spec, is_dev_dependency(manifest, dep_name))
        return Marker.WARNING.line(
            f"Updated {dep_name} from {current_spec} to {new_spec} (required by {update.name}@{update.version})"
        )

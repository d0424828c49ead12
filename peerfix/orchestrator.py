"""Sequencing of validation, conflict analysis, resolution and transitive fixes."""

import asyncio
import logging
import time
from collections import deque
from typing import Protocol

from .analyze import ConflictAnalyzer
from .errors import PackageVersionValidationError
from .manifest import (
    DEPENDENCIES,
    DEV_DEPENDENCIES,
    find_duplicate_classifications,
    get_all_dependencies,
    update_dependency,
)
from .models import (
    AppliedUpdate,
    ConflictInfo,
    Manifest,
    Marker,
    PlannedUpdate,
    ResolutionReport,
    Suggestion,
    SuggestionContext,
)
from .registry import NpmRegistryClient
from .resolve import ConflictResolver
from .transitive import TransitiveResolver
from .versions import clean_version, satisfies_range


class SuggestionOracle(Protocol):
    """Anything that can propose extra updates for unresolved conflicts."""

    async def suggest_alternatives(self, context: SuggestionContext) -> list[Suggestion]: ...


class StaticSuggestionOracle:
    """Oracle that always proposes the same suggestions."""

    def __init__(self, suggestions: list[Suggestion]):
        self.suggestions = suggestions

    async def suggest_alternatives(self, context: SuggestionContext) -> list[Suggestion]:
        return list(self.suggestions)


class ResolutionOrchestrator:
    """Runs one resolution over a manifest and a list of planned updates."""

    def __init__(
        self,
        registry: NpmRegistryClient,
        oracle: SuggestionOracle | None = None,
        preserve_exact_pins: bool = False,
        validate_versions: bool = True,
        max_suggestion_rounds: int = 2,
        logger: logging.Logger | None = None,
    ):
        self.registry = registry
        self.oracle = oracle
        self.validate_versions = validate_versions
        self.max_suggestion_rounds = max_suggestion_rounds
        self.logger = logger or logging.getLogger(__name__)
        self.analyzer = ConflictAnalyzer(registry, logger=self.logger.getChild("analyze"))
        self.resolver = ConflictResolver(
            registry, preserve_exact_pins=preserve_exact_pins, logger=self.logger.getChild("resolve")
        )
        self.transitive = TransitiveResolver(
            registry, preserve_exact_pins=preserve_exact_pins, logger=self.logger.getChild("transitive")
        )

    async def run(
        self,
        manifest: Manifest,
        planned_updates: list[PlannedUpdate],
        cancel_event: asyncio.Event | None = None,
    ) -> ResolutionReport:
        """Resolve ``planned_updates`` against ``manifest``, mutating it in place.

        Raises:
            NoSuitableVersionFoundError: If a planned update has no version
            PackageVersionValidationError: If a planned version is not published
        """
        started = time.monotonic()
        report = ResolutionReport(manifest=manifest)
        self.logger.info("Starting resolution of %d planned updates", len(planned_updates))

        if self.validate_versions and planned_updates:
            results = await self.registry.validate_versions_exist(planned_updates)
            missing = [result for result in results if not result.exists]
            if missing:
                raise PackageVersionValidationError(missing)
            report.resolutions.append(
                Marker.DONE.line(f"All {len(planned_updates)} package versions validated successfully")
            )

        report.duplicates = find_duplicate_classifications(manifest)
        for name in report.duplicates:
            report.resolutions.append(
                Marker.WARNING.line(f"Warning: {name} is declared in both {DEPENDENCIES} and {DEV_DEPENDENCIES}")
            )

        queue = deque(planned_updates)
        seen = {(update.name, update.version) for update in planned_updates}
        rounds = 0

        while queue:
            batch = list(queue)
            queue.clear()

            unresolved = await self._process_batch(manifest, batch, report, cancel_event)
            if self._cancelled(cancel_event):
                break

            if unresolved and self.oracle is not None and rounds < self.max_suggestion_rounds:
                rounds += 1
                for update in await self._consult_oracle(manifest, unresolved, report, seen):
                    queue.append(update)

        if self._cancelled(cancel_event):
            report.cancelled = True
            report.resolutions.append(Marker.INFO.line("Resolution cancelled; changes made so far were kept"))
            return report

        # A later update of the same package supersedes the earlier one
        latest = {update.name: update for update in report.applied_updates}
        applied = [AppliedUpdate(update.name, update.version) for update in latest.values()]
        report.resolutions.extend(
            await self.transitive.update_transitive_dependencies(manifest, applied, cancel_event)
        )
        if self._cancelled(cancel_event):
            report.cancelled = True
            report.resolutions.append(Marker.INFO.line("Resolution cancelled; changes made so far were kept"))

        self.logger.info(
            "Resolution finished in %.2fs: %d conflicts, %d updates applied",
            time.monotonic() - started,
            len(report.conflicts),
            len(report.applied_updates),
        )
        return report

    async def _process_batch(
        self,
        manifest: Manifest,
        batch: list[PlannedUpdate],
        report: ResolutionReport,
        cancel_event: asyncio.Event | None,
    ) -> list[ConflictInfo]:
        """Analyze, resolve and apply one batch; return conflicts left unresolved."""
        analysis = await self.analyzer.analyze_conflicts(manifest, batch, cancel_event)
        report.conflicts.extend(analysis.conflicts)
        report.resolutions.extend(analysis.resolutions)
        if self._cancelled(cancel_event):
            return []

        if analysis.conflicts:
            report.resolutions.extend(
                await self.resolver.resolve_conflicts(manifest, analysis.conflicts, cancel_event)
            )
            if self._cancelled(cancel_event):
                return []
        else:
            self.logger.info("No conflicts detected, skipping conflict resolution")

        for update in batch:
            update_dependency(manifest, update.name, update.version, update.is_dev)
            bucket = DEV_DEPENDENCIES if update.is_dev else DEPENDENCIES
            report.resolutions.append(Marker.SUCCESS.line(f"Updated {update.name} to {update.version} ({bucket})"))
            report.applied_updates.append(update)

        current = get_all_dependencies(manifest)
        return [conflict for conflict in analysis.conflicts if current.get(conflict.package_name) == conflict.current_version]

    async def _consult_oracle(
        self,
        manifest: Manifest,
        unresolved: list[ConflictInfo],
        report: ResolutionReport,
        seen: set[tuple[str, str]],
    ) -> list[PlannedUpdate]:
        context = SuggestionContext(
            manifest=manifest,
            conflicts=unresolved,
            planned_updates=list(report.applied_updates),
        )
        try:
            suggestions = await self.oracle.suggest_alternatives(context)
        except Exception as e:
            report.resolutions.append(Marker.ERROR.line(f"Suggestion oracle failed: {e}"))
            self.logger.error("Suggestion oracle failed: %s", e)
            return []

        accepted = []
        for suggestion in suggestions:
            if (suggestion.name, suggestion.version) in seen:
                report.resolutions.append(
                    Marker.INFO.line(f"Skipping repeated suggestion {suggestion.name}@{suggestion.version}")
                )
                continue

            problem = await self._validate_suggestion(suggestion, unresolved)
            if problem is not None:
                report.resolutions.append(
                    Marker.ERROR.line(f"Rejected suggestion {suggestion.name}@{suggestion.version}: {problem}")
                )
                continue

            seen.add((suggestion.name, suggestion.version))
            reason = f" ({suggestion.reason})" if suggestion.reason else ""
            report.resolutions.append(
                Marker.SOLUTION.line(f"Accepted suggestion {suggestion.name}@{suggestion.version}{reason}")
            )
            accepted.append(PlannedUpdate(suggestion.name, suggestion.version, suggestion.is_dev))
        return accepted

    async def _validate_suggestion(self, suggestion: Suggestion, unresolved: list[ConflictInfo]) -> str | None:
        """Return why a suggestion is unusable, or None if it passes."""
        clean = clean_version(suggestion.version)
        if clean is None:
            return "version cannot be parsed"

        try:
            registry_data = await self.registry.get_package_data(suggestion.name)
        except Exception as e:
            return f"registry lookup failed: {e}"

        version_data = registry_data["versions"].get(clean)
        if version_data is None:
            return "version not found in registry"

        peers = version_data.get("peerDependencies") or {}
        for conflict in unresolved:
            if conflict.package_name != suggestion.name:
                continue
            peer_range = peers.get(conflict.conflicts_with_package_name)
            target = conflict.conflicts_with_version
            if peer_range and not satisfies_range(target, peer_range):
                return f"requires {conflict.conflicts_with_package_name}@{peer_range} but updating to {target}"
        return None

    @staticmethod
    def _cancelled(cancel_event: asyncio.Event | None) -> bool:
        return cancel_event is not None and cancel_event.is_set()

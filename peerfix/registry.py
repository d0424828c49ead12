"""npm registry lookups."""

import asyncio
import logging
from urllib.parse import quote

import httpx

from .config import DEFAULT_REGISTRY_URL
from .errors import NoSuitableVersionFoundError, PackageNotFoundError, RegistryError, VersionNotFoundError
from .models import PlannedUpdate, ValidationResult
from .versions import find_best_satisfying

logger = logging.getLogger(__name__)


class NpmRegistryClient:
    """Client for fetching package metadata from an npm-compatible registry."""

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY_URL,
        timeout: float = 30.0,
        max_concurrency: int = 6,
    ):
        """Initialize registry client.

        Args:
            registry_url: Base URL of the registry
            timeout: Request timeout in seconds
            max_concurrency: Maximum concurrent requests
        """
        self.registry_url = registry_url.rstrip("/")
        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self._cache: dict[str, dict] = {}
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def get_package_data(self, name: str) -> dict:
        """Get the full registry document for a package.

        Args:
            name: Package name, possibly scoped

        Returns:
            Registry data with a ``versions`` map
        """
        async with self._semaphore:
            data = await self._fetch_packument(name)
        if data is None:
            raise PackageNotFoundError(f"Package {name} not found")
        if not isinstance(data, dict) or not isinstance(data.get("versions"), dict):
            raise RegistryError(f"Malformed registry response for {name}: missing versions")
        return data

    async def get_package_version_data(self, name: str, version: str) -> dict:
        """Get the manifest of one published version.

        Raises:
            PackageNotFoundError: If the package does not exist
            VersionNotFoundError: If the package has no such version
        """
        data = await self.get_package_data(name)
        version_data = data["versions"].get(version)
        if version_data is None:
            raise VersionNotFoundError(f"Version {version} of {name} not found")
        return version_data

    async def get_package_versions(self, name: str) -> list[str]:
        """Get every published version, in registry order."""
        data = await self.get_package_data(name)
        return list(data["versions"].keys())

    async def validate_versions_exist(self, updates: list[PlannedUpdate]) -> list[ValidationResult]:
        """Check that each planned name@version is published.

        Raises:
            NoSuitableVersionFoundError: If an update has an empty version
        """
        for update in updates:
            if not update.version or not update.version.strip():
                raise NoSuitableVersionFoundError(f"No suitable version found for package: {update.name}")

        results = await asyncio.gather(*(self._validate_one(update) for update in updates))
        missing = [result for result in results if not result.exists]
        logger.info(
            "Validated %d planned versions, %d missing",
            len(results),
            len(missing),
        )
        return list(results)

    async def _validate_one(self, update: PlannedUpdate) -> ValidationResult:
        # A range is valid when at least one published version satisfies it
        try:
            versions = await self.get_package_versions(update.name)
        except RegistryError as e:
            logger.warning("Version validation failed for %s@%s: %s", update.name, update.version, e)
            return ValidationResult(update.name, update.version, exists=False, error=str(e))

        if update.version in versions or find_best_satisfying(versions, update.version):
            return ValidationResult(update.name, update.version, exists=True)
        return ValidationResult(
            update.name,
            update.version,
            exists=False,
            error=f"No published version of {update.name} matches {update.version}",
        )

    def _package_url(self, name: str) -> str:
        # Scoped names keep their leading @ but the slash must be encoded
        return f"{self.registry_url}/{quote(name, safe='@')}"

    async def _fetch_packument(self, name: str) -> dict | None:
        """Fetch package metadata from the registry.

        Args:
            name: Name of the package

        Returns:
            Package metadata dict or None if not found
        """
        if name in self._cache:
            return self._cache[name]

        url = self._package_url(name)
        logger.debug("Fetching %s", url)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url, headers={"Accept": "application/json"})
                if response.status_code == 404:
                    return None
                response.raise_for_status()

                metadata = response.json()
                self._cache[name] = metadata
                return metadata

        except httpx.TimeoutException as e:
            raise RegistryError(f"Timeout fetching metadata for {name}") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise RegistryError(f"HTTP error fetching {name}: {e}") from e
        except ValueError as e:
            raise RegistryError(f"Malformed registry response for {name}: {e}") from e
        except httpx.HTTPError as e:
            raise RegistryError(f"Network error fetching {name}: {e}") from e

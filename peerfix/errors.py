"""Exceptions raised by PeerFix."""

from .models import ValidationResult


class PeerFixError(Exception):
    """Base class for PeerFix errors."""


class RegistryError(PeerFixError):
    """A registry lookup failed (network, HTTP status, malformed response)."""


class PackageNotFoundError(RegistryError):
    """The registry has no such package, or no such version of it."""


class VersionNotFoundError(PackageNotFoundError):
    """The package exists but the requested version was never published."""


class ManifestError(PeerFixError):
    """The manifest is missing or has the wrong shape."""


class NoSuitableVersionFoundError(PeerFixError):
    """A planned update carries no version at all."""


class PackageVersionValidationError(PeerFixError):
    """One or more planned versions do not exist in the registry."""

    def __init__(self, missing: list[ValidationResult]):
        self.missing = missing
        details = "\n".join(
            f"- {result.package_name}@{result.version}: {result.error or 'Version not found'}"
            for result in missing
        )
        super().__init__(
            f"The following package versions do not exist in the registry:\n{details}"
        )

"""Core data models for PeerFix."""

from dataclasses import asdict, dataclass, field
from enum import Enum


class Marker(str, Enum):
    """Prefix of a narration line, used by UIs to colour or filter output."""

    SUCCESS = "✓"
    WARNING = "⚠"
    ERROR = "❌"
    CONFLICT = "🚨"
    SOLUTION = "💡"
    INFO = "ℹ"
    DONE = "✅"

    def line(self, text: str) -> str:
        return f"{self.value} {text}"

    @classmethod
    def of(cls, line: str) -> "Marker | None":
        """Return the marker a narration line starts with, ignoring indentation."""
        stripped = line.lstrip()
        for marker in cls:
            if stripped.startswith(marker.value):
                return marker
        return None


@dataclass
class Manifest:
    """An in-memory package.json."""

    name: str
    version: str
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    extra: dict = field(default_factory=dict)  # every other top-level key
    key_order: list[str] = field(default_factory=list)


@dataclass
class PlannedUpdate:
    """A dependency the caller wants bumped to a target version."""

    name: str
    version: str
    is_dev: bool = False


@dataclass
class AppliedUpdate:
    """An update already written to the manifest."""

    name: str
    version: str


@dataclass(frozen=True)
class ConflictInfo:
    """`package_name` peer-depends on a range the planned update violates."""

    package_name: str
    current_version: str
    conflicts_with_package_name: str
    conflicts_with_version: str
    reason: str


@dataclass
class ConflictResolution:
    """Conflicts found plus ordered narration."""

    conflicts: list[ConflictInfo] = field(default_factory=list)
    resolutions: list[str] = field(default_factory=list)


@dataclass
class Suggestion:
    """A candidate update proposed by a suggestion oracle."""

    name: str
    version: str
    is_dev: bool = False
    reason: str = ""
    from_version: str | None = None


@dataclass
class SuggestionContext:
    """What a suggestion oracle gets to look at."""

    manifest: Manifest
    conflicts: list[ConflictInfo]
    planned_updates: list[PlannedUpdate]


@dataclass
class ValidationResult:
    """Whether a planned name@version exists in the registry."""

    package_name: str
    version: str
    exists: bool
    error: str | None = None


@dataclass
class ResolutionReport:
    """Outcome of one resolution run."""

    manifest: Manifest
    conflicts: list[ConflictInfo] = field(default_factory=list)
    resolutions: list[str] = field(default_factory=list)
    applied_updates: list[PlannedUpdate] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    cancelled: bool = False

    def summary(self) -> dict[str, int]:
        """Count narration lines per marker name."""
        counts: dict[str, int] = {}
        for line in self.resolutions:
            marker = Marker.of(line)
            key = marker.name.lower() if marker else "other"
            counts[key] = counts.get(key, 0) + 1
        return counts

    def to_dict(self) -> dict:
        return {
            "conflicts": [asdict(conflict) for conflict in self.conflicts],
            "resolutions": list(self.resolutions),
            "applied_updates": [asdict(update) for update in self.applied_updates],
            "duplicates": list(self.duplicates),
            "cancelled": self.cancelled,
            "summary": self.summary(),
        }

"""Remediation hints for conflicts that have no compatible version."""

from dataclasses import dataclass

from .models import Marker


@dataclass(frozen=True)
class Advisory:
    """Tips shown when a package name contains ``pattern``."""

    pattern: str
    tips: tuple[str, ...]

    def matches(self, package_name: str) -> bool:
        return self.pattern in package_name


# Checked in order, first match wins
ADVISORIES: tuple[Advisory, ...] = (
    Advisory(
        pattern="storybook",
        tips=(
            "TIP: Consider updating to Storybook 7.x or 8.x which supports Angular 20",
            "Run: npm install @storybook/angular@latest @storybook/core@latest",
        ),
    ),
    Advisory(
        pattern="angular",
        tips=("TIP: This Angular-related package may need a major version update",),
    ),
)

OVERRIDE_HINT = "Alternative: Use --force or --legacy-peer-deps to override (may cause issues)"


def advice_for(package_name: str, advisories: tuple[Advisory, ...] = ADVISORIES) -> list[str]:
    """Indented narration lines for an unresolved conflict on ``package_name``."""
    lines = []
    for advisory in advisories:
        if advisory.matches(package_name):
            lines.extend(f"   {Marker.SOLUTION.line(tip)}" for tip in advisory.tips)
            break
    lines.append(f"   {Marker.INFO.line(OVERRIDE_HINT)}")
    return lines

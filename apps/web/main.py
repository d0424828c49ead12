"""FastAPI web application for PeerFix."""

import json
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from peerfix.config import get_settings
from peerfix.errors import ManifestError, NoSuitableVersionFoundError, PackageVersionValidationError
from peerfix.manifest import dump_package_json, manifest_from_dict, parse_package_json
from peerfix.models import PlannedUpdate
from peerfix.orchestrator import ResolutionOrchestrator
from peerfix.registry import NpmRegistryClient

app = FastAPI(
    title="PeerFix",
    description="Bump package.json dependencies and resolve the conflicts it causes",
    version="0.1.0",
)


class UpdateItem(BaseModel):
    """A single planned update."""
    name: str
    version: str
    is_dev: bool = False


class ResolveRequest(BaseModel):
    """Request model for resolving dependency updates."""
    manifest: Optional[dict] = None
    content: Optional[str] = None
    updates: list[UpdateItem]
    validate_versions: Optional[bool] = None
    preserve_exact_pins: Optional[bool] = None


class ResolveResponse(BaseModel):
    """Response model for dependency resolution."""
    manifest: dict
    content: str
    conflicts: list[dict]
    resolutions: list[str]
    applied_updates: list[dict]
    duplicates: list[str]
    has_changes: bool
    summary: dict[str, int]


def get_registry() -> NpmRegistryClient:
    settings = get_settings()
    return NpmRegistryClient(
        registry_url=settings.registry_url,
        timeout=settings.timeout,
        max_concurrency=settings.max_concurrency,
    )


@app.get("/api/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/api/resolve", response_model=ResolveResponse)
async def resolve_dependencies(request: ResolveRequest):
    """Apply planned updates to a manifest and resolve conflicts."""
    settings = get_settings()
    try:
        if request.manifest is not None:
            manifest = manifest_from_dict(request.manifest)
        elif request.content and request.content.strip():
            manifest = parse_package_json(request.content)
        else:
            raise HTTPException(status_code=400, detail="No manifest provided")

        original = dump_package_json(manifest)
        orchestrator = ResolutionOrchestrator(
            get_registry(),
            preserve_exact_pins=(
                settings.preserve_exact_pins if request.preserve_exact_pins is None else request.preserve_exact_pins
            ),
            validate_versions=(
                settings.validate_versions if request.validate_versions is None else request.validate_versions
            ),
            max_suggestion_rounds=settings.max_suggestion_rounds,
        )
        planned = [PlannedUpdate(item.name, item.version, item.is_dev) for item in request.updates]
        report = await orchestrator.run(manifest, planned)

        content = dump_package_json(report.manifest)
        payload = report.to_dict()
        return ResolveResponse(
            manifest=json.loads(content),
            content=content,
            conflicts=payload["conflicts"],
            resolutions=payload["resolutions"],
            applied_updates=payload["applied_updates"],
            duplicates=payload["duplicates"],
            has_changes=content != original,
            summary=payload["summary"],
        )

    except HTTPException:
        # Re-raise HTTP exceptions (don't convert to 500)
        raise
    except ManifestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (NoSuitableVersionFoundError, PackageVersionValidationError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error resolving dependencies: {str(e)}")

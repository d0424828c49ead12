#!/usr/bin/env python3
"""Start the PeerFix web API (host and port come from PEERFIX_* settings)."""

import uvicorn

from peerfix.config import get_settings


def main() -> None:
    settings = get_settings()
    base_url = f"http://{settings.host}:{settings.port}"

    print("🚀 Starting PeerFix API...")
    print(f"📍 URL: {base_url}")
    print(f"📄 API docs: {base_url}/docs")
    print(f"📦 Registry: {settings.registry_url}")
    print()

    uvicorn.run(
        "apps.web.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        reload_dirs=["apps", "peerfix"] if settings.reload else None,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

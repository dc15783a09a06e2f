#!/usr/bin/env python3
"""
Run script for the AutoClaims API server.

Usage:
    python run_server.py

Settings are read from CLAIMS_* environment variables or a .env file
(see autoclaims.utils.config.Settings).
"""

import logging

# Configure logging VERY early, before any other imports that might use it
# This suppresses noisy debug output from third-party libraries
logging.getLogger("python_multipart").setLevel(logging.WARNING)
logging.getLogger("python_multipart.multipart").setLevel(logging.WARNING)
logging.getLogger("PIL").setLevel(logging.WARNING)

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def main():
    """Run the API server."""
    import uvicorn
    from autoclaims.utils.config import get_settings

    settings = get_settings()
    base = f"http://{settings.host}:{settings.port}"

    print("=" * 60)
    print("AutoClaims")
    print("=" * 60)
    print(f"Server: {base}")
    print(f"Storage: {settings.storage_backend} ({settings.database_path})")
    print(f"Uploads: {settings.uploads_dir}")
    print("=" * 60)
    print()
    print("Endpoints:")
    print(f"  - Health: {base}/health")
    print(f"  - Claims: {base}/api/claims")
    print(f"  - Photos: POST {base}/api/claims/{{id}}/photos")
    print(f"  - Estimate: {base}/api/claims/{{id}}/cost-breakdown")
    print(f"  - API docs: {base}/docs")
    print()

    uvicorn.run(
        "autoclaims.api.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()

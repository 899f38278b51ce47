"""Run the studiohub API server.

Usage:
    python -m studiohub.entrypoints.api
    python -m studiohub.entrypoints.api --reload  # Development mode
"""

import argparse

import uvicorn

from studiohub.entrypoints.api.deps import settings


def main() -> None:
    """Parse CLI flags and serve the app with uvicorn."""
    parser = argparse.ArgumentParser(description="Run studiohub API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    args = parser.parse_args()

    uvicorn.run(
        "studiohub.entrypoints.api.app:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Check that the configured cache backend accepts writes and serves reads.

Writes a short-lived probe value, reads it back and reports dependency
health for both the cache and the document store. Intended for deployment
smoke tests and developer workstations.
"""

import argparse
import asyncio
import json
import sys
import os

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from shared.config import get_config  # noqa: E402
from shared.errors import AccessLayerException  # noqa: E402
from shared.logging import clear_context, set_request_id  # noqa: E402
from service_emails.app.main import create_service  # noqa: E402


async def check(*, redis_url: str, store_backend: str) -> dict:
    """Run the cache probe and dependency checks, returning a summary."""
    config = get_config(redis_url=redis_url, store_backend=store_backend, json_logs=False)
    request_id = set_request_id()
    service = await create_service(config)
    try:
        probe = await service.probe_cache()
        dependencies = await service.check_dependencies()
    finally:
        await service.stop()
        clear_context()
    return {"request_id": request_id, "probe": probe, "dependencies": dependencies}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe the email cache backend.")
    parser.add_argument("--redis-url", default=os.getenv("SENTIMATRIX_REDIS_URL", "redis://localhost:6379/0"), help="Redis connection URL")
    parser.add_argument(
        "--store-backend",
        choices=("postgres", "memory"),
        default="memory",
        help="Document store to check alongside the cache"
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()
    try:
        summary = asyncio.run(check(redis_url=args.redis_url, store_backend=args.store_backend))
    except KeyboardInterrupt:
        return 130
    except AccessLayerException as exc:
        print(json.dumps(exc.to_response().model_dump(), indent=2, default=str), file=sys.stderr)
        return 1
    except Exception as exc:  # pragma: no cover - CLI surface
        print(f"[cache-check] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary, indent=2))
    return 0 if summary["probe"].get("cached_value") is not None else 2


if __name__ == "__main__":
    raise SystemExit(main())

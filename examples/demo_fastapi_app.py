import asyncio
import logging
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path
import sys

# Allow running this demo without installing the package:
#   python examples/demo_fastapi_app.py
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import FastAPI

from tiercache import BackendConfig, BackendKind, CacheFacade, cache_evict, cache_put, cacheable, read_file

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

cache = CacheFacade(default_namespace="demo")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Examples:
    #   REDIS_URL=redis://:password@localhost:6379/0
    #   REDIS_URL=redis://localhost:6379/0  REDIS_PASSWORD=password
    cache.register_namespace(
        "users",
        BackendKind.REMOTE,
        BackendConfig(
            address=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            password=os.getenv("REDIS_PASSWORD"),
        ),
    )
    yield
    await cache.shutdown()


app = FastAPI(title="tiercache demo", lifespan=lifespan)


@app.get("/users/{user_id}")
@cacheable(cache, namespace="users", key="get_user", ttl=30)
async def get_user(user_id: int) -> dict:
    # Simulate slow work
    await asyncio.sleep(2)
    logger.info("Fetching user %s from source", user_id)
    return {"user_id": user_id, "name": f"user-{user_id}", "ts": time.time()}


@app.post("/users/{user_id}/refresh")
@cache_put(cache, namespace="users", key="get_user", ttl=30)
async def refresh_user(user_id: int) -> dict:
    await asyncio.sleep(2)
    logger.info("Refreshing user %s data", user_id)
    return {"user_id": user_id, "name": f"user-{user_id}", "refreshed": True, "ts": time.time()}


@app.delete("/users/cache")
@cache_evict(cache, namespace="users", all_entries=True)
async def evict_all_users() -> dict:
    logger.info("Evicting cache for all users")
    return {"evicted": "all"}


@app.delete("/users/{user_id}")
@cache_evict(cache, namespace="users", key="get_user")
async def evict_user(user_id: int) -> dict:
    # Evicts the entry cached by get_user for the same arguments.
    logger.info("Evicting cache for user %s", user_id)
    return {"evicted": True, "user_id": user_id}


@app.get("/source")
async def source() -> dict:
    # Served from the local namespace after the first request.
    text = await read_file(cache, Path(__file__))
    return {"lines": len(text.splitlines())}


@app.get("/cache/keys")
async def cache_keys(backend: str = "*", namespace: str = "*", pattern: str = "*") -> dict:
    return {"ready": cache.ready, "keys": await cache.list_all(backend, namespace, pattern)}


# Run:
#   1) docker run -p 6379:6379 redis
#   2) uvicorn examples.demo_fastapi_app:app --reload


if __name__ == "__main__":
    try:
        import uvicorn
    except ImportError as e:
        raise SystemExit(
            "uvicorn is required to run the demo. Install with: pip install uvicorn fastapi"
        ) from e

    uvicorn.run(
        "examples.demo_fastapi_app:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )

from fastapi import APIRouter
from loguru import logger

from connekt.services.document_store import document_store

router = APIRouter(tags=["health"])


@router.get("/health", summary="Simple readiness probe")
async def health_check() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics", summary="Runtime metrics (lightweight)")
async def metrics() -> dict:
    """Document store call counters and Redis connection count."""
    result: dict = {
        "store_reads": document_store.stats.reads,
        "store_writes": document_store.stats.writes,
        "store_calls_by_collection": dict(document_store.stats.per_collection),
    }
    try:
        client = await document_store.get_client()
        info = await client.info(section="clients")
        result["redis_connected_clients"] = int(info.get("connected_clients", 0))
    except Exception as exc:
        logger.warning(f"Failed to read Redis INFO clients: {exc}")
        result["redis_connected_clients"] = "unavailable"
    return result

"""Debug endpoints."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from autogeorge.api.dependencies import get_db
from autogeorge.core.enums import PipelineStage
from autogeorge.database.connection import DatabaseConnection
from autogeorge.database.pipeline_repository import RunRepository
from autogeorge.database.source_repository import SourceRepository
from autogeorge.utils.date_utils import hours_ago, now_utc

router = APIRouter(prefix="/api/debug", tags=["debug"])


def _last_poll(db: DatabaseConnection) -> Optional[Dict[str, Any]]:
    """Latest poll-feeds run and the items it left for generation."""
    runs = RunRepository(db).recent(stage=PipelineStage.POLL_FEEDS.value, limit=1)
    if not runs:
        return None
    run = runs[0]
    return {
        "run_id": run["run_id"],
        "status": run["status"],
        "started_at": run["started_at"],
        "completed_at": run["completed_at"],
        "pending_items": run["pending_items"],
        "error_message": run["error_message"],
    }


@router.get("/rss-logs")
async def rss_logs(db: DatabaseConnection = Depends(get_db)) -> Dict[str, Any]:
    """Polling state of every source with its feed item counts."""
    sources = SourceRepository(db).fetch_summaries(since=hours_ago(24))
    return {
        "success": True,
        "timestamp": now_utc().isoformat(),
        "sources": sources,
        "last_poll": _last_poll(db),
        "totals": {
            "sources": len(sources),
            "active_sources": sum(1 for s in sources if s["status"] == "active"),
            "sources_with_errors": sum(1 for s in sources if s["last_error"]),
            "feed_items": sum(s["total_items"] for s in sources),
            "processed_items": sum(s["processed_items"] for s in sources),
            "items_last_24h": sum(s["recent_items"] for s in sources),
        },
    }

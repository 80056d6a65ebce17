"""Cron endpoints, one per pipeline stage.

Schedulers may call them with GET or POST; both run the stage once.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status

from autogeorge.api.dependencies import get_runner, verify_cron_secret
from autogeorge.core.enums import PipelineStage
from autogeorge.pipeline.orchestrator import StageRunner
from autogeorge.utils.date_utils import now_utc
from autogeorge.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/cron",
    tags=["cron"],
    dependencies=[Depends(verify_cron_secret)],
)


@router.api_route("/{stage}", methods=["GET", "POST"])
async def run_cron_stage(
    stage: str,
    runner: StageRunner = Depends(get_runner),
) -> Dict[str, Any]:
    try:
        pipeline_stage = PipelineStage(stage)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown stage: {stage}")

    logger.info("cron_stage_requested", stage=pipeline_stage.value)
    results = await runner.run_stage(pipeline_stage)
    return {
        "success": True,
        "timestamp": now_utc().isoformat(),
        "results": results,
    }

"""Issue classification endpoints."""

import logging

from fastapi import APIRouter, Depends

from triage.dependencies import get_engine
from triage.models.classification import IssueClassification
from triage.models.requests import BatchClassifyRequest, ClassifyRequest
from triage.models.task import BatchResult, EngineMetrics
from triage.services.engine import ClassificationEngine

router = APIRouter(prefix="/classify", tags=["classification"])
logger = logging.getLogger(__name__)


@router.post("", response_model=IssueClassification)
async def classify_issue(
    body: ClassifyRequest, engine: ClassificationEngine = Depends(get_engine)
):
    """Classify and score a single issue."""
    return await engine.classify_issue(body.issue, body.repository_context)


@router.post("/batch", response_model=BatchResult)
async def classify_batch(
    body: BatchClassifyRequest, engine: ClassificationEngine = Depends(get_engine)
):
    """Classify many issues; per-issue failures are reported in ``errors``."""
    return await engine.classify_issues_batch(
        body.issues,
        body.repository_context,
        batch_size=body.batch_size,
        parallelism=body.parallelism,
    )


@router.get("/metrics", response_model=EngineMetrics)
async def engine_metrics(engine: ClassificationEngine = Depends(get_engine)):
    return engine.get_performance_metrics()


@router.delete("/cache")
async def clear_cache(engine: ClassificationEngine = Depends(get_engine)):
    """Drop cached classifications and reset the engine counters."""
    engine.clear_cache()
    logger.info("Classification cache cleared")
    return {"status": "cleared"}

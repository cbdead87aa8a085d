"""Top tasks endpoint for the dashboard."""

from fastapi import APIRouter, Depends, Query

from triage.config import get_settings
from triage.dependencies import get_engine
from triage.models.task import DashboardTasks
from triage.services.engine import ClassificationEngine
from triage.services.tasks import get_dashboard_tasks

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("/top", response_model=DashboardTasks)
async def top_tasks(
    limit: int | None = Query(None, ge=1, le=50),
    engine: ClassificationEngine = Depends(get_engine),
):
    """Highest-scoring open issues in the configured repository."""
    return await get_dashboard_tasks(engine, limit or get_settings().top_tasks_limit)

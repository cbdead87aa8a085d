"""FastAPI dependencies."""

from fastapi import HTTPException, Request

from triage.services.engine import ClassificationEngine


def get_engine(request: Request) -> ClassificationEngine:
    """The engine built by the app lifespan."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Classification engine not ready")
    return engine

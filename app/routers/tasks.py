# =============================================================================
# app/routers/tasks.py - Task Status Endpoints
# =============================================================================
# Provides endpoints for checking background generation status and results.
# Task results carry the owner's user_id; other users get 404.
# =============================================================================

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Path, HTTPException
from pydantic import BaseModel

from app.dependencies import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Response Models
# =============================================================================

class TaskStatusResponse(BaseModel):
    """Response model for task status."""
    task_id: str
    status: str
    message: str | None = None
    result: dict | None = None
    error: str | None = None
    code: str | None = None


STATUS_MESSAGES = {
    "PENDING": "Waiting in queue...",
    "STARTED": "Starting...",
    "RETRY": "Retrying...",
    "REVOKED": "Cancelled",
}


def _owner(result: Any) -> str | None:
    """
    User id the task was queued for.

    Read from the task args (stored by the backend with result_extended),
    falling back to the user_id carried in the progress meta or result.
    """
    args = result.args
    if args:
        return str(args[0])
    info = result.info
    return info.get("user_id") if isinstance(info, dict) else None


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/{task_id}", response_model=TaskStatusResponse, response_model_exclude_none=True)
def get_task_status(
    task_id: Annotated[str, Path(description="Celery task ID")],
    user: CurrentUser,
):
    """
    Get the status of a background generation.

    States:
    - PENDING: Waiting in queue (also returned for unknown ids)
    - STARTED / PROGRESS: A worker is polling fal.ai
    - SUCCESS: Finished; `result` holds the generation response, or
      `error`/`code` if the generation itself failed (no credits charged)
    - FAILURE: The worker crashed

    Tasks queued by another user return 404 in every state but PENDING,
    which carries no task data.
    """
    from workers.celery_app import celery_app

    try:
        result = celery_app.AsyncResult(task_id)
        state = result.status
        owner = None if state == "PENDING" else _owner(result)
    except Exception as e:
        logger.error(f"Error getting task status: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to get task status: {e}")

    if state != "PENDING" and owner != str(user.id):
        raise HTTPException(status_code=404, detail="Task not found")

    response = TaskStatusResponse(task_id=task_id, status=state)

    if state == "SUCCESS":
        payload = result.result
        if payload.get("success"):
            response.result = payload
            response.message = "Complete"
        else:
            response.error = payload.get("error")
            response.code = payload.get("code")
            response.message = "Failed"

    elif state == "PROGRESS":
        info = result.info or {}
        response.message = info.get("message", "Processing...")

    elif state == "FAILURE":
        response.error = str(result.result) if result.result else "Unknown error"
        response.message = "Failed"

    else:
        response.message = STATUS_MESSAGES.get(state)

    return response

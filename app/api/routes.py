"""FastAPI endpoints for the statement ingest service.

This module defines the upload-event trigger that feeds the statement pipeline and a health
check. Statement and dashboard reads are served by other services from the same database.
"""

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException
from fastapi.responses import JSONResponse

from app.api.dependencies import get_pipeline
from app.core.utils import get_logger
from app.services.events import refs_from_event
from app.workers.pipeline import StatementPipeline, run_batch

router = APIRouter()
logger = get_logger("statement-etl.api")


@router.post(
    "/events",
    status_code=202,
    summary="Receive an upload notification and process the referenced statements",
    description=(
        "Accepts an S3 event notification (`Records[].s3.object.key`) or a plain batch "
        "(`objects[].key`). Each referenced document is processed by the statement pipeline "
        "in a background task; documents are isolated from one another.\n\n"
        "**Response:**\n"
        "- 202 Accepted: `{ 'accepted': ['<key>', ...] }`.\n"
        "- 400 Bad Request: If the payload references no documents."
    ),
    response_description="Batch accepted. Returns the accepted document keys.",
    responses={
        202: {
            "description": "Batch accepted.",
            "content": {"application/json": {"example": {"accepted": ["3f2a-statement-march.pdf"]}}},
        },
        400: {
            "description": "No document references in the payload.",
            "content": {"application/json": {"example": {"detail": "No document references in event"}}},
        },
    },
)
async def receive_event(
    background_tasks: BackgroundTasks,
    payload: dict = Body(...),
    pipeline: StatementPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Queue the documents referenced by an upload notification."""
    refs = refs_from_event(payload)
    if not refs:
        logger.warning("Rejected event without document references")
        raise HTTPException(400, "No document references in event")
    background_tasks.add_task(run_batch, pipeline, refs)
    keys = [ref.key for ref in refs]
    logger.info(f"Accepted batch of {len(keys)} document(s): {', '.join(keys)}")
    return JSONResponse({"accepted": keys}, status_code=202)


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}

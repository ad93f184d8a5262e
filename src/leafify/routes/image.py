"""Endpoints for image-based diagnosis."""
from fastapi import APIRouter, File, Request, UploadFile, status
from starlette.concurrency import run_in_threadpool

from ..schemas import DiagnosisResponse, ErrorResponse
from ..services.inference import InferenceService

router = APIRouter()


def get_service(request: Request) -> InferenceService:
    return request.app.state.inference


@router.post(
    "/predict",
    status_code=status.HTTP_200_OK,
    response_model=DiagnosisResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def diagnose_leaf(request: Request, file: UploadFile = File(...)) -> dict:
    """Classify an uploaded leaf photo, explain it and attach treatment advice."""
    image_bytes = await file.read()
    service = get_service(request)
    # Forward and backward passes are CPU bound; keep them off the event loop.
    result = await run_in_threadpool(service.diagnose, image_bytes)
    return result.to_dict()

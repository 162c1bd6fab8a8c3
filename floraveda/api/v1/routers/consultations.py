"""
API router for consultation endpoints.
"""
import logging
from typing import Annotated, AsyncIterator, Optional

from fastapi import APIRouter, File, Form, Request, Response, UploadFile, status
from fastapi.responses import StreamingResponse

from floraveda.api.dependencies import ConsultationDep, ConsultationStoreDep
from floraveda.api.v1.models.requests import ChatMessageRequest
from floraveda.api.v1.models.responses import ConsultationResponse
from floraveda.config import settings
from floraveda.domain.exceptions import AnalysisInputError
from floraveda.domain.models import ChatTurn
from floraveda.infrastructure.api_constants import GeminiConstants
from floraveda.middleware.rate_limit import ANALYSIS_RATE_LIMIT, limiter

logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"

router = APIRouter(
    prefix="/consultations",
    tags=["consultations"],
)

_STREAM_RESPONSES = {
    200: {
        "description": "Turn snapshots, one JSON object per line, emitted after every transcript update",
        "content": {NDJSON_MEDIA_TYPE: {}},
    },
    404: {"description": "Consultation not found"},
    409: {"description": "A reply is still being generated"},
}


async def _ndjson(updates: AsyncIterator[ChatTurn]) -> AsyncIterator[str]:
    async for turn in updates:
        yield turn.model_dump_json(by_alias=True) + "\n"


@router.post(
    "",
    response_model=ConsultationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a consultation",
)
async def create_consultation(store: ConsultationStoreDep) -> ConsultationResponse:
    """
    Create a consultation in the UPLOAD state.

    Returns:
        ConsultationResponse snapshot
    """
    consultation_id, consultation = store.create()
    return ConsultationResponse.from_consultation(consultation_id, consultation)


@router.get(
    "/{consultation_id}",
    response_model=ConsultationResponse,
    summary="Get consultation state",
    responses={404: {"description": "Consultation not found"}},
)
async def get_consultation(
    consultation_id: str,
    consultation: ConsultationDep,
) -> ConsultationResponse:
    return ConsultationResponse.from_consultation(consultation_id, consultation)


@router.post(
    "/{consultation_id}/analysis",
    response_model=ConsultationResponse,
    summary="Analyze a plant",
    description="""
    Submit a plant photo and/or name for analysis.

    The consultation moves to RESULTS when the plant is identified, or to
    ERROR when identification fails or the model cannot be reached.
    Without a photo a plant name is required.
    """,
    responses={
        400: {"description": "Missing country, missing plant name without a photo, or invalid image"},
        404: {"description": "Consultation not found"},
        409: {"description": "Consultation is not waiting for an upload"},
        429: {"description": "Rate limit exceeded"},
    },
)
@limiter.limit(ANALYSIS_RATE_LIMIT)
async def submit_analysis(
    request: Request,
    consultation_id: str,
    consultation: ConsultationDep,
    country: Annotated[str, Form(description="Country the user is located in")] = "",
    plant_name: Annotated[str, Form(description="Plant name, required without a photo")] = "",
    image: Annotated[Optional[UploadFile], File(description="Photo of the plant")] = None,
) -> ConsultationResponse:
    """
    Run the analysis for a consultation.

    Args:
        request: Incoming request (used by the rate limiter)
        consultation_id: Unique identifier for the consultation
        consultation: Consultation (injected dependency)
        country: Country the user is located in
        plant_name: Optional claimed plant name
        image: Optional plant photo

    Returns:
        ConsultationResponse snapshot after the analysis
    """
    image_bytes = None
    image_mime_type = GeminiConstants.DEFAULT_IMAGE_MIME_TYPE
    if image is not None:
        image_bytes = await image.read()
        image_mime_type = image.content_type or image_mime_type
        if len(image_bytes) > settings.max_image_bytes:
            raise AnalysisInputError(
                f"Image exceeds the maximum size of {settings.max_image_bytes} bytes."
            )

    await consultation.submit(
        country=country,
        image_bytes=image_bytes,
        plant_name=plant_name,
        image_mime_type=image_mime_type,
    )
    return ConsultationResponse.from_consultation(consultation_id, consultation)


@router.post(
    "/{consultation_id}/chat",
    response_model=None,
    summary="Ask the plant doctor",
    responses=_STREAM_RESPONSES,
)
async def send_chat_message(
    consultation_id: str,
    body: ChatMessageRequest,
    consultation: ConsultationDep,
):
    """
    Send a chat message and stream the reply.

    A blank message or a consultation without a chat session is a no-op
    and returns the unchanged consultation snapshot.
    """
    updates = consultation.send_chat_message(body.message)
    if updates is None:
        return ConsultationResponse.from_consultation(consultation_id, consultation)
    return StreamingResponse(_ndjson(updates), media_type=NDJSON_MEDIA_TYPE)


@router.post(
    "/{consultation_id}/chat/{turn_id}/retry",
    response_model=None,
    summary="Retry a chat reply",
    responses=_STREAM_RESPONSES,
)
async def retry_chat_message(
    consultation_id: str,
    turn_id: str,
    consultation: ConsultationDep,
):
    """
    Regenerate the reply for ``turn_id`` in place.

    Only turns that directly follow a user message can be retried;
    otherwise the unchanged consultation snapshot is returned.
    """
    updates = consultation.retry_chat_message(turn_id)
    if updates is None:
        return ConsultationResponse.from_consultation(consultation_id, consultation)
    return StreamingResponse(_ndjson(updates), media_type=NDJSON_MEDIA_TYPE)


@router.post(
    "/{consultation_id}/reset",
    response_model=ConsultationResponse,
    summary="Reset a consultation",
    responses={404: {"description": "Consultation not found"}},
)
async def reset_consultation(
    consultation_id: str,
    consultation: ConsultationDep,
) -> ConsultationResponse:
    consultation.reset()
    return ConsultationResponse.from_consultation(consultation_id, consultation)


@router.delete(
    "/{consultation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard a consultation",
    responses={404: {"description": "Consultation not found"}},
)
async def delete_consultation(
    consultation_id: str,
    store: ConsultationStoreDep,
) -> Response:
    store.delete(consultation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

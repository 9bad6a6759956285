"""Summary routes: the pipeline, regeneration, screenshots, terms and export."""

from fastapi import APIRouter, Depends, Query, Response

from tubebrief.api.deps import current_user, get_service
from tubebrief.api.schemas import (
    CreateSummaryRequest,
    ExtractTermsRequest,
    ExtractTermsResponse,
    PreviewFrameRequest,
    PreviewFrameResponse,
    RegenerateRequest,
    ScreenshotRequest,
)
from tubebrief.models import Screenshot, Summary, User
from tubebrief.service import SummaryService

router = APIRouter(prefix="/api", tags=["summaries"])

_MEDIA_TYPES = {
    "markdown": "text/markdown",
    "html": "text/html",
    "transcript": "text/markdown",
}


@router.get("/summaries", response_model=list[Summary])
def list_summaries(
    user: User = Depends(current_user), service: SummaryService = Depends(get_service)
) -> list[Summary]:
    return service.list_summaries(user)


@router.post("/summaries", response_model=Summary, status_code=201)
def create_summary(
    body: CreateSummaryRequest,
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> Summary:
    return service.create_summary(body.url, user.id)


@router.get("/summaries/{summary_id}", response_model=Summary)
def get_summary(
    summary_id: int,
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> Summary:
    return service.get_summary(summary_id, user)


@router.delete("/summaries/{summary_id}", status_code=204)
def delete_summary(
    summary_id: int,
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> Response:
    service.delete_summary(summary_id, user)
    return Response(status_code=204)


@router.post("/summaries/{summary_id}/regenerate", response_model=Summary)
def regenerate_summary(
    summary_id: int,
    body: RegenerateRequest,
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> Summary:
    return service.regenerate(summary_id, user, body.prompt_type)


@router.post("/summaries/{summary_id}/fetch-transcript", response_model=Summary)
def fetch_transcript(
    summary_id: int,
    refresh: bool = False,
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> Summary:
    return service.refresh_transcript(summary_id, user, force=refresh)


@router.post("/summaries/{summary_id}/screenshots", response_model=Screenshot, status_code=201)
def add_screenshot(
    summary_id: int,
    body: ScreenshotRequest,
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> Screenshot:
    return service.add_screenshot(summary_id, user, body.timestamp, body.description)


@router.get("/summaries/{summary_id}/export")
def export_summary(
    summary_id: int,
    fmt: str = Query("markdown", alias="format", pattern="^(markdown|html|transcript)$"),
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> Response:
    filename, content = service.export(summary_id, user, fmt)
    return Response(
        content=content,
        media_type=_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/preview-frame", response_model=PreviewFrameResponse)
def preview_frame(
    body: PreviewFrameRequest,
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> PreviewFrameResponse:
    return PreviewFrameResponse(image_data=service.preview_frame(body.video_id, body.timestamp))


@router.post("/extract-terms", response_model=ExtractTermsResponse)
def extract_terms(
    body: ExtractTermsRequest,
    user: User = Depends(current_user),
    service: SummaryService = Depends(get_service),
) -> ExtractTermsResponse:
    return ExtractTermsResponse(terms=service.extract_terms(body.summary_content))

# gutcheck/api/v1/routers/ideas.py
import logging
from fastapi import APIRouter, Depends, Query
from gutcheck.api.v1.deps import get_auth_context, get_pipeline
from gutcheck.core.context import AuthContext
from gutcheck.core.errors import GutCheckError
from gutcheck.models.idea import Idea
from gutcheck.schemas.idea import IdeaCreateIn, IdeaNotesIn, IdeaOut
from gutcheck.services.idea_pipeline import IdeaPipeline

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/ideas", tags=["ideas"])


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def idea_to_dict(idea: Idea) -> dict:
    return IdeaOut(
        id=str(idea.id),
        title=idea.title,
        rawText=idea.raw_text,
        userNotes=idea.user_notes,
        status=idea.status.value if hasattr(idea.status, "value") else idea.status,
        evaluation=idea.evaluation,
        createdAt=_iso(idea.created_at),
        updatedAt=_iso(idea.updated_at),
    ).model_dump()


@router.post("", status_code=201)
async def create_idea(
    body: IdeaCreateIn,
    ctx: AuthContext = Depends(get_auth_context),
    pipeline: IdeaPipeline = Depends(get_pipeline),
):
    """
    Submit an idea (text and/or voice recording).

    Voice is transcribed before the idea is stored. With ``analyze=true`` the
    evaluation runs right after creation; if it fails the idea stays
    ``pending`` and the failure is returned in ``data.analysisError``.

    Errors:
        - VALIDATION_ERROR / INVALID_INPUT (400)
        - QUOTA_EXCEEDED (429, capability="transcription", needsOwnKey=true)
        - VOICE_TRANSCRIPTION_UNAVAILABLE (422)
    """
    idea = await pipeline.submit(
        ctx,
        title=body.title,
        raw_text=body.rawText,
        voice_payload=body.voiceUrl,
        user_notes=body.userNotes,
    )
    data = {"idea": idea_to_dict(idea)}
    if body.analyze:
        try:
            idea = await pipeline.analyze(ctx, idea.id)
            data["idea"] = idea_to_dict(idea)
        except GutCheckError as e:
            logger.warning("[ideas] Analysis after create failed for %s: %s", idea.id, e.code)
            data["analysisError"] = e.to_dict()
    return {"success": True, "data": data}


@router.get("")
async def list_ideas(
    status: str | None = Query(default=None),
    ctx: AuthContext = Depends(get_auth_context),
    pipeline: IdeaPipeline = Depends(get_pipeline),
):
    """Up to 50 of the caller's ideas, newest first, optionally filtered by status."""
    ideas = await pipeline.list_ideas(ctx, status=status)
    return {"success": True, "data": {"items": [idea_to_dict(i) for i in ideas]}}


@router.get("/{idea_id}")
async def get_idea(
    idea_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    pipeline: IdeaPipeline = Depends(get_pipeline),
):
    idea = await pipeline.get_idea(ctx, idea_id)
    return {"success": True, "data": {"idea": idea_to_dict(idea)}}


@router.post("/{idea_id}/analyze")
async def analyze_idea(
    idea_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    pipeline: IdeaPipeline = Depends(get_pipeline),
):
    """
    Run or re-run the evaluation. The previous evaluation (if any) is only
    replaced when the new run succeeds.
    """
    idea = await pipeline.analyze(ctx, idea_id)
    return {"success": True, "data": {"idea": idea_to_dict(idea)}}


@router.put("/{idea_id}/notes")
async def update_notes(
    idea_id: str,
    body: IdeaNotesIn,
    ctx: AuthContext = Depends(get_auth_context),
    pipeline: IdeaPipeline = Depends(get_pipeline),
):
    idea = await pipeline.update_notes(ctx, idea_id, body.userNotes)
    return {"success": True, "data": {"idea": idea_to_dict(idea)}}


@router.post("/{idea_id}/archive")
async def archive_idea(
    idea_id: str,
    ctx: AuthContext = Depends(get_auth_context),
    pipeline: IdeaPipeline = Depends(get_pipeline),
):
    idea = await pipeline.archive(ctx, idea_id)
    return {"success": True, "data": {"idea": idea_to_dict(idea)}}

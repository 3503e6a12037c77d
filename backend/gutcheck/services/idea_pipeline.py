"""
Idea Evaluation Pipeline

Top-level coordinator for a user's ideas:
- submit:  validate -> [quota + transcribe voice] -> persist as pending
- analyze: owner-scoped load -> quota -> evaluate -> increment -> persist as analyzed
- list / get / update notes / archive (all scoped by idea id AND owner in one query)

State machine: pending -> analyzed -> analyzed (re-analysis overwrites);
any non-archived state -> archived (terminal: analyze / notes are rejected).
Provider and parse failures never write a partial evaluation.
"""
import uuid
import logging
from typing import Any, Dict, List, Optional, Union

from tortoise import timezone

from ..config import settings
from ..core.context import AuthContext
from ..core.errors import (
    IdeaArchivedError,
    NotFoundError,
    TranscriptionError,
    ValidationError,
    VoiceUnavailableError,
)
from ..core.validation import MAX_IDEA_TEXT_LENGTH, validate_idea_text, validate_notes, validate_title
from ..models.idea import Idea, IdeaStatus
from .asr_base import ASRService, AudioPayload
from .asr_factory import decode_audio_payload, get_asr_service
from .evaluator import Evaluation, IdeaEvaluatorService, idea_evaluator
from .quota import Capability, QuotaLedger, quota_ledger
from .user_service import UserService, user_service

logger = logging.getLogger("uvicorn.error")

VOICE_PLACEHOLDER = "[Voice recording provided - transcription failed]"
TRANSCRIPTION_SEPARATOR = "\n\n[Voice Recording Transcription]:\n"


def evaluation_document(evaluation: Evaluation) -> Dict[str, Any]:
    """Shape stored in Idea.evaluation"""
    return {
        "problem": evaluation.problem,
        "audience": evaluation.audience,
        "competitors": list(evaluation.competitors),
        "potential": evaluation.potential,
        "score": evaluation.score,
        "recommendation": evaluation.recommendation,
        "model": evaluation.model,
        "rawResponse": evaluation.raw_response,
    }


def merge_transcription(text: Optional[str], transcript: str, max_length: int = MAX_IDEA_TEXT_LENGTH) -> str:
    """Append the transcript to the typed text; the transcript is cut to fit max_length."""
    if text and text.strip():
        prefix = f"{text}{TRANSCRIPTION_SEPARATOR}"
        return prefix + transcript[:max(0, max_length - len(prefix))]
    return transcript[:max_length]


def _has_voice(voice_payload: Union[str, bytes, None]) -> bool:
    if isinstance(voice_payload, (bytes, bytearray)):
        return len(voice_payload) > 0
    return bool(voice_payload and voice_payload.strip())


class IdeaPipeline:

    def __init__(
        self,
        ledger: Optional[QuotaLedger] = None,
        users: Optional[UserService] = None,
        evaluator: Optional[IdeaEvaluatorService] = None,
        asr: Optional[ASRService] = None,
    ):
        self.ledger = ledger or quota_ledger
        self.users = users or user_service
        self.evaluator = evaluator or idea_evaluator
        self.asr = asr or get_asr_service()

    # ========== Creation ==========

    async def submit(
        self,
        ctx: AuthContext,
        title: Optional[str],
        raw_text: Optional[str] = None,
        voice_payload: Union[str, bytes, None] = None,
        user_notes: Optional[str] = None,
    ) -> Idea:
        """
        Create an idea in ``pending``.

        Raises:
            ValidationError / InvalidInputError: bad title, text, notes or audio payload
            QuotaExceededError: voice given, free transcriptions used up, no own key
            VoiceUnavailableError: voice is the only content and no transcription credential exists
        """
        title = validate_title(title)
        has_text = bool(raw_text and raw_text.strip())
        has_voice = _has_voice(voice_payload)
        if not has_text and not has_voice:
            raise ValidationError("Please provide either idea text or a voice recording")
        if has_text:
            validate_idea_text(raw_text)
            if has_voice and len(raw_text) + len(TRANSCRIPTION_SEPARATOR) >= MAX_IDEA_TEXT_LENGTH:
                raise ValidationError(
                    "Idea text leaves no room for the voice transcription; shorten the text or drop the recording",
                    extra={"field": "rawText", "maxLength": MAX_IDEA_TEXT_LENGTH},
                )
        user_notes = validate_notes(user_notes)
        audio = decode_audio_payload(voice_payload) if has_voice else None

        body = raw_text if has_text else None
        if audio is not None:
            body = await self._transcribe_into_body(ctx, raw_text if has_text else None, audio)

        if body != VOICE_PLACEHOLDER:
            validate_idea_text(body)

        idea = await Idea.create(
            user_id=ctx.user.id,
            title=title,
            raw_text=body,
            user_notes=user_notes,
            status=IdeaStatus.PENDING,
        )
        logger.info("[pipeline] Idea %s created for %s (voice=%s, %d chars)",
                    idea.id, ctx.email, has_voice, len(body))
        return idea

    async def _transcribe_into_body(self, ctx: AuthContext, text: Optional[str], audio: AudioPayload) -> str:
        usage = await self.ledger.check(ctx.email, Capability.TRANSCRIPTION)
        own_key = await self.users.get_credential(usage.user, Capability.TRANSCRIPTION)
        self.ledger.enforce(usage, Capability.TRANSCRIPTION, own_key)

        if not own_key and not self.asr.is_available():
            if text:
                logger.warning("[pipeline] No transcription credential, keeping typed text only")
                return text
            raise VoiceUnavailableError(
                "Voice recording cannot be transcribed: no transcription service is configured. "
                "Add your own transcription API key or type your idea.",
                extra={"needsOwnKey": True},
            )

        try:
            result = await self.asr.transcribe(audio=audio, api_key=own_key)
        except TranscriptionError as e:
            logger.warning("[pipeline] Transcription failed, falling back: %s", e.message)
            return text or VOICE_PLACEHOLDER

        if not own_key:
            await self.ledger.increment(usage.user.id, Capability.TRANSCRIPTION)

        if not result.text.strip():
            logger.warning("[pipeline] Transcription returned empty text")
            return text or VOICE_PLACEHOLDER
        return merge_transcription(text, result.text.strip())

    # ========== Evaluation ==========

    async def analyze(self, ctx: AuthContext, idea_id) -> Idea:
        """
        Run (or re-run) the evaluation; the latest successful run wins.

        Raises:
            NotFoundError: unknown id or not owned by the caller
            IdeaArchivedError: idea is archived
            QuotaExceededError: free evaluations used up and no own key
            ConfigurationError / ProviderError / EvaluationUnparsable: evaluation failed (idea unchanged)
        """
        idea = await self._get_owned(ctx, idea_id)
        if idea.status == IdeaStatus.ARCHIVED:
            raise IdeaArchivedError("Archived ideas cannot be analyzed")

        usage = await self.ledger.check(ctx.email, Capability.EVALUATION)
        own_key = await self.users.get_credential(usage.user, Capability.EVALUATION)
        self.ledger.enforce(usage, Capability.EVALUATION, own_key)

        evaluation = await self.evaluator.evaluate(
            idea.raw_text,
            credential=own_key,
            preferred_model=usage.user.preferred_model if own_key else None,
        )

        if not own_key:
            await self.ledger.increment(usage.user.id, Capability.EVALUATION)

        updated = await Idea.filter(
            id=idea.id, user_id=ctx.user.id, status__not=IdeaStatus.ARCHIVED
        ).update(
            evaluation=evaluation_document(evaluation),
            status=IdeaStatus.ANALYZED,
            updated_at=timezone.now(),
        )
        if not updated:
            await self._raise_for_missing_or_archived(ctx, idea_id, "Idea was archived during analysis")

        logger.info("[pipeline] Idea %s analyzed: score=%s recommendation=%s",
                    idea.id, evaluation.score, evaluation.recommendation)
        return await self._get_owned(ctx, idea_id)

    # ========== Owner-scoped CRUD ==========

    async def list_ideas(self, ctx: AuthContext, status: Optional[str] = None) -> List[Idea]:
        """Newest first, capped at settings.ideas_list_limit; unknown status filters are ignored."""
        query = Idea.filter(user_id=ctx.user.id)
        if status in {s.value for s in IdeaStatus}:
            query = query.filter(status=IdeaStatus(status))
        return await query.order_by("-created_at").limit(settings.ideas_list_limit)

    async def get_idea(self, ctx: AuthContext, idea_id) -> Idea:
        return await self._get_owned(ctx, idea_id)

    async def update_notes(self, ctx: AuthContext, idea_id, notes: Optional[str]) -> Idea:
        notes = validate_notes(notes)
        pk = self._parse_id(idea_id)
        updated = await Idea.filter(
            id=pk, user_id=ctx.user.id, status__not=IdeaStatus.ARCHIVED
        ).update(user_notes=notes, updated_at=timezone.now())
        if not updated:
            await self._raise_for_missing_or_archived(ctx, idea_id, "Archived ideas cannot be edited")
        return await self._get_owned(ctx, idea_id)

    async def archive(self, ctx: AuthContext, idea_id) -> Idea:
        """Archiving an already archived idea is a no-op success."""
        pk = self._parse_id(idea_id)
        updated = await Idea.filter(
            id=pk, user_id=ctx.user.id, status__not=IdeaStatus.ARCHIVED
        ).update(status=IdeaStatus.ARCHIVED, updated_at=timezone.now())
        idea = await self._get_owned(ctx, idea_id)
        if updated:
            logger.info("[pipeline] Idea %s archived", idea.id)
        return idea

    # ========== Helpers ==========

    @staticmethod
    def _parse_id(idea_id) -> uuid.UUID:
        try:
            return idea_id if isinstance(idea_id, uuid.UUID) else uuid.UUID(str(idea_id))
        except ValueError:
            raise NotFoundError("Idea not found")

    async def _get_owned(self, ctx: AuthContext, idea_id) -> Idea:
        idea = await Idea.get_or_none(id=self._parse_id(idea_id), user_id=ctx.user.id)
        if not idea:
            raise NotFoundError("Idea not found")
        return idea

    async def _raise_for_missing_or_archived(self, ctx: AuthContext, idea_id, message: str) -> None:
        idea = await self._get_owned(ctx, idea_id)
        if idea.status == IdeaStatus.ARCHIVED:
            raise IdeaArchivedError(message)

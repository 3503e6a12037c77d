"""
Services Module

Provides the idea evaluation pipeline and its collaborators:
- ASR (voice transcription): Groq Whisper API
- Evaluator: OpenAI-compatible chat completions + tolerant response parser
- Quota ledger: per-user free-tier metering
- User service: find-or-create, BYOK settings, credential decryption
"""

# ASR service
from .asr_base import (
    ASRService,
    AudioPayload,
    TranscriptionResult,
)
from .asr_factory import (
    decode_audio_payload,
    get_asr_service,
    transcribe_audio,
)
from .asr_groq_adapter import groq_whisper_service

# Evaluation
from .evaluator import Evaluation, IdeaEvaluatorService, idea_evaluator
from .response_parser import EvaluationFields, parse_evaluation

# Metering and users
from .quota import Capability, QuotaLedger, UsageCheck, quota_ledger
from .user_service import UserService, user_service

# Orchestration
from .idea_pipeline import IdeaPipeline

__all__ = [
    # ASR
    "ASRService",
    "AudioPayload",
    "TranscriptionResult",
    "decode_audio_payload",
    "get_asr_service",
    "transcribe_audio",
    "groq_whisper_service",
    # Evaluation
    "Evaluation",
    "EvaluationFields",
    "IdeaEvaluatorService",
    "idea_evaluator",
    "parse_evaluation",
    # Metering and users
    "Capability",
    "QuotaLedger",
    "UsageCheck",
    "quota_ledger",
    "UserService",
    "user_service",
    # Orchestration
    "IdeaPipeline",
]

"""
Groq Whisper API Adapter

Calls Groq's OpenAI-compatible /audio/transcriptions endpoint through the ASR interface.
"""
import logging
import httpx
from typing import Optional
from .asr_base import ASRService, AudioPayload, TranscriptionResult
from ..config import settings
from ..core.errors import ConfigurationError, TranscriptionError

logger = logging.getLogger("uvicorn.error")


class GroqWhisperService(ASRService):
    """Groq Whisper API Service"""

    def __init__(self):
        self.api_key = settings.groq_api_key
        self.api_url = settings.groq_api_url
        self.model = settings.groq_whisper_model
        self.default_language = settings.transcription_language

    @property
    def name(self) -> str:
        return "Groq Whisper API"

    def is_available(self) -> bool:
        """Check if system API key is configured"""
        return bool(self.api_key)

    async def transcribe(
        self,
        audio: AudioPayload,
        api_key: Optional[str] = None,
        language: Optional[str] = None,
    ) -> TranscriptionResult:
        """
        Single attempt, no retries. Uses verbose_json to get duration and language.

        Raises:
            ConfigurationError: neither api_key nor the system key is set
            TranscriptionError: network / HTTP / response-format failure
        """
        key = api_key or self.api_key
        if not key:
            raise ConfigurationError(f"{self.name}: API key not configured")

        headers = {"Authorization": f"Bearer {key}"}
        data = {
            "model": self.model,
            "response_format": "verbose_json",
            "temperature": 0.0,  # most deterministic
            "language": language or self.default_language,
        }
        files = {"file": (audio.filename, audio.data, audio.mime_type)}

        logger.info("[asr] %s: uploading %d bytes (%s, own key=%s)",
                    self.name, len(audio.data), audio.mime_type, bool(api_key))
        try:
            async with httpx.AsyncClient(timeout=120) as client:
                resp = await client.post(self.api_url, headers=headers, data=data, files=files)
                resp.raise_for_status()
                result = resp.json()
        except httpx.HTTPStatusError as e:
            raise TranscriptionError(f"Transcription failed: HTTP {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            raise TranscriptionError(f"Transcription failed: {e}")

        text = (result.get("text") or "").strip()
        logger.info("[asr] Transcription completed: %r (duration=%s, language=%s)",
                    text[:100], result.get("duration"), result.get("language"))
        return TranscriptionResult(
            text=text,
            duration_sec=result.get("duration"),
            language=result.get("language"),
        )


# Global singleton
groq_whisper_service = GroqWhisperService()

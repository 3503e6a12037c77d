"""
ASR Service Abstract Interface

Provides unified interface for speech-to-text providers used to turn a voice
idea into text (Groq Whisper today; any OpenAI-compatible endpoint fits).
"""
from abc import ABC, abstractmethod
from typing import Optional
from dataclasses import dataclass


@dataclass
class AudioPayload:
    """Decoded audio ready for upload"""
    data: bytes
    mime_type: str = "audio/webm"

    @property
    def extension(self) -> str:
        if "mp4" in self.mime_type:
            return "mp4"
        if "wav" in self.mime_type:
            return "wav"
        if "mpeg" in self.mime_type or "mp3" in self.mime_type:
            return "mp3"
        if "ogg" in self.mime_type:
            return "ogg"
        return "webm"

    @property
    def filename(self) -> str:
        return f"audio.{self.extension}"


@dataclass
class TranscriptionResult:
    """Transcription result (text may be empty when no speech was detected)"""
    text: str
    duration_sec: Optional[float] = None
    language: Optional[str] = None


class ASRService(ABC):
    """ASR Service Abstract Base Class"""

    @abstractmethod
    async def transcribe(
        self,
        audio: AudioPayload,
        api_key: Optional[str] = None,
        language: Optional[str] = None,
    ) -> TranscriptionResult:
        """
        Transcribe audio

        Parameters:
        - audio: Decoded audio bytes + mime type
        - api_key: Caller's own key; falls back to the system key
        - language: Optional language hint (e.g., "en")

        Returns:
        - TranscriptionResult
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the system credential is configured"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Service name (e.g., "Groq Whisper API")"""
        pass

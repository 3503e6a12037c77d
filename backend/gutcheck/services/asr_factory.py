"""
ASR Service Factory

Decodes voice payloads and routes them to the configured ASR service
"""
import base64
import binascii
import logging
from typing import Optional, Union
from .asr_base import ASRService, AudioPayload, TranscriptionResult
from .asr_groq_adapter import groq_whisper_service
from ..core.errors import InvalidInputError

logger = logging.getLogger("uvicorn.error")


def get_asr_service() -> ASRService:
    """
    Get ASR service

    Availability of the system key is not checked here: a user key may still
    make the service usable. Callers check is_available() for the system key.
    """
    return groq_whisper_service


def decode_audio_payload(payload: Union[str, bytes]) -> AudioPayload:
    """
    Accept raw bytes or a data URL ("data:audio/webm;base64,....").

    Raises:
        InvalidInputError: malformed data URL or empty audio
    """
    if isinstance(payload, (bytes, bytearray)):
        if not payload:
            raise InvalidInputError("Audio payload is empty")
        return AudioPayload(data=bytes(payload))

    if not payload or not payload.startswith("data:") or "," not in payload:
        raise InvalidInputError("Invalid data URL format")

    header, b64 = payload.split(",", 1)
    mime_type = header[len("data:"):].split(";", 1)[0].strip() or "audio/webm"
    try:
        data = base64.b64decode(b64.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInputError("Invalid base64 audio data")
    if not data:
        raise InvalidInputError("Audio payload is empty")
    return AudioPayload(data=data, mime_type=mime_type)


# Convenience function: decode + transcribe
async def transcribe_audio(
    payload: Union[str, bytes],
    api_key: Optional[str] = None,
    language: Optional[str] = None,
) -> TranscriptionResult:
    """
    Transcribe a voice payload (raw bytes or data URL)

    Parameters:
    - payload: audio bytes or data URL
    - api_key: caller's own key; the system key is used otherwise
    - language: optional language hint

    Returns:
    - TranscriptionResult
    """
    audio = decode_audio_payload(payload)
    service = get_asr_service()
    return await service.transcribe(audio=audio, api_key=api_key, language=language)

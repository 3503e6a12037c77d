# gutcheck/core/bootstrap.py
"""
Bootstrap module for application initialization.
Reports missing server-side credentials once at startup so operators know
which capabilities will depend on users bringing their own keys.
"""
import logging
from gutcheck.config import settings
from gutcheck.core.security import CredentialVault

logger = logging.getLogger("uvicorn.error")

def check_runtime_config() -> list[str]:
    """
    Log (never raise) one warning per missing setting and return their names.
      - ENCRYPTION_KEY: storing or reading own keys will fail with CONFIGURATION_ERROR
      - OPENAI_API_KEY: evaluations only work for users with their own LLM key
      - GROQ_API_KEY:   transcription only works for users with their own key;
                        voice-only submissions from other users are rejected
    """
    missing = []
    if not CredentialVault(settings.encryption_key).is_configured():
        missing.append("ENCRYPTION_KEY")
        logger.warning("[bootstrap] ENCRYPTION_KEY not set -> own API keys cannot be stored or read.")
    if not settings.openai_api_key:
        missing.append("OPENAI_API_KEY")
        logger.warning("[bootstrap] OPENAI_API_KEY not set -> evaluations require the user's own key.")
    if not settings.groq_api_key:
        missing.append("GROQ_API_KEY")
        logger.warning("[bootstrap] GROQ_API_KEY not set -> transcription requires the user's own key.")
    if not missing:
        logger.info("[bootstrap] All system credentials configured (model=%s, whisper=%s)",
                    settings.openai_model_name, settings.groq_whisper_model)
    return missing

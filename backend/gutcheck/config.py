# gutcheck/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file

class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "GutCheck Idea Evaluation API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Create tables on startup (dev convenience; use Aerich migrations otherwise)
    db_generate_schemas: bool = os.getenv("DB_GENERATE_SCHEMAS", "false").lower() in ("true", "1", "yes")

    # Master key for stored BYOK credentials (64 hex chars, or any string padded to 32 bytes)
    encryption_key: str | None = os.getenv("ENCRYPTION_KEY")

    # LLM evaluation (OpenAI-compatible chat completions)
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_api_base_url: str = os.getenv("OPENAI_API_BASE_URL", "https://api.openai.com/v1")
    openai_model_name: str = os.getenv("OPENAI_MODEL_NAME", "gpt-3.5-turbo")
    llm_temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    llm_max_tokens: int = int(os.getenv("LLM_MAX_TOKENS", "1500"))
    llm_timeout_sec: float = float(os.getenv("LLM_TIMEOUT_SEC", "120"))

    # Groq Whisper API Settings (for voice transcription)
    groq_api_key: str | None = os.getenv("GROQ_API_KEY")
    groq_api_url: str = os.getenv("GROQ_API_URL", "https://api.groq.com/openai/v1/audio/transcriptions")
    groq_whisper_model: str = os.getenv("GROQ_WHISPER_MODEL", "whisper-large-v3")
    transcription_language: str = os.getenv("TRANSCRIPTION_LANGUAGE", "en")

    # Free tier per capability (ignored once the user brings their own key)
    free_evaluation_limit: int = int(os.getenv("FREE_EVALUATION_LIMIT", "10"))
    free_transcription_limit: int = int(os.getenv("FREE_TRANSCRIPTION_LIMIT", "10"))

    # Idea listing
    ideas_list_limit: int = 50

settings = Settings()  # Instantiate configuration

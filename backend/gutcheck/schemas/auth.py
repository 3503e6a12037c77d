"""
Pydantic schemas for authentication and settings endpoints.
"""
from pydantic import BaseModel
from typing import Optional

class RegisterIn(BaseModel):
    """
    Request model for the find-or-create registration endpoint.
    Keys are only stored when the account is first created.
    """
    email: str
    apiKey: Optional[str] = None  # Own LLM key (BYOK)
    transcriptionApiKey: Optional[str] = None  # Own transcription key (BYOK)

class UserSettingsIn(BaseModel):
    """
    Request model for updating user settings.
    Omitted field = unchanged; empty string = remove.
    """
    apiKey: Optional[str] = None
    transcriptionApiKey: Optional[str] = None
    preferredModel: Optional[str] = None  # <= 128 chars, checked by UserService

class CapabilityUsageOut(BaseModel):
    """Usage of one metered capability"""
    allowed: bool
    count: int
    limit: int
    hasOwnKey: bool  # a key is stored
    usableKey: bool = False  # the stored key decrypts; only then is metering bypassed

class UserSettingsOut(BaseModel):
    email: str
    hasApiKey: bool
    hasTranscriptionApiKey: bool
    preferredModel: Optional[str] = None
    evaluation: CapabilityUsageOut
    transcription: CapabilityUsageOut

# gutcheck/models/user.py
"""
Database model for users.
A user is identified by a normalized email and carries the usage counters
for the two metered capabilities plus optional encrypted BYOK credentials.
"""
import uuid
from tortoise import fields, models

class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many Ideas (one-to-many, via related_name="ideas")

    Metering:
    - evaluation_count / transcription_count only grow, and only when the
      system credential was used for that capability
    - a non-null *_key_encrypted switches that capability to unlimited
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    email = fields.CharField(max_length=256, unique=True, index=True)  # trimmed + lower-cased
    ip = fields.CharField(max_length=64, default="unknown")  # first-seen IP, informational only

    evaluation_count = fields.IntField(default=0)
    transcription_count = fields.IntField(default=0)

    llm_key_encrypted = fields.TextField(null=True)  # AES-GCM blob, see core.security
    transcription_key_encrypted = fields.TextField(null=True)
    preferred_model = fields.CharField(max_length=128, null=True)  # honored only with llm_key_encrypted

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"

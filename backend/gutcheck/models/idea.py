# gutcheck/models/idea.py
"""
Database model for submitted business ideas.
The LLM evaluation is embedded as a JSON document rather than stored in its own table.
"""
import uuid
from enum import Enum
from tortoise import fields, models


class IdeaStatus(str, Enum):
    PENDING = "pending"
    ANALYZED = "analyzed"
    ARCHIVED = "archived"


class Idea(models.Model):
    """
    Idea database model.

    Lifecycle: pending -> analyzed (-> analyzed on re-analysis); any
    non-archived state -> archived, which is terminal.

    evaluation JSON shape:
        {problem, audience, competitors[], potential, score, recommendation, model, rawResponse}
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.ForeignKeyField(
        "models.User",
        related_name="ideas",
        on_delete=fields.CASCADE,
    )
    title = fields.CharField(max_length=200)
    raw_text = fields.TextField()  # <= 5000 chars, or the voice placeholder marker
    user_notes = fields.TextField(null=True)  # <= 1000 chars
    status = fields.CharEnumField(IdeaStatus, max_length=16, default=IdeaStatus.PENDING)
    evaluation = fields.JSONField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "ideas"

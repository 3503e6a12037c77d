"""
Usage Quota Ledger

Meters the two independently limited capabilities per user:
- evaluation    (LLM idea evaluation)
- transcription (voice -> text)

A user holding their own key for a capability is never limited for it.
Counters are only incremented after the paid call succeeded with the
system credential, using a single conditional UPDATE so concurrent requests
cannot push a counter past its free limit.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from tortoise.expressions import F

from ..config import settings
from ..core.errors import NotFoundError, QuotaExceededError
from ..core.validation import sanitize_email
from ..models.user import User

logger = logging.getLogger("uvicorn.error")


class Capability(str, Enum):
    EVALUATION = "evaluation"
    TRANSCRIPTION = "transcription"


# capability -> (counter column, encrypted key column)
CAPABILITY_FIELDS = {
    Capability.EVALUATION: ("evaluation_count", "llm_key_encrypted"),
    Capability.TRANSCRIPTION: ("transcription_count", "transcription_key_encrypted"),
}


def free_limit(capability: Capability) -> int:
    if capability == Capability.EVALUATION:
        return settings.free_evaluation_limit
    return settings.free_transcription_limit


@dataclass
class UsageCheck:
    allowed: bool
    count: int
    limit: int
    has_own_key: bool
    usable_key: bool = False
    user: Optional[User] = None


class QuotaLedger:
    """Per-user allow/deny decisions and atomic counter increments"""

    def usage_for(self, user: User, capability: Capability, key_usable: Optional[bool] = None) -> UsageCheck:
        """
        ``key_usable`` is whether the stored key actually decrypts; when not
        given, a stored key is assumed usable.
        """
        counter_field, key_field = CAPABILITY_FIELDS[capability]
        count = getattr(user, counter_field) or 0
        limit = free_limit(capability)
        has_own_key = bool(getattr(user, key_field))
        usable_key = has_own_key if key_usable is None else has_own_key and key_usable
        return UsageCheck(
            allowed=usable_key or count < limit,
            count=count,
            limit=limit,
            has_own_key=has_own_key,
            usable_key=usable_key,
            user=user,
        )

    async def check(self, email: str, capability: Capability) -> UsageCheck:
        """
        Resolve the user by normalized email and decide allow/deny.

        Raises:
            NotFoundError: unknown user
        """
        user = await User.get_or_none(email=sanitize_email(email))
        if not user:
            raise NotFoundError("User not found")
        return self.usage_for(user, capability)

    def enforce(self, usage: UsageCheck, capability: Capability, own_key: Optional[str]) -> None:
        """
        Raise QuotaExceededError unless a usable own key exists or the free tier has room.

        ``own_key`` is the decrypted credential; a stored blob that failed to
        decrypt counts as absent, so metering applies again.
        """
        if own_key:
            return
        if usage.count >= usage.limit:
            logger.info("[quota] %s denied for %s (%d/%d)",
                        capability.value, usage.user.email if usage.user else "?", usage.count, usage.limit)
            raise QuotaExceededError(capability.value, usage.count, usage.limit)

    async def increment(self, user_id, capability: Capability) -> bool:
        """
        Atomically add 1 to the capability counter, never past the free limit.

        Only call after the paid action succeeded with the system credential.
        Returns False if the counter was already at the limit (nothing written).
        """
        counter_field, _ = CAPABILITY_FIELDS[capability]
        limit = free_limit(capability)
        updated = await User.filter(
            id=user_id, **{f"{counter_field}__lt": limit}
        ).update(**{counter_field: F(counter_field) + 1})
        if not updated:
            logger.warning("[quota] %s counter for user=%s already at limit %d", capability.value, user_id, limit)
        return bool(updated)


# Global singleton
quota_ledger = QuotaLedger()

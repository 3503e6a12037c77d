"""
User Service

Idempotent find-or-create by normalized email, BYOK settings, and
decryption of stored credentials through the credential vault.
"""
import logging
from typing import Optional

from tortoise.exceptions import IntegrityError as DBIntegrityError

from ..config import settings
from ..core.errors import ConfigurationError, IntegrityError, NotFoundError, ValidationError
from ..core.security import CredentialVault
from ..core.validation import is_valid_email, sanitize_email
from ..models.user import User
from .quota import CAPABILITY_FIELDS, Capability

logger = logging.getLogger("uvicorn.error")


class UserService:

    def __init__(self, vault: Optional[CredentialVault] = None):
        self._vault = vault

    @property
    def vault(self) -> CredentialVault:
        # Resolved lazily so tests and startup can change settings.encryption_key
        return self._vault or CredentialVault(settings.encryption_key)

    async def find_or_create_user(
        self,
        email: str,
        ip: str = "unknown",
        llm_key: Optional[str] = None,
        transcription_key: Optional[str] = None,
    ) -> User:
        """
        Return the user for ``email``, creating it on first sight.
        Keys are only stored when the user is created; existing users change
        keys through update_settings.

        Raises:
            ValidationError: invalid email
            ConfigurationError: keys given but ENCRYPTION_KEY missing
        """
        if not is_valid_email(email):
            raise ValidationError("Invalid email format", extra={"field": "email"})
        normalized = sanitize_email(email)

        user = await User.get_or_none(email=normalized)
        if user:
            return user

        fields = {"email": normalized, "ip": ip or "unknown"}
        if llm_key:
            fields["llm_key_encrypted"] = self.vault.encrypt(llm_key.strip())
        if transcription_key:
            fields["transcription_key_encrypted"] = self.vault.encrypt(transcription_key.strip())

        try:
            user = await User.create(**fields)
        except DBIntegrityError:
            # Concurrent first request for the same email won the insert
            user = await User.get(email=normalized)
            return user
        logger.info("[users] Created user id=%s email=%s", user.id, normalized)
        return user

    async def get_user(self, user_id) -> User:
        user = await User.get_or_none(id=user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def get_credential(self, user: User, capability: Capability) -> Optional[str]:
        """
        Decrypted own key for the capability, or None.

        A blob that fails authentication is logged and treated as "no usable
        credential". A missing master key raises ConfigurationError.
        """
        _, key_field = CAPABILITY_FIELDS[capability]
        blob = getattr(user, key_field)
        if not blob:
            return None
        try:
            return self.vault.decrypt(blob)
        except IntegrityError as e:
            logger.warning("[vault] Unusable %s key for user=%s: %s", capability.value, user.id, e.message)
            return None

    async def has_usable_credential(self, user: User, capability: Capability) -> bool:
        """Whether a stored own key exists and decrypts (for usage reports, never raises)."""
        try:
            return await self.get_credential(user, capability) is not None
        except ConfigurationError as e:
            logger.warning("[vault] Cannot check %s key for user=%s: %s", capability.value, user.id, e.message)
            return False

    async def update_settings(
        self,
        user: User,
        api_key: Optional[str] = None,
        transcription_api_key: Optional[str] = None,
        preferred_model: Optional[str] = None,
    ) -> User:
        """
        None leaves a setting unchanged; an empty (or blank) string clears it.
        """
        updates = {}
        if api_key is not None:
            updates["llm_key_encrypted"] = self.vault.encrypt(api_key.strip()) if api_key.strip() else None
        if transcription_api_key is not None:
            updates["transcription_key_encrypted"] = (
                self.vault.encrypt(transcription_api_key.strip()) if transcription_api_key.strip() else None
            )
        if preferred_model is not None:
            if len(preferred_model) > 128:
                raise ValidationError("Preferred model name is too long", extra={"field": "preferredModel"})
            updates["preferred_model"] = preferred_model.strip() or None

        if updates:
            await User.filter(id=user.id).update(**updates)
            logger.info("[users] Settings updated for user=%s: %s", user.id, sorted(updates))
        return await self.get_user(user.id)


# Global singleton
user_service = UserService()

# gutcheck/api/v1/routers/auth.py
from fastapi import APIRouter, Depends, Request, Response
from gutcheck.api.v1.deps import client_ip, get_auth_context
from gutcheck.core.context import AuthContext
from gutcheck.core.security import ACCESS_TOKEN_EXPIRE_MINUTES, create_access_token
from gutcheck.models.user import User
from gutcheck.schemas.auth import CapabilityUsageOut, RegisterIn, UserSettingsIn, UserSettingsOut
from gutcheck.services.quota import Capability, quota_ledger
from gutcheck.services.user_service import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


async def _capability_usage(user: User, capability: Capability) -> CapabilityUsageOut:
    usable = await user_service.has_usable_credential(user, capability)
    usage = quota_ledger.usage_for(user, capability, key_usable=usable)
    return CapabilityUsageOut(
        allowed=usage.allowed,
        count=usage.count,
        limit=usage.limit,
        hasOwnKey=usage.has_own_key,
        usableKey=usage.usable_key,
    )


async def _usage_summary(user: User) -> dict:
    evaluation = await _capability_usage(user, Capability.EVALUATION)
    transcription = await _capability_usage(user, Capability.TRANSCRIPTION)
    return UserSettingsOut(
        email=user.email,
        hasApiKey=evaluation.hasOwnKey,
        hasTranscriptionApiKey=transcription.hasOwnKey,
        preferredModel=user.preferred_model,
        evaluation=evaluation,
        transcription=transcription,
    ).model_dump()


@router.post("/register", status_code=201)
async def register(body: RegisterIn, request: Request, response: Response):
    """
    Find or create a user by email and issue an access token.

    The email is trimmed and lower-cased before lookup, so repeated calls with
    differently-cased input resolve to the same account. Optional own keys are
    stored encrypted only when the account is created.

    Returns:
        dict: {"success": True, "data": {"user": usage summary, "accessToken": str}}

    Errors:
        - VALIDATION_ERROR (400): invalid email
        - CONFIGURATION_ERROR (503): keys supplied but ENCRYPTION_KEY not set
    """
    user = await user_service.find_or_create_user(
        body.email,
        ip=client_ip(request),
        llm_key=body.apiKey,
        transcription_key=body.transcriptionApiKey,
    )
    token = create_access_token(str(user.id), user.email)
    # HttpOnly cookie for browser clients (header is still preferred)
    response.set_cookie(
        key="accessToken",
        value=token,
        httponly=True,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return {"success": True, "data": {"user": await _usage_summary(user), "accessToken": token}}


@router.get("/me")
async def me(ctx: AuthContext = Depends(get_auth_context)):
    """Usage status of both metered capabilities for the caller."""
    return {"success": True, "data": await _usage_summary(ctx.user)}


@router.get("/settings")
async def get_settings(ctx: AuthContext = Depends(get_auth_context)):
    """Own-key flags and preferred model (keys themselves are never returned)."""
    return {"success": True, "data": await _usage_summary(ctx.user)}


@router.put("/settings")
async def update_settings(body: UserSettingsIn, ctx: AuthContext = Depends(get_auth_context)):
    """
    Set or clear own keys / preferred model independently.
    Omitted field = unchanged; empty string = remove.
    """
    user = await user_service.update_settings(
        ctx.user,
        api_key=body.apiKey,
        transcription_api_key=body.transcriptionApiKey,
        preferred_model=body.preferredModel,
    )
    return {"success": True, "data": await _usage_summary(user)}


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie("accessToken")
    return {"success": True, "data": {"loggedOut": True}}

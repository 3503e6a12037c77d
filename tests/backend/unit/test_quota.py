"""
Unit tests for services.quota module.
Tests allow/deny decisions, BYOK bypass and the bounded counter increment.
"""
import pytest

from gutcheck.core.errors import NotFoundError, QuotaExceededError
from gutcheck.models.user import User
from gutcheck.services.quota import Capability, QuotaLedger, free_limit


@pytest.fixture
def ledger():
    return QuotaLedger()


class TestQuotaCheck:

    @pytest.mark.asyncio
    async def test_unknown_user(self, db, ledger):
        with pytest.raises(NotFoundError):
            await ledger.check("nobody@example.com", Capability.EVALUATION)

    @pytest.mark.asyncio
    async def test_fresh_user_allowed(self, make_ctx, ledger):
        ctx = await make_ctx("fresh@example.com")
        usage = await ledger.check("fresh@example.com", Capability.EVALUATION)
        assert usage.allowed is True
        assert usage.count == 0
        assert usage.limit == 10
        assert usage.has_own_key is False
        assert usage.user.id == ctx.user.id

    @pytest.mark.asyncio
    async def test_lookup_normalizes_email(self, make_ctx, ledger):
        await make_ctx("mixed@example.com")
        usage = await ledger.check("  MIXED@Example.com ", Capability.TRANSCRIPTION)
        assert usage.user.email == "mixed@example.com"

    @pytest.mark.asyncio
    async def test_limit_reached_denied(self, make_ctx, ledger):
        ctx = await make_ctx()
        await User.filter(id=ctx.user.id).update(evaluation_count=10)
        usage = await ledger.check(ctx.email, Capability.EVALUATION)
        assert usage.allowed is False
        with pytest.raises(QuotaExceededError) as exc_info:
            ledger.enforce(usage, Capability.EVALUATION, None)
        assert exc_info.value.to_dict()["needsOwnKey"] is True
        assert exc_info.value.count == 10
        assert exc_info.value.limit == 10

    @pytest.mark.asyncio
    async def test_capabilities_are_independent(self, make_ctx, ledger):
        ctx = await make_ctx()
        await User.filter(id=ctx.user.id).update(evaluation_count=10)
        usage = await ledger.check(ctx.email, Capability.TRANSCRIPTION)
        assert usage.allowed is True

    @pytest.mark.asyncio
    async def test_own_key_bypasses_limit(self, make_ctx, ledger):
        ctx = await make_ctx(llm_key="sk-user")
        await User.filter(id=ctx.user.id).update(evaluation_count=10)
        usage = await ledger.check(ctx.email, Capability.EVALUATION)
        assert usage.allowed is True
        assert usage.has_own_key is True
        ledger.enforce(usage, Capability.EVALUATION, "sk-user")

    @pytest.mark.asyncio
    async def test_removing_key_restores_metering(self, make_ctx, ledger):
        ctx = await make_ctx(llm_key="sk-user")
        await User.filter(id=ctx.user.id).update(evaluation_count=10, llm_key_encrypted=None)
        usage = await ledger.check(ctx.email, Capability.EVALUATION)
        assert usage.allowed is False

    @pytest.mark.asyncio
    async def test_undecryptable_key_is_metered(self, make_ctx, ledger):
        ctx = await make_ctx(llm_key="sk-user")
        await User.filter(id=ctx.user.id).update(evaluation_count=10)
        usage = await ledger.check(ctx.email, Capability.EVALUATION)
        with pytest.raises(QuotaExceededError):
            ledger.enforce(usage, Capability.EVALUATION, None)


class TestQuotaIncrement:

    @pytest.mark.asyncio
    async def test_increment(self, make_ctx, ledger):
        ctx = await make_ctx()
        assert await ledger.increment(ctx.user.id, Capability.TRANSCRIPTION) is True
        user = await User.get(id=ctx.user.id)
        assert user.transcription_count == 1
        assert user.evaluation_count == 0

    @pytest.mark.asyncio
    async def test_increment_never_passes_limit(self, make_ctx, ledger, isolated_settings):
        isolated_settings.free_evaluation_limit = 2
        ctx = await make_ctx()
        results = [await ledger.increment(ctx.user.id, Capability.EVALUATION) for _ in range(4)]
        assert results == [True, True, False, False]
        user = await User.get(id=ctx.user.id)
        assert user.evaluation_count == 2

    def test_free_limit_reads_settings(self, isolated_settings):
        isolated_settings.free_transcription_limit = 3
        assert free_limit(Capability.TRANSCRIPTION) == 3
        assert free_limit(Capability.EVALUATION) == 10


class TestUsageReport:

    @pytest.mark.asyncio
    async def test_stored_but_unusable_key_is_metered(self, make_ctx, ledger):
        ctx = await make_ctx(llm_key="sk-user")
        await User.filter(id=ctx.user.id).update(evaluation_count=10)
        user = await User.get(id=ctx.user.id)

        usage = ledger.usage_for(user, Capability.EVALUATION, key_usable=False)
        assert usage.has_own_key is True
        assert usage.usable_key is False
        assert usage.allowed is False

        assert ledger.usage_for(user, Capability.EVALUATION).allowed is True

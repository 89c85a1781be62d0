"""Unit tests for the request context framework."""

import asyncio

import pytest
from pydantic import ValidationError
from uuid_utils.compat import uuid7

from distportal.core.context import (
    ActorType,
    create_context,
    get_current_context,
    get_current_context_or_none,
    request_context,
    reset_context,
    set_context,
)
from distportal.core.exceptions import ContextNotSetError


class TestRequestContextCreation:
    """Tests for RequestContext creation."""

    def test_create_context_defaults(self):
        """A bare context is a service call with fresh ids."""
        ctx = create_context()

        assert ctx.actor_id is None
        assert ctx.actor_type == ActorType.SERVICE
        assert ctx.request_id != ctx.correlation_id
        assert ctx.initiated_at.tzinfo is not None

    def test_create_context_explicit_ids(self):
        actor_id = uuid7()
        correlation_id = uuid7()

        ctx = create_context(
            actor_id=actor_id, actor_type=ActorType.HUMAN, correlation_id=correlation_id
        )

        assert ctx.actor_id == actor_id
        assert ctx.actor_type == ActorType.HUMAN
        assert ctx.correlation_id == correlation_id

    def test_context_is_frozen(self):
        ctx = create_context()
        with pytest.raises(ValidationError):
            ctx.actor_id = uuid7()

    def test_to_audit_dict(self):
        actor_id = uuid7()
        ctx = create_context(actor_id=actor_id, actor_type=ActorType.HUMAN)

        data = ctx.to_audit_dict()

        assert data["actor_id"] == str(actor_id)
        assert data["actor_type"] == "human"
        assert data["correlation_id"] == str(ctx.correlation_id)


class TestContextPropagation:
    def test_missing_context_raises(self):
        with pytest.raises(ContextNotSetError):
            get_current_context()
        assert get_current_context_or_none() is None

    def test_context_manager_restores_previous(self):
        outer = create_context()
        inner = create_context(actor_type=ActorType.SYSTEM)

        with request_context(outer):
            with request_context(inner):
                assert get_current_context() is inner
            assert get_current_context() is outer

        assert get_current_context_or_none() is None

    def test_set_and_reset(self):
        ctx = create_context()
        token = set_context(ctx)
        try:
            assert get_current_context() is ctx
        finally:
            reset_context(token)
        assert get_current_context_or_none() is None

    def test_context_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with request_context(create_context()):
                raise RuntimeError("boom")
        assert get_current_context_or_none() is None

    @pytest.mark.asyncio
    async def test_context_propagates_to_tasks(self):
        """Tasks spawned inside a context see it, sibling contexts stay isolated."""

        async def read_actor():
            await asyncio.sleep(0)
            return get_current_context().actor_id

        async def run_as(actor_id):
            with request_context(create_context(actor_id=actor_id)):
                return await asyncio.create_task(read_actor())

        first, second = uuid7(), uuid7()
        results = await asyncio.gather(run_as(first), run_as(second))

        assert results == [first, second]

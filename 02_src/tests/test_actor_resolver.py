"""Tests for ActorResolver."""

import pytest

from agritrace.actors import FIELD_HISTORY_FALLBACK, UNIT_HISTORY_FALLBACK
from agritrace.models import ActorProfile, ActorRef


class TestActorResolver:
    """Tests for ActorResolver.resolve_many()."""

    @pytest.mark.asyncio
    async def test_resolves_user(self, actor_resolver, users):
        """Test that a known user maps to name, role and avatar."""
        ref = ActorRef.user("farmer-1")
        profile = await actor_resolver.resolve(ref, UNIT_HISTORY_FALLBACK)
        assert profile == ActorProfile(
            name="Amina Okoro", role="FARMER", avatar_url="https://cdn/a.png"
        )

    @pytest.mark.asyncio
    async def test_resolves_unit_by_name_or_type(self, actor_resolver, registry):
        """Test that unit actors resolve through the registry."""
        named = await registry.mint("cooperative", metadata={"name": "Zaria Growers"})
        unnamed = await registry.mint("warehouse")

        resolved = await actor_resolver.resolve_many(
            [ActorRef.unit(named), ActorRef.unit(unnamed)], FIELD_HISTORY_FALLBACK
        )
        assert resolved[ActorRef.unit(named)] == ActorProfile(name="Zaria Growers", role="cooperative")
        assert resolved[ActorRef.unit(unnamed)] == ActorProfile(name="warehouse", role="warehouse")

    @pytest.mark.asyncio
    async def test_unresolved_refs_use_fallback(self, actor_resolver):
        """Test that unknown users and units get the caller's fallback."""
        refs = [ActorRef.user("ghost"), ActorRef.unit("ghost-unit")]

        resolved = await actor_resolver.resolve_many(refs, FIELD_HISTORY_FALLBACK)
        assert set(resolved.values()) == {FIELD_HISTORY_FALLBACK}

        resolved = await actor_resolver.resolve_many(refs, UNIT_HISTORY_FALLBACK)
        assert set(resolved.values()) == {UNIT_HISTORY_FALLBACK}

    @pytest.mark.asyncio
    async def test_user_and_unit_with_same_id_are_distinct(self, actor_resolver, storage, users):
        """Test that the actor kind is part of the lookup key."""
        resolved = await actor_resolver.resolve_many(
            [ActorRef.user("farmer-1"), ActorRef.unit("farmer-1")], UNIT_HISTORY_FALLBACK
        )
        assert resolved[ActorRef.user("farmer-1")].name == "Amina Okoro"
        assert resolved[ActorRef.unit("farmer-1")] == UNIT_HISTORY_FALLBACK

    @pytest.mark.asyncio
    async def test_empty_input(self, actor_resolver):
        """Test that no refs means no lookups."""
        assert await actor_resolver.resolve_many([], UNIT_HISTORY_FALLBACK) == {}

    @pytest.mark.asyncio
    async def test_duplicates_collapsed(self, actor_resolver, storage, users, monkeypatch):
        """Test that repeated refs cause a single batched query."""
        calls = []
        original = storage.get_users

        async def spy(user_ids):
            calls.append(list(user_ids))
            return await original(user_ids)

        monkeypatch.setattr(storage, "get_users", spy)
        refs = [ActorRef.user("farmer-1"), ActorRef.user("admin-1"), ActorRef.user("farmer-1")]

        resolved = await actor_resolver.resolve_many(refs, UNIT_HISTORY_FALLBACK)
        assert calls == [["farmer-1", "admin-1"]]
        assert resolved[ActorRef.user("admin-1")].role == "ADMIN"

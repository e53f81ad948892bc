"""Tests for short id allocation."""

import pytest

from linkly.core.exceptions import (
    AliasConflictError,
    AllocationExhaustedError,
    InvalidAliasError,
)
from linkly.services.allocator import (
    SHORT_ID_CHARS,
    IdentifierAllocator,
    generate_short_id,
    validate_alias,
)


class TestGenerateShortId:
    def test_default_length(self):
        assert len(generate_short_id()) == 6

    def test_custom_length(self):
        assert len(generate_short_id(10)) == 10

    def test_url_safe_alphabet(self):
        for _ in range(50):
            assert set(generate_short_id()) <= set(SHORT_ID_CHARS)


class TestValidateAlias:
    @pytest.mark.parametrize("alias", ["promo", "Summer_Sale-2024", "a", "x" * 32])
    def test_valid(self, alias):
        validate_alias(alias)

    @pytest.mark.parametrize(
        "alias",
        ["", "has space", "a/b", "query?x", "ünïcode", "x" * 33, "api", "preview", "Health"],
    )
    def test_invalid(self, alias):
        with pytest.raises(InvalidAliasError):
            validate_alias(alias)


class TestIdentifierAllocator:
    async def test_random_ids_are_unique(self, store, allocator):
        seen = set()
        for _ in range(100):
            short_id = await allocator.allocate()
            await store.insert(short_id=short_id, long_url="https://example.com", owner_ref="u1")
            assert short_id not in seen
            seen.add(short_id)

    async def test_custom_alias_returned_unchanged(self, allocator):
        assert await allocator.allocate("promo") == "promo"

    async def test_taken_alias_conflicts(self, store, allocator):
        await store.insert(
            short_id="promo",
            long_url="https://example.com",
            owner_ref="u1",
            custom_alias="promo",
        )
        with pytest.raises(AliasConflictError):
            await allocator.allocate("promo")

    async def test_alias_matching_random_id_conflicts(self, store, allocator):
        await store.insert(short_id="abc123", long_url="https://example.com", owner_ref="u1")
        with pytest.raises(AliasConflictError):
            await allocator.allocate("abc123")

    async def test_invalid_alias_rejected_before_lookup(self, allocator):
        with pytest.raises(InvalidAliasError):
            await allocator.allocate("no spaces")

    async def test_retries_on_collision(self, store, monkeypatch):
        await store.insert(short_id="taken1", long_url="https://example.com", owner_ref="u1")
        candidates = iter(["taken1", "taken1", "free01"])
        monkeypatch.setattr(
            "linkly.services.allocator.generate_short_id",
            lambda length: next(candidates),
        )

        allocator = IdentifierAllocator(store, max_attempts=5)
        assert await allocator.allocate() == "free01"

    async def test_exhausted_after_max_attempts(self, store, monkeypatch):
        await store.insert(short_id="taken1", long_url="https://example.com", owner_ref="u1")
        calls = []

        def always_taken(length):
            calls.append(length)
            return "taken1"

        monkeypatch.setattr("linkly.services.allocator.generate_short_id", always_taken)

        allocator = IdentifierAllocator(store, max_attempts=3)
        with pytest.raises(AllocationExhaustedError):
            await allocator.allocate()
        assert len(calls) == 3

"""
Account Linker Tests
"""

import pytest

from authsnap.linking import AccountLinker, InMemoryLinkStore


@pytest.fixture
def linker():
    return AccountLinker()


class TestAccountLinker:

    @pytest.mark.asyncio
    async def test_link_and_unlink(self, linker):
        await linker.link("u1", "google", "g1")
        await linker.link("u1", "github", "gh1")

        assert await linker.unlink("u1", "google") is True

        assert await linker.get_linked_accounts("u1") == {"github": "gh1"}
        assert await linker.find_by_provider("google", "g1") is None
        assert await linker.find_by_provider("github", "gh1") == "u1"

    @pytest.mark.asyncio
    async def test_unlink_last_provider_removes_user(self, linker):
        await linker.link("u1", "google", "g1")
        await linker.unlink("u1", "google")

        assert await linker.get_linked_accounts("u1") == {}
        assert linker.store._forward == {}

    @pytest.mark.asyncio
    async def test_unlink_missing(self, linker):
        assert await linker.unlink("nobody", "google") is False
        await linker.link("u1", "google", "g1")
        assert await linker.unlink("u1", "github") is False

    @pytest.mark.asyncio
    async def test_is_linked(self, linker):
        await linker.link("u1", "google", "g1")
        assert await linker.is_linked("u1", "google")
        assert not await linker.is_linked("u1", "github")
        assert not await linker.is_linked("u2", "google")

    @pytest.mark.asyncio
    async def test_relink_drops_stale_reverse_entry(self, linker):
        await linker.link("u1", "google", "g1")
        await linker.link("u1", "google", "g2")

        assert await linker.get_linked_accounts("u1") == {"google": "g2"}
        assert await linker.find_by_provider("google", "g1") is None
        assert await linker.find_by_provider("google", "g2") == "u1"

    @pytest.mark.asyncio
    async def test_identity_moves_between_users(self, linker):
        await linker.link("u1", "google", "g1")
        await linker.link("u2", "google", "g1")

        assert await linker.find_by_provider("google", "g1") == "u2"
        assert await linker.get_linked_accounts("u1") == {}
        assert await linker.get_linked_accounts("u2") == {"google": "g1"}

    @pytest.mark.asyncio
    async def test_returned_mapping_is_a_copy(self, linker):
        await linker.link("u1", "google", "g1")
        accounts = await linker.get_linked_accounts("u1")
        accounts["github"] = "x"

        assert await linker.get_linked_accounts("u1") == {"google": "g1"}

    def test_custom_store(self):
        store = InMemoryLinkStore()
        assert AccountLinker(store).store is store

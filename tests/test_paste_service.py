"""Unit tests for PasteService."""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from app.core.errors import (
    AuthorizationAppError,
    NotFoundAppError,
    ReferenceViolationAppError,
    StoreAppError,
)
from app.services.identity_service import IdentityService
from app.services.paste_service import INSERT_OWNED_PASTE_SQL, PasteService


def _scripted_identity(fake_db, ids: list[str]) -> IdentityService:
    identity = IdentityService(fake_db)
    identity.generate_id = MagicMock(side_effect=ids)  # type: ignore[method-assign]
    return identity


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_persists_user_with_timestamp(self, fake_db, paste_service) -> None:
        user_id = await paste_service.create_user()

        assert user_id in fake_db.users
        assert isinstance(fake_db.users[user_id]["timestamp"], datetime)
        assert fake_db.users[user_id]["timestamp"].tzinfo is None

    @pytest.mark.asyncio
    async def test_retries_on_id_collision(self, fake_db) -> None:
        fake_db.users["AAAAAAAAAAAAAAAA"] = {"id": "AAAAAAAAAAAAAAAA", "timestamp": None}
        identity = _scripted_identity(fake_db, ["AAAAAAAAAAAAAAAA", "BBBBBBBBBBBBBBBB"])
        service = PasteService(fake_db, identity)

        assert await service.create_user() == "BBBBBBBBBBBBBBBB"
        assert identity.generate_id.call_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, fake_db) -> None:
        fake_db.users["AAAAAAAAAAAAAAAA"] = {"id": "AAAAAAAAAAAAAAAA", "timestamp": None}
        identity = _scripted_identity(fake_db, ["AAAAAAAAAAAAAAAA"] * 3)
        service = PasteService(fake_db, identity, id_max_attempts=3)

        with pytest.raises(StoreAppError) as exc_info:
            await service.create_user()

        assert exc_info.value.code == "id_generation_exhausted"
        assert exc_info.value.details["attempts"] == 3

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, fake_db, paste_service) -> None:
        fake_db.fail_with = StoreAppError(code="store_error", message="down")

        with pytest.raises(StoreAppError):
            await paste_service.create_user()

    def test_rejects_invalid_attempt_bound(self, fake_db) -> None:
        with pytest.raises(ValueError):
            PasteService(fake_db, id_max_attempts=0)


class TestCreatePaste:
    @pytest.mark.asyncio
    async def test_anonymous_paste_round_trip(self, paste_service) -> None:
        paste_id = await paste_service.create_paste("print('hi')", "python")

        paste = await paste_service.get_paste_by_id(paste_id)
        assert paste.id == paste_id
        assert paste.content == "print('hi')"
        assert paste.format == "python"
        assert paste.userid is None

    @pytest.mark.asyncio
    async def test_empty_owner_counts_as_anonymous(self, fake_db, paste_service) -> None:
        paste_id = await paste_service.create_paste("body", "text", "")

        assert fake_db.pastes[paste_id]["userid"] is None

    @pytest.mark.asyncio
    async def test_owned_paste_is_linked(self, fake_db, paste_service) -> None:
        user_id = await paste_service.create_user()

        paste_id = await paste_service.create_paste("body", "text", user_id)

        assert fake_db.pastes[paste_id]["userid"] == user_id

    @pytest.mark.asyncio
    async def test_unknown_owner_is_rejected_without_writing(self, fake_db, paste_service) -> None:
        with pytest.raises(AuthorizationAppError):
            await paste_service.create_paste("body", "text", "ZZZZZZZZZZZZZZZZ")

        assert fake_db.pastes == {}
        assert all(sql != INSERT_OWNED_PASTE_SQL for sql, _ in fake_db.executed)

    @pytest.mark.asyncio
    async def test_owner_removed_after_validation_is_unauthorized(self, fake_db, paste_service) -> None:
        user_id = await paste_service.create_user()
        original_execute = fake_db.execute

        async def execute_after_owner_vanished(sql, *args):
            fake_db.users.pop(user_id, None)
            return await original_execute(sql, *args)

        fake_db.execute = execute_after_owner_vanished

        with pytest.raises(AuthorizationAppError) as exc_info:
            await paste_service.create_paste("body", "text", user_id)

        assert isinstance(exc_info.value.__cause__, ReferenceViolationAppError)
        assert fake_db.pastes == {}

    @pytest.mark.asyncio
    async def test_paste_id_collision_is_retried(self, fake_db) -> None:
        identity = _scripted_identity(fake_db, ["CCCCCCCCCCCCCCCC", "CCCCCCCCCCCCCCCC", "DDDDDDDDDDDDDDDD"])
        service = PasteService(fake_db, identity)

        first = await service.create_paste("one", "text")
        second = await service.create_paste("two", "text")

        assert (first, second) == ("CCCCCCCCCCCCCCCC", "DDDDDDDDDDDDDDDD")
        assert fake_db.pastes["CCCCCCCCCCCCCCCC"]["content"] == "one"
        assert fake_db.pastes["DDDDDDDDDDDDDDDD"]["content"] == "two"

    @pytest.mark.asyncio
    async def test_store_failure_on_insert(self, fake_db, paste_service) -> None:
        fake_db.fail_with = StoreAppError(code="store_error", message="down")

        with pytest.raises(StoreAppError):
            await paste_service.create_paste("body", "text")


class TestReads:
    @pytest.mark.asyncio
    async def test_unknown_paste_is_not_found(self, paste_service) -> None:
        with pytest.raises(NotFoundAppError) as exc_info:
            await paste_service.get_paste_by_id("0000000000000000")

        assert exc_info.value.code == "paste_not_found"

    @pytest.mark.asyncio
    async def test_pastes_by_owner_returns_only_owned(self, paste_service) -> None:
        alice = await paste_service.create_user()
        bob = await paste_service.create_user()
        a1 = await paste_service.create_paste("a1", "text", alice)
        a2 = await paste_service.create_paste("a2", "text", alice)
        await paste_service.create_paste("b1", "text", bob)
        await paste_service.create_paste("anon", "text")

        pastes = await paste_service.get_pastes_by_owner(alice)

        assert {p.id for p in pastes} == {a1, a2}
        assert all(p.userid == alice for p in pastes)

    @pytest.mark.asyncio
    async def test_pastes_by_unknown_owner_is_unauthorized(self, paste_service) -> None:
        with pytest.raises(AuthorizationAppError):
            await paste_service.get_pastes_by_owner("0000000000000000")

    @pytest.mark.asyncio
    async def test_owner_without_pastes_is_not_found(self, paste_service) -> None:
        user_id = await paste_service.create_user()

        with pytest.raises(NotFoundAppError):
            await paste_service.get_pastes_by_owner(user_id)

    @pytest.mark.asyncio
    async def test_owner_validation_store_error_is_unauthorized(self, fake_db, paste_service) -> None:
        user_id = await paste_service.create_user()
        fake_db.fail_with = StoreAppError(code="store_error", message="down")

        with pytest.raises(AuthorizationAppError):
            await paste_service.get_pastes_by_owner(user_id)

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime

import pytest

from lila_backend.models.chat_message import ChatMessage
from lila_backend.models.enums import MessageRole
from lila_backend.services.chat_store import ChatStore
from lila_backend.utils.error_handler import Forbidden, NotFound, ProviderUnavailable

from conftest import ALICE, BOB, SERVICE_KEY, FakeSupabase

GREETING = [
    ChatMessage(role=MessageRole.USER, content="hi"),
    ChatMessage(role=MessageRole.ASSISTANT, content="hey"),
]


@pytest.mark.asyncio
async def test_create_yields_empty_chat_with_placeholder_title(chat_store: ChatStore) -> None:
    chat = await chat_store.create_chat(ALICE)

    assert chat.id
    assert chat.owner_id == ALICE.id
    assert chat.messages == []
    assert chat.title == "New Chat"
    assert chat.created_at == chat.updated_at


@pytest.mark.asyncio
async def test_requests_carry_service_key(chat_store: ChatStore, fake_supabase: FakeSupabase) -> None:
    await chat_store.list_chats(ALICE)

    request = fake_supabase.requests[-1]
    assert request.headers["apikey"] == SERVICE_KEY
    assert request.headers["Authorization"] == f"Bearer {SERVICE_KEY}"


@pytest.mark.asyncio
async def test_list_is_scoped_to_owner_and_newest_first(chat_store: ChatStore) -> None:
    first = await chat_store.create_chat(ALICE)
    second = await chat_store.create_chat(ALICE)
    await chat_store.create_chat(BOB)
    await chat_store.update_chat(ALICE, first.id, title="bumped")

    chats = await chat_store.list_chats(ALICE)

    assert [chat.id for chat in chats] == [first.id, second.id]
    assert all(chat.owner_id == ALICE.id for chat in chats)
    stamps = [chat.updated_at for chat in chats]
    assert stamps == sorted(stamps, reverse=True)


@pytest.mark.asyncio
async def test_list_without_chats_is_empty(chat_store: ChatStore) -> None:
    assert await chat_store.list_chats(BOB) == []


@pytest.mark.asyncio
async def test_other_users_chat_is_invisible_on_read(chat_store: ChatStore) -> None:
    chat = await chat_store.create_chat(ALICE)

    assert (await chat_store.get_chat(ALICE, chat.id)).id == chat.id
    with pytest.raises(NotFound):
        await chat_store.get_chat(BOB, chat.id)
    assert await chat_store.list_chats(BOB) == []


@pytest.mark.asyncio
async def test_other_users_chat_is_forbidden_on_write(chat_store: ChatStore) -> None:
    chat = await chat_store.create_chat(ALICE)

    with pytest.raises(Forbidden):
        await chat_store.update_chat(BOB, chat.id, title="mine now")
    with pytest.raises(Forbidden):
        await chat_store.delete_chat(BOB, chat.id)

    assert (await chat_store.get_chat(ALICE, chat.id)).title == "New Chat"


@pytest.mark.asyncio
async def test_missing_chat_is_not_found_on_every_path(chat_store: ChatStore) -> None:
    missing = str(uuid.uuid4())

    with pytest.raises(NotFound):
        await chat_store.get_chat(ALICE, missing)
    with pytest.raises(NotFound):
        await chat_store.update_chat(ALICE, missing, title="x")
    with pytest.raises(NotFound):
        await chat_store.delete_chat(ALICE, missing)


@pytest.mark.asyncio
async def test_malformed_id_is_not_found(chat_store: ChatStore) -> None:
    with pytest.raises(NotFound):
        await chat_store.get_chat(ALICE, "not-a-uuid")
    with pytest.raises(NotFound):
        await chat_store.delete_chat(ALICE, "not-a-uuid")


@pytest.mark.asyncio
async def test_title_only_update_keeps_messages(chat_store: ChatStore) -> None:
    chat = await chat_store.create_chat(ALICE)
    await chat_store.update_chat(ALICE, chat.id, messages=GREETING)
    before = await chat_store.get_chat(ALICE, chat.id)

    await chat_store.update_chat(ALICE, chat.id, title="Small talk")
    after = await chat_store.get_chat(ALICE, chat.id)

    assert after.title == "Small talk"
    assert after.messages == GREETING
    assert after.updated_at > before.updated_at


@pytest.mark.asyncio
async def test_messages_only_update_keeps_title(chat_store: ChatStore) -> None:
    chat = await chat_store.create_chat(ALICE)
    await chat_store.update_chat(ALICE, chat.id, title="Kept")

    await chat_store.update_chat(ALICE, chat.id, messages=GREETING)
    after = await chat_store.get_chat(ALICE, chat.id)

    assert after.title == "Kept"
    assert [m.content for m in after.messages] == ["hi", "hey"]


@pytest.mark.asyncio
async def test_empty_update_still_refreshes_updated_at(
    chat_store: ChatStore, fake_supabase: FakeSupabase
) -> None:
    chat = await chat_store.create_chat(ALICE)

    await chat_store.update_chat(ALICE, chat.id)
    after = await chat_store.get_chat(ALICE, chat.id)

    assert fake_supabase.patches[-1].keys() == {"updated_at"}
    assert after.updated_at > chat.updated_at
    assert after.created_at == chat.created_at


@pytest.mark.asyncio
async def test_messages_are_stored_in_canonical_form(
    chat_store: ChatStore, fake_supabase: FakeSupabase
) -> None:
    chat = await chat_store.create_chat(ALICE)

    await chat_store.update_chat(ALICE, chat.id, messages=GREETING)

    assert fake_supabase.patches[-1]["messages"] == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hey"},
    ]


@pytest.mark.asyncio
async def test_legacy_gemini_rows_are_read_as_canonical(
    chat_store: ChatStore, fake_supabase: FakeSupabase
) -> None:
    chat = await chat_store.create_chat(ALICE)
    fake_supabase.rows[0]["messages"] = [{"role": "model", "parts": [{"text": "hello"}]}]

    stored = await chat_store.get_chat(ALICE, chat.id)

    assert stored.messages == [ChatMessage(role=MessageRole.ASSISTANT, content="hello")]


@pytest.mark.asyncio
async def test_unreadable_stored_turns_are_skipped_not_fatal(
    chat_store: ChatStore, fake_supabase: FakeSupabase
) -> None:
    damaged = await chat_store.create_chat(ALICE)
    intact = await chat_store.create_chat(ALICE)
    row = next(row for row in fake_supabase.rows if row["id"] == damaged.id)
    row["messages"] = [
        {"role": "user", "content": "look at this"},
        {"role": "model", "parts": [{"inlineData": {"mimeType": "image/png", "data": "AAAA"}}]},
        {"role": "narrator", "content": "meanwhile"},
    ]

    chats = await chat_store.list_chats(ALICE)
    stored = await chat_store.get_chat(ALICE, damaged.id)

    assert {chat.id for chat in chats} == {damaged.id, intact.id}
    assert stored.messages == [ChatMessage(role=MessageRole.USER, content="look at this")]


@pytest.mark.asyncio
async def test_non_list_stored_messages_read_as_empty(
    chat_store: ChatStore, fake_supabase: FakeSupabase
) -> None:
    chat = await chat_store.create_chat(ALICE)
    fake_supabase.rows[0]["messages"] = "not a list"

    assert (await chat_store.get_chat(ALICE, chat.id)).messages == []


@pytest.mark.asyncio
async def test_delete_is_not_silently_repeatable(chat_store: ChatStore) -> None:
    chat = await chat_store.create_chat(ALICE)

    await chat_store.delete_chat(ALICE, chat.id)

    with pytest.raises(NotFound):
        await chat_store.get_chat(ALICE, chat.id)
    with pytest.raises(NotFound):
        await chat_store.delete_chat(ALICE, chat.id)


@pytest.mark.asyncio
async def test_concurrent_updates_both_succeed_last_write_wins(
    chat_store: ChatStore, fake_supabase: FakeSupabase
) -> None:
    chat = await chat_store.create_chat(ALICE)

    await asyncio.gather(
        chat_store.update_chat(ALICE, chat.id, title="first"),
        chat_store.update_chat(ALICE, chat.id, title="second"),
    )
    stored = await chat_store.get_chat(ALICE, chat.id)

    assert len(fake_supabase.patches) == 2
    last_write = fake_supabase.patches[-1]
    assert stored.title == last_write["title"]
    assert stored.updated_at == datetime.fromisoformat(last_write["updated_at"])
    assert stored.updated_at > chat.updated_at


@pytest.mark.asyncio
async def test_provider_failure_is_provider_unavailable(
    chat_store: ChatStore, fake_supabase: FakeSupabase
) -> None:
    fake_supabase.fail_status = 500

    with pytest.raises(ProviderUnavailable):
        await chat_store.list_chats(ALICE)
    with pytest.raises(ProviderUnavailable):
        await chat_store.create_chat(ALICE)
    with pytest.raises(ProviderUnavailable):
        await chat_store.get_chat(ALICE, str(uuid.uuid4()))

import dataclasses
from datetime import datetime, timezone

import pytest

from mindful_core.domain.conversation import Conversation, MessageRecord, MoodEntry
from mindful_core.domain.models import ChatMessage, ChatRequest, LocalMessage, UserContext


def test_models_exist():
    cm = ChatMessage(role="user", content="hi")
    assert cm.to_payload() == {"role": "user", "content": "hi"}
    now = datetime.now(timezone.utc)
    conv = Conversation(id="c1", user_id="u1", title="t", created_at=now, updated_at=now)
    assert conv.id == "c1"
    mr = MessageRecord(id="m1", conversation_id="c1", user_id="u1", role="user", content="x", created_at=now)
    assert mr.detected_emotion is None


def test_chat_request_payload_keeps_order():
    req = ChatRequest(messages=[
        ChatMessage(role="user", content="a"),
        ChatMessage(role="assistant", content="b"),
        ChatMessage(role="user", content="c"),
    ])
    assert [m["content"] for m in req.to_payload()["messages"]] == ["a", "b", "c"]


def test_local_message_ids_are_unique():
    a = LocalMessage(role="user", content="x")
    b = LocalMessage(role="user", content="x")
    assert a.id != b.id


def test_mood_entry_day():
    entry = MoodEntry(
        id="e1",
        user_id="u1",
        mood="calm",
        intensity=5,
        created_at=datetime(2026, 10, 19, 8, 30, tzinfo=timezone.utc),
    )
    assert entry.day.isoformat() == "2026-10-19"


def test_user_context_is_immutable():
    ctx = UserContext(user_id="u1")
    with pytest.raises(dataclasses.FrozenInstanceError):
        ctx.user_id = "u2"  # type: ignore[misc]

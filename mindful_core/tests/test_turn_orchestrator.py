import asyncio

import pytest

from mindful_core.agents.conversation_state import ConversationState
from mindful_core.agents.signals import RecordingNotifier
from mindful_core.agents.turn_orchestrator import TurnOrchestrator, TurnPhase, derive_title
from mindful_core.domain.exceptions import NetworkError, StoreError
from mindful_core.domain.models import UserContext
from mindful_core.infrastructure.storage.json_store import JsonWellnessStore
from mindful_core.speech import SpeechOutput, VoiceSession
from mindful_core.wellbeing.mood import MoodTracker

CTX = UserContext(user_id="u1")


class ScriptedClient:
    """按脚本回放字节块；error 不为空时在回放完之后抛出。"""

    name = "scripted"

    def __init__(self, chunks, error=None):
        self._chunks = list(chunks)
        self._error = error
        self.requests = []

    async def stream_chat(self, req):
        self.requests.append(req)
        for chunk in self._chunks:
            yield chunk
        if self._error is not None:
            raise self._error


class GatedClient:
    """在 gate 放行之前挂起流，便于在流式期间操作会话状态。"""

    name = "gated"

    def __init__(self, chunks):
        self._chunks = list(chunks)
        self.gate = asyncio.Event()

    async def stream_chat(self, req):
        await self.gate.wait()
        for chunk in self._chunks:
            yield chunk


class FakeSynth:
    def __init__(self):
        self.spoken = []

    def voices(self):
        return []

    async def speak(self, text, *, voice, rate, lang):
        self.spoken.append(text)

    def cancel(self):
        pass


class FailingMoodStore:
    async def add_mood_entry(self, ctx, entry):
        raise StoreError(code="STORE_WRITE_ERROR", message="down")


def _build(tmp_path, client, *, voice=None, mood_store=None):
    store = JsonWellnessStore(root=tmp_path)
    notifier = RecordingNotifier()
    orch = TurnOrchestrator(
        state=ConversationState(store),
        client=client,
        mood_tracker=MoodTracker(mood_store or store),
        voice=voice,
        notifier=notifier,
    )
    return orch, store, notifier


@pytest.mark.asyncio
async def test_first_message_creates_conversation_and_persists(tmp_path, sse_chunks):
    client = ScriptedClient(sse_chunks("Hi", " there", " [EMOTION: calm]"))
    orch, store, notifier = _build(tmp_path, client)

    result = await orch.send(CTX, "Hello")

    assert result.status == "completed"
    assert result.content == "Hi there"
    assert result.emotion == "calm"
    assert orch.phase is TurnPhase.IDLE
    [conv] = await store.list_conversations(CTX)
    assert conv.id == result.conversation_id
    assert conv.title == "Hello"
    records = await store.list_messages(CTX, conv.id)
    assert [(r.role, r.content) for r in records] == [("user", "Hello"), ("assistant", "Hi there")]
    assert records[1].id == result.assistant_message_id
    assert records[1].detected_emotion == "calm"
    [mood] = await store.list_mood_entries(CTX)
    assert (mood.mood, mood.intensity, mood.note) == ("calm", 5, "Detected from chat")
    assert notifier.toasts == []
    assert client.requests[0].to_payload() == {"messages": [{"role": "user", "content": "Hello"}]}


@pytest.mark.asyncio
async def test_second_turn_sends_history_and_keeps_title(tmp_path, sse_chunks):
    orch, store, _ = _build(tmp_path, ScriptedClient(sse_chunks("One")))
    first = await orch.send(CTX, "First message")
    orch._client = ScriptedClient(sse_chunks("Two"))
    second = await orch.send(CTX, "Second message")

    assert second.conversation_id == first.conversation_id
    payload = orch._client.requests[0].to_payload()["messages"]
    assert [m["content"] for m in payload] == ["First message", "One", "Second message"]
    [conv] = await store.list_conversations(CTX)
    assert conv.title == "First message"


@pytest.mark.asyncio
async def test_stream_failure_after_two_fragments_keeps_partial_text(tmp_path, sse_chunks):
    client = ScriptedClient(
        sse_chunks("Hel", "lo", done=False),
        error=NetworkError(code="NETWORK_ERROR", message="connection reset"),
    )
    orch, store, notifier = _build(tmp_path, client)

    result = await orch.send(CTX, "Are you there?")

    assert result.status == "failed"
    assert orch.phase is TurnPhase.IDLE
    assert notifier.last.title == "Unable to send message"
    assert notifier.last.description == "connection reset"
    assert notifier.last.variant == "destructive"
    assert [(m.role, m.content) for m in orch.state.messages] == [("user", "Are you there?"), ("assistant", "Hello")]
    records = await store.list_messages(CTX, result.conversation_id)
    assert [(r.role, r.content) for r in records] == [("user", "Are you there?")]

    # 手动重发：每条用户消息只落库一次，上一轮的半截回复仍然留在界面上
    orch._client = ScriptedClient(sse_chunks("Yes, I'm here."))
    retry = await orch.send(CTX, "Still there?")

    assert retry.status == "completed"
    assert retry.conversation_id == result.conversation_id
    assert retry.user_message_id != result.user_message_id
    records = await store.list_messages(CTX, result.conversation_id)
    assert [(r.role, r.content) for r in records] == [
        ("user", "Are you there?"),
        ("user", "Still there?"),
        ("assistant", "Yes, I'm here."),
    ]
    assert [r.id for r in records].count(result.user_message_id) == 1
    assert [m.content for m in orch.state.messages] == ["Are you there?", "Hello", "Still there?", "Yes, I'm here."]


@pytest.mark.asyncio
async def test_stream_failure_before_any_text_removes_placeholder(tmp_path):
    client = ScriptedClient([], error=NetworkError(code="NETWORK_ERROR", message="refused"))
    orch, _, notifier = _build(tmp_path, client)

    result = await orch.send(CTX, "Hello?")

    assert result.status == "failed"
    assert result.assistant_message_id is None
    assert [m.role for m in orch.state.messages] == ["user"]
    assert notifier.last.description == "refused"


@pytest.mark.asyncio
async def test_rejects_empty_and_reentrant_sends(tmp_path, sse_chunks):
    gate = asyncio.Event()

    class SlowClient:
        name = "slow"

        async def stream_chat(self, req):
            await gate.wait()
            for chunk in sse_chunks("ok"):
                yield chunk

    orch, store, _ = _build(tmp_path, SlowClient())
    assert (await orch.send(CTX, "   ")).status == "rejected"

    task = asyncio.ensure_future(orch.send(CTX, "first"))
    await asyncio.sleep(0)
    assert orch.phase is TurnPhase.STREAMING
    rejected = await orch.send(CTX, "second")
    assert rejected.status == "rejected"

    gate.set()
    done = await task
    assert done.status == "completed"
    records = await store.list_messages(CTX, done.conversation_id)
    assert [r.content for r in records] == ["first", "ok"]


@pytest.mark.asyncio
async def test_distress_raises_sticky_banner(tmp_path, sse_chunks):
    orch, _, _ = _build(tmp_path, ScriptedClient(sse_chunks("I'm here with you.")))
    result = await orch.send(CTX, "I feel hopeless")
    assert result.distress
    assert orch.banner.visible

    orch._client = ScriptedClient(sse_chunks("Sounds tasty!"))
    calm = await orch.send(CTX, "I want to buy a cake")
    assert not calm.distress
    assert orch.banner.visible

    orch.close()
    assert not orch.banner.visible


@pytest.mark.asyncio
async def test_conversation_creation_failure_aborts_turn(sse_chunks):
    class BrokenStore:
        async def create_conversation(self, ctx, title):
            raise StoreError(code="STORE_WRITE_ERROR", message="down")

    client = ScriptedClient(sse_chunks("never"))
    notifier = RecordingNotifier()
    orch = TurnOrchestrator(state=ConversationState(BrokenStore()), client=client, notifier=notifier)

    result = await orch.send(CTX, "Hello")

    assert result.status == "failed"
    assert notifier.last.description == "Could not start conversation"
    assert client.requests == []
    assert orch.state.messages == []
    assert orch.phase is TurnPhase.IDLE


@pytest.mark.asyncio
async def test_mood_failure_does_not_fail_turn(tmp_path, sse_chunks):
    client = ScriptedClient(sse_chunks("Take it slow. [EMOTION: stressed]"))
    orch, store, _ = _build(tmp_path, client, mood_store=FailingMoodStore())
    result = await orch.send(CTX, "Busy day")
    assert result.status == "completed"
    assert result.emotion == "stressed"
    records = await store.list_messages(CTX, result.conversation_id)
    assert records[-1].content == "Take it slow."


@pytest.mark.asyncio
async def test_speaks_final_text_when_tts_enabled(tmp_path, sse_chunks):
    synth = FakeSynth()
    voice = VoiceSession(output=SpeechOutput(synth))
    voice.toggle_tts(True)
    orch, _, _ = _build(tmp_path, ScriptedClient(sse_chunks("Breathe in. [EMOTION: calm]")), voice=voice)

    result = await orch.send(CTX, "Help me relax")
    assert voice.output.speaking_id == result.assistant_message_id
    await voice.output.wait()

    assert synth.spoken == ["Breathe in."]
    assert not voice.output.is_speaking


def test_derive_title():
    assert derive_title("Hello") == "Hello"
    long_text = "x" * 31
    assert derive_title(long_text) == "x" * 30 + "..."
    assert derive_title("y" * 30) == "y" * 30


@pytest.mark.asyncio
async def test_non_business_stream_error_fails_turn(tmp_path, sse_chunks):
    client = ScriptedClient(sse_chunks("Hi", done=False), error=ConnectionResetError("peer reset"))
    orch, store, notifier = _build(tmp_path, client)

    result = await orch.send(CTX, "Hello")

    assert result.status == "failed"
    assert result.error == "peer reset"
    assert result.content == "Hi"
    assert orch.phase is TurnPhase.IDLE
    assert notifier.last.title == "Unable to send message"
    assert notifier.last.description == "peer reset"
    records = await store.list_messages(CTX, result.conversation_id)
    assert [r.role for r in records] == ["user"]


@pytest.mark.asyncio
async def test_reply_saved_to_turn_conversation_after_switching(tmp_path, sse_chunks):
    client = GatedClient(sse_chunks("Hi there"))
    orch, store, _ = _build(tmp_path, client)
    other = await store.create_conversation(CTX, "Other")

    task = asyncio.ensure_future(orch.send(CTX, "Hello"))
    await asyncio.sleep(0)
    assert orch.phase is TurnPhase.STREAMING
    assert await orch.state.select_conversation(CTX, other.id)
    client.gate.set()
    result = await task

    assert result.status == "completed"
    records = await store.list_messages(CTX, result.conversation_id)
    assert [(r.role, r.content) for r in records] == [("user", "Hello"), ("assistant", "Hi there")]
    assert await store.list_messages(CTX, other.id) == []
    assert orch.state.active_id == other.id


@pytest.mark.asyncio
async def test_reply_saved_after_starting_new_chat_mid_stream(tmp_path, sse_chunks):
    client = GatedClient(sse_chunks("Hi there"))
    orch, store, _ = _build(tmp_path, client)

    task = asyncio.ensure_future(orch.send(CTX, "Hello"))
    await asyncio.sleep(0)
    orch.state.start_new_conversation()
    client.gate.set()
    result = await task

    assert orch.state.active_id is None
    records = await store.list_messages(CTX, result.conversation_id)
    assert [(r.role, r.content) for r in records] == [("user", "Hello"), ("assistant", "Hi there")]

from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional, Protocol

from .models import Emotion, Role, UserContext


@dataclass
class Conversation:
    id: str
    user_id: str
    title: str
    created_at: datetime
    updated_at: datetime


@dataclass
class MessageRecord:
    id: str
    conversation_id: str
    user_id: str
    role: Role
    content: str
    created_at: datetime
    detected_emotion: Optional[Emotion] = None


@dataclass
class MoodEntry:
    id: str
    user_id: str
    mood: Emotion
    intensity: int
    created_at: datetime
    note: Optional[str] = None

    @property
    def day(self) -> date:
        return self.created_at.date()


@dataclass
class GratitudeEntry:
    id: str
    user_id: str
    entry_1: str
    created_at: datetime
    entry_2: Optional[str] = None
    entry_3: Optional[str] = None


@dataclass
class SavedQuote:
    id: str
    user_id: str
    quote: str
    created_at: datetime
    author: Optional[str] = None


class ConversationStore(Protocol):
    async def create_conversation(self, ctx: UserContext, title: str) -> Conversation:
        ...

    async def list_conversations(self, ctx: UserContext) -> List[Conversation]:
        ...

    async def update_conversation(
        self,
        ctx: UserContext,
        conversation_id: str,
        *,
        title: Optional[str] = None,
        updated_at: Optional[datetime] = None,
    ) -> None:
        ...

    async def delete_conversation(self, ctx: UserContext, conversation_id: str) -> None:
        ...

    async def add_message(self, ctx: UserContext, message: MessageRecord) -> MessageRecord:
        ...

    async def list_messages(self, ctx: UserContext, conversation_id: str) -> List[MessageRecord]:
        ...

    async def delete_all_messages(self, ctx: UserContext) -> None:
        ...

    async def delete_all_conversations(self, ctx: UserContext) -> None:
        ...


class MoodStore(Protocol):
    async def add_mood_entry(self, ctx: UserContext, entry: MoodEntry) -> MoodEntry:
        ...

    async def list_mood_entries(self, ctx: UserContext, since: Optional[datetime] = None) -> List[MoodEntry]:
        ...

    async def delete_all_mood_entries(self, ctx: UserContext) -> None:
        ...


class JournalStore(Protocol):
    async def add_gratitude_entry(self, ctx: UserContext, entry: GratitudeEntry) -> GratitudeEntry:
        ...

    async def list_gratitude_entries(self, ctx: UserContext, limit: int = 20) -> List[GratitudeEntry]:
        ...

    async def delete_gratitude_entry(self, ctx: UserContext, entry_id: str) -> None:
        ...

    async def delete_all_gratitude_entries(self, ctx: UserContext) -> None:
        ...


class QuoteStore(Protocol):
    async def add_saved_quote(self, ctx: UserContext, quote: SavedQuote) -> SavedQuote:
        ...

    async def list_saved_quotes(self, ctx: UserContext) -> List[SavedQuote]:
        ...

    async def delete_all_saved_quotes(self, ctx: UserContext) -> None:
        ...


class WellnessStore(ConversationStore, MoodStore, JournalStore, QuoteStore, Protocol):
    """托管数据存储的全部契约：四类按用户归属的集合。"""

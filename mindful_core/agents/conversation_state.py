"""会话状态机。

维护当前用户的会话列表、选中的会话以及界面上渲染的消息列表。

状态只有两种：

- none-selected: 没有选中会话，消息列表为空；第一次真正发送消息时才创建会话。
- active(id): 选中了某个会话，消息列表对应该会话。

所有本地修改都是同步的；持久化调用失败时只记录日志并返回 None/False，
由调用方决定是否提示用户。本地已经渲染的状态在本次会话里被视为权威。
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from mindful_core.config.settings import settings
from mindful_core.domain.conversation import Conversation, ConversationStore, MessageRecord
from mindful_core.domain.exceptions import BusinessError
from mindful_core.domain.models import ChatMessage, Emotion, LocalMessage, Role, UserContext, new_message_id
from mindful_core.infrastructure.logging.logger import log_event

DEFAULT_TITLE = "New Chat"


class ConversationState:
    def __init__(self, store: ConversationStore):
        self._store = store
        self.conversations: List[Conversation] = []
        self.active_id: Optional[str] = None
        self.messages: List[LocalMessage] = []

    @property
    def is_active(self) -> bool:
        return self.active_id is not None

    def find_message(self, message_id: str) -> Optional[LocalMessage]:
        for msg in self.messages:
            if msg.id == message_id:
                return msg
        return None

    # ---- 选择 / 新建 / 删除 -----------------------------------------

    async def load_conversations(self, ctx: UserContext) -> List[Conversation]:
        try:
            convs = await self._store.list_conversations(ctx)
        except BusinessError as e:
            self._log(logging.WARNING, "Failed to load conversations", ctx, **e.log_fields())
            return self.conversations
        self.conversations = sorted(convs, key=lambda c: c.updated_at, reverse=True)
        return self.conversations

    async def select_conversation(self, ctx: UserContext, conversation_id: str) -> bool:
        try:
            records = await self._store.list_messages(ctx, conversation_id)
        except BusinessError as e:
            self._log(
                logging.WARNING,
                "Failed to load messages",
                ctx,
                conversation_id=conversation_id,
                **e.log_fields(),
            )
            return False
        records.sort(key=lambda r: r.created_at)
        self.active_id = conversation_id
        self.messages = [
            LocalMessage(role=r.role, content=r.content, id=r.id, detected_emotion=r.detected_emotion)
            for r in records
        ]
        return True

    def start_new_conversation(self) -> None:
        # 不落库，等第一条消息发送时再创建
        self.active_id = None
        self.messages = []

    async def create_conversation(self, ctx: UserContext, title: Optional[str] = None) -> Optional[str]:
        try:
            conv = await self._store.create_conversation(ctx, title or DEFAULT_TITLE)
        except BusinessError as e:
            self._log(logging.ERROR, "Failed to create conversation", ctx, **e.log_fields())
            return None
        self.conversations.insert(0, conv)
        self.active_id = conv.id
        self.messages = []
        self._log(logging.INFO, "Created new conversation", ctx, conversation_id=conv.id)
        return conv.id

    async def delete_conversation(self, ctx: UserContext, conversation_id: str) -> bool:
        try:
            await self._store.delete_conversation(ctx, conversation_id)
        except BusinessError as e:
            self._log(
                logging.WARNING,
                "Failed to delete conversation",
                ctx,
                conversation_id=conversation_id,
                **e.log_fields(),
            )
            return False
        self.conversations = [c for c in self.conversations if c.id != conversation_id]
        if self.active_id == conversation_id:
            self.start_new_conversation()
        return True

    async def update_conversation_title(self, ctx: UserContext, conversation_id: str, title: str) -> bool:
        try:
            await self._store.update_conversation(
                ctx,
                conversation_id,
                title=title,
                updated_at=self._bump_updated_at(conversation_id, datetime.now(timezone.utc)),
            )
        except BusinessError as e:
            self._log(
                logging.WARNING,
                "Failed to update conversation title",
                ctx,
                conversation_id=conversation_id,
                **e.log_fields(),
            )
            return False
        for conv in self.conversations:
            if conv.id == conversation_id:
                conv.title = title
        return True

    # ---- 本地消息 ----------------------------------------------------

    def append_local_message(self, message: LocalMessage) -> None:
        self.messages.append(message)

    def remove_local_message(self, message_id: str) -> None:
        self.messages = [m for m in self.messages if m.id != message_id]

    def mutate_message_content(self, message_id: str, content: str) -> bool:
        msg = self.find_message(message_id)
        if msg is None:
            return False
        msg.content = content
        return True

    # ---- 持久化 -------------------------------------------------------

    async def add_message(
        self,
        ctx: UserContext,
        role: Role,
        content: str,
        conversation_id: str,
        emotion: Optional[Emotion] = None,
        message_id: Optional[str] = None,
    ) -> Optional[str]:
        """写入一条消息，再把会话的 updated_at 往前推。

        两次独立的存储调用，不是事务：消息写入成功而时间戳更新失败时，
        仍然返回消息 id。
        """

        record = MessageRecord(
            id=message_id or new_message_id(),
            conversation_id=conversation_id,
            user_id=ctx.user_id,
            role=role,
            content=content,
            created_at=datetime.now(timezone.utc),
            detected_emotion=emotion,
        )
        try:
            saved = await self._store.add_message(ctx, record)
        except BusinessError as e:
            self._log(
                logging.ERROR,
                "Failed to store message",
                ctx,
                conversation_id=conversation_id,
                role=role,
                **e.log_fields(),
            )
            return None

        bumped = self._bump_updated_at(conversation_id, saved.created_at)
        try:
            await self._store.update_conversation(ctx, conversation_id, updated_at=bumped)
        except BusinessError as e:
            self._log(
                logging.WARNING,
                "Failed to bump conversation updated_at",
                ctx,
                conversation_id=conversation_id,
                **e.log_fields(),
            )
        return saved.id

    async def finalize_message(
        self,
        ctx: UserContext,
        message_id: str,
        final_content: str,
        emotion: Optional[Emotion] = None,
        conversation_id: Optional[str] = None,
    ) -> Optional[str]:
        """助手消息的最后一次本地修改，随后用同一个 id 落库。

        conversation_id 是本轮开始时的会话；流式期间切换了会话也写回原会话。
        不传时退回当前选中的会话。
        """

        msg = self.find_message(message_id)
        if msg is not None:
            msg.content = final_content
            msg.detected_emotion = emotion
        target = conversation_id or self.active_id
        if target is None:
            return None
        return await self.add_message(
            ctx,
            "assistant",
            final_content,
            target,
            emotion=emotion,
            message_id=message_id,
        )

    def history(self) -> List[ChatMessage]:
        """下一次请求要带上的上下文：非空消息，最多 max_history_messages 条。"""

        history = [ChatMessage(role=m.role, content=m.content) for m in self.messages if m.content]
        limit = settings.max_history_messages
        if len(history) > limit:
            history = history[-limit:]
        return history

    def _bump_updated_at(self, conversation_id: str, when: datetime) -> datetime:
        # updated_at 只前进不后退
        for conv in self.conversations:
            if conv.id == conversation_id:
                if when > conv.updated_at:
                    conv.updated_at = when
                return conv.updated_at
        return when

    @staticmethod
    def _log(level: int, message: str, ctx: UserContext, **fields: Any) -> None:
        log_ctx: Dict[str, Any] = {"user_id": ctx.user_id}
        log_event(level, message, log_ctx, **fields)

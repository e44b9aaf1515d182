"""单轮对话编排。

一次 send 依次完成：

1. 拒绝空输入与重入（同一时刻只允许一个进行中的回合）。
2. 对原始输入做求助关键词检测，命中则升起求助横幅。
3. 确保存在选中的会话，必要时创建；创建失败则提示并结束。
4. 本地追加用户消息并落库。
5. 追加空的助手占位消息，进入 streaming。
6. 打开流式请求，解码器 -> 聚合器 -> 原地更新占位消息。
7. 正常结束后做一次最终标注（情绪 + 清洗文本）并落库；首轮对话时生成标题。
8. 检测到情绪时额外记录一条情绪条目。
9. 开启朗读时播放最终文本。
10. 回到 idle。

7~9 步各自捕获异常，互不回滚；传输层错误只提示用户，不重试。
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Literal, Optional
from uuid import uuid4

from mindful_core.agents.conversation_state import ConversationState
from mindful_core.agents.signals import CrisisBanner, LoggingNotifier, Notifier
from mindful_core.config.settings import settings
from mindful_core.domain.exceptions import describe_error
from mindful_core.domain.models import ChatMessage, ChatRequest, Emotion, LocalMessage, UserContext
from mindful_core.infrastructure.logging.logger import log_event
from mindful_core.providers.base import CompletionClient
from mindful_core.speech.session import VoiceSession
from mindful_core.streaming import DeltaAggregator, FrameDecoder, annotate, clean_partial, detect_distress, iter_frames
from mindful_core.wellbeing.mood import MoodTracker

SEND_ERROR_TITLE = "Unable to send message"
SEND_ERROR_FALLBACK = "Please try again"
MOOD_NOTE = "Detected from chat"


class TurnPhase(str, Enum):
    IDLE = "idle"
    AWAITING_CONVERSATION = "awaiting-conversation"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    ERROR = "error"


@dataclass
class TurnResult:
    """一次 send 的结果。

    status:
        - "completed": 流正常结束，助手消息已定稿。
        - "rejected": 空输入或已有回合在进行，没有任何副作用。
        - "failed": 会话创建失败或传输层出错。
    """

    status: Literal["completed", "rejected", "failed"]
    conversation_id: Optional[str] = None
    user_message_id: Optional[str] = None
    assistant_message_id: Optional[str] = None
    content: str = ""
    emotion: Optional[Emotion] = None
    distress: bool = False
    error: Optional[str] = None


def derive_title(user_input: str, max_chars: Optional[int] = None) -> str:
    limit = max_chars or settings.title_max_chars
    return user_input[:limit] + ("..." if len(user_input) > limit else "")


class TurnOrchestrator:
    def __init__(
        self,
        state: ConversationState,
        client: CompletionClient,
        mood_tracker: Optional[MoodTracker] = None,
        voice: Optional[VoiceSession] = None,
        notifier: Optional[Notifier] = None,
        banner: Optional[CrisisBanner] = None,
    ):
        self._state = state
        self._client = client
        self._mood_tracker = mood_tracker
        self._voice = voice
        self._notifier = notifier or LoggingNotifier()
        self.banner = banner or CrisisBanner()
        self.phase = TurnPhase.IDLE

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self.phase is not TurnPhase.IDLE

    async def send(self, ctx: UserContext, user_input: str) -> TurnResult:
        text = (user_input or "").strip()
        if not text or self.is_busy:
            return TurnResult(status="rejected", error="busy" if text else "empty input")

        start_time = time.time()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "user_id": ctx.user_id,
            "provider": self._client.name,
        }
        self.phase = TurnPhase.AWAITING_CONVERSATION
        try:
            return await self._run_turn(ctx, text, log_ctx, start_time)
        finally:
            self.phase = TurnPhase.IDLE

    async def _run_turn(
        self,
        ctx: UserContext,
        text: str,
        log_ctx: Dict[str, Any],
        start_time: float,
    ) -> TurnResult:
        # 2. 求助检测只看用户原始输入，在网络请求之前完成
        distress = detect_distress(text)
        if distress:
            self.banner.raise_banner()
            self._log(logging.WARNING, "Distress keywords detected", log_ctx)

        # 3. 确保有选中的会话
        conversation_id = self._state.active_id
        if conversation_id is None:
            conversation_id = await self._state.create_conversation(ctx)
            if conversation_id is None:
                self.phase = TurnPhase.ERROR
                self._notifier.toast("Error", "Could not start conversation", "destructive")
                return TurnResult(status="failed", distress=distress, error="Could not start conversation")
        log_ctx["conversation_id"] = conversation_id

        # 首轮判断要在追加本轮消息之前
        first_exchange = not self._state.messages
        history = self._state.history()

        # 4. 用户消息：先本地渲染，再落库
        user_msg = LocalMessage(role="user", content=text)
        self._state.append_local_message(user_msg)
        stored_id = await self._state.add_message(ctx, "user", text, conversation_id, message_id=user_msg.id)
        if stored_id is None:
            self._notifier.toast("Message not saved", "Your message could not be saved", "destructive")
        else:
            self._log(logging.INFO, "Stored user message", log_ctx, message_id=user_msg.id)

        # 5. 助手占位消息
        assistant_msg = LocalMessage(role="assistant", content="")
        self._state.append_local_message(assistant_msg)
        self.phase = TurnPhase.STREAMING

        # 6. 流式读取
        request = ChatRequest(messages=history + [ChatMessage(role="user", content=text)])
        decoder = FrameDecoder()
        aggregator = DeltaAggregator()
        try:
            async for frame in iter_frames(self._client.stream_chat(request), decoder):
                accumulated = aggregator.feed(frame)
                if accumulated is not None:
                    self._state.mutate_message_content(assistant_msg.id, clean_partial(accumulated))
        except Exception as e:
            # 客户端是注入的，非 BusinessError 的异常同样在这里收住
            error_code, error_message = describe_error(e)
            self.phase = TurnPhase.ERROR
            self._notifier.toast(SEND_ERROR_TITLE, error_message or SEND_ERROR_FALLBACK, "destructive")
            if not aggregator.content:
                self._state.remove_local_message(assistant_msg.id)
            self._log(
                logging.ERROR,
                "Stream failed",
                log_ctx,
                error_code=error_code,
                error=error_message,
                fragments=aggregator.fragments,
            )
            return TurnResult(
                status="failed",
                conversation_id=conversation_id,
                user_message_id=user_msg.id,
                assistant_message_id=assistant_msg.id if aggregator.content else None,
                content=clean_partial(aggregator.content),
                distress=distress,
                error=error_message or SEND_ERROR_FALLBACK,
            )

        self.phase = TurnPhase.FINALIZING
        self._log(
            logging.INFO,
            "Stream completed",
            log_ctx,
            frames=decoder.frames_emitted,
            dropped_frames=decoder.frames_dropped,
        )

        # 7. 最终标注并落库
        annotation = annotate(aggregator.content)
        try:
            await self._state.finalize_message(
                ctx,
                assistant_msg.id,
                annotation.clean_text,
                annotation.emotion,
                conversation_id=conversation_id,
            )
        except Exception as e:
            self._log(logging.WARNING, "Failed to finalize assistant message", log_ctx, error=str(e))
        if first_exchange:
            try:
                await self._state.update_conversation_title(ctx, conversation_id, derive_title(text))
            except Exception as e:
                self._log(logging.WARNING, "Failed to update title", log_ctx, error=str(e))

        # 8. 情绪记录
        if annotation.emotion and self._mood_tracker is not None:
            try:
                await self._mood_tracker.log_mood(
                    ctx,
                    annotation.emotion,
                    intensity=settings.mood_default_intensity,
                    note=MOOD_NOTE,
                )
            except Exception as e:
                self._log(logging.WARNING, "Failed to log mood", log_ctx, error=str(e))

        # 9. 朗读
        if self._voice is not None and self._voice.tts_enabled and annotation.clean_text:
            try:
                self._voice.output.speak(annotation.clean_text, assistant_msg.id)
            except Exception as e:
                self._log(logging.WARNING, "Failed to start speech playback", log_ctx, error=str(e))

        self._log(
            logging.INFO,
            "Completed turn",
            log_ctx,
            elapsed_seconds=round(time.time() - start_time, 2),
            user_message_id=user_msg.id,
            assistant_message_id=assistant_msg.id,
            emotion=annotation.emotion,
        )
        return TurnResult(
            status="completed",
            conversation_id=conversation_id,
            user_message_id=user_msg.id,
            assistant_message_id=assistant_msg.id,
            content=annotation.clean_text,
            emotion=annotation.emotion,
            distress=distress,
        )

    def close(self) -> None:
        """离开聊天页：停止朗读，收起求助横幅。进行中的流不会被中断。"""

        if self._voice is not None:
            self._voice.output.stop()
        self.banner.dismiss()

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        log_event(level, message, log_ctx, **fields)

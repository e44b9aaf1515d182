"""对外 API 服务模块。

提供简化的函数接口供上层应用调用。每个用户对应一个编排器实例，
默认的存储与对话端点都按 settings 懒加载。
"""

from typing import Any, Dict, Optional

from mindful_core.agents.conversation_state import ConversationState
from mindful_core.agents.turn_orchestrator import TurnOrchestrator
from mindful_core.config.settings import settings
from mindful_core.domain.conversation import WellnessStore
from mindful_core.domain.models import UserContext
from mindful_core.infrastructure.logging.logger import logger
from mindful_core.infrastructure.storage import create_store
from mindful_core.providers import create_provider
from mindful_core.speech import SpeechOutput, VoiceSession
from mindful_core.wellbeing import MoodTracker


_store: Optional[WellnessStore] = None
_orchestrators: Dict[str, TurnOrchestrator] = {}


def get_default_store() -> WellnessStore:
    global _store
    if _store is None:
        _store = create_store()
    return _store


def get_default_orchestrator(user_id: str) -> TurnOrchestrator:
    """获取某个用户的默认编排器（每个用户一个单例）。"""
    orchestrator = _orchestrators.get(user_id)
    if orchestrator is None:
        store = get_default_store()
        orchestrator = TurnOrchestrator(
            state=ConversationState(store),
            client=create_provider(),
            mood_tracker=MoodTracker(store),
            voice=VoiceSession(
                output=SpeechOutput(rate=settings.speech_rate),
                language=settings.default_language,
            ),
        )
        _orchestrators[user_id] = orchestrator
    return orchestrator


async def send_message(
    user_id: str,
    text: str,
    conversation_id: Optional[str] = None,
    access_token: Optional[str] = None,
) -> Dict[str, Any]:
    """发送一条消息并等待助手回复结束。

    Args:
        user_id: 用户ID
        text: 用户输入
        conversation_id: 会话ID（可选，不提供则沿用当前会话或新建）
        access_token: 托管存储的用户令牌（可选）

    Returns:
        包含状态、会话ID、消息ID、回复内容与情绪的字典
    """
    ctx = UserContext(user_id=user_id, access_token=access_token)
    try:
        orchestrator = get_default_orchestrator(user_id)
        # 上一轮还在进行时不切换会话，send 会直接拒绝
        if conversation_id and not orchestrator.is_busy and orchestrator.state.active_id != conversation_id:
            await orchestrator.state.select_conversation(ctx, conversation_id)
        result = await orchestrator.send(ctx, text)
        return {
            "status": result.status,
            "conversation_id": result.conversation_id,
            "user_message_id": result.user_message_id,
            "assistant_message_id": result.assistant_message_id,
            "content": result.content,
            "emotion": result.emotion,
            "distress": result.distress,
            "error": result.error,
        }
    except Exception as e:
        logger.error(f"Send failed: {e}", extra={"extra": {
            "user_id": user_id,
            "conversation_id": conversation_id,
            "error": str(e),
        }})
        raise


async def list_conversations(user_id: str, access_token: Optional[str] = None) -> list[Dict[str, Any]]:
    """列出用户的所有会话，最近更新的在前。"""
    ctx = UserContext(user_id=user_id, access_token=access_token)
    convs = await get_default_store().list_conversations(ctx)
    return [
        {
            "id": c.id,
            "title": c.title,
            "created_at": c.created_at.isoformat(),
            "updated_at": c.updated_at.isoformat(),
        }
        for c in convs
    ]


async def get_conversation_messages(
    user_id: str,
    conversation_id: str,
    access_token: Optional[str] = None,
) -> list[Dict[str, Any]]:
    """获取会话的所有消息，按创建时间升序。"""
    ctx = UserContext(user_id=user_id, access_token=access_token)
    msgs = await get_default_store().list_messages(ctx, conversation_id)
    return [
        {
            "id": m.id,
            "role": m.role,
            "content": m.content,
            "detected_emotion": m.detected_emotion,
            "created_at": m.created_at.isoformat(),
        }
        for m in msgs
    ]

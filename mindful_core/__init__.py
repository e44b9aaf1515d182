"""Mindful Core 顶层包。

该包提供心理健康陪伴聊天的核心实现，包括配置加载、领域模型、
流式响应解码与标注、对话端点适配、会话状态机、单轮对话编排、
语音能力以及情绪/日记/语录等辅助功能。
"""

from mindful_core.agents.conversation_state import ConversationState
from mindful_core.agents.turn_orchestrator import TurnOrchestrator, TurnPhase, TurnResult

__all__ = ["ConversationState", "TurnOrchestrator", "TurnPhase", "TurnResult"]

"""对话请求与本地消息的数据模型。

本模块定义了核心各组件之间共享的标准数据结构：

- ChatMessage: 发往对话端点的一条 role/content 消息。
- ChatRequest: 发给对话端点的完整请求（有序消息列表）。
- LocalMessage: 聊天界面上渲染的一条消息（可能尚未持久化）。
- UserContext: 当前用户身份，显式传入每个组件操作，不依赖全局环境。

对话端点只认识 role/content 对，所有端点适配器只依赖这些模型。
"""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple, get_args
from uuid import uuid4


# 持久化消息的角色（封闭枚举）
Role = Literal["user", "assistant"]

# 请求里额外允许 system 角色
RequestRole = Literal["system", "user", "assistant"]

# 回复中可嵌入的情绪标记取值
Emotion = Literal["happy", "calm", "sad", "stressed", "anxious", "neutral"]

EMOTIONS: Tuple[str, ...] = get_args(Emotion)


def new_message_id() -> str:
    return str(uuid4())


@dataclass
class ChatMessage:
    """请求中的一条消息。"""

    role: RequestRole
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """一次完整的流式对话请求。

    端点按顺序接收 messages，并以 `data: ` 前缀的事件流逐步返回增量文本，
    最后以 `[DONE]` 结束。
    """

    messages: List[ChatMessage]

    def to_payload(self) -> Dict[str, List[Dict[str, str]]]:
        return {"messages": [m.to_payload() for m in self.messages]}


@dataclass
class LocalMessage:
    """聊天界面中的一条消息。

    - id: 本地生成的 UUID，同时作为持久化记录的 id，保证本地与存储收敛到同一主键。
    - content: 流式阶段会被原地替换，finalize 之后不再变化。
    - detected_emotion: 从回复中解析出的情绪（仅助手消息）。
    """

    role: Role
    content: str
    id: str = field(default_factory=new_message_id)
    detected_emotion: Optional[Emotion] = None


@dataclass(frozen=True)
class UserContext:
    """调用方身份。

    - user_id: 所有数据行的归属用户。
    - access_token: 托管存储的用户令牌（可选，缺省时使用服务端 API key）。
    """

    user_id: str
    access_token: Optional[str] = None

"""对话端点抽象接口。

上层 TurnOrchestrator 不直接依赖具体的 HTTP 实现，而是依赖此协议：

- 每种端点实现一个 CompletionClient（如 EdgeFunctionClient）。
- 负责：把 ChatRequest 序列化成请求体，并把响应体原样作为字节块流交出。

字节块如何切分成帧、帧里的增量怎么拼接，由 streaming 包负责，
这样端点适配层不需要关心事件流协议的细节。
"""

from typing import AsyncIterator, Protocol

from mindful_core.domain.models import ChatRequest


class CompletionClient(Protocol):
    """流式对话端点客户端协议。

    实现者需要提供：
    - name: 端点名称，用于日志。
    - stream_chat(req): 发起一次流式请求，逐块产出原始响应字节。
    """

    name: str

    def stream_chat(self, req: ChatRequest) -> AsyncIterator[bytes]:
        ...

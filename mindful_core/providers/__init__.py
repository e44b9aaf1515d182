"""对话端点集成层。

该包下的模块负责：
- 定义端点抽象接口 (base)。
- 提供具体实现 (edge_client：托管边缘函数)。
"""

from typing import Optional

from mindful_core.config.settings import settings
from mindful_core.providers.base import CompletionClient
from mindful_core.providers.edge_client import EdgeFunctionClient


def create_provider(name: Optional[str] = None) -> CompletionClient:
    """根据名称创建端点客户端，目前只有 edge-chat 一种。"""

    provider_name = (name or EdgeFunctionClient.name).lower()
    if provider_name != EdgeFunctionClient.name:
        raise KeyError(f"Unknown provider: {name!r}")
    return EdgeFunctionClient(settings)


__all__ = ["CompletionClient", "EdgeFunctionClient", "create_provider"]

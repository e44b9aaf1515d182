"""托管边缘函数对话端点适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 以 `{"messages": [...]}` 的 JSON 请求体 POST 到配置的端点。
3. 处理网络/HTTP 异常，映射为统一的业务异常。
4. 把响应体按到达顺序逐块产出（不做任何解析，解析交给 FrameDecoder）。

流式读取不设超时：卡住的流会一直阻塞本轮对话，直到底层连接报错。
"""

import json
from typing import AsyncIterator, Dict

import httpx

from mindful_core.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from mindful_core.domain.models import ChatRequest

DEFAULT_ERROR_MESSAGE = "Failed to get response"


class EdgeFunctionClient:
    """边缘函数对话端点客户端实现。"""

    name = "edge-chat"

    def __init__(self, settings):
        # Settings 里包含 completion_url、completion_api_key、超时等配置
        self._settings = settings

    async def stream_chat(self, req: ChatRequest) -> AsyncIterator[bytes]:
        url = getattr(self._settings, "completion_url", None)
        if not url:
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(code="MISSING_COMPLETION_URL", message="COMPLETION_URL not set")
        timeout = httpx.Timeout(self._settings.http_timeout, read=None)
        try:
            async with httpx.AsyncClient(timeout=timeout, trust_env=False) as client:
                async with client.stream(
                    "POST",
                    url,
                    json=req.to_payload(),
                    headers=self._headers(),
                ) as resp:
                    if resp.status_code == 429:
                        raise RateLimitError(code="RATE_LIMIT", message="Too many requests, please wait a moment")
                    if resp.status_code >= 400:
                        body = await resp.aread()
                        raise ApiError(
                            code="API_ERROR",
                            message=self._error_message(body),
                            http_status=resp.status_code,
                        )
                    async for chunk in resp.aiter_bytes():
                        if chunk:
                            yield chunk
        except (httpx.HTTPError, httpx.StreamError) as e:
            # 网络错误：DNS 失败、连接中断、读取失败等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        api_key = getattr(self._settings, "completion_api_key", None)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    @staticmethod
    def _error_message(body: bytes) -> str:
        """端点出错时返回 `{"error": "..."}`；解析不了就用通用提示。"""

        try:
            data = json.loads(body or b"{}")
        except (json.JSONDecodeError, UnicodeDecodeError):
            return DEFAULT_ERROR_MESSAGE
        if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"]:
            return data["error"]
        return DEFAULT_ERROR_MESSAGE

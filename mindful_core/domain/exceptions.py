"""MindfulMe 的错误类型。

编排层只认 BusinessError：存储、对话端点、语音引擎的失败都在各自边界
被转换成这里的子类，再由编排层变成 toast 和日志。
"""

from typing import Any, Dict, Optional, Tuple


class BusinessError(Exception):
    """可以展示给用户的错误。

    code 供日志与测试断言使用；message 直接进入 toast 的描述。
    子类各自带默认错误码，抛出时可以只给 message。
    """

    default_code = "BUSINESS_ERROR"
    default_status = 400

    def __init__(
        self,
        code: Optional[str] = None,
        message: str = "",
        http_status: Optional[int] = None,
        **extra: Any,
    ):
        self.code = code or self.default_code
        self.message = message
        self.http_status = http_status if http_status is not None else self.default_status
        self.extra = extra
        super().__init__(message or self.code)

    def log_fields(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"error_code": self.code, "error": self.message}
        fields.update(self.extra)
        return fields


class NetworkError(BusinessError):
    """连接失败或流读取中断。"""

    default_code = "NETWORK_ERROR"
    default_status = 503


class ApiError(BusinessError):
    default_code = "API_ERROR"
    default_status = 502


class RateLimitError(ApiError):
    """端点返回 429；不自动重试，由用户手动重发。"""

    default_code = "RATE_LIMITED"
    default_status = 429


class ValidationError(BusinessError):
    default_code = "VALIDATION_ERROR"


class StoreError(BusinessError):
    """持久化失败。"""

    default_code = "STORE_ERROR"
    default_status = 500


class SpeechError(BusinessError):
    """识别或合成引擎报告的错误，code 沿用引擎给出的错误名。"""

    default_code = "SPEECH_ERROR"


def describe_error(exc: BaseException) -> Tuple[str, str]:
    """把任意异常归一成 (错误码, 描述)。注入的客户端可能抛出非业务异常。"""

    if isinstance(exc, BusinessError):
        return exc.code, exc.message
    return type(exc).__name__, str(exc)

"""面向用户的信号：提示消息（toast）与求助横幅。"""

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Protocol

from mindful_core.infrastructure.logging.logger import logger

ToastVariant = Literal["default", "destructive"]

CRISIS_MESSAGE = "You're not alone 💙 Help is available."
CRISIS_TARGET = "/help"


@dataclass
class Toast:
    title: str
    description: str = ""
    variant: ToastVariant = "default"


class Notifier(Protocol):
    def toast(self, title: str, description: str = "", variant: ToastVariant = "default") -> None:
        ...


class LoggingNotifier:
    """没有界面时的默认实现：把提示写进日志。"""

    def toast(self, title: str, description: str = "", variant: ToastVariant = "default") -> None:
        level = logging.WARNING if variant == "destructive" else logging.INFO
        logger.log(level, title, extra={"extra": {"description": description, "variant": variant}})


class RecordingNotifier:
    """保存所有提示，供控制台界面轮询展示。"""

    def __init__(self) -> None:
        self.toasts: List[Toast] = []

    def toast(self, title: str, description: str = "", variant: ToastVariant = "default") -> None:
        self.toasts.append(Toast(title=title, description=description, variant=variant))

    @property
    def last(self) -> Optional[Toast]:
        return self.toasts[-1] if self.toasts else None


@dataclass
class CrisisBanner:
    """求助横幅。

    一旦升起就一直可见，不会随时间消失；只有离开聊天页（导航）时才调用 dismiss。
    升起完全由本地关键词匹配触发，不需要任何网络往返。
    """

    visible: bool = False
    message: str = CRISIS_MESSAGE
    target: str = CRISIS_TARGET
    raised_count: int = field(default=0)

    def raise_banner(self) -> None:
        self.visible = True
        self.raised_count += 1

    def dismiss(self) -> None:
        self.visible = False

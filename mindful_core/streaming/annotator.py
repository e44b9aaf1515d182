"""回复内容标注：情绪标记提取、标记清理与求助信号检测。

模型会在回复里嵌入形如 `[EMOTION: calm]` 的标记。标记文本永远不展示给用户，
只保留解析出的情绪枚举值。求助信号只看用户自己的原始输入，与模型回复无关。
"""

import re
from dataclasses import dataclass
from typing import Optional, Tuple, cast

from mindful_core.domain.models import Emotion

EMOTION_PATTERN = re.compile(
    r"\[EMOTION:\s*(happy|calm|sad|stressed|anxious|neutral)\]",
    re.IGNORECASE,
)

# 流式阶段尚未闭合的标记前缀，例如 "[EMO" 或 "[EMOTION: anx"
_PARTIAL_MARKER = re.compile(
    r"\[(?:E(?:M(?:O(?:T(?:I(?:O(?:N(?::\s*[a-z]*)?)?)?)?)?)?)?)?$",
    re.IGNORECASE,
)

DISTRESS_KEYWORDS: Tuple[str, ...] = (
    "suicide",
    "kill myself",
    "end it all",
    "want to die",
    "worthless",
    "hopeless",
    "can't go on",
    "self harm",
    "hurt myself",
)


@dataclass(frozen=True)
class Annotation:
    clean_text: str
    emotion: Optional[Emotion]


def extract_emotion(text: str) -> Optional[Emotion]:
    """返回第一个情绪标记的取值（小写）；没有标记时返回 None。"""

    match = EMOTION_PATTERN.search(text or "")
    if not match:
        return None
    return cast(Emotion, match.group(1).lower())


def clean_content(text: str) -> str:
    """删除全部情绪标记并去掉首尾空白。

    删除一个标记可能把两侧文本拼成新的标记，所以一直替换到不再变化，
    保证 clean_content(clean_content(x)) == clean_content(x)。
    """

    result = text or ""
    while True:
        stripped = EMOTION_PATTERN.sub("", result)
        if stripped == result:
            break
        result = stripped
    return result.strip()


def clean_partial(text: str) -> str:
    """流式展示用：在 clean_content 的基础上隐藏末尾未闭合的标记。"""

    cleaned = clean_content(text)
    return _PARTIAL_MARKER.sub("", cleaned).rstrip()


def annotate(text: str) -> Annotation:
    return Annotation(clean_text=clean_content(text), emotion=extract_emotion(text))


def detect_distress(user_input: str) -> bool:
    lowered = (user_input or "").lower()
    return any(keyword in lowered for keyword in DISTRESS_KEYWORDS)

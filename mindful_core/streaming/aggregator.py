"""增量文本聚合器。

每一帧的增量文本位于 `choices[0].delta.content`（与 OpenAI 兼容的
chat.completion.chunk 结构）。聚合器只做追加：不重排、不去重，
服务端保证按最终顺序发出片段。
"""

from typing import Any, Mapping, Optional


def extract_fragment(frame: Mapping[str, Any]) -> Optional[str]:
    """取出帧里的文本片段；结构不符或内容为空时返回 None。"""

    choices = frame.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, Mapping):
        return None
    delta = first.get("delta")
    if not isinstance(delta, Mapping):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


class DeltaAggregator:
    """把片段按到达顺序拼接成不断增长的助手消息。"""

    def __init__(self) -> None:
        self._pieces: list[str] = []
        self._content = ""

    @property
    def content(self) -> str:
        return self._content

    @property
    def fragments(self) -> int:
        return len(self._pieces)

    def feed(self, frame: Mapping[str, Any]) -> Optional[str]:
        """追加一帧；有新片段时返回当前累计文本，否则返回 None。"""

        fragment = extract_fragment(frame)
        if fragment is None:
            return None
        self._pieces.append(fragment)
        self._content += fragment
        return self._content

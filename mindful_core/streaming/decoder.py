"""流式事件帧解码器。

对话端点返回的是按行分隔的事件记录：

    : keep-alive            <- 注释行，忽略
    data: {"choices": ...}  <- 事件行，前缀之后是 JSON 负载
                            <- 空行，记录分隔符
    data: [DONE]            <- 结束哨兵

网络层给出的字节块边界是任意的，一条记录可能被拆进多个块，
一个块里也可能包含多条记录。FrameDecoder 维护一个文本缓冲区，
每次只取出完整的行来处理，因此无论怎样切块，得到的帧序列都相同。

JSON 解析失败的负载会放进“待续行”槽位：如果下一条非空行是续行
（不以 `data:` 开头），就拼接后重试；如果下一行开始了新记录或遇到空行，
待续行被当作坏帧丢弃。坏帧只计数、记日志，从不中断流。
"""

import codecs
import json
from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Optional

from mindful_core.infrastructure.logging.logger import logger

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
COMMENT_PREFIX = ":"
# 待续行的最大长度，超过后直接丢弃
MAX_PENDING_CHARS = 64 * 1024

Frame = Dict[str, Any]


class FrameDecoder:
    """增量解码器：feed 字节块，返回本次新产生的完整帧。"""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._pending: Optional[str] = None
        self.done = False
        self.frames_emitted = 0
        self.frames_dropped = 0

    def feed(self, chunk: bytes) -> List[Frame]:
        if self.done:
            return []
        self._buffer += self._decoder.decode(chunk)
        return self._drain()

    def close(self) -> List[Frame]:
        """流关闭：处理最后一行（即使没有换行符结尾），丢弃残留的待续行。"""

        if self.done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        frames = self._drain()
        if not self.done and self._buffer:
            line, self._buffer = self._buffer, ""
            frames.extend(self._process_line(line))
        if self._pending is not None:
            self._drop_pending("stream closed")
        return frames

    def _drain(self) -> List[Frame]:
        frames: List[Frame] = []
        while not self.done:
            idx = self._buffer.find("\n")
            if idx == -1:
                break
            line = self._buffer[:idx]
            self._buffer = self._buffer[idx + 1 :]
            frames.extend(self._process_line(line))
        if self.done:
            # 哨兵之后的字节一律忽略
            self._buffer = ""
        return frames

    def _process_line(self, line: str) -> List[Frame]:
        if line.endswith("\r"):
            line = line[:-1]

        if not line.strip():
            if self._pending is not None:
                self._drop_pending("record separator")
            return []

        if self._pending is not None and not line.startswith("data:"):
            # 注释行（keep-alive）不参与拼接，挂起的记录保持不动
            if line.startswith(COMMENT_PREFIX):
                return []
            return self._try_parse(self._pending + "\n" + line)

        if self._pending is not None:
            self._drop_pending("new record")

        if line.startswith(COMMENT_PREFIX) or not line.startswith(DATA_PREFIX):
            return []

        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_SENTINEL:
            self.done = True
            return []
        return self._try_parse(payload)

    def _try_parse(self, payload: str) -> List[Frame]:
        try:
            data = json.loads(payload)
        except json.JSONDecodeError:
            self._pending = payload
            if len(payload) > MAX_PENDING_CHARS:
                self._drop_pending("pending line too long")
            return []
        self._pending = None
        if not isinstance(data, dict):
            self.frames_dropped += 1
            logger.debug("Dropped non-object frame", extra={"extra": {"payload_type": type(data).__name__}})
            return []
        self.frames_emitted += 1
        return [data]

    def _drop_pending(self, reason: str) -> None:
        dropped = self._pending or ""
        self._pending = None
        self.frames_dropped += 1
        logger.debug(
            "Dropped malformed frame",
            extra={"extra": {"reason": reason, "length": len(dropped)}},
        )


async def iter_frames(
    chunks: AsyncIterable[bytes],
    decoder: Optional[FrameDecoder] = None,
) -> AsyncIterator[Frame]:
    """把异步字节块序列转换成有序、有限的帧序列。

    遇到 `[DONE]` 立即结束（同一块中其后的字节也被忽略）；上游关闭时
    处理最后一行后结束。读取过程中的网络异常原样向上传播，不会合成半帧。
    """

    decoder = decoder or FrameDecoder()
    try:
        async for chunk in chunks:
            for frame in decoder.feed(chunk):
                yield frame
            if decoder.done:
                return
        for frame in decoder.close():
            yield frame
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()

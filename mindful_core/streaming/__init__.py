"""流式响应摄取管线：帧解码 -> 增量聚合 -> 内容标注。"""

from mindful_core.streaming.aggregator import DeltaAggregator, extract_fragment
from mindful_core.streaming.annotator import (
    Annotation,
    annotate,
    clean_content,
    clean_partial,
    detect_distress,
    extract_emotion,
)
from mindful_core.streaming.decoder import FrameDecoder, iter_frames

__all__ = [
    "Annotation",
    "DeltaAggregator",
    "FrameDecoder",
    "annotate",
    "clean_content",
    "clean_partial",
    "detect_distress",
    "extract_emotion",
    "extract_fragment",
    "iter_frames",
]

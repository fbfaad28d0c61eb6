"""
流式响应解析

模型的流式输出格式：
    动作日志（给用户看的散文）
    :::ARTIFACT:::
    :::JSON_START:::
    { ...pdfmake 文档... }
    :::JSON_END:::

StreamAccumulator 逐块累积文本并维护可见部分；
extract_json_from_response 在流结束后从完整文本中取出文档。
"""

import logging
from typing import Any, Dict, List, Optional

from resume_agent.agent.json_utils import loads_lenient
from resume_agent.services.document_sanitizer import DocumentSanitizer, default_sanitizer

logger = logging.getLogger(__name__)

ARTIFACT_MARKER = ":::ARTIFACT:::"
JSON_START_MARKER = ":::JSON_START:::"
JSON_END_MARKER = ":::JSON_END:::"

VISIBLE_TEXT_MARKERS = (ARTIFACT_MARKER, JSON_START_MARKER)


def extract_visible_text(text: str) -> str:
    """
    截取第一个标记之前的文本并去掉首尾空白

    两个标记都可能出现，取先出现的那个；没有标记时返回整段文本
    """
    if not text:
        return ""

    cut = len(text)
    for marker in VISIBLE_TEXT_MARKERS:
        index = text.find(marker)
        if index != -1 and index < cut:
            cut = index
    return text[:cut].strip()


def _partial_marker_length(text: str) -> int:
    """文本末尾可能是半个标记时返回其长度，否则返回 0"""
    longest = max(len(marker) for marker in VISIBLE_TEXT_MARKERS) - 1
    for length in range(min(len(text), longest), 0, -1):
        suffix = text[-length:]
        if any(marker.startswith(suffix) for marker in VISIBLE_TEXT_MARKERS):
            return length
    return 0


class StreamAccumulator:
    """
    流式文本累积器

    单生产者、按序到达；每收到一块就刷新可见文本。
    标记被拆在两个块之间时，末尾的半个标记先扣住不显示，
    流结束后用 final_visible_text 取完整的可见文本。
    """

    def __init__(self):
        self._chunks: List[str] = []
        self._full_text = ""
        self.visible_text = ""

    def feed(self, chunk: str) -> str:
        """
        追加一块文本

        Returns:
            当前的可见文本
        """
        if chunk:
            self._chunks.append(chunk)
            self._full_text += chunk

        text = self._full_text
        if not any(marker in text for marker in VISIBLE_TEXT_MARKERS):
            held = _partial_marker_length(text)
            if held:
                text = text[:-held]
        self.visible_text = extract_visible_text(text)
        return self.visible_text

    @property
    def final_visible_text(self) -> str:
        """流结束后的可见文本，不再扣留末尾疑似标记的部分"""
        return extract_visible_text(self._full_text)

    @property
    def full_text(self) -> str:
        return self._full_text

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)


def _marker_candidate(text: str) -> Optional[str]:
    start = text.find(JSON_START_MARKER)
    end = text.find(JSON_END_MARKER)
    if start == -1 or end == -1:
        return None
    start += len(JSON_START_MARKER)
    if start > end:
        return None
    return text[start:end]


def _content_key_candidate(text: str) -> Optional[str]:
    """以最后一个 "content" 键为锚点，取其前最近的 { 到全文最后一个 }"""
    content_index = text.rfind('"content"')
    if content_index == -1:
        return None
    open_index = text.rfind("{", 0, content_index)
    close_index = text.rfind("}")
    if open_index == -1 or close_index <= open_index:
        return None
    return text[open_index:close_index + 1]


def extract_json_from_response(
    text: str,
    sanitizer: Optional[DocumentSanitizer] = None
) -> Optional[Dict[str, Any]]:
    """
    从完整的流式输出中提取文档

    依次尝试：标记之间的文本、"content" 键启发式截取；
    每个候选都经过去围栏、去注释、尾随逗号修复后解析，
    解析成功且为对象时清洗后返回

    Args:
        text: 累积完成的模型输出
        sanitizer: 文档清洗器（可选），默认使用全局清洗器

    Returns:
        清洗后的文档字典；没有可用文档时返回 None（本轮按纯聊天处理）
    """
    if not text:
        return None

    sanitizer = sanitizer or default_sanitizer
    for candidate in (_marker_candidate(text), _content_key_candidate(text)):
        if candidate is None:
            continue
        parsed = loads_lenient(candidate)
        if isinstance(parsed, dict):
            return sanitizer.sanitize(parsed)

    logger.info("[StreamParser] 输出中没有可解析的文档，按纯聊天处理")
    return None

"""
文档清洗

所有成功解析的文档（工具调用路径和流式标记路径）都经过这里：
- 强制 pageSize 为 A4，pageMargins 规整为 4 个数字
- 去掉函数形式的分页指令
- content 规整为列表，多个"像简历"的块只保留第一个，防止模型把整份简历嵌套重复

清洗结果是不动点：对已清洗的文档再次清洗得到完全相同的结果。
"""

import copy
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

PAGE_SIZE = "A4"
DEFAULT_PAGE_MARGINS = [36, 36, 36, 36]
RESUME_SECTION_KEYWORDS = ("experience", "education", "skills", "projects")

# 模型偶尔把 JS 函数当字符串写进 JSON
_FUNCTION_SOURCE_RE = re.compile(r"^\s*(function\b|\(?[\w\s,]*\)?\s*=>)")


class DuplicateBlockPolicy(ABC):
    """重复块裁剪策略基类，后续可替换为基于 schema 的校验器"""

    @abstractmethod
    def apply(self, content: List[Any]) -> List[Any]:
        """返回裁剪后的新列表"""


class FirstResumeBlockPolicy(DuplicateBlockPolicy):
    """
    关键词启发式：序列化文本中含章节关键词的块视为"像简历"的块，
    只保留第一个，其余非简历块原样保留
    """

    def __init__(self, keywords: Sequence[str] = RESUME_SECTION_KEYWORDS):
        self.keywords = tuple(keyword.lower() for keyword in keywords)

    def looks_like_resume_block(self, block: Any) -> bool:
        if not block:
            return False
        text = json.dumps(block, ensure_ascii=False, default=str).lower()
        return any(keyword in text for keyword in self.keywords)

    def apply(self, content: List[Any]) -> List[Any]:
        kept = []
        seen_resume_block = False
        for block in content:
            if self.looks_like_resume_block(block):
                if seen_resume_block:
                    continue
                seen_resume_block = True
            kept.append(block)
        return kept


def _is_function_directive(value: Any) -> bool:
    if callable(value):
        return True
    return isinstance(value, str) and bool(_FUNCTION_SOURCE_RE.match(value))


def _normalize_margins(margins: Any) -> List[float]:
    """pdfmake 允许单值、[水平, 垂直]、[左, 上, 右, 下] 三种写法，统一为 4 元素"""
    if isinstance(margins, bool):
        return list(DEFAULT_PAGE_MARGINS)
    if isinstance(margins, (int, float)):
        return [margins] * 4
    if isinstance(margins, list) and all(
        isinstance(m, (int, float)) and not isinstance(m, bool) for m in margins
    ):
        if len(margins) == 4:
            return list(margins)
        if len(margins) == 2:
            return [margins[0], margins[1], margins[0], margins[1]]
    return list(DEFAULT_PAGE_MARGINS)


class DocumentSanitizer:
    """文档清洗器，返回新字典，不修改入参"""

    def __init__(self, duplicate_policy: Optional[DuplicateBlockPolicy] = None):
        self.duplicate_policy = duplicate_policy or FirstResumeBlockPolicy()

    def sanitize(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """
        清洗文档

        Args:
            document: 解析得到的 pdfmake 文档字典

        Returns:
            清洗后的新字典
        """
        doc = {
            key: value for key, value in document.items()
            if not callable(value)
        }
        doc = copy.deepcopy(doc)

        doc["pageSize"] = PAGE_SIZE
        doc["pageMargins"] = _normalize_margins(doc.get("pageMargins"))

        if _is_function_directive(document.get("pageBreakBefore")):
            doc.pop("pageBreakBefore", None)

        content = doc.get("content")
        if content is None:
            content = []
        elif not isinstance(content, list):
            content = [content]
        doc["content"] = self.duplicate_policy.apply(content)

        return doc


default_sanitizer = DocumentSanitizer()


def sanitize_document(document: Dict[str, Any]) -> Dict[str, Any]:
    """使用默认策略清洗文档的便捷函数"""
    return default_sanitizer.sanitize(document)

"""
文档生成调用

直接让模型输出 pdfmake 文档，不经过工具调用：
- generate_resume_design：一次性返回，期望整段文本就是一个 JSON 对象
- generate_resume_design_stream：流式返回，文本遵循 动作日志 + 标记 + JSON 的协议
"""

import json
import logging
from typing import Any, Dict, Iterator, Optional

from langchain_core.messages import HumanMessage

from resume_agent.agent.json_utils import strip_code_fences
from resume_agent.agent.prompts import (
    NO_PREVIOUS_DESIGN,
    PREVIOUS_DESIGN_TEMPLATE,
    RESUME_DESIGN_PROMPT,
    RESUME_DESIGN_STREAM_PROMPT,
)
from resume_agent.agent.specialists.base import message_text
from resume_agent.exceptions import GenerationError

logger = logging.getLogger(__name__)

MAX_RESUME_TEXT_CHARS = 9000
GENERATION_ERROR_MESSAGE = "Failed to generate resume design. Please try again."


def _resolve_llm(llm: Any) -> Any:
    if llm is not None:
        return llm
    from resume_agent.agent.llm_factory import get_llm
    return get_llm()


def build_design_prompt(
    template: str,
    user_prompt: str,
    resume_text: str = "",
    current_document: Optional[Dict[str, Any]] = None
) -> str:
    """拼装生成提示词，原始简历文本截断到 9000 字符"""
    safe_resume_text = (resume_text or "")[:MAX_RESUME_TEXT_CHARS]
    if current_document:
        previous_design = PREVIOUS_DESIGN_TEMPLATE.format(
            document=json.dumps(current_document, ensure_ascii=False)
        )
    else:
        previous_design = NO_PREVIOUS_DESIGN
    return template.format(
        user_prompt=user_prompt,
        resume_text=safe_resume_text,
        previous_design=previous_design,
    )


def generate_resume_design(
    user_prompt: str,
    resume_text: str = "",
    current_document: Optional[Dict[str, Any]] = None,
    llm: Any = None
) -> Dict[str, Any]:
    """
    一次性生成文档

    Args:
        user_prompt: 用户的设计 / 内容要求
        resume_text: 原始简历文本（提示词信息不足时的后备来源）
        current_document: 当前文档（迭代修改时提供）
        llm: 聊天模型（可选）

    Returns:
        清洗后的文档字典

    Raises:
        GenerationError: 调用失败或返回不是 JSON 对象
    """
    from resume_agent.services.document_sanitizer import sanitize_document

    prompt = build_design_prompt(RESUME_DESIGN_PROMPT, user_prompt, resume_text, current_document)
    try:
        response = _resolve_llm(llm).invoke([HumanMessage(content=prompt)])
        parsed = json.loads(strip_code_fences(message_text(response)))
        if not isinstance(parsed, dict):
            raise ValueError("design must be a JSON object")
        return sanitize_document(parsed)
    except Exception as e:
        logger.error("[Generation] 文档生成失败: %s", e)
        raise GenerationError(GENERATION_ERROR_MESSAGE) from e


def generate_resume_design_stream(
    user_prompt: str,
    resume_text: str = "",
    current_document: Optional[Dict[str, Any]] = None,
    llm: Any = None
) -> Iterator[str]:
    """
    流式生成

    Yields:
        str: 模型输出的文本片段，按到达顺序
    """
    prompt = build_design_prompt(RESUME_DESIGN_STREAM_PROMPT, user_prompt, resume_text, current_document)
    for chunk in _resolve_llm(llm).stream([HumanMessage(content=prompt)]):
        text = message_text(chunk)
        if text:
            yield text

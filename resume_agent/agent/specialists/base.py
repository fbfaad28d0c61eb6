"""
专家 Agent 基类

四个专家共享同一能力：根据用户原话和上下文产出工具调用意图。
子类只提供角色名和提示词模板。
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

from langchain_core.messages import HumanMessage
from pydantic import ValidationError

from resume_agent.agent.json_utils import find_first_json_object
from resume_agent.agent.models import AgentIntent

logger = logging.getLogger(__name__)

PARSE_ERROR_REASONING = "parse error"


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def message_text(response: Any) -> str:
    """兼容 AIMessage / 字符串 / 分段 content 的文本提取"""
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict):
                parts.append(str(part.get("text", "")))
            else:
                parts.append(str(part))
        return "".join(parts)
    return content if isinstance(content, str) else str(content or "")


class SpecialistAgent:
    """
    专家 Agent 基类

    使用示例：
        agent = ResumeEditAgent(llm=get_llm())
        intent = agent.process("Fix the typo in my summary", context)
        for tool in intent.tools:
            print(tool.name, tool.parameters)
    """

    role: str = "resume_specialist"
    prompt_template: str = ""

    def __init__(self, llm: Any = None, llm_provider: Optional[Callable[[], Any]] = None):
        """
        Args:
            llm: LangChain 聊天模型实例（可选）
            llm_provider: 延迟创建模型的函数（可选），默认使用 get_llm
        """
        self._llm = llm
        self._llm_provider = llm_provider

    @property
    def llm(self) -> Any:
        if self._llm is None:
            if self._llm_provider is None:
                from resume_agent.agent.llm_factory import get_llm
                self._llm_provider = get_llm
            self._llm = self._llm_provider()
        return self._llm

    def build_prompt(self, user_input: str, context: Dict[str, Any]) -> str:
        """用角色模板和上下文拼装提示词"""
        return self.prompt_template.format(
            user_input=user_input,
            current_resume=_to_json(self._current_document(context)),
            user_profile=_to_json(context.get("user_profile")),
            previous_inputs=_to_json(context.get("previous_inputs", [])),
        )

    def process(self, user_input: str, context: Dict[str, Any]) -> AgentIntent:
        """
        调用外部模型并解析出工具调用意图

        模型调用本身的异常向上抛出（由编排器包装）；
        返回文本无法解析时降级为空意图，不抛异常

        Args:
            user_input: 用户原话
            context: 对话上下文

        Returns:
            AgentIntent
        """
        prompt = self.build_prompt(user_input, context)
        response = self.llm.invoke([HumanMessage(content=prompt)])
        return self.parse_response(message_text(response))

    def parse_response(self, text: str) -> AgentIntent:
        """
        定位第一个顶层 JSON 对象并解析为 AgentIntent

        Returns:
            AgentIntent；缺失或解析失败时 tools=[]、reasoning="parse error"
        """
        candidate = find_first_json_object(text or "")
        if candidate is None:
            logger.warning("[%s] 模型返回中没有 JSON 对象", self.role)
            return AgentIntent(tools=[], reasoning=PARSE_ERROR_REASONING)

        try:
            payload = json.loads(candidate)
            if not isinstance(payload, dict):
                raise ValueError("intent must be a JSON object")
            return AgentIntent.model_validate({
                "tools": payload.get("tools") or [],
                "reasoning": str(payload.get("reasoning") or ""),
            })
        except (ValueError, ValidationError) as e:
            logger.warning("[%s] 意图解析失败: %s", self.role, e)
            return AgentIntent(tools=[], reasoning=PARSE_ERROR_REASONING)

    @staticmethod
    def _current_document(context: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """当前文档的精简视图：只带模型需要的字段"""
        current = context.get("current_resume")
        if not current:
            return None
        return {
            "id": current.get("id"),
            "title": current.get("title"),
            "version": current.get("version"),
            "metadata": current.get("metadata"),
            "document": current.get("code"),
        }

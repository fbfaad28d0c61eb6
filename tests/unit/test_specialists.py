"""
专家 Agent 单元测试
验证提示词拼装和模型输出解析
"""

import json
from unittest.mock import Mock

import pytest

from resume_agent.agent.models import AgentIntent
from resume_agent.agent.specialists import (
    PARSE_ERROR_REASONING,
    ResumeCreationAgent,
    ResumeDesignAgent,
    ResumeEditAgent,
    ResumeOptimizationAgent,
)
from resume_agent.agent.state import get_empty_context


@pytest.fixture
def context_with_resume(sample_document):
    context = get_empty_context()
    context["current_resume"] = {
        "id": 7,
        "title": "Jane Doe - modern",
        "version": 3,
        "metadata": {"template": "modern"},
        "code": json.dumps(sample_document),
    }
    context["previous_inputs"] = [{"text": "I am a data analyst", "timestamp": None}]
    return context


class TestParseResponse:
    """测试模型输出解析"""

    def test_parse_valid_intent(self, mock_llm):
        """测试散文包裹的意图 JSON"""
        agent = ResumeEditAgent(llm=mock_llm)
        text = 'Okay!\n{"tools": [{"name": "update_resume_section", "parameters": {"section": "Skills"}}], "reasoning": "edit skills"}\nDone.'

        intent = agent.parse_response(text)

        assert isinstance(intent, AgentIntent)
        assert intent.reasoning == "edit skills"
        assert intent.tools[0].name == "update_resume_section"
        assert intent.tools[0].parameters == {"section": "Skills"}

    def test_parse_missing_json(self, mock_llm):
        """测试没有 JSON 时降级为空意图"""
        intent = ResumeCreationAgent(llm=mock_llm).parse_response("I cannot help with that")

        assert intent.tools == []
        assert intent.reasoning == PARSE_ERROR_REASONING

    def test_parse_malformed_json(self, mock_llm):
        """测试 JSON 语法错误时降级"""
        intent = ResumeCreationAgent(llm=mock_llm).parse_response('{"tools": [}')
        assert intent.reasoning == "parse error"

    def test_parse_invalid_tool_shape(self, mock_llm):
        """测试工具结构不合法时降级"""
        intent = ResumeDesignAgent(llm=mock_llm).parse_response('{"tools": [{"parameters": {}}], "reasoning": "x"}')
        assert intent.tools == []
        assert intent.reasoning == PARSE_ERROR_REASONING

    def test_parse_defaults(self, mock_llm):
        """测试缺少字段时使用默认值"""
        intent = ResumeOptimizationAgent(llm=mock_llm).parse_response("{}")
        assert intent.tools == []
        assert intent.reasoning == ""


class TestProcess:
    """测试完整调用流程"""

    def test_process_calls_llm_with_prompt(self, mock_llm, context_with_resume):
        """测试提示词包含用户原话和当前文档"""
        mock_llm.invoke.return_value = Mock(
            content='{"tools": [{"name": "apply_template", "parameters": {"template": "creative"}}], "reasoning": "restyle"}'
        )
        agent = ResumeDesignAgent(llm=mock_llm)

        intent = agent.process("Make it creative", context_with_resume)

        prompt = mock_llm.invoke.call_args[0][0][0].content
        assert "Make it creative" in prompt
        assert "Jane Doe - modern" in prompt
        assert intent.tools[0].parameters["template"] == "creative"

    def test_creator_prompt_includes_previous_inputs(self, mock_llm, context_with_resume):
        """测试 creator 提示词包含最近输入"""
        agent = ResumeCreationAgent(llm=mock_llm)
        prompt = agent.build_prompt("Build my resume", context_with_resume)

        assert "Build my resume" in prompt
        assert "I am a data analyst" in prompt

    def test_prompt_without_current_document(self, mock_llm):
        """测试没有当前文档时提示词中为 null"""
        prompt = ResumeEditAgent(llm=mock_llm).build_prompt("Fix typo", get_empty_context())
        assert "Current Resume: null" in prompt

    def test_process_parse_failure_does_not_raise(self, mock_llm):
        """测试模型返回垃圾文本时不抛异常"""
        mock_llm.invoke.return_value = Mock(content="garbage")
        intent = ResumeEditAgent(llm=mock_llm).process("fix", get_empty_context())
        assert intent.reasoning == PARSE_ERROR_REASONING

    def test_llm_error_propagates(self, mock_llm):
        """测试模型调用异常向上抛出"""
        mock_llm.invoke.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(RuntimeError):
            ResumeEditAgent(llm=mock_llm).process("fix", get_empty_context())

    def test_segmented_content(self, mock_llm):
        """测试分段 content（Gemini 风格）"""
        mock_llm.invoke.return_value = Mock(content=[
            {"type": "text", "text": '{"tools": [], '},
            {"type": "text", "text": '"reasoning": "nothing"}'},
        ])
        intent = ResumeOptimizationAgent(llm=mock_llm).process("improve", get_empty_context())
        assert intent.reasoning == "nothing"

    def test_lazy_llm_provider(self, mock_llm):
        """测试延迟创建模型"""
        provider = Mock(return_value=mock_llm)
        agent = ResumeCreationAgent(llm_provider=provider)

        provider.assert_not_called()
        agent.process("hello", get_empty_context())
        agent.process("again", get_empty_context())
        provider.assert_called_once()

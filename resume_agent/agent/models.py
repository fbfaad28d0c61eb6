"""
Agent 数据模型 - 工具调用意图

该模块定义了专家 Agent 与工具执行层之间传递的数据结构。
工具调用本身是纯数据，副作用只发生在 ToolExecutor 内部。
"""

from typing import Any, Dict, List, Optional, TypedDict

from pydantic import BaseModel, Field


class ToolInvocation(BaseModel):
    """
    工具调用 - 专家 Agent 请求执行的一次具名操作

    参数键名沿用模型输出的 camelCase（personalInfo、colorScheme、targetRole 等）
    """
    name: str = Field(description="注册表中的工具名，例如 create_resume_structure")
    parameters: Dict[str, Any] = Field(
        default_factory=dict,
        description="工具参数"
    )


class AgentIntent(BaseModel):
    """
    专家 Agent 的输出

    模型返回无法解析时，tools 为空、reasoning 为 "parse error"，
    本轮降级为无操作而不是报错。
    """
    tools: List[ToolInvocation] = Field(
        default_factory=list,
        description="按顺序执行的工具调用列表，后面的调用可以依赖前面调用持久化的结果"
    )
    reasoning: str = Field(
        default="",
        description="调用这些工具的理由"
    )


class ToolResult(TypedDict, total=False):
    """
    单次工具调用的执行记录

    一批 N 个调用恰好产生 N 条记录，每条独立成功或失败
    """
    tool_call: Any  # 规整后的 {name, parameters}；无法规整时为原始调用
    success: bool
    result: Optional[Dict[str, Any]]
    error: Optional[str]

"""
意图路由

根据用户原话决定由哪个专家 Agent 处理本轮请求。
分类策略是可替换的对象，后续可以换成结构化分类器而不改变编排流程。
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class AgentType(str, Enum):
    """专家 Agent 角色枚举"""
    CREATOR = "creator"
    EDITOR = "editor"
    DESIGNER = "designer"
    OPTIMIZER = "optimizer"


# 有序规则：先匹配者胜出
# 设计类词汇优先于编辑类词汇，"change the color" 路由到 designer 而不是 editor
DEFAULT_ROUTING_RULES: List[Tuple[AgentType, Tuple[str, ...]]] = [
    (AgentType.DESIGNER, ("design", "template", "layout", "color", "style")),
    (AgentType.EDITOR, ("edit", "change", "update", "modify", "fix")),
    (AgentType.OPTIMIZER, ("optimize", "ats", "keywords", "improve")),
]


class IntentClassifier(ABC):
    """意图分类策略基类"""

    @abstractmethod
    def classify(self, user_input: str, context: Optional[Dict[str, Any]] = None) -> AgentType:
        """把用户原话映射到专家角色"""


class KeywordIntentClassifier(IntentClassifier):
    """
    关键词分类器

    对小写后的原话做子串匹配，按规则顺序第一个命中的角色胜出，
    全部未命中时回落到默认角色（creator）。同一输入永远得到同一结果。
    """

    def __init__(
        self,
        rules: Optional[Sequence[Tuple[AgentType, Sequence[str]]]] = None,
        default: AgentType = AgentType.CREATOR
    ):
        self.rules = list(rules) if rules is not None else list(DEFAULT_ROUTING_RULES)
        self.default = default

    def classify(self, user_input: str, context: Optional[Dict[str, Any]] = None) -> AgentType:
        text = (user_input or "").lower()
        for agent_type, keywords in self.rules:
            if any(keyword in text for keyword in keywords):
                return agent_type
        return self.default


def router_decision_function(state: Dict[str, Any]) -> str:
    """
    路由决策函数：读取分类节点写入的 agent_type，决定下一个节点

    Args:
        state: 编排状态，包含 agent_type

    Returns:
        目标节点名称字符串
    """
    agent_type = AgentType(state.get("agent_type") or AgentType.CREATOR)
    return f"{agent_type.value}_node"

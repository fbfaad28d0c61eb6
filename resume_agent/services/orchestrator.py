"""
Agent 编排服务

把一次用户请求串成完整流水线：读取上下文 -> 意图分类 -> 专家产出工具调用
-> 执行工具 -> 合并上下文。流水线本身是一张 LangGraph 工作流图，
这里提供各节点的实现。
"""

import logging
from typing import Any, Dict, List, Optional

from resume_agent.agent.graph import create_orchestrator_graph
from resume_agent.agent.models import AgentIntent
from resume_agent.agent.prompts import AGENT_CAPABILITIES
from resume_agent.agent.router import AgentType, IntentClassifier, KeywordIntentClassifier
from resume_agent.agent.specialists import (
    ResumeCreationAgent,
    ResumeDesignAgent,
    ResumeEditAgent,
    ResumeOptimizationAgent,
    SpecialistAgent,
)
from resume_agent.agent.state import OrchestratorState, SessionContext
from resume_agent.exceptions import OrchestrationError
from resume_agent.models.base import utc_now
from resume_agent.services.context_manager import ContextManager
from resume_agent.services.tool_executor import ToolExecutor

logger = logging.getLogger(__name__)


class AgentOrchestrator:
    """
    编排器

    使用示例：
        orchestrator = AgentOrchestrator(engine, llm=get_llm())
        result = orchestrator.process_request(
            "Create a resume for Jane, a data analyst",
            {"conversation_id": 3, "user_id": "user-1"}
        )
        print(result["agent_type"], result["reasoning"])
    """

    def __init__(
        self,
        engine=None,
        llm: Any = None,
        classifier: Optional[IntentClassifier] = None,
        agents: Optional[Dict[AgentType, SpecialistAgent]] = None,
        tool_executor: Optional[ToolExecutor] = None,
        context_manager: Optional[ContextManager] = None
    ):
        """
        Args:
            engine: SQLAlchemy 引擎（可选）
            llm: 专家共用的聊天模型（可选），默认延迟创建
            classifier: 意图分类策略（可选），默认关键词分类
            agents: 角色到专家的映射（可选）
            tool_executor: 工具执行器（可选）
            context_manager: 上下文管理器（可选）
        """
        self.classifier = classifier or KeywordIntentClassifier()
        self.agents: Dict[AgentType, SpecialistAgent] = agents or {
            AgentType.CREATOR: ResumeCreationAgent(llm=llm),
            AgentType.EDITOR: ResumeEditAgent(llm=llm),
            AgentType.DESIGNER: ResumeDesignAgent(llm=llm),
            AgentType.OPTIMIZER: ResumeOptimizationAgent(llm=llm),
        }
        self.tool_executor = tool_executor or ToolExecutor(engine)
        self.context_manager = context_manager or ContextManager(engine)

        self.graph = create_orchestrator_graph(
            load_context_node=self.load_context_node,
            classify_node=self.classify_node,
            agent_nodes={agent_type: self._make_agent_node(agent_type) for agent_type in AgentType},
            execute_tools_node=self.execute_tools_node,
            update_context_node=self.update_context_node,
        )

    # ------------------------------------------------------------ 对外接口

    def process_request(self, user_input: str, session_context: SessionContext) -> Dict[str, Any]:
        """
        处理一次用户请求

        Args:
            user_input: 用户原话
            session_context: {conversation_id, user_id}

        Returns:
            {agent_type, reasoning, tool_results, artifacts}，
            artifacts 为成功且产出交付物的执行记录

        Raises:
            OrchestrationError: 流水线任意环节失败
        """
        try:
            final_state = self.graph.invoke({
                "user_input": user_input,
                "session_context": session_context,
            })
        except Exception as e:
            logger.error("[AgentOrchestrator] 编排失败: %s", e)
            raise OrchestrationError(str(e)) from e

        intent: AgentIntent = final_state.get("intent") or AgentIntent()
        tool_results = final_state.get("tool_results") or []
        return {
            "agent_type": final_state.get("agent_type"),
            "reasoning": intent.reasoning,
            "tool_results": tool_results,
            "artifacts": [
                record for record in tool_results
                if record.get("success") and (record.get("result") or {}).get("artifact")
            ],
        }

    def determine_agent(self, user_input: str, context: Optional[Dict[str, Any]] = None) -> AgentType:
        return self.classifier.classify(user_input, context)

    @staticmethod
    def get_agent_capabilities() -> Dict[str, str]:
        return dict(AGENT_CAPABILITIES)

    # ------------------------------------------------------------ 图节点

    def load_context_node(self, state: OrchestratorState) -> Dict[str, Any]:
        conversation_id = state["session_context"]["conversation_id"]
        return {"context": self.context_manager.get_context(conversation_id)}

    def classify_node(self, state: OrchestratorState) -> Dict[str, Any]:
        agent_type = self.determine_agent(state["user_input"], state.get("context"))
        logger.info("[AgentOrchestrator] 路由到 %s", agent_type.value)
        return {"agent_type": agent_type.value}

    def _make_agent_node(self, agent_type: AgentType):
        def agent_node(state: OrchestratorState) -> Dict[str, Any]:
            agent = self.agents[agent_type]
            agent_context = dict(state.get("context") or {})
            agent_context["user_input"] = state["user_input"]
            agent_context["session_context"] = state["session_context"]
            intent = agent.process(state["user_input"], agent_context)
            logger.info(
                "[AgentOrchestrator] %s 请求 %d 个工具调用",
                agent_type.value, len(intent.tools)
            )
            return {"intent": intent}

        agent_node.__name__ = f"{agent_type.value}_node"
        return agent_node

    def execute_tools_node(self, state: OrchestratorState) -> Dict[str, Any]:
        intent: AgentIntent = state.get("intent") or AgentIntent()
        session_context = state["session_context"]
        tool_results: List[Dict[str, Any]] = self.tool_executor.execute_batch(
            intent.tools,
            {
                "user_id": session_context["user_id"],
                "conversation_id": session_context["conversation_id"],
            },
        )
        return {"tool_results": tool_results}

    def update_context_node(self, state: OrchestratorState) -> Dict[str, Any]:
        updated = self.context_manager.update_context(
            state["session_context"]["conversation_id"],
            {
                "user_input": state["user_input"],
                "agent_type": state.get("agent_type"),
                "tool_results": state.get("tool_results") or [],
                "timestamp": utc_now(),
            },
        )
        return {"context": updated}

"""
LangGraph 编排工作流定义

一次请求的流程：
    load_context_node -> classify_node -> (router_decision_function)
        -> creator_node / editor_node / designer_node / optimizer_node
        -> execute_tools_node -> update_context_node -> END

节点实现由 AgentOrchestrator 提供，这里只负责连线。
"""

from typing import Any, Callable, Dict

from langgraph.graph import END, StateGraph

from resume_agent.agent.router import AgentType, router_decision_function
from resume_agent.agent.state import OrchestratorState

NodeFunction = Callable[[Dict[str, Any]], Dict[str, Any]]


def agent_node_name(agent_type: AgentType) -> str:
    return f"{AgentType(agent_type).value}_node"


def create_orchestrator_graph(
    load_context_node: NodeFunction,
    classify_node: NodeFunction,
    agent_nodes: Dict[AgentType, NodeFunction],
    execute_tools_node: NodeFunction,
    update_context_node: NodeFunction
):
    """
    创建编排工作流图

    工作流说明：
    1. load_context_node (入口) - 读取对话上下文（缓存优先）
    2. classify_node - 把用户原话分类为专家角色
    3. router_decision_function - 按分类结果选择专家节点
    4. 专家节点 - 调用模型产出工具调用意图
    5. execute_tools_node - 按顺序执行工具调用
    6. update_context_node - 合并结果到上下文

    Args:
        agent_nodes: 每个专家角色对应的节点函数，必须覆盖全部 AgentType

    Returns:
        编译后的 LangGraph 应用
    """
    workflow = StateGraph(OrchestratorState)

    workflow.add_node("load_context_node", load_context_node)
    workflow.add_node("classify_node", classify_node)
    for agent_type in AgentType:
        workflow.add_node(agent_node_name(agent_type), agent_nodes[agent_type])
    workflow.add_node("execute_tools_node", execute_tools_node)
    workflow.add_node("update_context_node", update_context_node)

    workflow.set_entry_point("load_context_node")
    workflow.add_edge("load_context_node", "classify_node")

    workflow.add_conditional_edges(
        "classify_node",
        router_decision_function,
        {agent_node_name(agent_type): agent_node_name(agent_type) for agent_type in AgentType}
    )

    for agent_type in AgentType:
        workflow.add_edge(agent_node_name(agent_type), "execute_tools_node")

    workflow.add_edge("execute_tools_node", "update_context_node")
    workflow.add_edge("update_context_node", END)

    return workflow.compile()

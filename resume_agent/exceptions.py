"""
异常定义

对应一轮对话中可能出现的失败类别：
- 生成失败：外部模型调用抛错或返回不可用文本
- 工具失败：未知工具、没有可操作的文档、交付物不存在、渲染器未配置
- 编排失败：流水线任意环节抛错，统一包装后向上抛出

解析失败（Agent 意图 JSON、流式文档 JSON）在本地降级，不在此列。
"""


class ResumeAgentError(Exception):
    """所有业务异常的基类"""


class GenerationError(ResumeAgentError):
    """外部生成调用失败"""


class DocumentNotFoundError(ResumeAgentError):
    """编辑 / 设计 / 优化时对话中没有当前文档"""

    def __init__(self, message: str = "no document found"):
        super().__init__(message)


class UnknownToolError(ResumeAgentError):
    """工具名不在注册表中"""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class ArtifactNotFoundError(ResumeAgentError):
    """指定 ID 的交付物不存在"""

    def __init__(self, artifact_id):
        self.artifact_id = artifact_id
        super().__init__(f"Artifact not found: {artifact_id}")


class RendererNotConfiguredError(ResumeAgentError):
    """请求渲染但没有注入渲染器"""

    def __init__(self, message: str = "document renderer is not configured"):
        super().__init__(message)


class OrchestrationError(ResumeAgentError):
    """
    编排失败

    携带原始错误信息，调用方直接把 str(error) 作为助手回复展示
    """

    def __init__(self, cause: str):
        self.cause = cause
        super().__init__(f"orchestration failed: {cause}")


class TurnInProgressError(ResumeAgentError):
    """同一对话上一轮尚未结束时又提交了新消息"""

"""
工具执行层

按名称注册的一组操作，专家 Agent 产出的工具调用在这里落地：
构造文档、修改章节、换模板、注入关键词、渲染、存储与版本化。

批量执行严格按顺序进行（后面的调用可能依赖前面调用写入的交付物），
每个调用的失败被单独捕获，一批 N 个调用恰好返回 N 条记录。
"""

import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Union

from resume_agent.agent.models import ToolInvocation, ToolResult
from resume_agent.exceptions import (
    ArtifactNotFoundError,
    DocumentNotFoundError,
    RendererNotConfiguredError,
    UnknownToolError,
)
from resume_agent.models.artifact import ArtifactType
from resume_agent.services import document_builder
from resume_agent.services.artifact_service import ArtifactService
from resume_agent.services.renderer import DocumentRenderer

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any], Dict[str, Any]], Dict[str, Any]]

DEFAULT_PDF_TITLE = "Generated PDF"
DEFAULT_CODE_TITLE = "Generated Code"


def _tool_call_dict(tool_call: Union[ToolInvocation, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(tool_call, ToolInvocation):
        return tool_call.model_dump()
    if not isinstance(tool_call, dict):
        raise ValueError(f"tool call must be an object, got {type(tool_call).__name__}")
    parameters = tool_call.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise ValueError("tool call parameters must be an object")
    return {"name": tool_call.get("name", ""), "parameters": dict(parameters)}


def _parse_document(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    try:
        document = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"document is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ValueError("document must be a JSON object")
    return document


class ToolExecutor:
    """
    工具执行器

    使用示例：
        executor = ToolExecutor(engine, renderer=my_renderer)
        results = executor.execute_batch(intent.tools, {"user_id": "u1", "conversation_id": 3})
        failed = [r for r in results if not r["success"]]
    """

    def __init__(
        self,
        engine=None,
        artifact_service: Optional[ArtifactService] = None,
        renderer: Optional[DocumentRenderer] = None
    ):
        """
        Args:
            engine: SQLAlchemy 引擎（可选）
            artifact_service: 交付物服务（可选），默认基于 engine 创建
            renderer: 文档渲染器（可选），generate_pdf 需要
        """
        self.artifact_service = artifact_service or ArtifactService(engine)
        self.renderer = renderer
        self.tools: Dict[str, ToolHandler] = {
            "create_resume_structure": self.create_resume_structure,
            "update_resume_section": self.update_resume_section,
            "apply_template": self.apply_template,
            "optimize_keywords": self.optimize_keywords,
            "generate_pdf": self.generate_pdf,
            "store_artifact": self.store_artifact,
            "version_artifact": self.version_artifact,
            "generate_code": self.generate_code,
            "render_artifact": self.render_artifact,
        }

    def register_tool(self, name: str, handler: ToolHandler) -> None:
        """注册额外工具，同名覆盖"""
        self.tools[name] = handler

    @property
    def tool_names(self) -> List[str]:
        return list(self.tools)

    # ------------------------------------------------------------ 执行

    def execute(self, tool_call: Union[ToolInvocation, Dict[str, Any]], context: Dict[str, Any]) -> Dict[str, Any]:
        """
        执行单个工具调用，异常向上抛出

        Raises:
            UnknownToolError: 工具名未注册
        """
        call = _tool_call_dict(tool_call)
        handler = self.tools.get(call["name"])
        if handler is None:
            raise UnknownToolError(call["name"])
        return handler(call["parameters"], context)

    def execute_batch(
        self,
        tool_calls: List[Union[ToolInvocation, Dict[str, Any]]],
        context: Dict[str, Any]
    ) -> List[ToolResult]:
        """
        按顺序执行一批工具调用

        Args:
            tool_calls: 工具调用列表
            context: 执行上下文 {user_id, conversation_id}

        Returns:
            与输入等长的执行记录列表
        """
        results: List[ToolResult] = []
        for tool_call in tool_calls:
            # 规整失败时记录原始调用
            call = tool_call
            started = time.perf_counter()
            try:
                call = _tool_call_dict(tool_call)
                result = self.execute(call, context)
                results.append({"tool_call": call, "result": result, "success": True})
                logger.info(
                    "[ToolExecutor] %s 成功 (%.1f ms)",
                    call["name"], (time.perf_counter() - started) * 1000
                )
            except Exception as e:
                results.append({"tool_call": call, "error": str(e), "success": False})
                logger.warning(
                    "[ToolExecutor] %r 失败 (%.1f ms): %s",
                    call, (time.perf_counter() - started) * 1000, e
                )
        return results

    # ------------------------------------------------------------ 文档工具

    def _current_document(self, context: Dict[str, Any]):
        current = self.artifact_service.get_current_document(
            context["user_id"], context["conversation_id"]
        )
        if current is None:
            raise DocumentNotFoundError()
        return current, _parse_document(current["code"])

    def _apply(self, context: Dict[str, Any], document: Dict[str, Any], metadata: Dict[str, Any]) -> Dict[str, Any]:
        artifact = self.artifact_service.apply_document_version(
            context["user_id"],
            context["conversation_id"],
            document,
            metadata=metadata,
        )
        return {"resumeData": json.loads(artifact["code"]), "artifact": artifact}

    def create_resume_structure(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """从个人信息、章节列表和模板构造全新文档，持久化为 version 1"""
        personal_info = params.get("personalInfo") or {}
        template = params.get("template")
        document = document_builder.build_resume_document(
            personal_info,
            params.get("sections") or [],
            template,
        )
        title = f"{personal_info.get('name') or 'Resume'} - {template or 'Modern'}"
        artifact = self.artifact_service.create_document(
            context["user_id"],
            context["conversation_id"],
            document,
            title=title,
            metadata={"template": template, "version": 1},
        )
        return {"resumeData": json.loads(artifact["code"]), "artifact": artifact}

    def update_resume_section(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """替换当前文档的某个章节（不存在则追加）"""
        section = params.get("section")
        if not section:
            raise ValueError("section is required")
        _, document = self._current_document(context)
        document_builder.apply_section_updates(document, section, params.get("updates") or {})
        return self._apply(context, document, {"lastUpdate": section})

    def apply_template(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """更换模板样式，可选配色和版式，不改动文本内容"""
        _, document = self._current_document(context)
        template = params.get("template")
        color_scheme = params.get("colorScheme")
        layout = params.get("layout")

        document["styles"] = document_builder.get_resume_styles(template)
        if color_scheme:
            document_builder.apply_color_scheme(document["styles"], color_scheme)
        if layout:
            document_builder.apply_layout(document, layout)

        return self._apply(context, document, {
            "template": template,
            "colorScheme": color_scheme,
            "layout": layout,
        })

    def optimize_keywords(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """按关键词和目标职位增强当前文档"""
        _, document = self._current_document(context)
        keywords = params.get("keywords") or []
        target_role = params.get("targetRole")
        document_builder.enhance_with_keywords(document, keywords, target_role)
        return self._apply(context, document, {
            "optimizedFor": target_role,
            "keywords": keywords,
        })

    # ------------------------------------------------------------ 渲染与存储

    def generate_pdf(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """
        渲染文档

        文档来源依次为 resumeData、resumeCode、对话的当前文档；
        store 为真时额外保存一条 pdf 交付物
        """
        if self.renderer is None:
            raise RendererNotConfiguredError()

        if params.get("resumeData") is not None:
            document = _parse_document(params["resumeData"])
        elif params.get("resumeCode"):
            document = _parse_document(params["resumeCode"])
        else:
            _, document = self._current_document(context)

        document = self.artifact_service.sanitizer.sanitize(document)
        rendered = self.renderer.render(document)
        result = {"url": rendered.url, "size": rendered.size, "blob": rendered.blob}

        if params.get("store"):
            result["artifact"] = self.artifact_service.create_artifact(
                user_id=context["user_id"],
                artifact_type=ArtifactType.PDF,
                title=params.get("title") or DEFAULT_PDF_TITLE,
                content=document,
                conversation_id=context.get("conversation_id"),
                metadata={
                    "url": rendered.url,
                    "size": rendered.size,
                    "mimeType": rendered.mime_type,
                },
            )
        return result

    def store_artifact(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """显式保存任意类型交付物"""
        content = params.get("code", params.get("content"))
        if content is None:
            raise ValueError("code or content is required")
        artifact_type = ArtifactType(params.get("type") or ArtifactType.RESUME)
        if artifact_type == ArtifactType.RESUME:
            content = self.artifact_service.sanitizer.sanitize(_parse_document(content))
        artifact = self.artifact_service.create_artifact(
            user_id=context["user_id"],
            artifact_type=artifact_type,
            title=params.get("title") or "Untitled",
            content=content,
            conversation_id=context.get("conversation_id"),
            metadata=params.get("metadata"),
        )
        return {"artifact": artifact}

    def version_artifact(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """为已有交付物写入新版本"""
        artifact_id = params.get("artifactId")
        existing = self.artifact_service.get_by_id(artifact_id) if artifact_id is not None else None
        if existing is None:
            raise ArtifactNotFoundError(artifact_id)

        content = params.get("code", params.get("content"))
        if content is None:
            raise ValueError("code or content is required")

        metadata = dict(existing.get("metadata") or {})
        metadata.update(params.get("metadata") or {})
        if existing["type"] == ArtifactType.RESUME.value:
            artifact = self.artifact_service.update_document(artifact_id, _parse_document(content), metadata=metadata)
            return {"resumeData": json.loads(artifact["code"]), "artifact": artifact}

        artifact = self.artifact_service.update_artifact(artifact_id, content, metadata=metadata)
        return {"artifact": artifact}

    def generate_code(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """保存代码片段交付物"""
        code = params.get("code")
        if not code:
            raise ValueError("code is required")
        language = params.get("language") or params.get("type") or "javascript"
        artifact = self.artifact_service.create_artifact(
            user_id=context["user_id"],
            artifact_type=ArtifactType.CODE,
            title=params.get("title") or DEFAULT_CODE_TITLE,
            content=code,
            conversation_id=context.get("conversation_id"),
            metadata={"language": language},
        )
        return {"artifact": artifact}

    def render_artifact(self, params: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        """按类型返回交付物的展示形式"""
        artifact_id = params.get("artifactId")
        artifact = self.artifact_service.get_by_id(artifact_id) if artifact_id is not None else None
        if artifact is None:
            raise ArtifactNotFoundError(artifact_id)

        if artifact["type"] == ArtifactType.PDF.value:
            return {"type": "pdf", "url": (artifact.get("metadata") or {}).get("url")}
        if artifact["type"] == ArtifactType.CODE.value:
            return {"type": "code", "code": artifact["code"]}
        return {"type": "text", "content": artifact["code"]}

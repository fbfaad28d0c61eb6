"""
工具执行层单元测试
使用内存数据库和假渲染器
"""

import json

import pytest

from resume_agent.agent.models import ToolInvocation
from resume_agent.exceptions import RendererNotConfiguredError, UnknownToolError
from resume_agent.services.document_builder import find_section
from resume_agent.services.renderer import PDF_MIME_TYPE
from resume_agent.services.tool_executor import ToolExecutor


FLAT_DOCUMENT = {
    "content": [
        {"text": "Jane Doe", "style": "header"},
        {"text": "EXPERIENCE", "style": "sectionHeader"},
        {"text": "Analyst | Acme", "style": "jobTitle"},
    ],
}


def call(name, **parameters):
    return {"name": name, "parameters": parameters}


class TestExecuteBatch:
    """测试批量执行"""

    def test_one_record_per_call(self, tool_executor, session_context, sample_resume_params):
        """测试 3 个调用中第 2 个失败，仍返回 3 条记录且第 3 个正常执行"""
        results = tool_executor.execute_batch([
            call("create_resume_structure", **sample_resume_params),
            call("update_resume_section", updates={"content": "x"}),
            call("apply_template", template="creative"),
        ], session_context)

        assert len(results) == 3
        assert [r["success"] for r in results] == [True, False, True]
        assert results[1]["error"] == "section is required"
        assert results[2]["result"]["artifact"]["version"] == 2

    def test_unknown_tool(self, tool_executor, session_context):
        """测试未注册的工具名"""
        results = tool_executor.execute_batch([call("x")], session_context)

        assert results == [{"tool_call": {"name": "x", "parameters": {}}, "error": "Unknown tool: x", "success": False}]

    def test_empty_batch(self, tool_executor, session_context):
        """测试空批次"""
        assert tool_executor.execute_batch([], session_context) == []

    def test_accepts_tool_invocations(self, tool_executor, session_context, sample_resume_params):
        """测试接受 ToolInvocation 对象"""
        results = tool_executor.execute_batch(
            [ToolInvocation(name="create_resume_structure", parameters=sample_resume_params)],
            session_context
        )
        assert results[0]["success"] is True
        assert results[0]["tool_call"]["name"] == "create_resume_structure"

    def test_malformed_call_isolated(self, tool_executor, session_context):
        """测试无法规整的调用记为失败，不影响前后调用"""
        bad_parameters = {"name": "generate_code", "parameters": ["oops"]}
        results = tool_executor.execute_batch([
            call("generate_code", code="a = 1"),
            bad_parameters,
            "generate_code",
            call("generate_code", code="b = 2"),
        ], session_context)

        assert [r["success"] for r in results] == [True, False, False, True]
        assert results[1]["tool_call"] == bad_parameters
        assert results[1]["error"] == "tool call parameters must be an object"
        assert results[2]["tool_call"] == "generate_code"
        assert results[2]["error"] == "tool call must be an object, got str"
        assert results[3]["result"]["artifact"]["code"] == "b = 2"

    def test_execute_raises_unknown_tool(self, tool_executor, session_context):
        """测试单个执行时异常向上抛出"""
        with pytest.raises(UnknownToolError):
            tool_executor.execute(call("nope"), session_context)

    def test_register_tool(self, tool_executor, session_context):
        """测试注册额外工具"""
        tool_executor.register_tool("echo", lambda params, context: {"echo": params["value"]})

        results = tool_executor.execute_batch([call("echo", value=42)], session_context)

        assert results[0]["result"] == {"echo": 42}
        assert "echo" in tool_executor.tool_names


class TestDocumentTools:
    """测试文档类工具"""

    def test_create_resume_structure(self, tool_executor, session_context, sample_resume_params):
        """测试构造全新文档"""
        result = tool_executor.execute(call("create_resume_structure", **sample_resume_params), session_context)

        artifact = result["artifact"]
        assert artifact["version"] == 1
        assert artifact["title"] == "Jane Doe - modern"
        assert artifact["metadata"] == {"template": "modern", "version": 1}
        assert result["resumeData"]["pageSize"] == "A4"
        assert json.loads(artifact["code"]) == result["resumeData"]

    def test_create_default_title(self, tool_executor, session_context):
        """测试缺少姓名和模板时的标题"""
        result = tool_executor.execute(call("create_resume_structure"), session_context)
        assert result["artifact"]["title"] == "Resume - Modern"

    @pytest.mark.parametrize("tool", ["update_resume_section", "apply_template", "optimize_keywords"])
    def test_no_document_found(self, tool_executor, session_context, tool):
        """测试对话中没有文档时修改类工具失败"""
        parameters = {"section": "Skills"} if tool == "update_resume_section" else {}
        results = tool_executor.execute_batch([call(tool, **parameters)], session_context)

        assert results[0]["success"] is False
        assert results[0]["error"] == "no document found"

    def test_update_section_increments_version(self, tool_executor, session_context, test_resume_artifact):
        """测试修改章节后版本 +1，元数据合并"""
        result = tool_executor.execute(
            call("update_resume_section", section="Experience", updates={"content": "Senior Analyst"}),
            session_context
        )

        artifact = result["artifact"]
        assert artifact["id"] == test_resume_artifact.id
        assert artifact["version"] == 2
        assert artifact["metadata"] == {"template": "modern", "version": 1, "lastUpdate": "Experience"}
        stack = result["resumeData"]["content"][0]["stack"]
        assert stack[-1]["text"] == "Senior Analyst"

    def test_apply_template(self, tool_executor, session_context, test_resume_artifact):
        """测试换模板只改样式"""
        result = tool_executor.execute(
            call("apply_template", template="creative", colorScheme="green", layout="compact"),
            session_context
        )

        document = result["resumeData"]
        assert document["styles"]["header"]["color"] == "#059669"
        assert document["pageMargins"] == [30, 30, 30, 30]
        assert document["content"][0]["stack"][0]["text"] == "Jane Doe"
        assert result["artifact"]["metadata"]["template"] == "creative"
        assert result["artifact"]["metadata"]["layout"] == "compact"

    def test_optimize_keywords(self, tool_executor, session_context, test_resume_artifact):
        """测试关键词增强与元数据"""
        result = tool_executor.execute(
            call("optimize_keywords", keywords=["Tableau"], targetRole="BI Analyst"),
            session_context
        )

        assert result["artifact"]["metadata"]["optimizedFor"] == "BI Analyst"
        assert result["artifact"]["metadata"]["keywords"] == ["Tableau"]
        assert "Tableau" in result["artifact"]["code"]

    def test_flat_document_sections(self, tool_executor, artifact_service, session_context):
        """测试章节平铺在顶层的文档：新增章节、再次修改、关键词增强都保留下来"""
        artifact_service.create_document(
            session_context["user_id"], session_context["conversation_id"], FLAT_DOCUMENT
        )

        results = tool_executor.execute_batch([
            call("update_resume_section", section="Projects", updates={"content": "Built a dashboard"}),
            call("update_resume_section", section="projects", updates={"content": "Built a Looker dashboard"}),
            call("optimize_keywords", keywords=["SQL"]),
        ], session_context)

        assert [r["success"] for r in results] == [True, True, True]
        document = results[-1]["resumeData"]
        assert len(document["content"]) == 1
        blocks, header_index, end_index = find_section(document, "Projects")
        assert blocks[header_index + 1:end_index] == [{"text": "Built a Looker dashboard", "style": "normal"}]
        blocks, header_index, end_index = find_section(document, "Core Competencies")
        assert blocks[header_index + 1:end_index] == [{"text": "SQL", "style": "skills"}]
        assert find_section(document, "Experience") is not None
        assert results[-1]["artifact"]["version"] == 4

    def test_sequential_versions(self, tool_executor, session_context, sample_resume_params):
        """测试同一批次中后面的调用看到前面写入的文档"""
        results = tool_executor.execute_batch([
            call("create_resume_structure", **sample_resume_params),
            call("update_resume_section", section="Skills", updates={"content": "SQL"}),
            call("optimize_keywords", keywords=["dbt"]),
        ], session_context)

        assert [r["result"]["artifact"]["version"] for r in results] == [1, 2, 3]
        assert len({r["result"]["artifact"]["id"] for r in results}) == 1


class TestRenderAndStorageTools:
    """测试渲染与存储类工具"""

    def test_generate_pdf_with_store(self, tool_executor, session_context, test_resume_artifact, fake_renderer):
        """测试渲染当前文档并保存 pdf 交付物"""
        result = tool_executor.execute(call("generate_pdf", store=True, title="My CV"), session_context)

        assert result["url"] == "blob:fake/1"
        assert result["size"] == len(result["blob"])
        assert fake_renderer.rendered[0]["pageSize"] == "A4"
        artifact = result["artifact"]
        assert artifact["type"] == "pdf"
        assert artifact["title"] == "My CV"
        assert artifact["metadata"] == {"url": "blob:fake/1", "size": result["size"], "mimeType": PDF_MIME_TYPE}

    def test_generate_pdf_from_params(self, tool_executor, session_context, fake_renderer):
        """测试参数中直接给出文档时不需要当前文档，且不保存"""
        result = tool_executor.execute(
            call("generate_pdf", resumeCode=json.dumps({"content": [], "pageSize": "LETTER"})),
            session_context
        )

        assert "artifact" not in result
        assert fake_renderer.rendered[0]["pageSize"] == "A4"

    def test_generate_pdf_without_renderer(self, test_db_engine, artifact_service, session_context):
        """测试未配置渲染器"""
        executor = ToolExecutor(test_db_engine, artifact_service=artifact_service)
        with pytest.raises(RendererNotConfiguredError):
            executor.execute(call("generate_pdf", resumeData={"content": []}), session_context)

    def test_store_artifact(self, tool_executor, session_context):
        """测试显式保存文本交付物"""
        result = tool_executor.execute(
            call("store_artifact", type="code", title="snippet", content="print(1)", metadata={"language": "python"}),
            session_context
        )

        assert result["artifact"]["type"] == "code"
        assert result["artifact"]["code"] == "print(1)"
        assert result["artifact"]["version"] == 1

    def test_store_resume_is_sanitized(self, tool_executor, session_context):
        """测试保存 resume 类型时清洗文档"""
        result = tool_executor.execute(
            call("store_artifact", title="Draft", content={"content": [], "pageMargins": 12}),
            session_context
        )
        assert json.loads(result["artifact"]["code"])["pageMargins"] == [12, 12, 12, 12]

    def test_version_artifact(self, tool_executor, session_context, test_resume_artifact):
        """测试为已有交付物写入新版本并合并元数据"""
        result = tool_executor.execute(
            call(
                "version_artifact",
                artifactId=test_resume_artifact.id,
                code=json.dumps({"content": [{"text": "v2"}]}),
                metadata={"note": "manual"},
            ),
            session_context
        )

        assert result["artifact"]["version"] == 2
        assert result["artifact"]["metadata"] == {"template": "modern", "version": 1, "note": "manual"}
        assert result["resumeData"]["content"] == [{"text": "v2"}]

    def test_version_missing_artifact(self, tool_executor, session_context):
        """测试交付物不存在"""
        results = tool_executor.execute_batch([call("version_artifact", artifactId=999, code="x")], session_context)
        assert results[0]["error"] == "Artifact not found: 999"

    def test_generate_code(self, tool_executor, session_context):
        """测试保存代码片段，默认语言 javascript"""
        result = tool_executor.execute(call("generate_code", code="const a = 1;"), session_context)

        assert result["artifact"]["type"] == "code"
        assert result["artifact"]["metadata"] == {"language": "javascript"}
        assert result["artifact"]["title"] == "Generated Code"

    def test_render_artifact_by_type(self, tool_executor, session_context, test_resume_artifact):
        """测试按类型返回展示形式"""
        pdf = tool_executor.execute(call("generate_pdf", store=True), session_context)["artifact"]
        code = tool_executor.execute(call("generate_code", code="x = 1", language="python"), session_context)["artifact"]

        assert tool_executor.execute(call("render_artifact", artifactId=pdf["id"]), session_context) == {
            "type": "pdf", "url": "blob:fake/1"
        }
        assert tool_executor.execute(call("render_artifact", artifactId=code["id"]), session_context) == {
            "type": "code", "code": "x = 1"
        }
        rendered = tool_executor.execute(call("render_artifact", artifactId=test_resume_artifact.id), session_context)
        assert rendered["type"] == "text"
        assert json.loads(rendered["content"])["content"][0]["stack"][0]["text"] == "Jane Doe"

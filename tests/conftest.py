"""
Pytest 测试配置
提供 Mock LLM、测试数据库、假渲染器等测试基础设施
"""

import json
from typing import Generator
from unittest.mock import Mock

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from resume_agent.db.init_db import create_tables
from resume_agent.models import Artifact, ArtifactType, Conversation, MessageRole
from resume_agent.repositories import ArtifactRepository, ConversationRepository, ProfileRepository
from resume_agent.services.artifact_service import ArtifactService
from resume_agent.services.context_manager import ContextManager
from resume_agent.services.renderer import DocumentRenderer, RenderedDocument
from resume_agent.services.tool_executor import ToolExecutor


TEST_USER_ID = "user-test-001"


# ==================== 数据库 Fixtures ====================

@pytest.fixture
def test_db_engine():
    """
    创建测试用的内存数据库引擎
    每个测试函数都会获得一个全新的数据库；StaticPool 让多个 Session 共享同一连接
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )

    create_tables(engine)

    yield engine


@pytest.fixture
def test_db_session(test_db_engine) -> Generator[Session, None, None]:
    """
    创建测试用的数据库会话
    """
    with Session(test_db_engine) as session:
        yield session


# ==================== Mock LLM Fixtures ====================

@pytest.fixture
def mock_llm():
    """
    Mock LLM 实例
    用于测试 Agent 和生成调用，避免真实调用 LLM API
    """
    mock = Mock()
    mock.invoke.return_value = Mock(content='{"tools": [], "reasoning": "nothing to do"}')
    mock.stream.return_value = iter([])
    return mock


# ==================== 渲染器 Fixtures ====================

class FakeRenderer(DocumentRenderer):
    """记录调用的假渲染器"""

    def __init__(self):
        self.rendered = []

    def render(self, document):
        self.rendered.append(document)
        blob = json.dumps(document).encode("utf-8")
        return RenderedDocument(blob=blob, url=f"blob:fake/{len(self.rendered)}", size=len(blob))

    def download(self, document, filename=None):
        return filename or "resume.pdf"


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


# ==================== Repository / Service Fixtures ====================

@pytest.fixture
def conversation_repository(test_db_session):
    return ConversationRepository(test_db_session)


@pytest.fixture
def artifact_repository(test_db_session):
    return ArtifactRepository(test_db_session)


@pytest.fixture
def profile_repository(test_db_session):
    return ProfileRepository(test_db_session)


@pytest.fixture
def artifact_service(test_db_engine):
    return ArtifactService(test_db_engine)


@pytest.fixture
def context_manager(test_db_engine):
    return ContextManager(test_db_engine)


@pytest.fixture
def tool_executor(test_db_engine, artifact_service, fake_renderer):
    return ToolExecutor(test_db_engine, artifact_service=artifact_service, renderer=fake_renderer)


# ==================== 测试数据 Fixtures ====================

@pytest.fixture
def sample_document():
    """一份最小的已清洗文档：一个简历块 + 一个无关块"""
    return {
        "pageSize": "A4",
        "pageMargins": [36, 36, 36, 36],
        "content": [
            {"stack": [
                {"text": "Jane Doe", "style": "header"},
                {"text": "EXPERIENCE", "style": "sectionHeader"},
                {"text": "Data Analyst at Acme"},
            ]},
            {"text": "References available on request"},
        ],
        "styles": {"header": {"fontSize": 22}},
    }


@pytest.fixture
def sample_resume_params():
    """create_resume_structure 的典型参数"""
    return {
        "personalInfo": {
            "name": "Jane Doe",
            "title": "Data Analyst",
            "contact": {"phone": "555-0100", "email": "jane@example.com"},
        },
        "sections": [
            {"title": "Summary", "type": "text", "content": "Analyst with 5 years of experience."},
            {
                "title": "Experience",
                "type": "experience",
                "items": [{
                    "title": "Data Analyst",
                    "company": "Acme",
                    "duration": "2020 - Present",
                    "bullets": ["Built dashboards", "Cut reporting time by 40%"],
                }],
            },
            {"title": "Skills", "type": "skills", "content": "SQL, Python"},
        ],
        "template": "modern",
    }


@pytest.fixture
def test_conversation(test_db_session) -> Conversation:
    """创建测试对话"""
    conversation = Conversation(user_id=TEST_USER_ID, title="Test Resume")
    test_db_session.add(conversation)
    test_db_session.commit()
    test_db_session.refresh(conversation)
    return conversation


@pytest.fixture
def session_context(test_conversation):
    return {"conversation_id": test_conversation.id, "user_id": TEST_USER_ID}


@pytest.fixture
def test_resume_artifact(test_db_session, test_conversation, sample_document) -> Artifact:
    """对话中已有的一份简历文档"""
    artifact = Artifact(
        type=ArtifactType.RESUME,
        title="Jane Doe - modern",
        code=json.dumps(sample_document),
        artifact_metadata={"template": "modern", "version": 1},
        user_id=TEST_USER_ID,
        conversation_id=test_conversation.id,
        version=1
    )
    test_db_session.add(artifact)
    test_db_session.commit()
    test_db_session.refresh(artifact)
    return artifact


@pytest.fixture
def test_messages(conversation_repository, test_conversation):
    """一问一答两条消息"""
    user_message = conversation_repository.create_message(
        conversation_id=test_conversation.id,
        role=MessageRole.USER,
        text="I want a professional resume"
    )
    assistant_message = conversation_repository.create_message(
        conversation_id=test_conversation.id,
        role=MessageRole.ASSISTANT,
        text="Sure, tell me about your experience"
    )
    return [user_message, assistant_message]

"""
Repository 单元测试
验证 ConversationRepository、ArtifactRepository 和 ProfileRepository 的 CRUD 操作
"""

from datetime import timedelta

from sqlmodel import select

from resume_agent.models import Artifact, ArtifactType, Message, MessageRole, UserProfile
from resume_agent.repositories.conversation_repository import _as_aware

TEST_USER_ID = "user-test-001"


class TestConversationRepository:
    """测试 ConversationRepository"""

    def test_create_conversation(self, conversation_repository):
        """测试创建对话"""
        conversation = conversation_repository.create_conversation(user_id="user-1", title="CV")

        assert conversation.id is not None
        assert conversation.title == "CV"

    def test_get_all_conversations_by_user_order(self, conversation_repository):
        """测试对话列表按 updated_at 倒序"""
        first = conversation_repository.create_conversation(user_id="user-1", title="first")
        second = conversation_repository.create_conversation(user_id="user-1", title="second")
        conversation_repository.create_conversation(user_id="user-2", title="other user")

        # 刷新第一个对话，它应该排到最前
        conversation_repository.touch_conversation(first.id)

        conversations = conversation_repository.get_all_conversations_by_user("user-1")
        assert [c.id for c in conversations] == [first.id, second.id]

    def test_update_conversation_title(self, conversation_repository, test_conversation):
        """测试更新标题"""
        updated = conversation_repository.update_conversation_title(test_conversation.id, "Renamed")
        assert updated.title == "Renamed"

    def test_update_title_missing(self, conversation_repository):
        """测试更新不存在的对话返回 None"""
        assert conversation_repository.update_conversation_title(9999, "x") is None

    def test_ensure_conversation_exists_returns_existing(self, conversation_repository, test_conversation):
        """测试已有对话直接返回"""
        conversation = conversation_repository.ensure_conversation_exists(
            user_id=TEST_USER_ID,
            conversation_id=test_conversation.id
        )
        assert conversation.id == test_conversation.id

    def test_ensure_conversation_exists_creates(self, conversation_repository):
        """测试对话不存在时创建新对话"""
        conversation = conversation_repository.ensure_conversation_exists(user_id="user-1", conversation_id=424242)

        assert conversation.id is not None
        assert conversation.id != 424242
        assert conversation.title == "New Resume"

    def test_messages_strictly_increasing(self, conversation_repository, test_conversation):
        """测试同一对话内消息创建时间严格递增"""
        messages = [
            conversation_repository.create_message(test_conversation.id, MessageRole.USER, f"msg {i}")
            for i in range(5)
        ]

        times = [_as_aware(m.created_at) for m in messages]
        assert all(earlier < later for earlier, later in zip(times, times[1:]))

    def test_message_timestamp_bumped_when_clock_behind(self, conversation_repository, test_conversation):
        """测试最新消息时间在未来时，新消息时间为其 +1 微秒"""
        first = conversation_repository.create_message(test_conversation.id, MessageRole.USER, "first")
        future = _as_aware(first.created_at) + timedelta(hours=1)
        first.created_at = future
        conversation_repository.session.add(first)
        conversation_repository.session.commit()

        second = conversation_repository.create_message(test_conversation.id, MessageRole.ASSISTANT, "second")
        assert _as_aware(second.created_at) == future + timedelta(microseconds=1)

    def test_get_messages_in_order(self, conversation_repository, test_conversation, test_messages):
        """测试按创建时间正序读取消息"""
        messages = conversation_repository.get_messages_by_conversation_id(test_conversation.id)

        assert [m.text for m in messages] == [m.text for m in test_messages]
        assert messages[0].role == MessageRole.USER

    def test_create_message_with_resume_data(self, conversation_repository, test_conversation):
        """测试消息附带文档快照"""
        message = conversation_repository.create_message(
            test_conversation.id,
            MessageRole.ASSISTANT,
            "Here you go",
            resume_data={"pageSize": "A4", "content": []}
        )
        loaded = conversation_repository.get_message_by_id(message.id)
        assert loaded.resume_data == {"pageSize": "A4", "content": []}

    def test_delete_conversation_cascades(
        self, conversation_repository, test_conversation, test_messages, test_resume_artifact, profile_repository
    ):
        """测试删除对话级联删除消息、交付物和画像"""
        profile_repository.upsert_for_conversation(test_conversation.id, {"name": "Jane"})

        assert conversation_repository.delete_conversation(test_conversation.id) is True

        session = conversation_repository.session
        assert session.exec(select(Message)).all() == []
        assert session.exec(select(Artifact)).all() == []
        assert session.exec(select(UserProfile)).all() == []
        assert conversation_repository.get_conversation_by_id(test_conversation.id) is None

    def test_delete_missing_conversation(self, conversation_repository):
        """测试删除不存在的对话"""
        assert conversation_repository.delete_conversation(9999) is False


class TestArtifactRepository:
    """测试 ArtifactRepository"""

    def test_create_artifact_version_one(self, artifact_repository, test_conversation):
        """测试创建交付物时版本号为 1"""
        artifact = artifact_repository.create(
            user_id=TEST_USER_ID,
            artifact_type=ArtifactType.RESUME,
            title="Resume",
            code="{}",
            conversation_id=test_conversation.id,
            metadata={"template": "modern"}
        )

        assert artifact.id is not None
        assert artifact.version == 1
        assert artifact.artifact_metadata == {"template": "modern"}

    def test_update_content_increments_version(self, artifact_repository, test_resume_artifact):
        """测试每次更新版本号 +1"""
        for expected in (2, 3, 4):
            updated = artifact_repository.update_content(test_resume_artifact.id, code='{"content": []}')
            assert updated.version == expected

    def test_update_content_keeps_metadata_when_omitted(self, artifact_repository, test_resume_artifact):
        """测试不传元数据时保留原值"""
        updated = artifact_repository.update_content(test_resume_artifact.id, code="{}")
        assert updated.artifact_metadata == {"template": "modern", "version": 1}

    def test_update_missing_artifact(self, artifact_repository):
        """测试更新不存在的交付物返回 None"""
        assert artifact_repository.update_content(9999, code="{}") is None

    def test_get_latest_by_conversation(self, artifact_repository, test_conversation, test_resume_artifact):
        """测试当前文档取最近更新的 resume"""
        newer = artifact_repository.create(
            user_id=TEST_USER_ID,
            artifact_type=ArtifactType.RESUME,
            title="Second",
            code="{}",
            conversation_id=test_conversation.id
        )
        assert artifact_repository.get_latest_by_conversation(test_conversation.id).id == newer.id

        # 更新旧文档后它重新成为当前文档
        artifact_repository.update_content(test_resume_artifact.id, code="{}")
        assert artifact_repository.get_latest_by_conversation(test_conversation.id).id == test_resume_artifact.id

    def test_get_latest_ignores_other_types(self, artifact_repository, test_conversation, test_resume_artifact):
        """测试 pdf 交付物不会成为当前文档"""
        artifact_repository.create(
            user_id=TEST_USER_ID,
            artifact_type=ArtifactType.PDF,
            title="Export",
            code="{}",
            conversation_id=test_conversation.id
        )
        latest = artifact_repository.get_latest_by_conversation(test_conversation.id)
        assert latest.id == test_resume_artifact.id

    def test_get_all_by_user_filters_type(self, artifact_repository, test_resume_artifact):
        """测试按类型过滤用户交付物"""
        artifact_repository.create(user_id=TEST_USER_ID, artifact_type=ArtifactType.CODE, title="c", code="x")

        assert len(artifact_repository.get_all_by_user(TEST_USER_ID)) == 2
        resumes = artifact_repository.get_all_by_user(TEST_USER_ID, artifact_type=ArtifactType.RESUME)
        assert [a.id for a in resumes] == [test_resume_artifact.id]

    def test_delete(self, artifact_repository, test_resume_artifact):
        """测试删除交付物"""
        assert artifact_repository.delete(test_resume_artifact.id) is True
        assert artifact_repository.get_by_id(test_resume_artifact.id) is None
        assert artifact_repository.delete(test_resume_artifact.id) is False


class TestProfileRepository:
    """测试 ProfileRepository"""

    def test_upsert_creates(self, profile_repository, test_conversation):
        """测试首次写入创建画像"""
        profile = profile_repository.upsert_for_conversation(
            test_conversation.id,
            {"name": "Jane", "target_role": "data analyst"}
        )

        assert profile.id is not None
        assert profile.name == "Jane"
        assert profile.target_role == "data analyst"

    def test_upsert_never_overwrites_with_none(self, profile_repository, test_conversation):
        """测试空值不覆盖已有值"""
        profile_repository.upsert_for_conversation(test_conversation.id, {"name": "Jane", "title": "Analyst"})
        profile = profile_repository.upsert_for_conversation(
            test_conversation.id,
            {"name": None, "preferred_template": "creative"}
        )

        assert profile.name == "Jane"
        assert profile.title == "Analyst"
        assert profile.preferred_template == "creative"

    def test_upsert_ignores_unknown_fields(self, profile_repository, test_conversation):
        """测试未知字段被忽略"""
        profile = profile_repository.upsert_for_conversation(test_conversation.id, {"favorite_color": "red"})
        assert not hasattr(profile, "favorite_color")

    def test_delete_by_conversation(self, profile_repository, test_conversation):
        """测试删除画像"""
        profile_repository.upsert_for_conversation(test_conversation.id, {"name": "Jane"})

        assert profile_repository.delete_by_conversation(test_conversation.id) is True
        assert profile_repository.get_by_conversation(test_conversation.id) is None
        assert profile_repository.delete_by_conversation(test_conversation.id) is False

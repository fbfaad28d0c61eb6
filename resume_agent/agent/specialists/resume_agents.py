"""
四个专家 Agent

- Creator：从零构建完整文档（默认角色）
- Editor：修改现有文档的某个章节
- Designer：调整模板 / 配色 / 布局，不改文字
- Optimizer：按关键词和目标岗位改写内容
"""

from resume_agent.agent.prompts import (
    CREATOR_PROMPT,
    EDITOR_PROMPT,
    DESIGNER_PROMPT,
    OPTIMIZER_PROMPT,
)
from resume_agent.agent.specialists.base import SpecialistAgent


class ResumeCreationAgent(SpecialistAgent):
    """从用户描述创建全新简历"""
    role = "resume_creator"
    prompt_template = CREATOR_PROMPT


class ResumeEditAgent(SpecialistAgent):
    """针对现有简历的某个章节做修改"""
    role = "resume_editor"
    prompt_template = EDITOR_PROMPT


class ResumeDesignAgent(SpecialistAgent):
    """只改版式，不改内容"""
    role = "resume_designer"
    prompt_template = DESIGNER_PROMPT


class ResumeOptimizationAgent(SpecialistAgent):
    """提升 ATS 兼容性和岗位匹配度"""
    role = "resume_optimizer"
    prompt_template = OPTIMIZER_PROMPT

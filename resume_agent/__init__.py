"""
resume_agent - 对话式简历构建助手的核心库

Agent 路由、工具执行与版本化交付物上下文管理。
"""

__version__ = "0.1.0"

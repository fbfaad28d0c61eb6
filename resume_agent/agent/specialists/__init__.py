"""
专家 Agent 模块
"""

from .base import SpecialistAgent, PARSE_ERROR_REASONING
from .resume_agents import (
    ResumeCreationAgent,
    ResumeEditAgent,
    ResumeDesignAgent,
    ResumeOptimizationAgent,
)

__all__ = [
    "SpecialistAgent",
    "PARSE_ERROR_REASONING",
    "ResumeCreationAgent",
    "ResumeEditAgent",
    "ResumeDesignAgent",
    "ResumeOptimizationAgent"
]

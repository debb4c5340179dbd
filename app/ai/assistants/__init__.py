"""
Process Scan Platform
AI Assistants package.

Assistants:
    - data_room: document summaries + document Q&A
    - strategy_advisor: company research, strategic objectives, scoring criteria
    - lifecycle_architect: lifecycles, process trees, stakeholder suggestions
    - pain_point_analyst: pain point extraction from interview transcripts
    - interview_copilot: Ora interview assistant
"""

from app.ai.assistants.data_room import DataRoomAssistant
from app.ai.assistants.interview_copilot import InterviewCopilot
from app.ai.assistants.lifecycle_architect import LifecycleArchitect
from app.ai.assistants.pain_point_analyst import PainPointAnalyst
from app.ai.assistants.strategy_advisor import StrategyAdvisor

__all__ = [
    "DataRoomAssistant",
    "InterviewCopilot",
    "LifecycleArchitect",
    "PainPointAnalyst",
    "StrategyAdvisor",
]

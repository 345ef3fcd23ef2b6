"""
flows/ — MindX Interaction Flows

Each flow owns its local state machine and talks to exactly one agent role
through the AgentDispatcher. The Progress Record is touched only through
ProgressStore.update().
"""

from flows.assessment import AssessmentEngine, AssessmentScores
from flows.challenges import Challenge, ChallengeBoard
from flows.community import CommunityFlow, Pod, PodMessage
from flows.conversation import ChatMessage, ChatRole, ConversationRouter
from flows.leaderboard import Leaderboard, LeaderboardEntry
from flows.tasks import TaskCandidate, TaskFlow, TaskStage, TaskSuccess

__all__ = [
    "AssessmentEngine",
    "AssessmentScores",
    "Challenge",
    "ChallengeBoard",
    "CommunityFlow",
    "Pod",
    "PodMessage",
    "ChatMessage",
    "ChatRole",
    "ConversationRouter",
    "Leaderboard",
    "LeaderboardEntry",
    "TaskCandidate",
    "TaskFlow",
    "TaskStage",
    "TaskSuccess",
]

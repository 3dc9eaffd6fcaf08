"""Trainer models."""
from trainer.models.scenario import Scenario, Persona, PsychologicalProfile, ScenarioRequest, PersonaPreferences
from trainer.models.messages import Message, SessionView, SessionProgress, LatestScores
from trainer.models.evidence import DimensionEvidence, ScoringEvidence, TurnAssessment
from trainer.models.session_state import SessionState, CompletionDecision, create_session
from trainer.models.feedback import FeedbackReport, DimensionFeedback, Recommendation, Resource, CompletionSummary
from trainer.models.agent_logs import AgentLogEntry, AgentLogStore

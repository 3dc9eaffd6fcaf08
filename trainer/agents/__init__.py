"""Trainer generative agents."""
from trainer.agents.base_agent import BaseAgent, AgentContext
from trainer.agents.scenario_creator import ScenarioCreatorAgent, ScenarioDraft
from trainer.agents.persona_generator import PersonaGeneratorAgent, PersonaDraft
from trainer.agents.guest_simulator import GuestSimulatorAgent, GuestUtterance
from trainer.agents.silent_scorer import SilentScorerAgent
from trainer.agents.feedback_writer import FeedbackWriterAgent, FeedbackNarrative

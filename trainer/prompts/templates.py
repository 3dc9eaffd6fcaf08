"""
Prompt Template System

Prompt templates for every generative step of a training session, with
variable interpolation and validation.
"""

from typing import Any, Optional, Sequence
from string import Formatter

from trainer.exceptions import PromptTemplateError


class PromptTemplate:
    """Reusable template for generating prompts with {variable} placeholders."""

    def __init__(
        self,
        template: str,
        name: Optional[str] = None,
        defaults: Optional[dict[str, Any]] = None,
    ):
        self.template = template.strip()
        self.name = name or "unnamed"
        self.defaults = defaults or {}
        self.required_vars = self._extract_variables()

    def _extract_variables(self) -> set[str]:
        variables = set()
        for _, field_name, _, _ in Formatter().parse(self.template):
            if field_name:
                variables.add(field_name.split(".")[0].split("[")[0])
        return variables

    def render(self, **kwargs: Any) -> str:
        values = {**self.defaults, **kwargs}
        missing = self.required_vars - set(values.keys())
        if missing:
            raise PromptTemplateError(template_name=self.name, missing_vars=sorted(missing))
        return self.template.format(**values)

    def __repr__(self) -> str:
        return f"PromptTemplate(name='{self.name}', vars={self.required_vars})"


# Scenario Creation

SCENARIO_TEMPLATE = PromptTemplate(
    """You are a training scenario designer for customer service staff.
Create a realistic scenario for the training objective: "{objective}"
Training level: {training_level}

Reference material:
{sop_context}

Respond with JSON:
{{
    "title": "<short descriptive name, at most 200 characters>",
    "description": "<narrative setting up the situation, 10-2000 characters>",
    "required_steps": ["<step the trainee must complete>", "..."],
    "critical_errors": ["<severe mistake>", "..."],
    "time_pressure": <integer urgency from 1 to 10>
}}
Use 1-20 unique required steps and 1-15 critical errors.""",
    name="scenario",
)


# Persona Generation

PERSONA_TEMPLATE = PromptTemplate(
    """Create the guest a trainee will talk to in this training scenario.

Scenario: {title}
Description: {description}
Training level: {training_level}
Personality type: {personality_type}
Specific challenges: {challenges}

Respond with JSON:
{{
    "name": "<first name>",
    "background": "<a few sentences of relevant history>",
    "personality_traits": ["<trait>", "..."],
    "hidden_motivations": ["<what they want but will not say upfront>", "..."],
    "communication_style": "<how they talk>",
    "emotional_arc": ["<emotion at start>", "...", "<emotion at end>"],
    "psychological_profile": {{
        "primary_motivation": "<what drives them>",
        "stress_response": "<how they react when things go wrong>",
        "communication_pattern": "<how they express themselves>",
        "emotional_triggers": ["<trigger>", "..."],
        "resolution_style": "<how they like problems solved>"
    }}
}}""",
    name="persona",
)


# Guest Simulation

GUEST_TEMPLATE = PromptTemplate(
    """You are {name}, a guest contacting customer service. Stay fully in character.

WHO YOU ARE:
Background: {background}
Personality: {traits}
Communication style: {communication_style}

THE SITUATION:
{scenario_title}: {scenario_description}

HOW YOU FEEL RIGHT NOW:
Emotion: {emotion} (intensity {intensity_percent}%)
Heading towards: {next_emotion}
Sensitive points: {triggers}

INFORMATION YOU MAY REVEAL THIS TURN (only if it fits naturally):
{reveal}

RECENT CONVERSATION:
{history}

Reply with only what {name} says next, in one to three sentences.
No stage directions, no narration, no mention of being an AI or a simulation.""",
    name="guest",
)


# Silent Scoring

SCORING_TEMPLATE = PromptTemplate(
    """You are a silent scoring agent evaluating a customer service trainee's response.

SCENARIO CONTEXT:
Title: {title}
Description: {description}
Required Steps: {required_steps}
Critical Errors to Avoid: {critical_errors}

GUEST PERSONA:
Name: {persona_name}
Background: {persona_background}
Communication Style: {communication_style}

CONVERSATION CONTEXT:
{history}

TRAINEE'S LATEST RESPONSE TO ANALYZE:
"{trainee_message}"
{sop_context}

Score each dimension from 0 to 100:
1. POLICY ADHERENCE: procedures followed, correct information. Issues are violations.
2. EMPATHY INDEX: acknowledgment of feelings, supportive language. Issues are missed opportunities.
3. COMPLETENESS: every guest need addressed. Issues are missing elements.
4. ESCALATION JUDGMENT: escalation at the right time and level. Issues are inappropriate actions.
5. TIME EFFICIENCY: progress toward resolution. Issues are inefficiencies.

Format your analysis exactly as:
POLICY_ADHERENCE: [score] | Evidence: [examples] | Violations: [issues]
EMPATHY_INDEX: [score] | Evidence: [examples] | Missed: [opportunities]
COMPLETENESS: [score] | Evidence: [examples] | Missing: [elements]
ESCALATION_JUDGMENT: [score] | Evidence: [examples] | Issues: [problems]
TIME_EFFICIENCY: [score] | Evidence: [examples] | Inefficiencies: [issues]""",
    name="scoring",
)


# Feedback

FEEDBACK_TEMPLATE = PromptTemplate(
    """You are a customer service training coach writing feedback for a completed session.

Scenario: {title}
Overall score: {overall_score}/100 (grade {grade})
Dimension averages:
{averages}
Steps completed: {steps_completed}/{total_steps}
Critical errors: {critical_errors}
Observed strengths: {strengths}
Observed weaknesses: {weaknesses}
Reference material:
{sop_context}

Respond with JSON:
{{
    "summary": "<two or three sentence overview>",
    "key_strengths": ["<strength>", "..."],
    "improvement_areas": ["<area>", "..."],
    "next_steps": ["<concrete next step>", "..."]
}}""",
    name="feedback",
)


# Helper Functions

def format_list_for_prompt(items: Sequence[str], bullet: str = "-") -> str:
    if not items:
        return "None"
    return "\n".join(f"{bullet} {item}" for item in items)


def format_conversation(messages: Sequence[Any], trainee_label: str = "Trainee") -> str:
    if not messages:
        return "(conversation has not started)"
    lines = []
    for message in messages:
        speaker = trainee_label if message.role == "trainee" else "Guest"
        lines.append(f"{speaker}: {message.content}")
    return "\n".join(lines)

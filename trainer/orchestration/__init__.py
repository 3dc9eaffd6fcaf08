"""Training session orchestration."""
from trainer.orchestration.orchestrator import StartResult, TrainingOrchestrator, TurnResult

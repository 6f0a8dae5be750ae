"""Tutor pipeline orchestration."""
from tutor.orchestration.orchestrator import TutoringPipeline, TurnResult
from tutor.orchestration.response_finalizer import ResponseFinalizer, FinalizedResponse, FinalizerStage

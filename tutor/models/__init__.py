"""Tutor models."""
from tutor.models.messages import Message, create_user_message, create_assistant_message, create_system_message
from tutor.models.tutoring_state import ConversationContext, DetectedState, StrategyConfig, ComplianceResult, AccuracyResult
from tutor.models.pipeline_logs import PipelineLogEntry, PipelineTraceStore
from tutor.models.feedback import ErrorAnalysis, FeedbackAnalysis, FeedbackResult, StepAnalysis

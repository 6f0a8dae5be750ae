"""Tutor AI agents."""
from tutor.agents.state_classifier import StateClassifier, build_analysis_prompt, parse_state_analysis

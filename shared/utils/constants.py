"""Application constants - all magic numbers centralized."""

# Transcript windows
CLASSIFIER_WINDOW = 6  # Messages embedded in the state analysis prompt
CLASSIFIER_TRUNCATE_CHARS = 200  # Per-message truncation in the analysis prompt
PROMPT_WINDOW = 6  # Messages rendered in the tutor prompt (3 exchanges)
PROMPT_TRUNCATE_CHARS = 150  # Per-message truncation in the tutor prompt
RECENT_ERROR_WINDOW = 5  # Messages scanned for assistant error markers
RECENT_STUDENT_WINDOW = 3  # Student messages scanned by the heuristic detector

# State detection confidences
DEFAULT_PARSED_CONFIDENCE = 0.7  # When the LLM omits CONFIDENCE
CONFIDENCE_FRUSTRATED = 0.85
CONFIDENCE_KNOWLEDGE_GAP_NEGATION = 0.85
CONFIDENCE_FRUSTRATED_DONT_KNOW = 0.75
CONFIDENCE_KNOWLEDGE_GAP = 0.8
CONFIDENCE_STUCK = 0.8
CONFIDENCE_CONFUSED = 0.8
CONFIDENCE_DEFAULT = 0.6

# Escalation thresholds (student turns)
FRUSTRATION_TURN_THRESHOLD = 3
FRUSTRATION_NEGATIVE_TURN_THRESHOLD = 4
HINT_ESCALATION_TURN_THRESHOLD = 3
HELP_REQUEST_THRESHOLD = 2

# Regeneration
MAX_REGENERATIONS = 2  # One per gate: accuracy, then compliance

# Default/fallback values
DEFAULT_STUDENT_STATE = "ready_to_learn"
DEFAULT_STRATEGY = "deep_exploration"
NO_EVIDENCE = "No specific evidence provided"
EMPTY_REPLY_FALLBACK = "I apologize, but I could not generate a response. Please try again."

"""
State Classifier Prompt Templates

Prompts for the LLM-assisted student state detection. The reply is parsed
line by line for STATE / CONFIDENCE / EVIDENCE fields.
"""

from tutor.prompts.templates import PromptTemplate


STATE_ANALYST_SYSTEM_PROMPT = (
    "You are an expert educational psychologist analyzing student conversations. "
    "Your job is to detect the student's current learning state based on their "
    "responses and conversation patterns. Be precise and evidence-based."
)


STATE_ANALYSIS_PROMPT = PromptTemplate(
    """Analyze this math tutoring conversation and determine the student's current learning state.

CONVERSATION CONTEXT:
- Turn Count: {turn_count}
- Conversation Length: {conversation_length} messages
- Student Sentiment: {student_sentiment}
- Problem Type: {problem_type}

RECENT MESSAGES:
{recent_messages}

{problem_section}STUDENT STATES TO CHOOSE FROM:
1. knowledge_gap - Student doesn't know methods/concepts (e.g., "I don't know the methods", "I haven't learned this", "no" in response to "Do you remember/know...")
2. stuck - Student has tried but can't proceed (e.g., "I'm stuck", "I don't know what to do next")
3. confused - Student misunderstands the problem (e.g., "I don't understand", "What does this mean?")
4. making_progress - Student is on the right track (e.g., correct steps, showing understanding)
5. frustrated - Multiple failed attempts, repeated "I don't know" or "tell me" requests, explicit frustration language (e.g., "This is too hard", "I can't do this", "frustrated", "frustrating", "tell me now", "just tell", repeated "I don't know" after 2+ turns)
6. ready_to_learn - Student is engaged and ready (e.g., asking questions, showing curiosity)

KNOWLEDGE GAP DETECTION:
- If student says "no" or "nope" in response to "Do you remember/know...?" → knowledge_gap
- If student says "I don't know", "not sure", "no idea" → knowledge_gap
- If student says "I haven't learned this" or "not aware" → knowledge_gap

FRUSTRATION DETECTION PRIORITY:
- If student has said "I don't know" or "tell me" 2+ times in recent messages → likely frustrated
- If student explicitly says "frustrated" or "frustrating" → definitely frustrated
- If turn count >= 3 and sentiment is negative → likely frustrated
- If student says "tell me now" or "just tell" → likely frustrated

ANALYZE AND RESPOND IN THIS FORMAT:
STATE: [state name]
CONFIDENCE: [0.0-1.0]
EVIDENCE: [list 2-3 key pieces of evidence from the conversation]""",
    name="state_analysis",
)

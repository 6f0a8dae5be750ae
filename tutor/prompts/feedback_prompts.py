"""
Feedback Prompt Templates

Prompts for the step-by-step review of a student's answer. The reply is
parsed by section header (STEPS / ERRORS / MISCONCEPTIONS / CORRECT PARTS).
"""

from tutor.prompts.templates import PromptTemplate


FEEDBACK_ANALYST_SYSTEM_PROMPT = (
    "You are an expert math tutor analyzing student work. Provide detailed, "
    "constructive analysis that helps students learn from their mistakes."
)


FEEDBACK_ANALYSIS_PROMPT = PromptTemplate(
    """Analyze this student's math response step-by-step. Identify:
1. Each step they took
2. Where errors occurred (if any)
3. The type of error (calculation, conceptual, procedural)
4. Any misconceptions revealed
5. What they did correctly

Student Response: "{student_response}"
Problem Context: "{problem_context}"

Provide your analysis in this format:
STEPS:
1. [step description]
2. [step description]
...

ERRORS:
- Step X: [error type] - [error description]
- Step Y: [error type] - [error description]

MISCONCEPTIONS:
- [misconception if any]

CORRECT PARTS:
- [what they did right]

Be specific and helpful. Focus on learning, not just correctness.""",
    name="feedback_analysis",
)

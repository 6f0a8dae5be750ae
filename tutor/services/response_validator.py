"""
Response Validator

Pure checks run on every draft tutor reply:
- method compliance (no direct answers, no stated formulas, must ask questions)
- mathematical accuracy (known-inaccurate analogies)
- self-correction language and student correction detection
"""

import re

from tutor.models.tutoring_state import AccuracyResult, ComplianceResult


DIRECT_ANSWER_PATTERNS = [
    re.compile(r"the answer is\s+\d+"),
    re.compile(r"the solution is\s+\d+"),
    re.compile(r"equals\s+\d+\s*$"),
    re.compile(r"the result is\s+\d+"),
    re.compile(r"^x\s*=\s*\d+"),
    re.compile(r"final answer:\s*\d+"),
    re.compile(r"the answer\s+is"),
]

_DIMENSIONS = r"(length|width|height|base|radius|diameter)"
_TIMES = r"(times|by|multiplied|×|\*)"

FORMULA_PATTERNS = [
    re.compile(rf"\b(formula|equation|is|equals|multiply|divide|add|subtract)\s+(length|width|height|base|radius|diameter|area|perimeter|volume)\s*{_TIMES}"),
    re.compile(rf"\barea\s+(of|is|equals)\s+{_DIMENSIONS}\s*{_TIMES}"),
    re.compile(rf"\bperimeter\s+(of|is|equals)\s+.*\s*{_TIMES}"),
    re.compile(rf"\bvolume\s+(of|is|equals)\s+.*\s*{_TIMES}"),
    re.compile(r"\bthe\s+(area|perimeter|volume|formula|equation)\s+is"),
    re.compile(r"\bfound\s+by\s+(multiplying|dividing|adding|subtracting)"),
    re.compile(r"\bmultiply\s+\d+\s+by\s+\d+"),
    re.compile(r"\bdivide\s+\d+\s+by\s+\d+"),
    re.compile(r"\badd\s+\d+\s+and\s+\d+"),
    re.compile(r"\bsubtract\s+\d+\s+from\s+\d+"),
    re.compile(r"\b(recall|remember|think about|do you know)\s+(how|what)\s+(to|we|you)\s+(calculate|find|compute|multiply|divide)"),
    re.compile(r"\bhow\s+(do|might|can)\s+(we|you)\s+(calculate|find|compute|multiply|divide)"),
    re.compile(rf"\busing\s+(its|the)\s+{_DIMENSIONS}"),
]

IMPERATIVE_START = re.compile(r"^(multiply|divide|add|subtract|calculate|compute|find|solve)", re.IGNORECASE)

DIRECT_ANSWER_REASON = "Direct answer detected"
FORMULA_REASON = "Direct formula or method stated"
NO_QUESTIONS_REASON = "No guiding questions found - must use Socratic method"
IMPERATIVE_REASON = "Imperative statement detected - must ask questions instead"


# (pattern, issue, optional context that must also be present)
INACCURATE_ANALOGIES = [
    (
        re.compile(r"area.*paint|paint.*area"),
        "Area is NOT the amount of paint needed. Area is a measure of 2D space (cm², m²). "
        "Paint amount depends on thickness, which is volume (cm³, m³).",
        None,
    ),
    (
        re.compile(r"area.*equals.*paint|paint.*equals.*area"),
        "Area ≠ paint needed. Area measures 2D space, not material quantity.",
        None,
    ),
    (
        re.compile(r"area.*amount of paint|amount of paint.*area"),
        "Inaccurate: Area measures 2D space, not paint quantity.",
        None,
    ),
    (
        re.compile(r"volume.*weight|weight.*volume"),
        "Volume ≠ weight. Volume measures 3D space (cm³), weight measures mass (kg).",
        None,
    ),
    (
        re.compile(r"perimeter.*area|area.*perimeter"),
        "Perimeter and area are different concepts. Perimeter is distance around, area is space inside.",
        re.compile(r"confuse|same|equal|like"),
    ),
]

ACCURACY_SUGGESTION = (
    "Response contains mathematically inaccurate analogies. "
    "Use accurate definitions that precisely represent the mathematical concept."
)
ACKNOWLEDGE_SUGGESTION = "Student may have pointed out an inaccuracy. Acknowledge and correct it explicitly."

SELF_CORRECTION_PATTERNS = [
    re.compile(r"you're right|you're correct|thank you for|good catch|you caught"),
    re.compile(r"let me correct|i was wrong|that was inaccurate|i made an error"),
    re.compile(r"actually.*area|actually.*volume|actually.*perimeter"),
]

STUDENT_CORRECTION = re.compile(r"inaccurate|wrong|not.*equal|not.*same|not.*correct", re.IGNORECASE)


def _lower(text: str) -> str:
    return text.replace("’", "'").lower()


def check_method_compliance(text: str) -> ComplianceResult:
    """Reject drafts that hand over the answer or the method instead of asking."""
    lower = _lower(text)

    if any(pattern.search(lower) for pattern in DIRECT_ANSWER_PATTERNS):
        return ComplianceResult(is_valid=False, reason=DIRECT_ANSWER_REASON)

    if any(pattern.search(lower) for pattern in FORMULA_PATTERNS):
        return ComplianceResult(is_valid=False, reason=FORMULA_REASON)

    question_count = text.count("?")
    sentence_count = len(re.findall(r"[.!?]", text))
    if sentence_count > 1 and question_count == 0:
        return ComplianceResult(is_valid=False, reason=NO_QUESTIONS_REASON)

    if IMPERATIVE_START.match(text.strip()):
        return ComplianceResult(is_valid=False, reason=IMPERATIVE_REASON)

    return ComplianceResult(is_valid=True)


def check_mathematical_accuracy(text: str) -> AccuracyResult:
    """Flag analogies known to misrepresent area, volume or perimeter."""
    lower = _lower(text)
    issues = [
        issue
        for pattern, issue, context in INACCURATE_ANALOGIES
        if pattern.search(lower) and (context is None or context.search(lower))
    ]
    return AccuracyResult(is_valid=not issues, issues=issues)


def contains_self_correction(text: str) -> bool:
    lower = _lower(text)
    return any(pattern.search(lower) for pattern in SELF_CORRECTION_PATTERNS)


def validate_response_quality(text: str) -> AccuracyResult:
    """Accuracy check with suggestions attached for the correction prompt."""
    accuracy = check_mathematical_accuracy(text)
    suggestions = []
    if accuracy.issues:
        suggestions.append(ACCURACY_SUGGESTION)
        if not contains_self_correction(text):
            suggestions.append(ACKNOWLEDGE_SUGGESTION)
    return AccuracyResult(is_valid=not accuracy.issues, issues=accuracy.issues, suggestions=suggestions)


def student_pointed_out_inaccuracy(message: str) -> bool:
    """True when the student's message already calls out a mistake."""
    return bool(STUDENT_CORRECTION.search(message))

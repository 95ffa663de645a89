"""
Warm-up question validation.

Warm-up questions are asked before students read the source text, so they
must not presume knowledge of it. They should draw on the learner's own
experience at a complexity that fits the CEFR level.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, FrozenSet, List, Sequence, Tuple

from lessongate.protocols import CEFRLevel, ValidationContext

from .base import SectionValidator
from .models import SectionIssue, SectionIssueType

QUESTION_WORDS: Tuple[str, ...] = (
    "what", "when", "where", "who", "why", "how", "do", "does", "did", "have",
    "has", "is", "are", "can", "could", "would", "should", "will",
)

CAPITALIZED_QUESTION_WORDS = frozenset(word.capitalize() for word in QUESTION_WORDS + ("which",))

# Words that are capitalized in English without being content-specific names
COMMON_CAPITALIZED_NOUNS = frozenset(
    {
        "English", "Spanish", "French", "German", "Chinese", "Japanese",
        "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
        "January", "February", "March", "April", "May", "June", "July",
        "August", "September", "October", "November", "December",
    }
)

CONTENT_ASSUMPTION_PATTERNS: Tuple[Tuple[re.Pattern[str], str], ...] = tuple(
    (re.compile(pattern, re.IGNORECASE), message)
    for pattern, message in (
        (r"what happened", "References specific events"),
        (r"in the (text|story|article|passage|reading)", "References the text directly"),
        (r"according to (the )?(text|story|article|author)", "References the text/author"),
        (r"the author (said|wrote|mentioned|stated|explained)", "References author statements"),
        (r"do you remember", "Assumes prior knowledge of content"),
        (r"what did .+ do", "References specific actions"),
        (r"why did .+ happen", "References specific events"),
        (r"when did", "References specific timing"),
        (r"who (was|were|did)", "References specific people"),
        (r"which (person|character|event)", "References specific content elements"),
        (r"the (story|text|article|passage) (says|mentions|describes|tells)", "References text content"),
        (r"in this (story|text|article)", "References the text"),
        (r"from the (story|text|article)", "References the text"),
    )
)

PROPER_NAME = re.compile(r"^[A-Z][a-z]+$")
YEAR = re.compile(r"\b(19|20)\d{2}\b")

ADVANCED_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"hypothetically",
        r"in what ways",
        r"to what extent",
        r"how might",
        r"what factors",
        r"analyze",
        r"evaluate",
        r"compare and contrast",
        r"what implications",
        r"how would you assess",
    )
)

INTERMEDIATE_PATTERNS = tuple(
    re.compile(pattern)
    for pattern in (
        r"why do you think",
        r"what would",
        r"how could",
        r"in your opinion",
        r"do you believe",
        r"what are the (advantages|disadvantages)",
        r"how does .+ affect",
    )
)

PERSONAL_EXPERIENCE_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"have you (ever)?",
        r"do you (think|believe|feel)",
        r"what (is|are) your",
        r"in your (opinion|experience)",
        r"how do you",
    )
)

YES_NO_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (r"^do you", r"^have you", r"^is (it|there)", r"^are (you|there)", r"^can you", r"^would you")
)

VERY_SIMPLE_WORDS = frozenset(
    {"you", "your", "have", "do", "what", "how", "is", "are", "the", "a", "an", "like", "want", "go", "see", "get"}
)
COMPLEX_SUFFIX = re.compile(r"tion|sion|ment|ness|ity")
CLAUSE_INDICATORS = re.compile(
    r",|\b(?:and|but|or|because|although|if|when|while|which|that)\b", re.IGNORECASE
)


class QuestionComplexity(Enum):
    SIMPLE = "simple"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


EXPECTED_COMPLEXITY: Dict[CEFRLevel, Tuple[QuestionComplexity, ...]] = {
    CEFRLevel.A1: (QuestionComplexity.SIMPLE,),
    CEFRLevel.A2: (QuestionComplexity.SIMPLE,),
    CEFRLevel.B1: (QuestionComplexity.SIMPLE, QuestionComplexity.INTERMEDIATE),
    CEFRLevel.B2: (QuestionComplexity.INTERMEDIATE, QuestionComplexity.ADVANCED),
    CEFRLevel.C1: (QuestionComplexity.ADVANCED, QuestionComplexity.INTERMEDIATE),
}


def assess_complexity(questions: Sequence[str]) -> QuestionComplexity:
    """Overall complexity of a question set from its phrasing markers."""
    combined = " ".join(questions).lower()
    advanced = sum(1 for pattern in ADVANCED_PATTERNS if pattern.search(combined))
    intermediate = sum(1 for pattern in INTERMEDIATE_PATTERNS if pattern.search(combined))
    if advanced >= 2:
        return QuestionComplexity.ADVANCED
    if advanced >= 1 or intermediate >= 2:
        return QuestionComplexity.INTERMEDIATE
    return QuestionComplexity.SIMPLE


def vocabulary_level(question: str) -> str:
    """``too_simple``, ``too_complex`` or ``appropriate``."""
    words = question.lower().split()
    if not words:
        return "appropriate"
    simple_ratio = sum(1 for word in words if word in VERY_SIMPLE_WORDS) / len(words)
    complex_ratio = sum(1 for word in words if len(word) > 10 or COMPLEX_SUFFIX.search(word)) / len(words)
    if simple_ratio > 0.8:
        return "too_simple"
    if complex_ratio > 0.3:
        return "too_complex"
    return "appropriate"


def sentence_structure(question: str) -> str:
    """``simple``, ``moderate`` or ``complex`` by clause and word count."""
    clauses = len(CLAUSE_INDICATORS.findall(question)) + 1
    words = len(question.split())
    if clauses >= 3 or words > 20:
        return "complex"
    if clauses == 2 or words > 12:
        return "moderate"
    return "simple"


class WarmupValidator(SectionValidator):
    section = "warmup"
    required_questions = 3
    min_length = 10
    max_length = 200

    def check(
        self,
        content: Sequence[str],
        level: CEFRLevel,
        context: ValidationContext,
        issues: List[SectionIssue],
        warnings: List[SectionIssue],
    ) -> None:
        questions = list(content or ())
        self._check_count(questions, issues)
        self._check_format(questions, issues, warnings)
        self._check_content_assumptions(questions, issues, warnings)
        self._check_level(questions, level, issues, warnings)
        self._check_pedagogy(questions, warnings)

    def bonus(self, content: Sequence[str]) -> int:
        return 10 if len(content or ()) == self.required_questions else 0

    def _check_count(self, questions: List[str], issues: List[SectionIssue]) -> None:
        expected = self.required_questions
        if len(questions) < expected:
            issues.append(
                self.error(
                    SectionIssueType.COUNT_ERROR,
                    f"Insufficient questions: expected {expected}, got {len(questions)}",
                    suggestion="Generate more questions to meet the requirement",
                )
            )
        elif len(questions) > expected:
            issues.append(
                self.error(
                    SectionIssueType.COUNT_ERROR,
                    f"Too many questions: expected {expected}, got {len(questions)}",
                    suggestion="Remove extra questions to meet the requirement",
                )
            )

    def _check_format(self, questions: List[str], issues: List[SectionIssue], warnings: List[SectionIssue]) -> None:
        for index, question in enumerate(questions):
            number = index + 1
            if not question.strip():
                issues.append(
                    self.error(
                        SectionIssueType.FORMAT_ERROR,
                        f"Question {number} is empty",
                        index,
                        "Provide a valid question",
                    )
                )
                continue
            if len(question) < self.min_length:
                issues.append(
                    self.error(
                        SectionIssueType.FORMAT_ERROR,
                        f"Question {number} is too short ({len(question)} characters)",
                        index,
                        f"Questions should be at least {self.min_length} characters long",
                    )
                )
            elif len(question) > self.max_length:
                warnings.append(
                    self.warning(
                        SectionIssueType.FORMAT_ERROR,
                        f"Question {number} is very long ({len(question)} characters)",
                        index,
                        "Consider simplifying the question",
                    )
                )
            if not question.rstrip().endswith("?"):
                issues.append(
                    self.error(
                        SectionIssueType.FORMAT_ERROR,
                        f"Question {number} doesn't end with a question mark",
                        index,
                        "Add a question mark at the end",
                    )
                )
            lowered = question.lower()
            if not any(lowered.startswith(word + " ") for word in QUESTION_WORDS):
                warnings.append(
                    self.warning(
                        SectionIssueType.FORMAT_ERROR,
                        f"Question {number} doesn't start with a typical question word",
                        index,
                        "Consider starting with What, How, Why, etc.",
                    )
                )

    def _check_content_assumptions(
        self, questions: List[str], issues: List[SectionIssue], warnings: List[SectionIssue]
    ) -> None:
        for index, question in enumerate(questions):
            number = index + 1
            for pattern, reason in CONTENT_ASSUMPTION_PATTERNS:
                if pattern.search(question):
                    issues.append(
                        self.error(
                            SectionIssueType.CONTENT_ASSUMPTION,
                            f"Question {number} assumes content knowledge: {reason}",
                            index,
                            "Rephrase to focus on personal experience or general knowledge",
                        )
                    )
                    break

            names = [
                word
                for word in question.split(" ")
                if PROPER_NAME.match(word)
                and word not in CAPITALIZED_QUESTION_WORDS
                and word not in COMMON_CAPITALIZED_NOUNS
            ]
            if names:
                warnings.append(
                    self.warning(
                        SectionIssueType.CONTENT_ASSUMPTION,
                        f"Question {number} may contain proper names: {', '.join(names)}",
                        index,
                        "Verify these are not content-specific names",
                    )
                )

            if YEAR.search(question):
                warnings.append(
                    self.warning(
                        SectionIssueType.CONTENT_ASSUMPTION,
                        f"Question {number} contains a specific year",
                        index,
                        "Avoid referencing specific dates unless asking about general knowledge",
                    )
                )

    def _check_level(
        self,
        questions: List[str],
        level: CEFRLevel,
        issues: List[SectionIssue],
        warnings: List[SectionIssue],
    ) -> None:
        complexity = assess_complexity(questions)
        expected = EXPECTED_COMPLEXITY[level]
        if complexity not in expected:
            issues.append(
                self.error(
                    SectionIssueType.COMPLEXITY_MISMATCH,
                    f"Questions are {complexity.value} but {level.value} requires "
                    f"{' or '.join(option.value for option in expected)}",
                    suggestion=f"Adjust question complexity to match {level.value} level",
                )
            )

        for index, question in enumerate(questions):
            number = index + 1
            vocabulary = vocabulary_level(question)
            if vocabulary == "too_simple" and level.is_advanced:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLEXITY_MISMATCH,
                        f"Question {number} uses very simple vocabulary for {level.value} level",
                        index,
                        "Consider using more sophisticated vocabulary",
                    )
                )
            if vocabulary == "too_complex" and level.is_beginner:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLEXITY_MISMATCH,
                        f"Question {number} may use vocabulary too advanced for {level.value} level",
                        index,
                        "Simplify vocabulary for beginner level",
                    )
                )

            structure = sentence_structure(question)
            if structure == "complex" and level.is_beginner:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLEXITY_MISMATCH,
                        f"Question {number} has complex sentence structure for {level.value} level",
                        index,
                        "Use simpler sentence structures",
                    )
                )
            if structure == "simple" and level is CEFRLevel.C1:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLEXITY_MISMATCH,
                        f"Question {number} has simple structure for {level.value} level",
                        index,
                        "Consider using more sophisticated structures",
                    )
                )

    def _check_pedagogy(self, questions: List[str], warnings: List[SectionIssue]) -> None:
        if not questions:
            return

        if not any(pattern.search(q) for q in questions for pattern in PERSONAL_EXPERIENCE_PATTERNS):
            warnings.append(
                self.warning(
                    SectionIssueType.QUALITY_ISSUE,
                    "No questions focus on personal experience",
                    suggestion="Include questions that ask about student experiences or opinions",
                )
            )

        starters: FrozenSet[str] = frozenset(q.strip().split(" ")[0].lower() for q in questions)
        if len(starters) == 1 and len(questions) > 1:
            warnings.append(
                self.warning(
                    SectionIssueType.QUALITY_ISSUE,
                    "All questions start with the same word",
                    suggestion="Vary question types for better engagement",
                )
            )

        if all(any(pattern.search(q) for pattern in YES_NO_PATTERNS) for q in questions):
            warnings.append(
                self.warning(
                    SectionIssueType.QUALITY_ISSUE,
                    "All questions appear to be yes/no questions",
                    suggestion="Include open-ended questions (What, How, Why) for deeper discussion",
                )
            )

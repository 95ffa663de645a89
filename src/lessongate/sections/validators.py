"""
Validators for the dialogue, discussion, grammar and pronunciation sections.

Each validator collects every problem it finds rather than stopping at the
first; errors make the section invalid, warnings only lower its score.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Sequence, Tuple

from pydantic import ValidationError

from lessongate.protocols import CEFRLevel, ValidationContext

from .base import SectionValidator
from .models import (
    DialogueLine,
    GrammarSection,
    PronunciationSection,
    SectionIssue,
    SectionIssueType,
)

# (min, max) words per dialogue line
DIALOGUE_WORD_BANDS: Dict[CEFRLevel, tuple[int, int]] = {
    CEFRLevel.A1: (3, 8),
    CEFRLevel.A2: (5, 12),
    CEFRLevel.B1: (8, 15),
    CEFRLevel.B2: (10, 20),
    CEFRLevel.C1: (12, 25),
}

ANALYTICAL_MARKERS = re.compile(r"why do you think|what factors|how might|to what extent|in what ways")
BEGINNER_COMPLEX_MARKERS = re.compile(r"hypothetically|analyze|evaluate|implications")


def _dialogue_lines(content: Sequence[Any]) -> Tuple[List[DialogueLine], List[int]]:
    """Well-formed lines, plus the positions of entries that are not speaker/text pairs."""
    lines: List[DialogueLine] = []
    malformed: List[int] = []
    for index, line in enumerate(content):
        if isinstance(line, DialogueLine):
            lines.append(line)
            continue
        try:
            lines.append(DialogueLine.model_validate(line))
        except ValidationError:
            malformed.append(index)
    return lines, malformed


class DialogueValidator(SectionValidator):
    section = "dialogue"
    min_lines = 12

    def check(
        self,
        content: Sequence[Any],
        level: CEFRLevel,
        context: ValidationContext,
        issues: List[SectionIssue],
        warnings: List[SectionIssue],
    ) -> None:
        lines, malformed = _dialogue_lines(content)
        for index in malformed:
            issues.append(
                self.error(
                    SectionIssueType.FORMAT_ERROR,
                    f"Line {index + 1} is not a speaker and text pair",
                    index,
                    "Write every line as 'Speaker: text'",
                )
            )
        if len(lines) < self.min_lines:
            issues.append(
                self.error(
                    SectionIssueType.COUNT_ERROR,
                    f"Insufficient dialogue lines: expected at least {self.min_lines}, got {len(lines)}",
                    suggestion="Generate more dialogue exchanges",
                )
            )

        low, high = DIALOGUE_WORD_BANDS[level]
        for index, line in enumerate(lines):
            words = len(line.text.split())
            if words < low:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLEXITY_MISMATCH,
                        f"Line {index + 1} too short for {level.value} ({words} words)",
                        index,
                        f"Lines should be {low}-{high} words",
                    )
                )
            elif words > high:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLEXITY_MISMATCH,
                        f"Line {index + 1} too long for {level.value} ({words} words)",
                        index,
                        f"Lines should be {low}-{high} words",
                    )
                )

        vocabulary = context.vocabulary_words
        if vocabulary:
            spoken = " ".join(line.text.lower() for line in lines)
            used = [word for word in vocabulary if word.lower() in spoken]
            if len(used) < min(3, len(vocabulary)):
                warnings.append(
                    self.warning(
                        SectionIssueType.VOCABULARY_INTEGRATION,
                        f"Only {len(used)} vocabulary words used in dialogue",
                        suggestion="Integrate more lesson vocabulary into dialogue",
                    )
                )

        for index in range(1, len(lines)):
            if lines[index].speaker == lines[index - 1].speaker:
                warnings.append(
                    self.warning(
                        SectionIssueType.FLOW_ISSUE,
                        f"Same speaker has consecutive lines at position {index}",
                        index,
                        "Alternate speakers for natural conversation flow",
                    )
                )
                break

    def bonus(self, content: Sequence[Any]) -> int:
        lines, _ = _dialogue_lines(content)
        return 10 if len(lines) >= self.min_lines else 0


class DiscussionValidator(SectionValidator):
    section = "discussion"
    required_questions = 5

    def check(
        self,
        content: Sequence[str],
        level: CEFRLevel,
        context: ValidationContext,
        issues: List[SectionIssue],
        warnings: List[SectionIssue],
    ) -> None:
        questions = [question.strip() for question in content or ()]
        if len(questions) != self.required_questions:
            issues.append(
                self.error(
                    SectionIssueType.COUNT_ERROR,
                    f"Expected exactly {self.required_questions} discussion questions, got {len(questions)}",
                )
            )

        for index, question in enumerate(questions):
            if not question.endswith("?"):
                issues.append(
                    self.error(
                        SectionIssueType.FORMAT_ERROR,
                        f"Question {index + 1} doesn't end with question mark",
                        index,
                    )
                )
            if len(question) < 10:
                issues.append(self.error(SectionIssueType.FORMAT_ERROR, f"Question {index + 1} too short", index))

        combined = " ".join(questions).lower()
        if level.is_advanced and not ANALYTICAL_MARKERS.search(combined):
            warnings.append(
                self.warning(
                    SectionIssueType.COMPLEXITY_MISMATCH,
                    f"Questions lack analytical depth for {level.value} level",
                    suggestion="Include more analytical or evaluative questions",
                )
            )
        if level.is_beginner and BEGINNER_COMPLEX_MARKERS.search(combined):
            warnings.append(
                self.warning(
                    SectionIssueType.COMPLEXITY_MISMATCH,
                    f"Questions may be too complex for {level.value} level",
                    suggestion="Use simpler question structures",
                )
            )

        starters = {question.split(" ")[0].lower() for question in questions if question}
        if len(starters) < 3:
            warnings.append(
                self.warning(
                    SectionIssueType.VARIETY_ISSUE,
                    "Limited question variety",
                    suggestion="Use different question types (What, Why, How, etc.)",
                )
            )

    def bonus(self, content: Sequence[str]) -> int:
        return 10 if len(content or ()) == self.required_questions else 0


class GrammarValidator(SectionValidator):
    section = "grammar"
    error_penalty = 15
    min_examples = 3
    min_exercises = 5

    def check(
        self,
        content: Any,
        level: CEFRLevel,
        context: ValidationContext,
        issues: List[SectionIssue],
        warnings: List[SectionIssue],
    ) -> None:
        grammar = content if isinstance(content, GrammarSection) else GrammarSection.model_validate(content)

        for name in ("rule", "form", "usage"):
            if len(getattr(grammar, name).strip()) < 10:
                issues.append(
                    self.error(
                        SectionIssueType.COMPLETENESS_ERROR,
                        f"Grammar {name} is missing or too brief",
                        suggestion=f"Provide a clear {name} explanation",
                    )
                )

        if len(grammar.examples) < self.min_examples:
            issues.append(
                self.error(
                    SectionIssueType.COMPLETENESS_ERROR,
                    f"Insufficient examples: expected at least {self.min_examples}, got {len(grammar.examples)}",
                )
            )

        if len(grammar.exercises) < self.min_exercises:
            issues.append(
                self.error(
                    SectionIssueType.COUNT_ERROR,
                    f"Insufficient exercises: expected at least {self.min_exercises}, got {len(grammar.exercises)}",
                )
            )

        for index, exercise in enumerate(grammar.exercises):
            if len(exercise.prompt.strip()) < 5:
                issues.append(
                    self.error(SectionIssueType.QUALITY_ISSUE, f"Exercise {index + 1} has an invalid prompt", index)
                )
            if not exercise.answer.strip():
                issues.append(self.error(SectionIssueType.QUALITY_ISSUE, f"Exercise {index + 1} missing answer", index))

    def bonus(self, content: Any) -> int:
        grammar = content if isinstance(content, GrammarSection) else GrammarSection.model_validate(content)
        return 10 if len(grammar.exercises) >= self.min_exercises else 0


class PronunciationValidator(SectionValidator):
    section = "pronunciation"
    error_penalty = 15
    min_words = 5
    min_twisters = 2

    def check(
        self,
        content: Any,
        level: CEFRLevel,
        context: ValidationContext,
        issues: List[SectionIssue],
        warnings: List[SectionIssue],
    ) -> None:
        section = self._parse(content)

        if len(section.words) < self.min_words:
            issues.append(
                self.error(
                    SectionIssueType.COUNT_ERROR,
                    f"Insufficient pronunciation words: expected at least {self.min_words}, got {len(section.words)}",
                )
            )
        if len(section.tongue_twisters) < self.min_twisters:
            issues.append(
                self.error(
                    SectionIssueType.COUNT_ERROR,
                    f"Insufficient tongue twisters: expected at least {self.min_twisters}, "
                    f"got {len(section.tongue_twisters)}",
                )
            )

        for index, item in enumerate(section.words):
            if len(item.word) < 2:
                issues.append(self.error(SectionIssueType.COMPLETENESS_ERROR, f"Word {index + 1} is invalid", index))
            if len(item.ipa) < 2:
                issues.append(
                    self.error(
                        SectionIssueType.COMPLETENESS_ERROR,
                        f"Word {index + 1} missing IPA transcription",
                        index,
                        "Provide IPA transcription for pronunciation",
                    )
                )
            if not item.tips:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLETENESS_WARNING,
                        f"Word {index + 1} missing pronunciation tips",
                        index,
                        "Add pronunciation tips for difficult sounds",
                    )
                )
            if len(item.practice_sentence) < 10:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLETENESS_WARNING,
                        f"Word {index + 1} missing practice sentence",
                        index,
                        "Provide practice sentence using the word",
                    )
                )

        for index, twister in enumerate(section.tongue_twisters):
            if len(twister.text) < 15:
                issues.append(
                    self.error(
                        SectionIssueType.COMPLETENESS_ERROR,
                        f"Tongue twister {index + 1} too short or missing",
                        index,
                    )
                )
            if not twister.target_sounds:
                warnings.append(
                    self.warning(
                        SectionIssueType.COMPLETENESS_WARNING,
                        f"Tongue twister {index + 1} missing target sounds",
                        index,
                    )
                )

    def bonus(self, content: Any) -> int:
        section = self._parse(content)
        points = 0
        if len(section.words) >= self.min_words:
            points += 5
        if len(section.tongue_twisters) >= self.min_twisters:
            points += 5
        return points

    @staticmethod
    def _parse(content: Any) -> PronunciationSection:
        if isinstance(content, PronunciationSection):
            return content
        return PronunciationSection.model_validate(content)

"""Tests for dialogue, discussion, grammar and pronunciation validators."""

import pytest

from lessongate.protocols import CEFRLevel, Severity, ValidationContext
from lessongate.sections import (
    SECTION_VALIDATORS,
    DialogueLine,
    DialogueValidator,
    DiscussionValidator,
    GrammarValidator,
    PronunciationValidator,
    SectionIssueType,
    SectionValidationResult,
    get_validator,
)

# Ten words each, inside the B1 band of 8-15.
B1_LINE = "I usually drink green tea with my family every morning"


def dialogue(count, line=B1_LINE):
    return [{"speaker": "Anna" if i % 2 == 0 else "Ben", "text": line} for i in range(count)]


GOOD_QUESTIONS = [
    "What kind of tea do you usually drink at home?",
    "Why do you think tea became popular in Europe?",
    "How might the tea trade have changed local farming?",
    "Do you prefer tea or coffee in the morning, and why?",
    "Which tea tradition from the article surprised you most?",
]

GOOD_GRAMMAR = {
    "rule": "Use the past simple for finished actions in the past.",
    "form": "Subject + verb in the past form, for example drank or grew.",
    "usage": "We use it when the time of the action is finished or stated.",
    "examples": ["Farmers grew tea.", "Ships brought tea to Europe.", "She drank green tea."],
    "exercises": [{"prompt": f"Put the verb in the past: ({verb})", "answer": past} for verb, past in [
        ("grow", "grew"),
        ("bring", "brought"),
        ("drink", "drank"),
        ("carry", "carried"),
        ("become", "became"),
    ]],
}

GOOD_PRONUNCIATION = {
    "words": [
        {
            "word": word,
            "ipa": ipa,
            "tips": ["Keep the vowel long"],
            "practiceSentence": f"Say the word {word} slowly twice.",
        }
        for word, ipa in [("tea", "/tiː/"), ("leaf", "/liːf/"), ("brew", "/bruː/"), ("cup", "/kʌp/"), ("steep", "/stiːp/")]
    ],
    "tongueTwisters": [
        {"text": "Tim the tea taster tasted ten teas", "targetSounds": ["t"]},
        {"text": "Betty brewed better black tea than Bob", "targetSounds": ["b"]},
    ],
}


class TestDialogueValidator:
    """Line count, per-level word bands, vocabulary use and speaker flow."""

    def test_ten_lines_is_a_count_error(self):
        result = DialogueValidator().validate(dialogue(10), CEFRLevel.B1)

        assert not result.is_valid
        assert result.issues[0].type is SectionIssueType.COUNT_ERROR
        assert result.issues[0].severity is Severity.ERROR
        assert result.issues[0].message == "Insufficient dialogue lines: expected at least 12, got 10"

    def test_good_dialogue_scores_full_marks(self):
        context = ValidationContext(vocabulary_words=["green", "family", "morning"])

        result = DialogueValidator().validate(dialogue(12), "B1", context)

        assert result.is_valid
        assert result.warnings == ()
        assert result.score == 100.0

    def test_line_length_is_checked_against_level(self):
        result = DialogueValidator().validate(dialogue(12), CEFRLevel.A1)

        assert len(result.warnings) == 12
        assert result.warnings[0].message == "Line 1 too long for A1 (10 words)"
        assert result.score == 50.0

    def test_short_lines_warn(self):
        result = DialogueValidator().validate(dialogue(12, "Hi there"), CEFRLevel.B1)

        assert result.warnings[0].message == "Line 1 too short for B1 (2 words)"

    def test_vocabulary_integration(self):
        context = ValidationContext(vocabulary_words=["harvest", "plantation", "ceremony"])

        result = DialogueValidator().validate(dialogue(12), CEFRLevel.B1, context)

        assert result.issue_types() == [SectionIssueType.VOCABULARY_INTEGRATION]
        assert result.warnings[0].message == "Only 0 vocabulary words used in dialogue"

    def test_consecutive_speaker_reported_once(self):
        lines = [DialogueLine(speaker="Anna", text=B1_LINE) for _ in range(12)]

        result = DialogueValidator().validate(lines, CEFRLevel.B1)

        assert result.issue_types() == [SectionIssueType.FLOW_ISSUE]
        assert result.warnings[0].item_index == 1

    def test_lines_without_speaker_are_format_errors(self):
        result = DialogueValidator().validate([{"text": B1_LINE}] * 12, CEFRLevel.B1)

        assert not result.is_valid
        assert result.issue_types()[:12] == [SectionIssueType.FORMAT_ERROR] * 12
        assert result.issues[0].message == "Line 1 is not a speaker and text pair"
        assert result.issues[0].item_index == 0
        assert result.issues[-1].message == "Insufficient dialogue lines: expected at least 12, got 0"
        assert result.score == 0.0

    def test_one_malformed_line_does_not_hide_the_rest(self):
        result = DialogueValidator().validate(dialogue(12) + [{"speaker": "Anna"}], CEFRLevel.B1)

        assert [issue.message for issue in result.issues] == ["Line 13 is not a speaker and text pair"]
        assert result.issues[0].item_index == 12
        assert result.warnings == ()
        assert result.score == 90.0


class TestDiscussionValidator:
    def test_good_questions(self):
        result = DiscussionValidator().validate(GOOD_QUESTIONS, CEFRLevel.B2)

        assert result.is_valid
        assert result.score == 100.0

    def test_wrong_count_and_format(self):
        result = DiscussionValidator().validate(["What do you think", "Why?"], CEFRLevel.B1)

        messages = [issue.message for issue in result.issues]
        assert messages == [
            "Expected exactly 5 discussion questions, got 2",
            "Question 1 doesn't end with question mark",
            "Question 2 too short",
        ]

    def test_advanced_levels_need_analytical_questions(self):
        questions = [f"What is your favourite tea number {n}?" for n in range(5)]

        result = DiscussionValidator().validate(questions, CEFRLevel.C1)

        types = result.issue_types()
        assert SectionIssueType.COMPLEXITY_MISMATCH in types
        assert SectionIssueType.VARIETY_ISSUE in types
        assert result.is_valid

    def test_beginner_levels_avoid_complex_wording(self):
        questions = list(GOOD_QUESTIONS[:4]) + ["Can you evaluate the tea trade?"]

        result = DiscussionValidator().validate(questions, CEFRLevel.A2)

        assert result.warnings[0].message == "Questions may be too complex for A2 level"


class TestGrammarValidator:
    def test_complete_section(self):
        result = GrammarValidator().validate(GOOD_GRAMMAR, CEFRLevel.B1)

        assert result.is_valid
        assert result.score == 100.0

    def test_missing_parts(self):
        content = {"rule": "Short", "examples": ["One."], "exercises": [{"prompt": "Do", "answer": ""}]}

        result = GrammarValidator().validate(content, CEFRLevel.B1)

        messages = [issue.message for issue in result.issues]
        assert "Grammar rule is missing or too brief" in messages
        assert "Grammar form is missing or too brief" in messages
        assert "Insufficient examples: expected at least 3, got 1" in messages
        assert "Insufficient exercises: expected at least 5, got 1" in messages
        assert "Exercise 1 has an invalid prompt" in messages
        assert "Exercise 1 missing answer" in messages
        assert result.score == 0.0

    def test_malformed_section_is_a_format_error(self):
        result = GrammarValidator().validate({"rule": GOOD_GRAMMAR["rule"], "exercises": "none"}, CEFRLevel.B1)

        assert not result.is_valid
        assert result.issue_types() == [SectionIssueType.FORMAT_ERROR]
        assert result.issues[0].message == "Malformed grammar content: 1 invalid fields"
        assert result.score == 85.0


class TestPronunciationValidator:
    def test_complete_section_accepts_camel_case(self):
        result = PronunciationValidator().validate(GOOD_PRONUNCIATION, CEFRLevel.B1)

        assert result.is_valid
        assert result.warnings == ()
        assert result.score == 100.0

    def test_incomplete_words_and_twisters(self):
        content = {
            "words": [{"word": "tea", "ipa": ""}],
            "tongue_twisters": [{"text": "Too short"}],
        }

        result = PronunciationValidator().validate(content, CEFRLevel.B1)

        assert not result.is_valid
        error_messages = [issue.message for issue in result.issues]
        assert "Word 1 missing IPA transcription" in error_messages
        assert "Tongue twister 1 too short or missing" in error_messages
        warning_messages = [issue.message for issue in result.warnings]
        assert warning_messages == [
            "Word 1 missing pronunciation tips",
            "Word 1 missing practice sentence",
            "Tongue twister 1 missing target sounds",
        ]

    def test_malformed_section_is_a_format_error(self):
        result = PronunciationValidator().validate({"words": "tea, leaf, brew"}, CEFRLevel.B1)

        assert result.issue_types() == [SectionIssueType.FORMAT_ERROR]
        assert result.issues[0].severity is Severity.ERROR
        assert result.score == 85.0


class TestRegistry:
    def test_all_sections_registered(self):
        assert set(SECTION_VALIDATORS) == {"warmup", "dialogue", "discussion", "grammar", "pronunciation"}

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="vocabulary"):
            get_validator("vocabulary")

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            get_validator("dialogue").validate(dialogue(12), "Z9")

    def test_result_invariants(self):
        with pytest.raises(ValueError):
            SectionValidationResult(section="dialogue", is_valid=False, issues=(), warnings=(), score=50.0)
        with pytest.raises(ValueError):
            SectionValidationResult(section="dialogue", is_valid=True, issues=(), warnings=(), score=101.0)

    @pytest.mark.parametrize("section", sorted(SECTION_VALIDATORS))
    def test_missing_content_is_reported_not_raised(self, section):
        validator = get_validator(section)

        result = validator.validate(None, CEFRLevel.B1)

        assert not result.is_valid
        assert result.issue_types() == [SectionIssueType.FORMAT_ERROR]
        assert result.issues[0].message == f"No {section} content was provided"
        assert result.score == 100.0 - validator.error_penalty

"""
Prompt builders for lesson sections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List

from lessongate.protocols import CEFRLevel

LEVEL_GUIDANCE: Dict[CEFRLevel, str] = {
    CEFRLevel.A1: "Use present simple, everyday vocabulary and very short sentences about familiar topics.",
    CEFRLevel.A2: "Use simple past, present and future forms with familiar vocabulary and short sentences.",
    CEFRLevel.B1: "Use varied tenses and ask for opinions, comparisons and reasons.",
    CEFRLevel.B2: "Ask analytical questions that invite justification and evaluation of ideas.",
    CEFRLevel.C1: "Use sophisticated structures and ask learners to evaluate implications and hypotheticals.",
}

EXCERPT_CHARS = 2000


@dataclass(slots=True)
class LessonContext:
    """What every section prompt may draw on."""

    source_title: str
    source_text: str
    level: CEFRLevel
    vocabulary_words: List[str] = field(default_factory=list)
    grammar_focus: str = ""

    @property
    def excerpt(self) -> str:
        return self.source_text[:EXCERPT_CHARS]


def warmup_prompt(context: LessonContext) -> str:
    return (
        f"Write exactly 3 warm-up questions for {context.level.value} English learners who are about to read "
        f'a text titled "{context.source_title}".\n'
        "The learners have NOT read the text yet: do not mention the text, its events, its people or its dates.\n"
        "Ask about the learners' own experiences and opinions on the general topic.\n"
        f"{LEVEL_GUIDANCE[context.level]}\n"
        "Return one question per line, each ending with a question mark, with no numbering or commentary.\n\n"
        f"Topic excerpt:\n{context.excerpt}"
    )


def discussion_prompt(context: LessonContext) -> str:
    return (
        f"Write exactly 5 discussion questions for {context.level.value} English learners about this text.\n"
        f"{LEVEL_GUIDANCE[context.level]}\n"
        "Start the questions with different words. Each question must end with a question mark.\n"
        "Return one question per line with no commentary.\n\n"
        f'Text "{context.source_title}":\n{context.excerpt}'
    )


def dialogue_prompt(context: LessonContext) -> str:
    vocabulary = ", ".join(context.vocabulary_words) or "words from the text"
    return (
        f"Write a natural dialogue of at least 12 lines between two speakers for {context.level.value} "
        "English learners, based on the text below.\n"
        f"Use these vocabulary words naturally: {vocabulary}.\n"
        f"{LEVEL_GUIDANCE[context.level]}\n"
        "Alternate speakers on every line. Format each line as 'Name: sentence' with no other text.\n\n"
        f'Text "{context.source_title}":\n{context.excerpt}'
    )


def grammar_prompt(context: LessonContext) -> str:
    focus = context.grammar_focus or "a grammar point that appears in the text"
    return (
        f"Create a grammar section for {context.level.value} English learners on {focus}.\n"
        "Respond with a single JSON object with these keys:\n"
        '  "rule": a clear explanation of the rule,\n'
        '  "form": how the structure is formed,\n'
        '  "usage": when it is used,\n'
        '  "examples": at least 3 example sentences from the topic of the text,\n'
        '  "exercises": at least 5 objects with "prompt" and "answer".\n'
        "Return only the JSON.\n\n"
        f'Text "{context.source_title}":\n{context.excerpt}'
    )


def pronunciation_prompt(context: LessonContext) -> str:
    candidates = ", ".join(context.vocabulary_words) or "challenging words from the text"
    return (
        f"Create a pronunciation section for {context.level.value} English learners.\n"
        f"Choose at least 5 words from: {candidates}.\n"
        "Respond with a single JSON object with these keys:\n"
        '  "words": objects with "word", "ipa", "tips" (list of strings) and "practiceSentence",\n'
        '  "tongueTwisters": at least 2 objects with "text" and "targetSounds" (list of sounds).\n'
        "Return only the JSON."
    )


PROMPT_BUILDERS: Dict[str, Callable[[LessonContext], str]] = {
    "warmup": warmup_prompt,
    "dialogue": dialogue_prompt,
    "discussion": discussion_prompt,
    "grammar": grammar_prompt,
    "pronunciation": pronunciation_prompt,
}

import re
from dataclasses import dataclass

WORD_PATTERN = re.compile(r"\b[\w']+\b", re.ASCII)
SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")
VOWEL_CLUSTER_PATTERN = re.compile(r"[aeiouy]{1,2}")


@dataclass(frozen=True)
class ReadabilityMetrics:
    word_count: int
    sentence_count: int
    syllable_count: int
    flesch_kincaid_grade: float


def count_syllables(word: str) -> int:
    """Vowel-cluster estimate; words of three letters or fewer count as one."""
    w = word.lower()
    if len(w) <= 3:
        return 1
    matches = VOWEL_CLUSTER_PATTERN.findall(w)
    return len(matches) if matches else 1


def flesch_kincaid_grade(word_count: int, sentence_count: int, syllable_count: int) -> float:
    words = word_count or 1
    sentences = sentence_count or 1
    grade = 0.39 * (words / sentences) + 11.8 * (syllable_count / words) - 15.59
    return round(grade, 1)


def compute_readability(text: str) -> ReadabilityMetrics:
    words = WORD_PATTERN.findall(text or "")
    sentences = [s for s in SENTENCE_SPLIT_PATTERN.split(text or "") if s.strip()]
    syllables = sum(count_syllables(w) for w in words)

    return ReadabilityMetrics(
        word_count=len(words),
        sentence_count=len(sentences),
        syllable_count=syllables,
        flesch_kincaid_grade=flesch_kincaid_grade(len(words), len(sentences), syllables),
    )

"""Heuristic documentation summaries.

Pulls a short description, feature bullets and use cases out of markdown
documentation and guesses how steep the learning curve is.
"""

import logging
import re
from typing import List, Optional, Sequence

from scully.models import CodeExample, DocumentationArtifact, DocumentationSummary, LearningCurve

logger = logging.getLogger(__name__)

MAX_SUMMARY_LENGTH = 300
MAX_FEATURES = 5
MAX_USE_CASES = 5

_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_EMPHASIS = re.compile(r"\*([^*]+)\*")
_BULLETS = ("- ", "* ", "• ")

EASY_HINTS = ("easy to use", "simple", "straightforward")
ONBOARDING_HINTS = ("getting started", "quick start", "tutorial")
ADVANCED_HINTS = ("advanced", "complex", "sophisticated")


def strip_markdown(text: str) -> str:
    """Drop link targets and emphasis markers."""
    return _EMPHASIS.sub(r"\1", _LINK.sub(r"\1", text)).strip()


def extract_section(content: str, heading: str) -> Optional[str]:
    """Non-empty lines following a heading, up to the next heading."""
    wanted = heading.lower()
    collected: List[str] = []
    in_section = False

    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            if in_section:
                break
            in_section = stripped.lstrip("#").strip().lower().startswith(wanted)
            continue
        if in_section and stripped:
            collected.append(stripped)

    return "\n".join(collected) if collected else None


def bullet_points(content: str, min_length: int = 10, max_length: Optional[int] = None) -> List[str]:
    bullets = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped.startswith(_BULLETS):
            continue
        text = strip_markdown(stripped[2:])
        if len(text) > min_length and (max_length is None or len(text) < max_length):
            bullets.append(text)
    return bullets


class Summarizer:
    """Generates summaries for package documentation."""

    def generate_summary(
        self,
        documentation: DocumentationArtifact,
        examples: Sequence[CodeExample] = (),
    ) -> DocumentationSummary:
        """
        Summarize documentation and its examples.

        Args:
            documentation: Documentation to summarize
            examples: Code examples for the same package

        Returns:
            DocumentationSummary
        """
        logger.info("Generating summary for %s", documentation.package_name)
        content = documentation.content

        return DocumentationSummary(
            package_name=documentation.package_name,
            summary=self._summary(content),
            key_features=self._features(content),
            common_use_cases=self._use_cases(content, examples),
            learning_curve=self._learning_curve(content, examples),
        )

    @staticmethod
    def _summary(content: str) -> str:
        """First paragraph that is not a heading."""
        paragraph: List[str] = []
        for line in content.splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                if paragraph:
                    break
                continue
            paragraph.append(stripped)

        if not paragraph:
            return "No description available"

        summary = strip_markdown(" ".join(paragraph))
        if len(summary) > MAX_SUMMARY_LENGTH:
            summary = summary[:MAX_SUMMARY_LENGTH] + "..."
        return summary

    @staticmethod
    def _features(content: str) -> List[str]:
        features = bullet_points(content, max_length=100)
        section = extract_section(content, "Features")
        if section:
            features.extend(f for f in bullet_points(section) if f not in features)
        return features[:MAX_FEATURES]

    @staticmethod
    def _use_cases(content: str, examples: Sequence[CodeExample]) -> List[str]:
        use_cases: List[str] = []
        section = (
            extract_section(content, "Use Cases")
            or extract_section(content, "Usage")
            or extract_section(content, "Getting Started")
        )
        if section:
            sentences = [s.strip() for s in section.split(".")]
            use_cases.extend([s for s in sentences if 20 < len(s) < 150][:3])

        use_cases.extend(e.title for e in examples if 10 < len(e.title) < 100)
        return use_cases[:MAX_USE_CASES]

    @staticmethod
    def _learning_curve(content: str, examples: Sequence[CodeExample]) -> LearningCurve:
        lowered = content.lower()
        score = 0
        if any(hint in lowered for hint in ONBOARDING_HINTS):
            score += 2
        if examples:
            score += 1
        if any(hint in lowered for hint in EASY_HINTS):
            score += 1
        if any(hint in lowered for hint in ADVANCED_HINTS):
            score -= 1

        if score >= 4:
            return LearningCurve.EASY
        if score >= 2:
            return LearningCurve.MODERATE
        return LearningCurve.STEEP

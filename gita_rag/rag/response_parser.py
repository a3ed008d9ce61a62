"""Extracts the user-facing answer from a structured generation response."""

import logging
import re

from gita_rag.rag.persona import APOLOGY_MESSAGE, DEFAULT_OPENING, PERSONA_OPENINGS

logger = logging.getLogger(__name__)

BRACKETED_REASONING = re.compile(r"\[Step-by-Step Thinking Process:.*?\]", re.IGNORECASE | re.DOTALL)

# Headings and step lists that non-compliant generations leak into the answer.
# Each entry is (pattern, max replacements; 0 means all).
LEAKED_SCAFFOLDING: list[tuple[re.Pattern[str], int]] = [
    (re.compile(r"\*\*Step-by-Step Explanation.*?\*\*:?.*?\n", re.IGNORECASE | re.DOTALL), 1),
    (re.compile(r"\*\*Final Answer.*?\*\*:?", re.IGNORECASE), 1),
    (re.compile(r"Step-by-Step Explanation.*?:", re.IGNORECASE | re.DOTALL), 1),
    (re.compile(r"Step \d+:.*?\n"), 0),
    (re.compile(r"\d+\.\s+\*\*.*?\*\*:.*?\n"), 0),
    (re.compile(r"\d+\.\s+.*?:.*?\n"), 0),
    (re.compile(r"\*\*Conclusion.*?\*\*:.*?\n", re.IGNORECASE), 1),
    (re.compile(r"^.*?Analysis.*?:.*?\n", re.IGNORECASE), 1),
    (re.compile(r"^.*?Explanation.*?:.*?\n", re.IGNORECASE), 1),
    (re.compile(r"Final Answer in Lord Krishna's Voice:\s*", re.IGNORECASE), 1),
]

LEADING_NUMBERED_LIST = re.compile(r"^\s*\d+\.")

VOICE_INDICATORS: tuple[str, ...] = ("Parth", "Dear one,", "O seeker,", "Noble soul,", "My child,")


class ResponseParser:
    """Turns a raw completion into an in-persona answer.

    The primary contract is a reasoning section delimited by
    ``<tag>...</tag>`` ahead of the answer. When the backend ignores it,
    a bounded cleanup removes known scaffolding; each such case is logged
    and counted in ``contract_violations``.

    Args:
        reasoning_tag: Name of the sentinel tag around the reasoning section.
    """

    def __init__(self, reasoning_tag: str = "think") -> None:
        self._open = f"<{reasoning_tag}>"
        self._close = f"</{reasoning_tag}>"
        self.contract_violations = 0

    def parse(self, raw: str) -> str:
        """Extract the answer from a raw completion.

        Args:
            raw: The backend's full response text.

        Returns:
            The cleaned answer, always opening with a persona address.
        """
        text = (raw or "").strip()

        close_at = text.rfind(self._close)
        if close_at >= 0:
            text = text[close_at + len(self._close):]
        else:
            text = self._fallback_cleanup(text)

        text = text.replace("**", "").strip()
        if not text:
            return APOLOGY_MESSAGE
        if not text.startswith(PERSONA_OPENINGS):
            text = DEFAULT_OPENING + text
        return text

    def _fallback_cleanup(self, text: str) -> str:
        self.contract_violations += 1
        logger.warning(
            "Generation response missing %s...%s section; applying fallback cleanup",
            self._open,
            self._close,
        )

        open_at = text.find(self._open)
        if open_at >= 0:
            # Unterminated reasoning: everything after the opening tag is internal
            text = text[:open_at]

        text = BRACKETED_REASONING.sub("", text)
        for pattern, count in LEAKED_SCAFFOLDING:
            text = pattern.sub("", text, count=count)

        if LEADING_NUMBERED_LIST.match(text):
            for indicator in VOICE_INDICATORS:
                index = text.find(indicator)
                if index > 0:
                    text = text[index:]
                    break
        return text.strip()

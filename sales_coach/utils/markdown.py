"""
Markdown helpers
Plain-text rendering and heading extraction for topic sections.
"""
import re
from typing import List, Tuple

DEFAULT_SECTION_TITLE = "Untitled Section"

_HEADING_RE = re.compile(r"^#+\s+(.+)$", re.MULTILINE)

# Applied in order; fenced code goes before inline code so the fences are not
# read as pairs of inline backticks.
_RULES: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"`(.*?)`"), r"\1"),
    (re.compile(r"#+\s+"), ""),
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"\[(.*?)\]\(.*?\)"), r"\1"),
    (re.compile(r"- "), ""),
    (re.compile(r"\d+\. "), ""),
    (re.compile(r"\n\n"), " "),
    (re.compile(r"\n"), " "),
]


def extract_section_title(text: str) -> str:
    """
    Return the first ATX heading of a Markdown document.

    Args:
        text: Markdown source

    Returns:
        The heading text, or "Untitled Section" when there is none
    """
    match = _HEADING_RE.search(text or "")
    if match:
        return match.group(1)
    return DEFAULT_SECTION_TITLE


def _strip_once(text: str) -> str:
    for pattern, replacement in _RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def remove_markdown_formatting(markdown: str) -> str:
    """
    Strip Markdown syntax and collapse line breaks to spaces.

    Removing one marker can expose another (a list marker split by a line
    break, say), so the rules are re-applied until the text is stable. Every
    rule either shortens the text or turns a newline into a space, so the
    loop terminates and the result is a fixed point.
    """
    current = _strip_once(markdown or "")
    while True:
        stripped = _strip_once(current)
        if stripped == current:
            return current
        current = stripped

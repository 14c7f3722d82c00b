"""
markdown.py
===========
Turns chat-style Markdown into speakable plain text.

Only decoration is removed; the words inside it are kept:
    **bold** / __bold__   -> bold
    *em* / _em_           -> em
    [label](url)          -> label
    `code`                -> code
    > quote               -> quote      (line start)
    ## Heading            -> Heading    (line start)

Usage:
    >>> strip_markdown("## **Hello** [world](https://example.com)")
    'Hello world'
"""

import re

_BOLD = re.compile(r"(\*\*|__)(.*?)\1")
_EMPHASIS = re.compile(r"(\*|_)(.*?)\1")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_CODE = re.compile(r"`([^`]+)`")
# a whole run of line-start markers ("> > ## x") goes in one match
_LINE_MARKERS = re.compile(r"^(?:>\s?|#+\s?)+", re.MULTILINE)


def _strip_once(text: str) -> str:
    text = _BOLD.sub(r"\2", text)
    text = _EMPHASIS.sub(r"\2", text)
    text = _LINK.sub(r"\1", text)
    text = _CODE.sub(r"\1", text)
    text = _LINE_MARKERS.sub("", text)
    return text.strip()


def strip_markdown(text: object) -> str:
    """
    Remove Markdown decoration and surrounding whitespace. Never raises.

    Nested line markers (``> > x``, ``# > x``) go in a single pass. Removing
    inline decoration can still expose a new marker (``**> x**``), so passes
    repeat until the text is stable. Each pass that changes anything makes
    the text shorter, so the loop ends; the result is idempotent.
    """
    current = "" if text is None else str(text)
    while True:
        stripped = _strip_once(current)
        if stripped == current:
            return stripped
        current = stripped

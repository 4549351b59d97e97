"""Text sanitization for user input and model output.

Offsets reported by the model are only meaningful against the exact text it
was shown, so inbound text is sanitized once, before the prompt is built, and
every later step works on that cleaned string.
"""

import logging
import re
import warnings

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning, ParserRejectedMarkup

logger = logging.getLogger(__name__)

# Elements whose content is never user-visible text
_DROP_WITH_CONTENT = ("script", "style", "iframe", "object", "embed", "noscript", "template")

# C0 and C1 control characters, keeping tab and newline (\r is normalized separately)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

# Cheap pre-check: no "<" and no "&" means there is nothing for the parser to do
_MARKUP_HINT = re.compile(r"[<&]")

# "<![" opens a marked section; html.parser gives up on malformed ones
_MARKED_SECTION = re.compile(r"<(?=!\[)")

_TAG = re.compile(r"</?[A-Za-z][^<>]*>")


def _parse_text(text: str) -> str:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", MarkupResemblesLocatorWarning)
        soup = BeautifulSoup(text, "html.parser")
    for element in soup.find_all(_DROP_WITH_CONTENT):
        element.decompose()
    return soup.get_text()


def _strip_tags(text: str) -> str:
    if not _MARKUP_HINT.search(text):
        return text
    try:
        return _parse_text(text)
    except ParserRejectedMarkup:
        logger.debug("Markup rejected by html.parser, escaping marked sections")
    try:
        return _parse_text(_MARKED_SECTION.sub("&lt;", text))
    except ParserRejectedMarkup:
        logger.debug("Markup still rejected, falling back to tag regex")
    # No "<" left, so the parser only decodes entities here
    return _parse_text(_TAG.sub("", text).replace("<", "&lt;"))


def _clean_once(text: str, *, normalize: bool) -> str:
    if normalize:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _CONTROL_CHARS.sub("", text)
    text = _strip_tags(text)
    text = _CONTROL_CHARS.sub("", text)
    if normalize:
        text = text.replace("\r\n", "\n").replace("\r", "\n").strip()
    return text


def _to_fixed_point(text: str, *, normalize: bool) -> str:
    # Decoding entities can surface new markup ("&lt;b&gt;" -> "<b>"), so keep
    # cleaning until a pass changes nothing. Every pass that changes the text
    # either shortens it or turns "\r" into "\n", so this terminates.
    while True:
        cleaned = _clean_once(text, normalize=normalize)
        if cleaned == text:
            return cleaned
        text = cleaned


def sanitize_text(raw: object) -> str:
    """Strip markup and control characters, normalize newlines, trim.

    Idempotent: ``sanitize_text(sanitize_text(x)) == sanitize_text(x)``.
    """
    if not isinstance(raw, str):
        return ""
    return _to_fixed_point(raw, normalize=True)


def strip_markup(raw: str) -> str:
    """Remove markup and control characters but keep surrounding whitespace.

    Used for model-authored replacement text, where a leading space can be
    part of the edit.
    """
    return _to_fixed_point(raw, normalize=False)

"""Markdown to Slack mrkdwn conversion and malicious content stripping.

MRKDWN_RULES is applied top to bottom and its order is part of the output
contract: footnote definitions go before references, block math before
inline math, images before links and bold before the remaining emphasis.

Code (fenced and inline), existing mrkdwn tokens (``<url|label>``,
``<@U123>``) and bare URLs are set aside before the rules run and put back
afterwards, so nothing inside them is rewritten. Single ``*x*`` and ``_x_``
are already valid mrkdwn emphasis and pass through untouched; together with
the shielding this makes ``to_mrkdwn(to_mrkdwn(s)) == to_mrkdwn(s)``.
"""

import logging
import re

logger = logging.getLogger("slack_bridge.formatting")

HORIZONTAL_RULE = "━━━━━━━━━━"
BULLET = "• "

_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")

# Spans that must come through conversion byte-for-byte (fence language tags excepted)
_FENCE_RE = re.compile(r"```[\w+#.-]*[ \t]*\n(.*?)```", re.DOTALL)
_SHIELD_PATTERNS = (
    re.compile(r"`[^`\n]+`"),
    re.compile(r"<[^<>\s][^<>\n]*>"),
    re.compile(r"https?://[^\s<>()\[\]]+", re.IGNORECASE),
)


def _heading(match: re.Match) -> str:
    # Emphasis markers inside a heading would stack with the heading's own bold
    title = re.sub(r"(\*\*|__)(.+?)\1", r"\2", match.group(1).strip())
    return f"*{title}*"


def _task_item(match: re.Match) -> str:
    box = "☑" if match.group(2).lower() == "x" else "☐"
    return f"{match.group(1)}{BULLET}{box} "


def _image(match: re.Match) -> str:
    alt, url = match.group(1), match.group(2)
    return f"Image: <{url}|{alt}>" if alt else f"Image: <{url}>"


MRKDWN_RULES = (
    # Footnotes
    (re.compile(r"^\[\^[^\]]+\]:[^\n]*\n?", re.MULTILINE), ""),
    (re.compile(r"\[\^[^\]]+\]"), ""),
    # Math delimiters
    (re.compile(r"\$\$(.+?)\$\$", re.DOTALL), r"\1"),
    (re.compile(r"\$(?=\S)([^$\n]+?)(?<=\S)\$"), r"\1"),
    # Block structure
    (re.compile(r"^#{1,6}[ \t]+(.+)$", re.MULTILINE), _heading),
    (re.compile(r"^[ ]{0,3}([-*_])[ \t]*(?:\1[ \t]*){2,}$", re.MULTILINE), HORIZONTAL_RULE),
    (re.compile(r"^([ \t]*)[-*+][ \t]+\[([ xX])\][ \t]+", re.MULTILINE), _task_item),
    (re.compile(r"^([ \t]*)[-*+][ \t]+", re.MULTILINE), rf"\1{BULLET}"),
    # Links
    (re.compile(r"!\[([^\]]*)\]\(([^)\s]+)(?:[ \t]+\"[^\"]*\")?\)"), _image),
    (re.compile(r"\[([^\]]+)\]\(([^)\s]+)(?:[ \t]+\"[^\"]*\")?\)"), r"<\2|\1>"),
    # Emphasis, bold first
    (re.compile(r"\*\*\*(?=\S)(.+?)(?<=\S)\*\*\*"), r"*_\1_*"),
    (re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*"), r"*\1*"),
    (re.compile(r"(?<!\w)__(?=\S)(.+?)(?<=\S)__(?!\w)"), r"*\1*"),
    (re.compile(r"~~(?=\S)(.+?)(?<=\S)~~"), r"~\1~"),
)

MALICIOUS_PATTERNS = (
    (re.compile(r"<script[^>]*>.*?</script\s*>", re.IGNORECASE | re.DOTALL), "[SCRIPT_REMOVED]"),
    (re.compile(r"javascript:", re.IGNORECASE), "[JAVASCRIPT_REMOVED]"),
    (re.compile(r"data:text/html", re.IGNORECASE), "[DATA_URL_REMOVED]"),
)


def to_mrkdwn(text: str) -> str:
    """Convert GitHub-flavoured markdown to Slack mrkdwn.

    Markdown italic written as ``*x*`` is not converted and renders as bold
    in Slack. In mrkdwn ``*x*`` is bold, so rewriting it to ``_x_`` would
    also rewrite the bold this function produces from ``**x**`` and a second
    pass would change the output. ``_x_`` italic needs no conversion.
    """
    stash: list[str] = []

    def _set_aside(value: str) -> str:
        stash.append(value)
        return f"\x00{len(stash) - 1}\x00"

    text = text.replace("\x00", "")
    text = _FENCE_RE.sub(lambda m: _set_aside(f"```\n{m.group(1)}```"), text)
    for pattern in _SHIELD_PATTERNS:
        text = pattern.sub(lambda m: _set_aside(m.group(0)), text)

    for pattern, replacement in MRKDWN_RULES:
        text = pattern.sub(replacement, text)

    # Shielded spans can contain earlier placeholders
    while _PLACEHOLDER_RE.search(text):
        text = _PLACEHOLDER_RE.sub(lambda m: stash[int(m.group(1))], text)
    return text


def strip_malicious(text: str) -> tuple[str, bool]:
    """Replace script tags and script-capable URIs with visible markers.

    Returns:
        Tuple of (sanitized_text, changed)
    """
    sanitized = text
    for pattern, marker in MALICIOUS_PATTERNS:
        sanitized = pattern.sub(marker, sanitized)
    changed = sanitized != text
    if changed:
        logger.warning(
            "malicious_content_sanitized original=%r sanitized=%r",
            text[:100], sanitized[:100],
        )
    return sanitized, changed

"""Convert standard Markdown into Slack mrkdwn."""

import re

# NUL never appears in model output, so placeholders cannot collide with real text
_SENTINEL = "\u0000"

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_INLINE_CODE = re.compile(r"`[^`]+`")
_LINK = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
_BOLD_ASTERISK = re.compile(r"\*\*([^*]+)\*\*")
_BOLD_UNDERSCORE = re.compile(r"__([^_]+)__")
_ITALIC = re.compile(r"(?<!\*)\*([^*]+)\*(?!\*)")
_HEADING = re.compile(r"^#{1,6}\s+(.+)$", re.MULTILINE)
_STRIKE = re.compile(r"~~([^~]+)~~")


def _placeholder(kind: str, index: int) -> str:
    return f"{_SENTINEL}PLACEHOLDER{_SENTINEL}{kind}_{index}{_SENTINEL}"


def _stash(pattern: re.Pattern[str], kind: str, text: str, table: list[str]) -> str:
    def replace(match: re.Match[str]) -> str:
        table.append(match.group(0))
        return _placeholder(kind, len(table) - 1)

    return pattern.sub(replace, text)


def _restore(kind: str, text: str, table: list[str]) -> str:
    for index, original in enumerate(table):
        text = text.replace(_placeholder(kind, index), original, 1)
    return text


def markdown_to_slack(markdown: str) -> str:
    """Rewrite Markdown emphasis, links, headings and strikethrough as Slack mrkdwn.

    Code blocks and inline code are lifted out before any rewriting and put back
    verbatim at the end.

    Note that ``**bold**`` first becomes ``*bold*`` and is then picked up by the
    italic rule, so both bold and italic come out as ``_text_``.
    """
    if not markdown:
        return ""

    code_blocks: list[str] = []
    inline_code: list[str] = []

    result = _stash(_CODE_BLOCK, "CODE_BLOCK", markdown, code_blocks)
    result = _stash(_INLINE_CODE, "INLINE_CODE", result, inline_code)

    result = _LINK.sub(r"<\2|\1>", result)

    result = _BOLD_ASTERISK.sub(r"*\1*", result)
    result = _BOLD_UNDERSCORE.sub(r"*\1*", result)

    result = _ITALIC.sub(r"_\1_", result)

    result = _HEADING.sub(r"*\1*", result)

    result = _STRIKE.sub(r"~\1~", result)

    result = _restore("INLINE_CODE", result, inline_code)
    result = _restore("CODE_BLOCK", result, code_blocks)

    return result

"""Conversion between inline markup (Markdown as typed in code comments) and
Jira wiki markup, the only format self-hosted Jira accepts for descriptions
and comments.

Code is extracted into placeholders before any other rule runs, so line rules
(headings, bullets, quotes) never touch code contents. Conversion never fails
hard: on malformed input the original text is returned unchanged.

Reference: https://jira.atlassian.com/secure/WikiRendererHelpAction.jspa?section=all
"""

import logging
import re

from ...http.errors import ConversionFailure
from .rich_text import trim_trailing_blank_lines

logger = logging.getLogger("devbuddy.jira.wiki_markup")

__all__ = [
    "format_description_with_permalink",
    "markdown_to_wiki",
    "wiki_to_markdown",
]

_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")
# Bold is parked on this marker so the italic rule cannot split it
_BOLD = "\x01"

# Markdown -> wiki
_MD_FENCE_RE = re.compile(
    r"^[ \t]*```[ \t]*([\w+#.-]*)[ \t]*\n(.*?)^[ \t]*```[ \t]*$",
    re.MULTILINE | re.DOTALL,
)
_MD_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")
_MD_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
_MD_RULE_RE = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$")
_MD_LIST_RE = re.compile(r"^(\s*)([-*+]|\d+[.)])\s+(.*)$")
_MD_QUOTE_RE = re.compile(r"^\s*>\s?(.*)$")
_MD_BOLD_RES = (re.compile(r"\*\*(.+?)\*\*"), re.compile(r"__(.+?)__"))
_MD_ITALIC_RE = re.compile(r"(?<![*\w])\*(?![\s*])([^*\n]+?)(?<![\s*])\*(?![*\w])")
_MD_STRIKE_RE = re.compile(r"~~(.+?)~~")
_MD_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)\)")
_MD_LINK_RE = re.compile(r"\[([^\]\n]+)\]\(([^)\s]+)\)")
_MD_AUTOLINK_RE = re.compile(r"<(https?://[^>\s]+)>")

# Wiki -> markdown
_WIKI_CODE_RE = re.compile(r"\{code(?::([\w+#.-]+))?(?:\|[^}]*)?\}[ \t]*\n?(.*?)\{code\}", re.DOTALL)
_WIKI_NOFORMAT_RE = re.compile(r"\{noformat\}[ \t]*\n?(.*?)\{noformat\}", re.DOTALL)
_WIKI_INLINE_CODE_RE = re.compile(r"\{\{(.+?)\}\}")
_WIKI_QUOTE_RE = re.compile(r"\{quote\}[ \t]*\n?(.*?)\n?\{quote\}", re.DOTALL)
_WIKI_HEADING_RE = re.compile(r"^\s*h([1-6])\.\s+(.*)$")
_WIKI_BQ_RE = re.compile(r"^\s*bq\.\s+(.*)$")
_WIKI_RULE_RE = re.compile(r"^\s*-{4,}\s*$")
_WIKI_LIST_RE = re.compile(r"^\s*([*#-]+)\s+(.*)$")
_WIKI_BOLD_RE = re.compile(r"(?<![\w*])\*(?![\s*])([^*\n]+?)(?<![\s*])\*(?![\w*])")
_WIKI_ITALIC_RE = re.compile(r"(?<![\w_])_(?![\s_])([^_\n]+?)(?<![\s_])_(?![\w_])")
_WIKI_STRIKE_RE = re.compile(r"(?<![\w-])-(?![\s-])([^-\n]+?)(?<![\s-])-(?![\w-])")
_WIKI_LINK_RE = re.compile(r"\[([^|\]\n]+)\|([^\]\n]+)\]")
_WIKI_BARE_LINK_RE = re.compile(r"\[((?:https?|mailto):[^\]\s]+)\]")
_WIKI_IMAGE_RE = re.compile(r"!([^!\s|]+\.(?:png|jpe?g|gif|svg|webp))(?:\|[^!\n]*)?!", re.IGNORECASE)
_WIKI_COLOR_RE = re.compile(r"\{color(?::[^}]*)?\}")

_TODO_PREFIXES = (
    re.compile(r"^//\s*TODO:?\s*", re.IGNORECASE),
    re.compile(r"^#\s*TODO:?\s*", re.IGNORECASE),
    re.compile(r"^/\*\s*TODO:?\s*", re.IGNORECASE),
    re.compile(r"\*/\s*$"),
)


class _Stash:
    """Holds protected fragments while line rules run over the rest."""

    def __init__(self) -> None:
        self.fragments: list[str] = []

    def put(self, fragment: str) -> str:
        self.fragments.append(fragment)
        return f"\x00{len(self.fragments) - 1}\x00"

    def restore(self, text: str) -> str:
        def _sub(match: re.Match[str]) -> str:
            index = int(match.group(1))
            if index >= len(self.fragments):
                raise ConversionFailure(f"dangling placeholder {index}")
            return self.fragments[index]

        return _PLACEHOLDER_RE.sub(_sub, text)


# =============================================================================
# Markdown -> wiki
# =============================================================================


def markdown_to_wiki(markdown: str) -> str:
    """Convert inline markup to Jira wiki markup.

    Example:
        >>> markdown_to_wiki("## Steps\\n\\n- **run** `make`")
        'h2. Steps\\n\\n* *run* {{make}}'
    """
    if not markdown:
        return ""
    try:
        return _markdown_to_wiki(markdown)
    except (ConversionFailure, re.error, ValueError, TypeError) as e:
        logger.warning("wiki_conversion_failed", extra={"direction": "to_wiki", "error": str(e)})
        return markdown


def _markdown_to_wiki(markdown: str) -> str:
    if "\x00" in markdown:
        raise ConversionFailure("input contains NUL characters")
    stash = _Stash()
    text = markdown.replace("\r\n", "\n")

    def _fence(match: re.Match[str]) -> str:
        language = match.group(1)
        code = trim_trailing_blank_lines(match.group(2))
        opener = f"{{code:{language}}}" if language else "{code}"
        body = f"{code}\n" if code else ""
        return stash.put(f"{opener}\n{body}{{code}}")

    text = _MD_FENCE_RE.sub(_fence, text)
    text = _MD_INLINE_CODE_RE.sub(lambda m: stash.put(f"{{{{{m.group(1)}}}}}"), text)

    out: list[str] = []
    quote: list[str] = []
    list_kinds: list[str] = []

    def flush_quote() -> None:
        if not quote:
            return
        if len(quote) == 1:
            out.append(f"bq. {quote[0]}")
        else:
            out.extend(["{quote}", *quote, "{quote}"])
        quote.clear()

    for line in text.split("\n"):
        quoted = _MD_QUOTE_RE.match(line)
        if quoted:
            quote.append(_md_inline(quoted.group(1)))
            continue
        flush_quote()

        if _MD_RULE_RE.match(line):
            list_kinds.clear()
            out.append("----")
            continue

        heading = _MD_HEADING_RE.match(line)
        if heading:
            list_kinds.clear()
            out.append(f"h{len(heading.group(1))}. {_md_inline(heading.group(2))}")
            continue

        item = _MD_LIST_RE.match(line)
        if item:
            depth = len(item.group(1).expandtabs(2)) // 2
            kind = "#" if item.group(2)[0].isdigit() else "*"
            del list_kinds[depth:]
            while len(list_kinds) < depth:
                list_kinds.append(list_kinds[-1] if list_kinds else "*")
            list_kinds.append(kind)
            out.append(f"{''.join(list_kinds)} {_md_inline(item.group(3))}")
            continue

        if line.strip():
            list_kinds.clear()
        out.append(_md_inline(line))

    flush_quote()
    return stash.restore("\n".join(out))


def _md_inline(text: str) -> str:
    for pattern in _MD_BOLD_RES:
        text = pattern.sub(lambda m: f"{_BOLD}{m.group(1)}{_BOLD}", text)
    text = _MD_ITALIC_RE.sub(r"_\1_", text)
    text = _MD_STRIKE_RE.sub(r"-\1-", text)
    text = _MD_IMAGE_RE.sub(r"!\2!", text)
    text = _MD_LINK_RE.sub(r"[\1|\2]", text)
    text = _MD_AUTOLINK_RE.sub(r"[\1]", text)
    return text.replace(_BOLD, "*")


# =============================================================================
# Wiki -> markdown
# =============================================================================


def wiki_to_markdown(wiki: str) -> str:
    """Convert Jira wiki markup to inline markup for display in the editor.

    Example:
        >>> wiki_to_markdown("h1. Title\\n* *bold* item")
        '# Title\\n- **bold** item'
    """
    if not wiki:
        return ""
    try:
        return _wiki_to_markdown(wiki)
    except (ConversionFailure, re.error, ValueError, TypeError) as e:
        logger.warning("wiki_conversion_failed", extra={"direction": "to_markdown", "error": str(e)})
        return wiki


def _wiki_to_markdown(wiki: str) -> str:
    if "\x00" in wiki:
        raise ConversionFailure("input contains NUL characters")
    stash = _Stash()
    text = wiki.replace("\r\n", "\n")

    def _code(match: re.Match[str]) -> str:
        language = match.group(1) or ""
        code = trim_trailing_blank_lines(match.group(2))
        body = f"{code}\n" if code else ""
        return stash.put(f"```{language}\n{body}```")

    def _noformat(match: re.Match[str]) -> str:
        code = trim_trailing_blank_lines(match.group(1))
        body = f"{code}\n" if code else ""
        return stash.put(f"```\n{body}```")

    text = _WIKI_CODE_RE.sub(_code, text)
    text = _WIKI_NOFORMAT_RE.sub(_noformat, text)
    text = _WIKI_INLINE_CODE_RE.sub(lambda m: stash.put(f"`{m.group(1)}`"), text)
    text = _WIKI_QUOTE_RE.sub(
        lambda m: "\n".join(f"bq. {line}" if line.strip() else "bq. " for line in m.group(1).split("\n")),
        text,
    )

    out: list[str] = []
    for line in text.split("\n"):
        heading = _WIKI_HEADING_RE.match(line)
        if heading:
            out.append(f"{'#' * int(heading.group(1))} {_wiki_inline(heading.group(2))}")
            continue
        quote = _WIKI_BQ_RE.match(line)
        if quote or line.strip() == "bq.":
            content = quote.group(1) if quote else ""
            out.append(f"> {_wiki_inline(content)}".rstrip())
            continue
        if _WIKI_RULE_RE.match(line):
            out.append("---")
            continue
        item = _WIKI_LIST_RE.match(line)
        if item:
            markers = item.group(1)
            indent = "  " * (len(markers) - 1)
            bullet = "1." if markers[-1] == "#" else "-"
            out.append(f"{indent}{bullet} {_wiki_inline(item.group(2))}")
            continue
        out.append(_wiki_inline(line))

    return stash.restore("\n".join(out))


def _wiki_inline(text: str) -> str:
    text = _WIKI_COLOR_RE.sub("", text)
    text = _WIKI_IMAGE_RE.sub(r"![](\1)", text)
    text = _WIKI_BOLD_RE.sub(lambda m: f"{_BOLD}{_BOLD}{m.group(1)}{_BOLD}{_BOLD}", text)
    text = _WIKI_ITALIC_RE.sub(r"*\1*", text)
    text = _WIKI_STRIKE_RE.sub(r"~~\1~~", text)
    text = _WIKI_LINK_RE.sub(r"[\1](\2)", text)
    text = _WIKI_BARE_LINK_RE.sub(r"<\1>", text)
    return text.replace(_BOLD, "*")


# =============================================================================
# Source TODO -> issue description
# =============================================================================


def format_description_with_permalink(
    todo_text: str,
    permalink: str,
    file_name: str,
    line_number: int,
) -> str:
    """Build a wiki description for an issue created from a source-code TODO.

    Strips the comment/TODO prefix, converts the remainder to wiki markup and
    appends a rule plus a link back to the source line.
    """
    clean = todo_text
    for pattern in _TODO_PREFIXES:
        clean = pattern.sub("", clean)
    clean = clean.strip()

    parts: list[str] = []
    description = markdown_to_wiki(clean)
    if description:
        parts.extend([description, ""])
    parts.extend(["----", "", "*Source Code:*", f"[{file_name}:{line_number}|{permalink}]"])
    return "\n".join(parts)

"""Rich-text document tree and conversions to and from readable inline text.

The tree is a closed set of frozen node types built bottom-up from a parse and
never mutated afterwards. Three entry points produce or consume it:

- parse_adf: Atlassian Document Format JSON -> Document
- parse_markup: readable inline text (as written by developers and as
  produced by render_text) -> Document
- render_text: Document -> readable inline text
- to_adf: Document -> Atlassian Document Format JSON

Marks render as wrapping punctuation: *bold*, _italic_, `code`, ~strike~.

Reference: https://developer.atlassian.com/cloud/jira/platform/apis/document/structure/
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from ...http.errors import ConversionFailure

logger = logging.getLogger("devbuddy.jira.rich_text")

__all__ = [
    "Blockquote",
    "BulletList",
    "CodeBlock",
    "Document",
    "HardBreak",
    "Heading",
    "InlineCard",
    "ListItem",
    "Mark",
    "Mention",
    "OrderedList",
    "Paragraph",
    "Rule",
    "Text",
    "adf_to_text",
    "parse_adf",
    "parse_markup",
    "render_text",
    "to_adf",
]


class Mark(str, Enum):
    STRONG = "strong"
    EM = "em"
    CODE = "code"
    STRIKE = "strike"


MARK_WRAPPERS: dict[Mark, str] = {
    Mark.STRONG: "*",
    Mark.EM: "_",
    Mark.CODE: "`",
    Mark.STRIKE: "~",
}


# Inline nodes


@dataclass(frozen=True)
class Text:
    text: str
    marks: tuple[Mark, ...] = ()


@dataclass(frozen=True)
class HardBreak:
    pass


@dataclass(frozen=True)
class Mention:
    name: str


@dataclass(frozen=True)
class InlineCard:
    url: str


Inline = Union[Text, HardBreak, Mention, InlineCard]


# Block nodes


@dataclass(frozen=True)
class Paragraph:
    children: tuple[Inline, ...] = ()


@dataclass(frozen=True)
class Heading:
    level: int
    children: tuple[Inline, ...] = ()


@dataclass(frozen=True)
class CodeBlock:
    text: str
    language: str = ""


@dataclass(frozen=True)
class ListItem:
    children: tuple["Block", ...] = ()


@dataclass(frozen=True)
class BulletList:
    items: tuple[ListItem, ...] = ()


@dataclass(frozen=True)
class OrderedList:
    items: tuple[ListItem, ...] = ()
    start: int = 1


@dataclass(frozen=True)
class Blockquote:
    children: tuple["Block", ...] = ()


@dataclass(frozen=True)
class Rule:
    pass


Block = Union[Paragraph, Heading, CodeBlock, BulletList, OrderedList, Blockquote, Rule]


@dataclass(frozen=True)
class Document:
    children: tuple[Block, ...] = ()


# =============================================================================
# ADF -> tree
# =============================================================================

_ADF_MARKS = {mark.value: mark for mark in Mark}
_ADF_INLINE_TYPES = {"text", "hardBreak", "mention", "inlineCard", "emoji"}


def parse_adf(payload: Any) -> Document:
    """Build a Document from an ADF JSON object.

    Unknown container nodes (panels, tables, media wrappers) are flattened into
    their children; unknown marks are dropped.

    Raises:
        ConversionFailure: The payload is not a well-formed ADF document
    """
    if not isinstance(payload, dict):
        raise ConversionFailure(f"document must be an object, got {type(payload).__name__}")
    if payload.get("type") != "doc":
        raise ConversionFailure(f"root node must be 'doc', got {payload.get('type')!r}")
    return Document(tuple(_parse_blocks(_content(payload))))


def _content(node: dict[str, Any]) -> list[Any]:
    content = node.get("content") or []
    if not isinstance(content, list):
        raise ConversionFailure(f"'{node.get('type')}' content must be a list")
    return content


def _node_type(node: dict[str, Any]) -> str | None:
    node_type = node.get("type")
    if node_type is not None and not isinstance(node_type, str):
        raise ConversionFailure(f"node 'type' must be a string, got {type(node_type).__name__}")
    return node_type


def _text(node: dict[str, Any]) -> str:
    text = node.get("text", "")
    if not isinstance(text, str):
        raise ConversionFailure(f"text node 'text' must be a string, got {type(text).__name__}")
    return text


def _attrs(node: dict[str, Any]) -> dict[str, Any]:
    attrs = node.get("attrs") or {}
    return attrs if isinstance(attrs, dict) else {}


def _parse_blocks(nodes: list[Any]) -> list[Block]:
    blocks: list[Block] = []
    pending: list[Inline] = []
    for node in nodes:
        if not isinstance(node, dict):
            raise ConversionFailure(f"node must be an object, got {type(node).__name__}")
        if _node_type(node) in _ADF_INLINE_TYPES:
            pending.extend(_parse_inline([node]))
            continue
        if pending:
            blocks.append(Paragraph(tuple(pending)))
            pending = []
        blocks.extend(_parse_block(node))
    if pending:
        blocks.append(Paragraph(tuple(pending)))
    return blocks


def _parse_block(node: dict[str, Any]) -> list[Block]:
    node_type = _node_type(node)
    if not node_type:
        raise ConversionFailure("node missing 'type'")
    attrs = _attrs(node)

    if node_type == "paragraph":
        return [Paragraph(tuple(_parse_inline(_content(node))))]
    if node_type == "heading":
        try:
            level = int(attrs.get("level", 1))
        except (TypeError, ValueError):
            level = 1
        return [Heading(min(max(level, 1), 6), tuple(_parse_inline(_content(node))))]
    if node_type == "codeBlock":
        text = "".join(
            _text(child)
            for child in _content(node)
            if isinstance(child, dict) and _node_type(child) == "text"
        )
        return [CodeBlock(text, str(attrs.get("language") or ""))]
    if node_type == "bulletList":
        return [BulletList(tuple(_parse_list_items(_content(node))))]
    if node_type == "orderedList":
        start = attrs.get("order", 1)
        return [OrderedList(tuple(_parse_list_items(_content(node))), start if isinstance(start, int) else 1)]
    if node_type == "listItem":
        return [BulletList((ListItem(tuple(_parse_blocks(_content(node)))),))]
    if node_type == "blockquote":
        return [Blockquote(tuple(_parse_blocks(_content(node))))]
    if node_type == "rule":
        return [Rule()]

    logger.debug("adf_unknown_node_type", extra={"node_type": node_type})
    return _parse_blocks(_content(node))


def _parse_list_items(nodes: list[Any]) -> list[ListItem]:
    items = []
    for node in nodes:
        if not isinstance(node, dict):
            raise ConversionFailure("list item must be an object")
        if _node_type(node) == "listItem":
            items.append(ListItem(tuple(_parse_blocks(_content(node)))))
        else:
            items.append(ListItem(tuple(_parse_blocks([node]))))
    return items


def _parse_inline(nodes: list[Any]) -> list[Inline]:
    inlines: list[Inline] = []
    for node in nodes:
        if not isinstance(node, dict):
            raise ConversionFailure("inline node must be an object")
        node_type = _node_type(node)
        attrs = _attrs(node)
        if node_type == "text":
            marks = node.get("marks") or []
            if not isinstance(marks, list):
                raise ConversionFailure("text node 'marks' must be a list")
            inlines.append(
                Text(
                    _text(node),
                    tuple(
                        _ADF_MARKS[mark["type"]]
                        for mark in marks
                        if isinstance(mark, dict) and isinstance(mark.get("type"), str) and mark["type"] in _ADF_MARKS
                    ),
                )
            )
        elif node_type == "hardBreak":
            inlines.append(HardBreak())
        elif node_type == "mention":
            name = attrs.get("text") or attrs.get("displayName") or "Unknown"
            inlines.append(Mention(str(name).lstrip("@")))
        elif node_type == "inlineCard":
            if attrs.get("url"):
                inlines.append(InlineCard(str(attrs["url"])))
        elif node_type == "emoji":
            inlines.append(Text(str(attrs.get("text") or attrs.get("shortName") or "")))
        else:
            inlines.extend(_parse_inline(_content(node)))
    return inlines


# =============================================================================
# Tree -> readable text
# =============================================================================

_TRAILING_BLANK_LINES = re.compile(r"(?:\n[ \t]*)+\Z")


def trim_trailing_blank_lines(text: str) -> str:
    return _TRAILING_BLANK_LINES.sub("", text)


def render_inline(nodes: tuple[Inline, ...]) -> str:
    parts = []
    for node in nodes:
        if isinstance(node, Text):
            text = node.text
            if text:
                for mark in node.marks:
                    wrapper = MARK_WRAPPERS[mark]
                    text = f"{wrapper}{text}{wrapper}"
            parts.append(text)
        elif isinstance(node, HardBreak):
            parts.append("\n")
        elif isinstance(node, Mention):
            parts.append(f"@{node.name}")
        elif isinstance(node, InlineCard):
            parts.append(node.url)
    return "".join(parts)


def render_text(document: Document) -> str:
    """Render a Document as readable text with inline markers.

    Headings become '#' x level, code blocks are fenced with their language,
    lists use '- ' / 'N. ' with two-space nesting, quotes use '> ' and rules
    '---'. Blocks are separated by a blank line.
    """
    lines = _render_blocks(document.children)
    return "\n".join(lines).strip("\n")


def _render_blocks(blocks: tuple[Block, ...]) -> list[str]:
    lines: list[str] = []
    for block in blocks:
        lines.extend(_render_block(block))
    return lines


def _render_block(block: Block) -> list[str]:
    if isinstance(block, Paragraph):
        text = render_inline(block.children)
        return [text, ""] if text.strip() else []
    if isinstance(block, Heading):
        return [f"{'#' * block.level} {render_inline(block.children)}", ""]
    if isinstance(block, CodeBlock):
        code = trim_trailing_blank_lines(block.text)
        body = [code] if code else []
        return [f"```{block.language}", *body, "```", ""]
    if isinstance(block, (BulletList, OrderedList)):
        return [*_render_list(block, 0), ""]
    if isinstance(block, Blockquote):
        inner = _render_blocks(block.children)
        while inner and not inner[-1]:
            inner.pop()
        quoted = "\n".join(inner).split("\n") if inner else []
        return [f"> {line}" if line else ">" for line in quoted] + [""]
    if isinstance(block, Rule):
        return ["---", ""]
    return []


def _render_list(block: BulletList | OrderedList, depth: int) -> list[str]:
    indent = "  " * depth
    continuation = indent + "  "
    lines: list[str] = []
    for index, item in enumerate(block.items):
        if isinstance(block, OrderedList):
            marker = f"{block.start + index}. "
        else:
            marker = "- "
        opened = False
        for child in item.children:
            if isinstance(child, (BulletList, OrderedList)):
                if not opened:
                    lines.append(f"{indent}{marker}".rstrip())
                    opened = True
                lines.extend(_render_list(child, depth + 1))
            elif isinstance(child, Paragraph):
                text = render_inline(child.children).strip().replace("\n", "\n" + continuation)
                if not opened:
                    lines.append(f"{indent}{marker}{text}")
                    opened = True
                else:
                    lines.append(f"{continuation}{text}")
            else:
                block_lines = _render_block(child)
                while block_lines and not block_lines[-1]:
                    block_lines.pop()
                if not opened:
                    lines.append(f"{indent}{marker}".rstrip())
                    opened = True
                for line in "\n".join(block_lines).split("\n"):
                    lines.append(f"{continuation}{line}" if line else "")
        if not opened:
            lines.append(f"{indent}{marker}".rstrip())
    return lines


def adf_to_text(payload: Any) -> str:
    """Render ADF JSON as readable text.

    Malformed input never raises: the text leaves that can still be found are
    joined instead.
    """
    if not payload:
        return ""
    try:
        return render_text(parse_adf(payload))
    except (ConversionFailure, TypeError, ValueError, RecursionError) as e:
        logger.warning("adf_conversion_failed", extra={"error": str(e)})
    try:
        return " ".join(_loose_text(payload)).strip()
    except RecursionError:
        return ""


def _loose_text(node: Any) -> list[str]:
    if isinstance(node, str):
        return [node]
    if isinstance(node, dict):
        found = [node["text"]] if isinstance(node.get("text"), str) else []
        content = node.get("content")
        if isinstance(content, list):
            for child in content:
                found.extend(_loose_text(child))
        return found
    if isinstance(node, list):
        return [text for child in node for text in _loose_text(child)]
    return []


# =============================================================================
# Readable text -> tree
# =============================================================================

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_RULE_RE = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$")
_LIST_RE = re.compile(r"^(\s*)([-*+]|\d+[.)])\s+(.*)$")
_FENCE_RE = re.compile(r"^\s*```\s*([\w+#.-]*)\s*$")

_INLINE_RE = re.compile(
    r"`(?P<code>[^`]+)`"
    r"|\*\*(?P<strong2>.+?)\*\*"
    r"|\*(?P<strong>[^*\s](?:[^*]*?[^*\s])?)\*"
    r"|~~(?P<strike2>.+?)~~"
    r"|~(?P<strike>[^~\s](?:[^~]*?[^~\s])?)~"
    r"|(?<![A-Za-z0-9])_(?P<em>[^_\s](?:[^_]*?[^_\s])?)_(?![A-Za-z0-9])"
)

_GROUP_MARKS = {
    "strong2": Mark.STRONG,
    "strong": Mark.STRONG,
    "strike2": Mark.STRIKE,
    "strike": Mark.STRIKE,
    "em": Mark.EM,
}


@dataclass(frozen=True)
class _ListLine:
    indent: int
    ordered: bool
    start: int
    text: str


def parse_markup(text: str) -> Document:
    """Parse readable inline text into a Document.

    Accepts the dialect render_text produces, plus doubled '**' / '~~' markers.
    Single line breaks inside a paragraph become hard breaks.
    """
    return Document(tuple(_parse_markup_blocks(text.replace("\r\n", "\n").split("\n"))))


def _parse_markup_blocks(lines: list[str]) -> list[Block]:
    blocks: list[Block] = []
    paragraph: list[str] = []
    i = 0

    def flush() -> None:
        if paragraph:
            inlines: list[Inline] = []
            for n, line in enumerate(paragraph):
                if n:
                    inlines.append(HardBreak())
                inlines.extend(parse_inline_markup(line))
            blocks.append(Paragraph(tuple(inlines)))
            paragraph.clear()

    while i < len(lines):
        line = lines[i]
        fence = _FENCE_RE.match(line)
        if fence:
            flush()
            body = []
            i += 1
            while i < len(lines) and lines[i].strip() != "```":
                body.append(lines[i])
                i += 1
            i += 1
            blocks.append(CodeBlock(trim_trailing_blank_lines("\n".join(body)), fence.group(1)))
            continue
        if not line.strip():
            flush()
            i += 1
            continue
        heading = _HEADING_RE.match(line)
        if heading:
            flush()
            blocks.append(Heading(len(heading.group(1)), tuple(parse_inline_markup(heading.group(2).strip()))))
            i += 1
            continue
        if _RULE_RE.match(line):
            flush()
            blocks.append(Rule())
            i += 1
            continue
        if line.lstrip().startswith(">"):
            flush()
            quoted = []
            while i < len(lines) and lines[i].lstrip().startswith(">"):
                stripped = lines[i].lstrip()[1:]
                quoted.append(stripped[1:] if stripped.startswith(" ") else stripped)
                i += 1
            blocks.append(Blockquote(tuple(_parse_markup_blocks(quoted))))
            continue
        if _LIST_RE.match(line):
            flush()
            entries = []
            while i < len(lines):
                match = _LIST_RE.match(lines[i])
                if not match:
                    break
                marker = match.group(2)
                ordered = marker[0].isdigit()
                entries.append(
                    _ListLine(
                        indent=len(match.group(1).expandtabs(2)),
                        ordered=ordered,
                        start=int(marker[:-1]) if ordered else 1,
                        text=match.group(3),
                    )
                )
                i += 1
            pos = 0
            while pos < len(entries):
                node, pos = _build_list(entries, pos, entries[pos].indent)
                blocks.append(node)
            continue
        paragraph.append(line)
        i += 1

    flush()
    return blocks


def _build_list(entries: list[_ListLine], pos: int, indent: int) -> tuple[Block, int]:
    first = entries[pos]
    items: list[ListItem] = []
    while pos < len(entries):
        entry = entries[pos]
        if entry.indent < indent or (entry.indent == indent and entry.ordered != first.ordered):
            break
        if entry.indent > indent:
            nested, pos = _build_list(entries, pos, entry.indent)
            previous = items.pop() if items else ListItem()
            items.append(ListItem((*previous.children, nested)))
            continue
        children: list[Block] = []
        if entry.text:
            children.append(Paragraph(tuple(parse_inline_markup(entry.text))))
        pos += 1
        while pos < len(entries) and entries[pos].indent > indent:
            nested, pos = _build_list(entries, pos, entries[pos].indent)
            children.append(nested)
        items.append(ListItem(tuple(children)))
    if first.ordered:
        return OrderedList(tuple(items), first.start), pos
    return BulletList(tuple(items)), pos


def parse_inline_markup(text: str, outer: tuple[Mark, ...] = ()) -> list[Inline]:
    """Split a line into marked Text runs. Outer marks are applied last."""
    inlines: list[Inline] = []
    cursor = 0
    for match in _INLINE_RE.finditer(text):
        if match.start() > cursor:
            inlines.append(Text(text[cursor : match.start()], outer))
        if match.group("code") is not None:
            inlines.append(Text(match.group("code"), (Mark.CODE, *outer)))
        else:
            group = match.lastgroup
            mark = _GROUP_MARKS[group]
            for inner in parse_inline_markup(match.group(group)):
                if isinstance(inner, Text):
                    inlines.append(Text(inner.text, (*inner.marks, mark, *outer)))
                else:
                    inlines.append(inner)
        cursor = match.end()
    if cursor < len(text):
        inlines.append(Text(text[cursor:], outer))
    return inlines


# =============================================================================
# Tree -> ADF
# =============================================================================


def to_adf(document: Document) -> dict[str, Any]:
    """Serialize a Document as ADF JSON (version 1)."""
    return {"version": 1, "type": "doc", "content": [_block_to_adf(b) for b in document.children]}


def _inline_to_adf(node: Inline) -> dict[str, Any]:
    if isinstance(node, Text):
        data: dict[str, Any] = {"type": "text", "text": node.text}
        if node.marks:
            data["marks"] = [{"type": mark.value} for mark in node.marks]
        return data
    if isinstance(node, HardBreak):
        return {"type": "hardBreak"}
    if isinstance(node, Mention):
        return {"type": "mention", "attrs": {"text": f"@{node.name}"}}
    return {"type": "inlineCard", "attrs": {"url": node.url}}


def _inlines_to_adf(nodes: tuple[Inline, ...]) -> list[dict[str, Any]]:
    return [_inline_to_adf(n) for n in nodes if not (isinstance(n, Text) and not n.text)]


def _block_to_adf(block: Block) -> dict[str, Any]:
    if isinstance(block, Paragraph):
        return {"type": "paragraph", "content": _inlines_to_adf(block.children)}
    if isinstance(block, Heading):
        return {"type": "heading", "attrs": {"level": block.level}, "content": _inlines_to_adf(block.children)}
    if isinstance(block, CodeBlock):
        data: dict[str, Any] = {"type": "codeBlock", "content": []}
        if block.text:
            data["content"] = [{"type": "text", "text": block.text}]
        if block.language:
            data["attrs"] = {"language": block.language}
        return data
    if isinstance(block, (BulletList, OrderedList)):
        items = [
            {"type": "listItem", "content": [_block_to_adf(child) for child in item.children]}
            for item in block.items
        ]
        if isinstance(block, OrderedList):
            return {"type": "orderedList", "attrs": {"order": block.start}, "content": items}
        return {"type": "bulletList", "content": items}
    if isinstance(block, Blockquote):
        return {"type": "blockquote", "content": [_block_to_adf(child) for child in block.children]}
    return {"type": "rule"}

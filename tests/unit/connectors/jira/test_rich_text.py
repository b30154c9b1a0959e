"""Unit tests for the rich-text document tree and its conversions.

Tests:
- ADF parsing (nodes, marks, unknown containers, malformed input)
- Readable-text rendering (headings, lists, code, quotes)
- Markup parsing and the render -> parse -> render fixpoint
- ADF serialization
"""

import pytest

from src.devbuddy.connectors.jira.rich_text import (
    BulletList,
    CodeBlock,
    Document,
    HardBreak,
    Heading,
    InlineCard,
    ListItem,
    Mark,
    Mention,
    OrderedList,
    Paragraph,
    Rule,
    Text,
    adf_to_text,
    parse_adf,
    parse_markup,
    render_text,
    to_adf,
)
from src.devbuddy.http.errors import ConversionFailure


def text(value, *marks):
    return {"type": "text", "text": value, "marks": [{"type": m} for m in marks]}


def para(*content):
    return {"type": "paragraph", "content": list(content)}


def item(*content):
    return {"type": "listItem", "content": list(content)}


SAMPLE_ADF = {
    "version": 1,
    "type": "doc",
    "content": [
        {"type": "heading", "attrs": {"level": 2}, "content": [text("Steps")]},
        para(text("Run "), text("make", "code"), text(" "), text("now", "strong")),
        {
            "type": "bulletList",
            "content": [
                item(para(text("one"))),
                item(para(text("two")), {"type": "bulletList", "content": [item(para(text("nested")))]}),
            ],
        },
        {"type": "codeBlock", "attrs": {"language": "python"}, "content": [text("print(1)\n\n")]},
        {"type": "rule"},
        {"type": "blockquote", "content": [para(text("quoted"))]},
    ],
}

SAMPLE_TEXT = (
    "## Steps\n"
    "\n"
    "Run `make` *now*\n"
    "\n"
    "- one\n"
    "- two\n"
    "  - nested\n"
    "\n"
    "```python\n"
    "print(1)\n"
    "```\n"
    "\n"
    "---\n"
    "\n"
    "> quoted"
)


class TestParseAdf:
    def test_structure(self):
        doc = parse_adf(SAMPLE_ADF)

        assert doc.children[0] == Heading(2, (Text("Steps"),))
        assert doc.children[1] == Paragraph(
            (Text("Run "), Text("make", (Mark.CODE,)), Text(" "), Text("now", (Mark.STRONG,)))
        )
        assert isinstance(doc.children[2], BulletList)
        assert doc.children[3] == CodeBlock("print(1)\n\n", "python")
        assert doc.children[4] == Rule()

    def test_mentions_and_cards(self):
        doc = parse_adf(
            {
                "type": "doc",
                "content": [
                    para(
                        {"type": "mention", "attrs": {"id": "1", "text": "@alice"}},
                        text(" see "),
                        {"type": "inlineCard", "attrs": {"url": "https://x.io/1"}},
                    )
                ],
            }
        )
        assert doc.children[0].children == (Mention("alice"), Text(" see "), InlineCard("https://x.io/1"))

    def test_unknown_containers_flattened(self):
        doc = parse_adf({"type": "doc", "content": [{"type": "panel", "content": [para(text("inside"))]}]})
        assert doc == Document((Paragraph((Text("inside"),)),))

    def test_unknown_marks_dropped(self):
        doc = parse_adf({"type": "doc", "content": [para(text("x", "underline", "em"))]})
        assert doc.children[0].children == (Text("x", (Mark.EM,)),)

    def test_stray_inline_nodes_grouped(self):
        doc = parse_adf({"type": "doc", "content": [text("a"), {"type": "hardBreak"}, text("b")]})
        assert doc == Document((Paragraph((Text("a"), HardBreak(), Text("b"))),))

    def test_ordered_list_start(self):
        doc = parse_adf(
            {"type": "doc", "content": [{"type": "orderedList", "attrs": {"order": 3}, "content": [item(para(text("c")))]}]}
        )
        assert doc.children[0].start == 3

    @pytest.mark.parametrize(
        "payload",
        [
            "not a doc",
            None,
            {"type": "paragraph"},
            {"type": "doc", "content": "nope"},
            {"type": "doc", "content": [{"content": []}]},
            {"type": "doc", "content": [para({"type": "text", "text": 5})]},
            {"type": "doc", "content": [{"type": ["paragraph"]}]},
            {"type": "doc", "content": [{"type": "codeBlock", "content": [{"type": "text", "text": 5}]}]},
            {"type": "doc", "content": [para({"type": "text", "text": "x", "marks": {"type": "strong"}})]},
        ],
    )
    def test_malformed_raises(self, payload):
        with pytest.raises(ConversionFailure):
            parse_adf(payload)


class TestRenderText:
    def test_sample_document(self):
        assert render_text(parse_adf(SAMPLE_ADF)) == SAMPLE_TEXT

    def test_ordered_list_numbers(self):
        doc = Document(
            (OrderedList((ListItem((Paragraph((Text("a"),)),)), ListItem((Paragraph((Text("b"),)),))), start=3),)
        )
        assert render_text(doc) == "3. a\n4. b"

    def test_hard_break_and_mention(self):
        doc = Document((Paragraph((Mention("bob"), Text(" hi"), HardBreak(), Text("bye"))),))
        assert render_text(doc) == "@bob hi\nbye"

    def test_blank_paragraphs_skipped(self):
        doc = Document((Paragraph((Text("  "),)), Paragraph((Text("x"),))))
        assert render_text(doc) == "x"

    def test_empty_code_block(self):
        assert render_text(Document((CodeBlock(""),))) == "```\n```"

    def test_nested_marks(self):
        doc = Document((Paragraph((Text("both", (Mark.EM, Mark.STRONG)),)),))
        assert render_text(doc) == "*_both_*"


class TestAdfToText:
    def test_well_formed(self):
        assert adf_to_text(SAMPLE_ADF) == SAMPLE_TEXT

    def test_empty(self):
        assert adf_to_text(None) == ""
        assert adf_to_text({}) == ""

    def test_malformed_falls_back_to_text_leaves(self):
        payload = {"type": "doc", "content": [{"content": [{"type": "text", "text": "orphan"}, {"text": "leaf"}]}]}
        assert adf_to_text(payload) == "orphan leaf"

    def test_non_string_node_type_falls_back(self):
        payload = {"type": "doc", "content": [{"type": ["paragraph"], "content": [{"type": "text", "text": "kept"}]}]}
        assert adf_to_text(payload) == "kept"

    def test_non_string_code_text_falls_back(self):
        payload = {
            "type": "doc",
            "content": [{"type": "codeBlock", "content": [{"type": "text", "text": 5}, {"type": "text", "text": "ok"}]}],
        }
        assert adf_to_text(payload) == "ok"


class TestParseMarkup:
    def test_render_parse_render_fixpoint(self):
        assert render_text(parse_markup(SAMPLE_TEXT)) == SAMPLE_TEXT

    def test_inline_marks(self):
        doc = parse_markup("**bold** and _it_ and ~~gone~~ and `code`")
        assert doc.children[0].children == (
            Text("bold", (Mark.STRONG,)),
            Text(" and "),
            Text("it", (Mark.EM,)),
            Text(" and "),
            Text("gone", (Mark.STRIKE,)),
            Text(" and "),
            Text("code", (Mark.CODE,)),
        )

    def test_snake_case_not_emphasis(self):
        doc = parse_markup("call my_helper_func now")
        assert doc.children[0].children == (Text("call my_helper_func now"),)

    def test_nested_marks_round_trip(self):
        assert render_text(parse_markup("*_both_* done")) == "*_both_* done"

    def test_line_breaks_become_hard_breaks(self):
        doc = parse_markup("first\nsecond")
        assert doc.children[0].children == (Text("first"), HardBreak(), Text("second"))

    def test_code_fence_contents_untouched(self):
        doc = parse_markup("```\n# not a heading\n- not a list\n```")
        assert doc.children == (CodeBlock("# not a heading\n- not a list"),)

    def test_nested_lists(self):
        doc = parse_markup("1. one\n   - sub\n2. two")
        ordered = doc.children[0]

        assert isinstance(ordered, OrderedList)
        assert len(ordered.items) == 2
        assert isinstance(ordered.items[0].children[1], BulletList)

    def test_heading_levels(self):
        doc = parse_markup("### Deep")
        assert doc.children == (Heading(3, (Text("Deep"),)),)


class TestToAdf:
    def test_serializes_marks(self):
        adf = to_adf(Document((Paragraph((Text("hi", (Mark.STRONG,)),)),)))

        assert adf == {
            "version": 1,
            "type": "doc",
            "content": [{"type": "paragraph", "content": [{"type": "text", "text": "hi", "marks": [{"type": "strong"}]}]}],
        }

    def test_parse_of_serialized_tree_is_identity(self):
        doc = parse_markup(SAMPLE_TEXT)
        assert parse_adf(to_adf(doc)) == doc

    def test_code_block_language(self):
        adf = to_adf(Document((CodeBlock("x = 1", "python"),)))
        assert adf["content"][0] == {
            "type": "codeBlock",
            "content": [{"type": "text", "text": "x = 1"}],
            "attrs": {"language": "python"},
        }

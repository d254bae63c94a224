import logging

from HtmlBlocks import html_parser
from HtmlBlocks.builder import DocumentBuilder
from HtmlBlocks.config import ParseOptions
from HtmlBlocks.model import (
    CodeSpanBlock,
    EmptyBlock,
    Heading,
    ImageBlock,
    LinkBlock,
    ListBlock,
    Paragraph,
    Quote,
    inline_plain_text,
)


def _texts(inline):
    return [span.text for span in inline]


def test_parse_blocks_and_inline():
    html = (
        "<h1>Welcome</h1>"
        "<p>Text with <em>italic</em> and <strong>bold</strong>.</p>"
        "<ul><li>First</li><li>Second</li></ul>"
        '<img src="pool.png" alt="Pool">'
        "<blockquote>Quiet please</blockquote>"
        "<code>x = 1</code>"
    )
    document = html_parser.parse_html(html)
    blocks = document.blocks
    assert isinstance(blocks[0], Heading) and blocks[0].level == 1
    assert isinstance(blocks[1], Paragraph)
    assert _texts(blocks[1].inline) == ["Text with ", "italic", " and ", "bold", "."]
    assert blocks[1].inline[1].italic and blocks[1].inline[3].bold
    assert isinstance(blocks[2], ListBlock) and not blocks[2].ordered
    assert [inline_plain_text(item) for item in blocks[2].items] == ["First", "Second"]
    assert isinstance(blocks[3], ImageBlock) and blocks[3].alt == "Pool"
    assert isinstance(blocks[4], Quote)
    assert isinstance(blocks[5], CodeSpanBlock) and blocks[5].text == "x = 1"
    assert len(blocks) == 6


def test_empty_input_gives_one_empty_block():
    for value in ("", "   \n ", None):
        document = html_parser.parse_html(value)
        assert len(document.blocks) == 1
        assert isinstance(document.blocks[0], EmptyBlock)


def test_plain_text_lines_become_paragraphs():
    document = html_parser.parse_html("First line\n\n  second   line ")
    assert [inline_plain_text(block.inline) for block in document.blocks] == ["First line", "second line"]


def test_empty_paragraphs_are_preserved():
    for html in ("<p></p>", "<p><br></p>", "<p>   </p>"):
        document = html_parser.parse_html(html)
        assert len(document.blocks) == 1
        assert isinstance(document.blocks[0], EmptyBlock)


def test_image_wrapped_in_link_is_folded():
    document = html_parser.parse_html('<a href="X"><img src="Y"></a>')
    assert len(document.blocks) == 1
    image = document.blocks[0]
    assert isinstance(image, ImageBlock)
    assert image.src == "Y"
    assert image.link_href == "X"


def test_linked_image_inside_paragraph_is_hoisted():
    document = html_parser.parse_html('<p>Lobby<a href="/gallery"><img src="lobby.jpg" width="400"></a></p>')
    assert isinstance(document.blocks[0], Paragraph)
    assert inline_plain_text(document.blocks[0].inline) == "Lobby"
    image = document.blocks[1]
    assert isinstance(image, ImageBlock)
    assert image.link_href == "/gallery"
    assert image.width == "400"


def test_lazy_image_source_and_missing_source():
    document = html_parser.parse_html('<img data-src="lazy.jpg" height="300"><img alt="nothing">')
    assert len(document.blocks) == 1
    assert document.blocks[0].src == "lazy.jpg"
    assert document.blocks[0].height == "300"


def test_list_without_items_is_split_on_newlines():
    document = html_parser.parse_html("<ul>a\nb</ul>")
    assert len(document.blocks) == 1
    block = document.blocks[0]
    assert isinstance(block, ListBlock)
    assert [inline_plain_text(item) for item in block.items] == ["a", "b"]


def test_list_of_marker_paragraphs_parses_back_to_items():
    document = html_parser.parse_html("<ol><p>1. One</p><p>2. Two</p></ol>")
    block = document.blocks[0]
    assert isinstance(block, ListBlock) and block.ordered
    assert [inline_plain_text(item) for item in block.items] == ["One", "Two"]


def test_nested_lists_are_flattened():
    document = html_parser.parse_html("<ul><li>Rooms<ul><li>Suites</li></ul></li><li></li></ul>")
    block = document.blocks[0]
    assert [inline_plain_text(item) for item in block.items] == ["Rooms", "Suites"]


def test_heading_keeps_level():
    document = html_parser.parse_html("<h2>Pool Hours</h2><p>9am to 6pm</p>")
    heading, paragraph = document.blocks
    assert isinstance(heading, Heading) and heading.level == 2
    assert inline_plain_text(heading.inline) == "Pool Hours"
    assert inline_plain_text(paragraph.inline) == "9am to 6pm"


def test_top_level_marks_become_paragraphs():
    document = html_parser.parse_html("<strong>Note</strong><em>soon</em>")
    bold, italic = document.blocks
    assert isinstance(bold, Paragraph) and bold.inline[0].bold
    assert isinstance(italic, Paragraph) and italic.inline[0].italic


def test_top_level_break_is_empty_block():
    document = html_parser.parse_html("<p>a</p><br><p>b</p>")
    assert [type(block) for block in document.blocks] == [Paragraph, EmptyBlock, Paragraph]


def test_div_with_nested_blocks_recurses():
    document = html_parser.parse_html("<div><p>a</p><div><p>b</p></div></div>")
    assert [inline_plain_text(block.inline) for block in document.blocks] == ["a", "b"]


def test_div_with_direct_text_is_one_paragraph():
    document = html_parser.parse_html("<div>Hello <b>there</b><br>friend</div>")
    assert len(document.blocks) == 1
    assert _texts(document.blocks[0].inline) == ["Hello ", "there", "\nfriend"]


def test_div_with_text_and_link():
    document = html_parser.parse_html('<div>Intro<a href="/more">More</a></div>')
    paragraph, link = document.blocks
    assert inline_plain_text(paragraph.inline) == "Intro"
    assert isinstance(link, LinkBlock)
    assert link.href == "/more" and link.text == "More"


def test_link_without_text_uses_href():
    document = html_parser.parse_html('<a href="https://hotel.test"></a>')
    link = document.blocks[0]
    assert isinstance(link, LinkBlock)
    assert link.text == "https://hotel.test"


def test_inline_link_in_paragraph_is_a_span():
    document = html_parser.parse_html('<p>Book <a href="/book">now</a></p>')
    spans = document.blocks[0].inline
    assert spans[1].text == "now" and spans[1].href == "/book"


def test_unsafe_link_keeps_only_text():
    document = html_parser.parse_html('<a href="javascript:alert(1)">click</a>')
    block = document.blocks[0]
    assert isinstance(block, Paragraph)
    assert block.inline[0].href is None


def test_scripts_and_styles_are_dropped():
    document = html_parser.parse_html("<style>p{}</style><p>a</p><script>alert(1)</script><!-- note -->")
    assert len(document.blocks) == 1
    assert inline_plain_text(document.blocks[0].inline) == "a"


def test_only_script_gives_empty_block():
    document = html_parser.parse_html("<script>alert(1)</script>")
    assert len(document.blocks) == 1
    assert isinstance(document.blocks[0], EmptyBlock)


def test_full_html_document_uses_body():
    document = html_parser.parse_html("<html><head><title>T</title></head><body><p>x</p></body></html>")
    assert len(document.blocks) == 1
    assert inline_plain_text(document.blocks[0].inline) == "x"


def test_unclosed_tags_still_parse():
    document = html_parser.parse_html("<p>unclosed <b>bold")
    assert _texts(document.blocks[0].inline) == ["unclosed ", "bold"]


def test_table_rows_become_paragraphs():
    html = "<table><tr><th>Day</th><th>Hours</th></tr><tr><td>Mon</td><td>9-5</td></tr></table>"
    document = html_parser.parse_html(html)
    assert [inline_plain_text(block.inline) for block in document.blocks] == ["Day | Hours", "Mon | 9-5"]


def test_pre_becomes_code_block():
    document = html_parser.parse_html("<pre>line one\n    line   two\n</pre>")
    assert document.blocks[0].text == "line one\nline two"


def test_failing_fragment_degrades_to_text(monkeypatch, caplog):
    def boom(tag, state):
        raise RuntimeError("broken")

    monkeypatch.setitem(html_parser._HANDLERS, "p", boom)
    with caplog.at_level(logging.WARNING):
        document = html_parser.parse_html("<p>kept <b>text</b></p><h3>Title</h3>")
    assert inline_plain_text(document.blocks[0].inline) == "kept text"
    assert isinstance(document.blocks[1], Heading)
    assert "Could not convert <p>" in caplog.text


def test_failing_html_primitive_keeps_raw_input(monkeypatch, caplog):
    def broken_soup(*args, **kwargs):
        raise ValueError("no parser")

    monkeypatch.setattr(html_parser, "BeautifulSoup", broken_soup)
    with caplog.at_level(logging.WARNING):
        document = html_parser.parse_html("<p>raw</p>")
    assert len(document.blocks) == 1
    assert inline_plain_text(document.blocks[0].inline) == "<p>raw</p>"
    assert "HTML parsing failed" in caplog.text


def test_caller_supplied_builder_receives_blocks():
    builder = DocumentBuilder()
    document = html_parser.parse_html("<p>a</p><p>b</p>", builder=builder)
    assert len(builder) == 2
    assert document.blocks == builder.blocks


def test_legacy_markers_are_decoded_when_enabled():
    html = "<p>Say **hi** to [us](https://hotel.test)</p>"
    literal = html_parser.parse_html(html)
    assert _texts(literal.blocks[0].inline) == ["Say **hi** to [us](https://hotel.test)"]

    decoded = html_parser.parse_html(html, ParseOptions(legacy_markers=True))
    spans = decoded.blocks[0].inline
    assert _texts(spans) == ["Say ", "hi", " to ", "us"]
    assert spans[1].bold
    assert spans[3].href == "https://hotel.test"


def test_table_blank_cells_leave_no_separators():
    html = "<table><tr><td></td><td>Mon</td><td> </td></tr><tr><td></td></tr><tr><td>a</td><td></td><td>b</td></tr></table>"
    document = html_parser.parse_html(html)
    assert [inline_plain_text(block.inline) for block in document.blocks] == ["Mon", "a | b"]


def test_link_around_sourceless_image_keeps_href():
    document = html_parser.parse_html('<p>x</p><a href="/gallery"><img alt="pic"></a>')
    paragraph, link = document.blocks
    assert inline_plain_text(paragraph.inline) == "x"
    assert isinstance(link, LinkBlock)
    assert link.href == "/gallery" and link.text == "/gallery"

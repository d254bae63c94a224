import random

import pytest

from HtmlBlocks.html_parser import parse_html
from HtmlBlocks.model import Heading, Paragraph, inline_plain_text
from HtmlBlocks.serializer import serialize_document

CORPUS = [
    "",
    "plain text",
    "<p></p>",
    '<a href="X"><img src="Y"></a>',
    "<ul>a\nb</ul>",
    "<h2>Pool Hours</h2><p>9am to 6pm</p>",
    "<div>Hi<br>there</div><blockquote>Quiet</blockquote>",
    "<p>unclosed <b>bold",
    "<ol><li>One</li><li>Two</li></ol>",
    "<code>x = 1</code>",
    "<pre>a\n   b</pre>",
    '<a href="https://hotel.test">Hotel</a>',
    "<table><tr><td>Mon</td><td>9-5</td></tr></table>",
    "<table><tr><td>Mon</td><td></td></tr><tr><td> </td><td>Tue</td></tr></table>",
    '<p>x</p><a href="/gallery"><img alt="pic"></a>',
    "<b>bold <i>both</b> tail",
    "<p>Tom &amp; Jerry &lt;3</p>",
    '<p>Book <a href="/book"><strong>now</strong></a> or <em>later</em></p>',
    "<div><br></div><hr>",
    "<ul><li>Rooms<ul><li>Suites</li></ul></li></ul>",
]

SOUP = [
    "<",
    "<<>>",
    "</p>",
    "<!-- only a comment -->",
    "Tom &amp; Jerry",
    "<div><div></div></div>",
    "<p><p><li>stray</p></div></span>",
    "<script>while(true){}</script>",
    '<img src="javascript:alert(1)">',
    "\x00<p>\x00</p>",
]


@pytest.mark.parametrize("html", CORPUS + SOUP)
def test_parse_and_serialize_are_total(html):
    document = parse_html(html)
    assert document is not None
    assert len(document.blocks) >= 1
    assert isinstance(serialize_document(document), str)


@pytest.mark.parametrize("html", CORPUS + SOUP)
def test_second_round_trip_is_a_fixed_point(html):
    once = serialize_document(parse_html(html))
    twice = serialize_document(parse_html(once))
    assert twice == once


def test_plain_text_survives():
    assert "plain text" in serialize_document(parse_html("plain text"))


def test_entities_in_plain_text_are_decoded():
    document = parse_html("Tom &amp; Jerry")
    assert inline_plain_text(document.blocks[0].inline) == "Tom & Jerry"


def test_empty_paragraph_survives():
    assert serialize_document(parse_html("<p></p>")) == "<p></p>"


def test_pool_hours_scenario():
    document = parse_html("<h2>Pool Hours</h2><p>9am to 6pm</p>")
    heading, paragraph = document.blocks
    assert isinstance(heading, Heading) and heading.level == 2
    assert isinstance(paragraph, Paragraph)
    assert serialize_document(document) == "<p>Pool Hours</p><p>9am to 6pm</p>"


def test_linked_image_round_trip():
    output = serialize_document(parse_html('<a href="X"><img src="Y"></a>'))
    assert output == '<a href="X" target="_blank" rel="noopener noreferrer"><img src="Y" alt=""></a>'


TEXTS = [
    "Pool",
    "9am to 6pm",
    "**bold**",
    "• item",
    "1. first",
    "- dash",
    "Tom &amp; Jerry",
    "&lt;3",
    "&nbsp;",
    "  ",
    "[rates](/rates)",
    "`code`",
]
WRAPPERS = ["p", "div", "span", "b", "em", "code", "blockquote", "h2", "li", "pre"]


def _random_fragment(rng, depth):
    roll = rng.random()
    if depth <= 0 or roll < 0.25:
        return rng.choice(TEXTS)
    if roll < 0.32:
        return rng.choice(['<img src="pool.jpg" alt="Pool">', '<img alt="none">', "<br>"])
    children = "".join(_random_fragment(rng, depth - 1) for _ in range(rng.randint(0, 3)))
    if roll < 0.45:
        tag = rng.choice(["ul", "ol"])
        return f"<{tag}>{children}</{tag}>"
    if roll < 0.55:
        href = rng.choice(["/book", "https://hotel.test", "javascript:alert(1)", ""])
        return f'<a href="{href}">{children}</a>'
    if roll < 0.62:
        cells = "".join(f"<td>{_random_fragment(rng, 0) if rng.random() < 0.6 else ''}</td>" for _ in range(3))
        return f"<table><tr>{cells}</tr></table>"
    tag = rng.choice(WRAPPERS)
    return f"<{tag}>{children}</{tag}>"


def test_fixed_point_over_generated_markup():
    rng = random.Random(20240601)
    for _ in range(400):
        html = "".join(_random_fragment(rng, 4) for _ in range(rng.randint(1, 4)))
        once = serialize_document(parse_html(html))
        twice = serialize_document(parse_html(once))
        assert twice == once, html

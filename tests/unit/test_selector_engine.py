import pytest
from bs4 import BeautifulSoup

from pagescoop.core.selector import (
    Segment,
    SelectorEngine,
    SelectorExpression,
    compile_selector,
    normalize_shorthand,
    query_elements,
)
from pagescoop.utils.exceptions import SelectorSyntaxError


@pytest.fixture
def engine():
    return SelectorEngine()


@pytest.mark.parametrize('selector', ['li.product', 'h2.name', 'a[href]', 'ul > li:nth-of-type(2) span', 'div, span'])
def test_plain_selector_matches_soupsieve(engine, listing_soup, selector):
    assert engine.resolve(selector, listing_soup) == listing_soup.select(selector)


def test_segments_are_trimmed_and_empty_parts_dropped():
    expression = SelectorExpression.parse(' #root >>  >> li.product >> ')

    assert [segment.body for segment in expression.segments] == ['#root', 'li.product']


def test_blank_or_non_string_selector_matches_nothing(engine, listing_soup):
    assert not SelectorExpression.parse('   ')
    assert not SelectorExpression.parse(None)
    assert engine.resolve('', listing_soup) == []


def test_has_text_filters_case_insensitively(engine, listing_soup):
    nodes = engine.resolve("h2:has-text('KETTLE')", listing_soup)

    assert [node.get_text() for node in nodes] == ['Blue Kettle']


def test_shorthand_is_rewritten_to_has_text():
    assert normalize_shorthand('h3("Officers")') == 'h3:has-text("Officers")'
    assert normalize_shorthand("*('x') > p") == "*:has-text('x') > p"


def test_explicit_has_text_is_not_rewritten_twice():
    assert normalize_shorthand("h3:has-text('Officers')") == "h3:has-text('Officers')"


def test_has_text_without_element_matches_any_element():
    segment = Segment.parse(":has-text('Officers')")

    assert segment.body == '*'
    assert segment.text_filter == 'officers'


def test_has_text_after_descendant_space_gets_universal_selector():
    segment = Segment.parse("div :has-text('x')")

    assert segment.body == 'div *'


def test_sibling_fallback_tests_previous_sibling_text(engine, registry_soup):
    nodes = engine.resolve("label:has-text('Street:') + input", registry_soup)

    assert len(nodes) == 1
    assert nodes[0]['name'] == 'street'


def test_scoped_chain_with_next_sibling(engine, registry_soup):
    nodes = engine.resolve("#contenu >> h3:has-text('Officers') >> next:div >> p.principal", registry_soup)

    assert [node.get_text() for node in nodes] == ['Jane Roe', 'John Doe']


def test_next_sibling_mode_only_tests_the_sibling(engine, registry_soup):
    # The sibling after the first h3 is a div; its child paragraph is not a candidate
    assert engine.resolve("h3:has-text('Company') >> next:p", registry_soup) == []
    assert len(engine.resolve("h3:has-text('Company') >> next:div", registry_soup)) == 1


def test_next_prefix_is_case_insensitive():
    segment = Segment.parse('NEXT: div')

    assert segment.next_sibling_mode is True
    assert segment.body == 'div'


def test_context_element_can_match_itself(engine, listing_soup):
    product = listing_soup.select_one('li.product')

    assert engine.resolve('li.product', product) == [product]


def test_no_deduplication_across_contexts(engine):
    soup = BeautifulSoup('<div class="a"><div class="a"><p>x</p></div></div>', 'lxml')

    nodes = engine.resolve('div.a >> p', soup)

    assert len(nodes) == 2
    assert nodes[0] is nodes[1]


def test_resolution_stops_when_a_segment_matches_nothing(engine, listing_soup, mocker):
    spy = mocker.spy(engine, '_resolve_segment')

    assert engine.resolve('#missing >> li >> a', listing_soup) == []
    assert spy.call_count == 1


def test_invalid_selector_yields_no_matches(engine, listing_soup):
    assert engine.resolve('li[', listing_soup) == []
    assert engine.resolve('#root >> li:not-a-pseudo', listing_soup) == []


def test_compile_selector_raises_selector_syntax_error():
    with pytest.raises(SelectorSyntaxError) as exc_info:
        compile_selector('a[')

    assert exc_info.value.selector == 'a['


def test_query_elements_uses_shared_engine(listing_soup):
    assert len(query_elements('#root >> li.product >> a.link', listing_soup)) == 3


def test_has_text_selects_the_single_containing_div(engine):
    soup = BeautifulSoup('<div>bar</div><div>some foo here</div><div>baz</div>', 'lxml')

    nodes = engine.resolve("div:has-text('Foo')", soup)

    assert nodes == [soup.select('div')[1]]


def test_next_sibling_jump_does_not_capture_nested_matches(engine):
    soup = BeautifulSoup(
        '<div id="root"><p class="x">inside</p></div><div><p class="x">A</p></div>',
        'lxml',
    )

    nodes = engine.resolve('#root >> next:div >> p.x', soup)

    assert [node.get_text() for node in nodes] == ['A']

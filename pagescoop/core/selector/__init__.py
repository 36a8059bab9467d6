"""Selector expression parsing and resolution."""

from pagescoop.core.selector.engine import (
    Segment,
    SelectorEngine,
    SelectorExpression,
    compile_selector,
    next_element_sibling,
    normalize_shorthand,
    previous_element_sibling,
    query_elements,
)

__all__ = [
    'Segment',
    'SelectorEngine',
    'SelectorExpression',
    'compile_selector',
    'next_element_sibling',
    'normalize_shorthand',
    'previous_element_sibling',
    'query_elements',
]

"""Scoped selector expressions resolved against a BeautifulSoup tree.

Plain CSS matching is delegated to soupsieve (the engine behind
``Tag.select``). On top of it this module adds three extensions:

``a >> b``
    Step-by-step scoping: each segment is resolved inside every node the
    previous segment produced.
``:has-text("needle")`` (or the shorthand ``tag("needle")``)
    Keep only nodes whose text contains the needle, case-insensitively. When
    the remaining selector has a ``+`` combinator the needle is tested against
    the matched node's previous sibling instead, so
    ``label:has-text('Street:') + input`` finds the input next to that label.
``next:selector``
    Jump to the immediate next sibling of each context and test only that
    sibling, never its descendants.

Example::

    #contenu >> h3:has-text('Officers') >> next:div >> p.principal

finds ``#contenu``, the H3 inside it mentioning "Officers", the DIV right
after that H3, and the ``p.principal`` paragraphs within that DIV.
"""

import logging
import re
from dataclasses import dataclass

import soupsieve
from bs4 import BeautifulSoup, Tag

from pagescoop.utils.exceptions import SelectorSyntaxError

logger = logging.getLogger(__name__)

SEGMENT_DELIMITER = '>>'
NEXT_SIBLING_PREFIX = 'next:'

# tag("text") / *('text'); names inside a pseudo-class (":has-text(") are left alone
_SHORTHAND_RE = re.compile(r'(?<![\w:-])([A-Za-z][\w-]*|\*)\(([\'"])(.*?)\2\)')
_HAS_TEXT_RE = re.compile(r':has-text\(([\'"])(.*?)\1\)', re.IGNORECASE)
_COMBINATOR_TAIL = ('>', '+', '~')


def normalize_shorthand(selector: str) -> str:
    """Rewrite ``tag("text")`` shorthand into ``tag:has-text("text")``."""
    return _SHORTHAND_RE.sub(
        lambda m: f'{m.group(1)}:has-text({m.group(2)}{m.group(3)}{m.group(2)})',
        selector,
    )


def _strip_has_text(selector: str) -> tuple[str, str | None]:
    """Remove the first ``:has-text()`` clause.

    Returns:
        The remaining base selector (``*`` stands in where the clause left no
        element to match) and the lower-cased needle, or None without a clause.

    """
    match = _HAS_TEXT_RE.search(selector)
    if not match:
        return selector, None

    before = selector[: match.start()]
    after = selector[match.end() :]
    if not before.strip() or before[-1].isspace() or before.rstrip().endswith(_COMBINATOR_TAIL):
        before = f'{before}*'

    base = f'{before}{after}'.strip() or '*'
    return base, match.group(2).lower()


@dataclass(frozen=True)
class Segment:
    """One ``>>``-delimited step of a selector expression.

    Attributes:
        body: Plain CSS selector handed to soupsieve
        text_filter: Lower-cased substring the node text must contain, if any
        sibling_fallback: Test the previous sibling's text instead of the node's
        next_sibling_mode: Search the next sibling of each context, not its subtree

    """

    body: str
    text_filter: str | None = None
    sibling_fallback: bool = False
    next_sibling_mode: bool = False

    @classmethod
    def parse(cls, raw: str) -> 'Segment':
        """Parse a single trimmed segment string."""
        segment = raw.strip()
        next_sibling_mode = segment.lower().startswith(NEXT_SIBLING_PREFIX)
        if next_sibling_mode:
            segment = segment[len(NEXT_SIBLING_PREFIX) :].strip()

        body, needle = _strip_has_text(normalize_shorthand(segment))

        return cls(
            body=body,
            text_filter=needle,
            sibling_fallback=bool(needle) and '+' in body,
            next_sibling_mode=next_sibling_mode,
        )


@dataclass(frozen=True)
class SelectorExpression:
    """An ordered sequence of segments, resolved strictly left to right."""

    raw: str
    segments: tuple[Segment, ...] = ()

    @classmethod
    def parse(cls, raw: object) -> 'SelectorExpression':
        """Split a raw selector string on ``>>`` and parse each part.

        Non-string or blank input gives an expression with no segments.
        """
        if not isinstance(raw, str) or not raw.strip():
            return cls(raw='' if not isinstance(raw, str) else raw)

        parts = [part.strip() for part in raw.split(SEGMENT_DELIMITER)]
        return cls(raw=raw, segments=tuple(Segment.parse(part) for part in parts if part))

    def __bool__(self) -> bool:
        return bool(self.segments)


def compile_selector(selector: str) -> soupsieve.SoupSieve:
    """Compile a plain CSS selector.

    Raises:
        SelectorSyntaxError: If soupsieve rejects the selector

    """
    try:
        return soupsieve.compile(selector)
    except (soupsieve.SelectorSyntaxError, ValueError, TypeError, NotImplementedError) as e:
        raise SelectorSyntaxError(selector, str(e)) from e


def next_element_sibling(node: Tag) -> Tag | None:
    """Return the next sibling that is an element, skipping text and comments."""
    for sibling in node.next_siblings:
        if isinstance(sibling, Tag):
            return sibling
    return None


def previous_element_sibling(node: Tag) -> Tag | None:
    """Return the previous sibling that is an element, skipping text and comments."""
    for sibling in node.previous_siblings:
        if isinstance(sibling, Tag):
            return sibling
    return None


def text_contains(node: Tag | None, needle: str) -> bool:
    """Case-insensitive substring test against a node's full text."""
    if node is None:
        return False
    return needle in node.get_text().lower()


class SelectorEngine:
    """Resolves selector expressions into ordered node lists."""

    def resolve(self, expression: SelectorExpression | str, root: Tag) -> list[Tag]:
        """Resolve an expression against a root context.

        Args:
            expression: Parsed expression or raw selector string
            root: Document or element to start from

        Returns:
            Matched nodes in discovery order. Nodes reached through more than one
            context appear once per context.

        """
        if not isinstance(expression, SelectorExpression):
            expression = SelectorExpression.parse(expression)

        if not expression:
            return []

        contexts: list[Tag] = [root]
        for segment in expression.segments:
            contexts = self._resolve_segment(segment, contexts)
            if not contexts:
                break

        return contexts

    def _resolve_segment(self, segment: Segment, contexts: list[Tag]) -> list[Tag]:
        try:
            pattern = compile_selector(segment.body)
        except SelectorSyntaxError as e:
            logger.warning(str(e))
            return []

        matched: list[Tag] = []
        for context in contexts:
            if context is None:
                continue
            matched.extend(self._match_in_context(segment, pattern, context))
        return matched

    def _match_in_context(self, segment: Segment, pattern: soupsieve.SoupSieve, context: Tag) -> list[Tag]:
        search_root = next_element_sibling(context) if segment.next_sibling_mode else context
        if search_root is None:
            return []

        candidates: list[Tag] = []
        try:
            # The document object itself is never a match, only its elements
            if not isinstance(search_root, BeautifulSoup) and pattern.match(search_root):
                candidates.append(search_root)

            # next: looks at the sibling alone so later segments scope into it
            if not segment.next_sibling_mode:
                candidates.extend(pattern.select(search_root))
        except (soupsieve.SelectorSyntaxError, ValueError, TypeError) as e:
            logger.warning(f"Invalid selector '{segment.body}': {e}")
            return []

        needle = segment.text_filter
        if not needle:
            return candidates

        if segment.sibling_fallback:
            return [node for node in candidates if text_contains(previous_element_sibling(node), needle)]
        return [node for node in candidates if text_contains(node, needle)]


_default_engine = SelectorEngine()


def query_elements(selector: SelectorExpression | str, root: Tag) -> list[Tag]:
    """Resolve a selector with the shared engine."""
    return _default_engine.resolve(selector, root)

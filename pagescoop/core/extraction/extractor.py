"""Extracts typed field values from matched elements."""

import logging
import re
from typing import Any

import requests
from bs4 import Tag
from PIL import Image

from pagescoop.core.extraction.images import ImageCapture
from pagescoop.models.commands import FieldCommand
from pagescoop.utils.exceptions import PagescoopError

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r'\s+')
_ATTRIBUTE_CLAUSE_RE = re.compile(r'\[([^\]]+)\]')
_ATTRIBUTE_OPERATOR_CHARS = '~|^$*!'


def clean_text(value: str) -> str:
    """Collapse runs of whitespace to a single space and trim."""
    return _WHITESPACE_RE.sub(' ', value).strip()


def infer_attribute_name(field: FieldCommand) -> str | None:
    """Return the attribute an attribute field reads.

    Uses the explicit ``attribute`` when given, otherwise the name inside the
    last ``[...]`` clause of the selector: ``input[data-id="x"]`` -> ``data-id``.
    """
    if field.attribute and field.attribute.strip():
        return field.attribute.strip()

    clauses = _ATTRIBUTE_CLAUSE_RE.findall(field.selector or '')
    if not clauses:
        return None

    name = clauses[-1].split('=')[0].strip().rstrip(_ATTRIBUTE_OPERATOR_CHARS).strip()
    return name or None


def read_attribute(node: Tag, name: str) -> str | None:
    """Read an attribute value, joining multi-valued attributes such as class."""
    value = node.get(name)
    if value is None and name != name.lower():
        # HTML parsers lower-case attribute names
        value = node.get(name.lower())
    if value is None:
        return None
    if isinstance(value, list):
        value = ' '.join(value)
    return str(value)


class FieldExtractor:
    """Converts one matched element into a value for one field.

    Attributes:
        page_url: URL of the page, used to resolve relative image sources
        file_name: Preferred base name for captured images (usually the job id)
        images: Image capture helper

    """

    def __init__(
        self,
        page_url: str | None = None,
        file_name: str | None = None,
        images: ImageCapture | None = None,
    ):
        """Initialize the extractor.

        Args:
            page_url: URL of the page being scraped
            file_name: Preferred base name for captured images
            images: Image capture helper. Defaults to a new ImageCapture.

        """
        self.page_url = page_url
        self.file_name = file_name
        self.images = images or ImageCapture()

    def extract(self, node: Tag, field: FieldCommand) -> Any | None:
        """Extract a value, or None when the field has nothing for this node.

        Never raises: image download and conversion failures are logged and
        treated as a missing value.
        """
        if node is None:
            return None

        if field.kind == 'text':
            return self._extract_text(node)
        if field.kind == 'attribute':
            return self._extract_attribute(node, field)
        if field.kind == 'markup':
            return str(node)
        if field.kind == 'image':
            return self._extract_image(node, field)

        logger.warning(f'Unsupported field kind: {field.kind}')
        return None

    def _extract_text(self, node: Tag) -> str | None:
        text = node.get_text()
        if text is None:
            return None
        return clean_text(text)

    def _extract_attribute(self, node: Tag, field: FieldCommand) -> str | None:
        name = infer_attribute_name(field)
        if not name:
            logger.debug(f"No attribute name for field '{field.name}' (selector {field.selector!r})")
            return None

        value = read_attribute(node, name)
        if value is None:
            return None
        return clean_text(value)

    def _extract_image(self, node: Tag, field: FieldCommand) -> Any | None:
        try:
            return self.images.capture(node, field.name, page_url=self.page_url, file_name=self.file_name)
        except (PagescoopError, Image.DecompressionBombError, requests.RequestException, OSError, ValueError) as e:
            logger.warning(f"Failed to capture image for field '{field.name}': {e}")
            return None

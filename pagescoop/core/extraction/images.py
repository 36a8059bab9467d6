"""Image capture: resolve an element's source, download it, re-encode it."""

import base64
import binascii
import io
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes, urljoin

import requests
from bs4 import Tag
from PIL import Image, ImageFile, UnidentifiedImageError

from pagescoop.models.results import ImageDescriptor
from pagescoop.utils.exceptions import ImageFetchError
from pagescoop.utils.headers import HeaderGenerator
from pagescoop.utils.retry import get_retryer, log_retry

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'application/octet-stream'
FALLBACK_EXTENSION = 'img'

MIME_EXTENSIONS = {
    'image/jpeg': 'jpg',
    'image/jpg': 'jpg',
    'image/png': 'png',
    'image/gif': 'gif',
    'image/webp': 'webp',
    'image/svg+xml': 'svg',
    'image/bmp': 'bmp',
    'image/x-icon': 'ico',
    'image/vnd.microsoft.icon': 'ico',
}

_URL_SUFFIX_RE = re.compile(r'\.([a-z0-9]+)(?:[?#].*)?$', re.IGNORECASE)
_DATA_URL_RE = re.compile(r'^data:([^;,]*)((?:;[^;,]*)*?)(;base64)?,(.*)$', re.DOTALL)


def infer_extension_from_content_type(content_type: str | None) -> str | None:
    """Map a MIME type to a file extension ('image/jpeg' -> 'jpg')."""
    if not content_type:
        return None

    mime = content_type.split(';')[0].strip().lower()
    if mime in MIME_EXTENSIONS:
        return MIME_EXTENSIONS[mime]
    if mime.startswith('image/'):
        return mime.split('/', 1)[1]
    return None


def infer_extension_from_url(url: str | None) -> str | None:
    """Take the extension from the last path suffix of a URL, ignoring query and fragment."""
    if not url or url.startswith('data:'):
        return None
    match = _URL_SUFFIX_RE.search(url)
    return match.group(1).lower() if match else None


def to_data_url(content: bytes, content_type: str) -> str:
    """Encode bytes as a base64 ``data:`` URL."""
    return f'data:{content_type};base64,{base64.b64encode(content).decode("ascii")}'


def resolve_image_source(node: Tag, page_url: str | None = None) -> str | None:
    """Return the absolute URL of the image an element displays.

    Priority: the first ``srcset`` candidate (what a browser renders by
    default), then ``src``, then the lazy-loading ``data-src``. Relative URLs are
    resolved against the page URL.
    """
    candidates: list[str] = []

    srcset = node.get('srcset')
    if isinstance(srcset, str) and srcset.strip():
        first = srcset.split(',')[0].strip().split()
        if first:
            candidates.append(first[0])

    for attribute in ('src', 'data-src'):
        value = node.get(attribute)
        if isinstance(value, str) and value.strip():
            candidates.append(value.strip())

    if not candidates:
        return None

    source = candidates[0]
    if source.startswith('data:') or not page_url:
        return source
    try:
        return urljoin(page_url, source)
    except ValueError:
        return source


@dataclass
class FetchedImage:
    """Raw image bytes as downloaded.

    Attributes:
        url: Absolute URL the bytes came from
        content: Response body
        content_type: MIME type without parameters

    """

    url: str
    content: bytes
    content_type: str = DEFAULT_CONTENT_TYPE


class ImageFetcher:
    """Downloads image bytes over HTTP, or decodes inline ``data:`` URLs.

    Attributes:
        timeout: Request timeout in seconds
        max_attempts: Attempts for connection errors and timeouts
        session: Shared requests session

    """

    def __init__(self, timeout: float = 15.0, max_attempts: int = 2, session: requests.Session | None = None):
        """Initialize the fetcher.

        Args:
            timeout: Request timeout in seconds. Defaults to 15.
            max_attempts: Attempts on transient network errors. Defaults to 2.
            session: Session to reuse; a new one is created when None.

        """
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.session = session or requests.Session()

    def fetch(self, url: str, referer: str | None = None) -> FetchedImage:
        """Download one image.

        Raises:
            ImageFetchError: On network errors, bad status codes or undecodable data URLs

        """
        if url.startswith('data:'):
            return self._decode_data_url(url)

        retryer = get_retryer(
            max_attempts=self.max_attempts,
            wait_min=0.5,
            wait_max=2.0,
            exceptions=(requests.ConnectionError, requests.Timeout),
            log_callback=log_retry,
        )

        headers = HeaderGenerator.generate_headers(referer=referer, purpose='image')
        try:
            response = retryer(self.session.get, url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ImageFetchError(url, str(e)) from e

        if not response.ok:
            raise ImageFetchError(url, f'HTTP {response.status_code}')

        content_type = (response.headers.get('content-type') or '').split(';')[0].strip()
        return FetchedImage(url=url, content=response.content, content_type=content_type or DEFAULT_CONTENT_TYPE)

    def _decode_data_url(self, url: str) -> FetchedImage:
        match = _DATA_URL_RE.match(url)
        if not match:
            raise ImageFetchError(url[:64], 'malformed data URL')

        mime, _params, is_base64, payload = match.groups()
        try:
            content = base64.b64decode(payload, validate=False) if is_base64 else unquote_to_bytes(payload)
        except (binascii.Error, ValueError) as e:
            raise ImageFetchError(url[:64], f'undecodable data URL: {e}') from e

        return FetchedImage(url=url, content=content, content_type=mime or DEFAULT_CONTENT_TYPE)

    def close(self):
        """Close the underlying session."""
        self.session.close()


class PngConverter:
    """Re-encodes image bytes as PNG with Pillow.

    Two decoding paths are tried in order: ``Image.open`` on the full buffer,
    then the incremental ``ImageFile.Parser``, which copes with some streams
    the direct path rejects.
    """

    def __init__(self):
        """Initialize the converter with its decoding paths."""
        self.strategies: list[Callable[[bytes], Image.Image]] = [
            self._open_directly,
            self._open_incrementally,
        ]

    def to_png(self, content: bytes) -> bytes | None:
        """Return PNG bytes, or None when no decoding path succeeds."""
        if not content:
            return None

        for strategy in self.strategies:
            try:
                image = strategy(content)
                return self._encode_png(image)
            except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
                logger.debug(f'PNG conversion via {strategy.__name__} failed: {e}')

        logger.warning('Failed to convert image to PNG')
        return None

    @staticmethod
    def _open_directly(content: bytes) -> Image.Image:
        image = Image.open(io.BytesIO(content))
        image.load()
        return image

    @staticmethod
    def _open_incrementally(content: bytes) -> Image.Image:
        parser = ImageFile.Parser()
        parser.feed(content)
        return parser.close()

    @staticmethod
    def _encode_png(image: Image.Image) -> bytes:
        if image.mode not in ('1', 'L', 'LA', 'I', 'P', 'RGB', 'RGBA'):
            image = image.convert('RGBA')
        buffer = io.BytesIO()
        image.save(buffer, format='PNG')
        return buffer.getvalue()


class ImageCapture:
    """Turns an image element into one or two ImageDescriptors.

    Attributes:
        fetcher: Downloads the image bytes
        converter: Produces the PNG rendition

    """

    def __init__(self, fetcher: ImageFetcher | None = None, converter: PngConverter | None = None):
        """Initialize image capture.

        Args:
            fetcher: Image fetcher. Defaults to a new ImageFetcher.
            converter: PNG converter. Defaults to a new PngConverter.

        """
        self.fetcher = fetcher or ImageFetcher()
        self.converter = converter or PngConverter()

    def capture(
        self,
        node: Tag,
        name: str,
        page_url: str | None = None,
        file_name: str | None = None,
    ) -> ImageDescriptor | list[ImageDescriptor] | None:
        """Capture the image an element shows.

        Args:
            node: Element carrying srcset/src
            name: Field name stored on the descriptors
            page_url: Page URL for resolving relative sources
            file_name: Preferred base file name. Defaults to the field name.

        Returns:
            The single descriptor that could be produced, both descriptors (PNG
            first, then the original encoding), or None if neither could.

        Raises:
            ImageFetchError: If the image cannot be downloaded

        """
        source_url = resolve_image_source(node, page_url)
        if not source_url:
            return None

        image = self.fetcher.fetch(source_url, referer=page_url)
        base_name = file_name or name or 'image'
        recorded_url = None if source_url.startswith('data:') else source_url

        descriptors: list[ImageDescriptor] = []

        png = self.converter.to_png(image.content)
        if png:
            descriptors.append(
                ImageDescriptor(
                    name=name,
                    data_url=to_data_url(png, 'image/png'),
                    source_url=recorded_url,
                    extension='png',
                    content_type='image/png',
                    file_name=base_name,
                )
            )

        if image.content:
            extension = (
                infer_extension_from_content_type(image.content_type)
                or infer_extension_from_url(source_url)
                or FALLBACK_EXTENSION
            )
            descriptors.append(
                ImageDescriptor(
                    name=name,
                    data_url=to_data_url(image.content, image.content_type),
                    source_url=recorded_url,
                    extension=extension,
                    content_type=image.content_type,
                    file_name=base_name,
                )
            )

        if not descriptors:
            return None
        if len(descriptors) == 1:
            return descriptors[0]
        return descriptors

    def close(self):
        """Release network resources."""
        self.fetcher.close()

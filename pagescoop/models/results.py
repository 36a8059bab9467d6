"""Pydantic models for fetch and scrape results."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField


@dataclass
class FetchResult:
    """Result of an HTML fetch operation.

    Attributes:
        url: URL the HTML was requested from
        html: HTML content, or None when the fetch failed
        status_code: HTTP status code of the response
        error: Why the fetch failed, if it did
        fetch_time: Seconds spent fetching

    """

    url: str
    html: str | None = None
    status_code: int | None = None
    error: str | None = None
    fetch_time: float = 0.0

    @property
    def success(self) -> bool:
        """Whether HTML was retrieved."""
        return self.html is not None


class ImageDescriptor(BaseModel):
    """A captured image with everything needed to persist it later.

    Serialised with camelCase keys (``dataUrl``, ``sourceUrl``, ...), the shape
    the collector and downstream consumers read.

    Attributes:
        name: Field name the image was extracted for
        data_url: Base64 ``data:`` URL of the image bytes
        source_url: Absolute URL the image was fetched from
        extension: File extension without the dot
        content_type: MIME type of the data
        file_name: Preferred base file name (job id, else the field name)

    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: Literal['image'] = 'image'
    name: str
    data_url: str | None = PydanticField(default=None, alias='dataUrl')
    source_url: str | None = PydanticField(default=None, alias='sourceUrl')
    extension: str
    content_type: str = PydanticField(alias='contentType')
    file_name: str = PydanticField(alias='fileName')


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def serialize_value(value: Any) -> Any:
    """Convert record values (including image descriptors) to JSON-ready data."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, list):
        return [serialize_value(item) for item in value]
    if isinstance(value, dict):
        return {key: serialize_value(item) for key, item in value.items()}
    return value


class ScrapeResult(BaseModel):
    """Outcome of one page visit.

    Attributes:
        id: Job identifier
        timestamp: ISO-8601 UTC time the result was produced
        url: Page URL
        data: Extracted records (empty when nothing matched)
        error: Set instead of data when the page could not be scraped

    """

    id: str | int | None = None
    timestamp: str = PydanticField(default_factory=_utc_timestamp)
    url: str | None = None
    data: list[dict[str, Any]] = PydanticField(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        """True when the page was scraped (even if no records matched)."""
        return self.error is None

    def to_payload(self) -> dict[str, Any]:
        """Return the wire shape: ``{id, timestamp, url, data}`` or ``{error}``."""
        if self.error is not None:
            return {'error': self.error}
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'url': self.url,
            'data': serialize_value(self.data),
        }

"""Persists scrape results as JSON, a merged CSV, and image files."""

import base64
import binascii
import csv
import json
import logging
import re
import time
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import requests

from pagescoop.core.extraction.images import MIME_EXTENSIONS, infer_extension_from_url
from pagescoop.models.results import ScrapeResult
from pagescoop.utils.files import init_pagescoop
from pagescoop.utils.headers import HeaderGenerator

logger = logging.getLogger(__name__)

IMAGE_TYPES = {'image', 'img'}
METADATA_KEYS = ('id', 'timestamp', 'url')

_UNSAFE_NAME_RE = re.compile(r'[\\/:*?"<>|\s]+')
_WHITESPACE_RE = re.compile(r'\s+')
_BASE64_DATA_URL_RE = re.compile(r'^data:([^;]+);base64,(.+)$', re.DOTALL)


def sanitize_file_name_segment(segment: str) -> str:
    """Replace path separators, reserved characters and whitespace with '_'."""
    if not segment:
        return ''
    return _UNSAFE_NAME_RE.sub('_', segment)


def ensure_extension(file_name: str, extension: str | None) -> str:
    """Sanitize a file name and append the extension unless it is already there."""
    sanitized = sanitize_file_name_segment(file_name)
    if not extension:
        return sanitized
    if sanitized.lower().endswith(f'.{extension.lower()}'):
        return sanitized
    return f'{sanitized}.{extension}'


def determine_image_extension(content_type: str | None, source_url: str | None) -> str:
    """Pick an extension from the MIME type, then the URL suffix, else 'png'."""
    if content_type:
        mime = content_type.split(';')[0].strip().lower()
        if mime in MIME_EXTENSIONS:
            return MIME_EXTENSIONS[mime]
    return infer_extension_from_url(source_url) or 'png'


def normalise_value(value: Any) -> str:
    """Render a record value as a single CSV cell."""
    if value is None:
        return ''
    if isinstance(value, str):
        return _WHITESPACE_RE.sub(' ', value).strip()
    return json.dumps(value, ensure_ascii=False)


def is_image_descriptor(value: Any) -> bool:
    """True for a serialised image descriptor (``{"type": "image", ...}``)."""
    return isinstance(value, dict) and str(value.get('type', '')).strip().lower() in IMAGE_TYPES


class FileNameRegistry:
    """Hands out file names that are unique within a directory.

    Attributes:
        directory: Directory checked for existing files, if any
        reserved: Names handed out so far

    """

    def __init__(self, directory: Path | None = None, reserved: Iterable[str] = ()):
        """Initialize the registry.

        Args:
            directory: Directory whose existing files also count as taken
            reserved: Names already taken

        """
        self.directory = directory
        self.reserved: set[str] = set(reserved)

    def is_taken(self, name: str) -> bool:
        """Whether a name was reserved or exists on disk."""
        if name in self.reserved:
            return True
        return self.directory is not None and (self.directory / name).exists()

    def reserve(self, name: str, extension: str | None = None) -> str:
        """Reserve a unique name: ``photo.png``, then ``photo-1.png``, ``photo-2.png``..."""
        base = sanitize_file_name_segment(name) or 'image'
        candidate = ensure_extension(base, extension)
        counter = 1

        while self.is_taken(candidate):
            candidate = ensure_extension(f'{base}-{counter}', extension)
            counter += 1

        self.reserved.add(candidate)
        return candidate


class ResultStorage:
    """Writes results under an output directory.

    Layout::

        <output>/jsons/<id>.json   one file per result
        <output>/jsons/data.csv    every record of every result, merged
        <output>/images/<name>     captured images

    Attributes:
        output_dir: Root output directory
        json_dir: Directory for JSON files and the CSV
        image_dir: Directory for images
        csv_path: Path of the merged CSV
        registry: Image file name registry

    """

    def __init__(
        self,
        output_dir: str | Path | None = None,
        registry: FileNameRegistry | None = None,
        session: requests.Session | None = None,
        timeout: float = 15.0,
    ):
        """Initialize the storage manager.

        Args:
            output_dir: Root output directory. Defaults to .pagescoop/output.
            registry: File name registry. Defaults to one bound to the image directory.
            session: Session for downloading images given only by URL.
            timeout: Download timeout in seconds.

        """
        self.output_dir = init_pagescoop(output_dir)
        self.json_dir = self.output_dir / 'jsons'
        self.image_dir = self.output_dir / 'images'
        self.csv_path = self.json_dir / 'data.csv'
        self.registry = registry or FileNameRegistry(self.image_dir)
        self.session = session or requests.Session()
        self.timeout = timeout

    def save(self, result: ScrapeResult) -> Path:
        """Persist one result.

        Images are written first and replaced in the payload by their relative
        paths; then the records are merged into the CSV and the JSON file is
        written. Error results only produce the JSON file.

        Returns:
            Path of the JSON file.

        """
        payload = result.to_payload()
        base_id = str(result.id) if result.id is not None else f'data_{int(time.time() * 1000)}'

        if not result.success:
            return self._write_json(base_id, payload)

        metadata = {key: payload[key] for key in METADATA_KEYS}
        data = [self._persist_images(entry, base_id, index, '') for index, entry in enumerate(payload['data'])]

        rows = [
            {**metadata, **entry} if isinstance(entry, dict) else {**metadata, 'value': normalise_value(entry)}
            for entry in data
        ]
        if rows:
            self.merge_csv(rows)
        else:
            logger.warning(f'No structured data to persist for {base_id}')

        return self._write_json(base_id, {**metadata, 'data': data})

    def merge_csv(self, rows: list[dict[str, Any]]) -> None:
        """Append rows to the CSV, widening its header with any new keys."""
        existing_headers, existing_rows = self._read_csv()

        headers = list(existing_headers)
        for row in rows:
            for key in row:
                if key not in headers:
                    headers.append(key)

        realigned = [
            [dict(zip(existing_headers, row, strict=False)).get(header, '') for header in headers]
            for row in existing_rows
        ]
        new_rows = [[normalise_value(row.get(header)) for header in headers] for row in rows]

        with open(self.csv_path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.writer(f, lineterminator='\n')
            writer.writerow(headers)
            writer.writerows(realigned + new_rows)

    def _read_csv(self) -> tuple[list[str], list[list[str]]]:
        if not self.csv_path.exists():
            return [], []

        with open(self.csv_path, encoding='utf-8', newline='') as f:
            rows = [row for row in csv.reader(f) if row]

        if not rows:
            return [], []
        return rows[0], rows[1:]

    def _write_json(self, base_id: str, payload: dict[str, Any]) -> Path:
        filepath = self.json_dir / f'{sanitize_file_name_segment(base_id)}.json'
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        logger.info(f'Saved data to {filepath}')
        return filepath

    def _persist_images(self, value: Any, base_id: str, entry_index: int | str, field_path: str) -> Any:
        """Replace every image descriptor inside a value with its saved path."""
        if is_image_descriptor(value):
            saved = self.save_image(value, base_id, entry_index, field_path)
            if saved:
                return saved
            return value

        if isinstance(value, list):
            return [
                self._persist_images(item, base_id, entry_index, f'{field_path}-{idx}' if field_path else str(idx))
                for idx, item in enumerate(value)
            ]

        if isinstance(value, dict):
            return {
                key: self._persist_images(item, base_id, entry_index, f'{field_path}.{key}' if field_path else key)
                for key, item in value.items()
            }

        return value

    def save_image(self, descriptor: dict[str, Any], base_id: str, entry_index: int | str, field_key: str) -> str | None:
        """Write one image descriptor to the image directory.

        Returns:
            The saved path relative to the output directory, or None if the
            descriptor carried nothing that could be written.

        """
        preferred = str(descriptor.get('fileName') or descriptor.get('name') or '').strip()
        if not preferred:
            preferred = base_id or (f'{entry_index}-{field_key}' if field_key else str(entry_index))

        extension = str(descriptor.get('extension') or '').strip().lower() or None
        data_url = descriptor.get('dataUrl')
        source_url = str(descriptor.get('sourceUrl') or '').strip() or None

        content: bytes | None = None
        content_type = descriptor.get('contentType')

        if isinstance(data_url, str) and data_url.startswith('data:'):
            match = _BASE64_DATA_URL_RE.match(data_url)
            if not match:
                logger.warning(f'Unsupported data URL for image {preferred}')
                return None
            content_type = content_type or match.group(1)
            try:
                content = base64.b64decode(match.group(2))
            except (binascii.Error, ValueError) as e:
                logger.warning(f'Undecodable image data for {preferred}: {e}')
                return None
        elif source_url:
            content = self._download(source_url)
            if content is None:
                return None
        else:
            return None

        extension = extension or determine_image_extension(content_type, source_url)
        file_name = self.registry.reserve(preferred, extension)
        (self.image_dir / file_name).write_bytes(content)
        logger.info(f'Saved image {file_name}')
        return f'images/{file_name}'

    def _download(self, url: str) -> bytes | None:
        try:
            response = self.session.get(url, headers=HeaderGenerator.generate_headers(purpose='image'), timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f'Error downloading image {url}: {e}')
            return None

        if not response.ok:
            logger.warning(f'Failed to download image {url}: HTTP {response.status_code}')
            return None
        return response.content

    def close(self):
        """Close the download session."""
        self.session.close()

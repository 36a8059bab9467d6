"""Field extraction and record assembly."""

from pagescoop.core.extraction.assembler import Record, RecordAssembler
from pagescoop.core.extraction.extractor import FieldExtractor, clean_text, infer_attribute_name
from pagescoop.core.extraction.images import ImageCapture, ImageFetcher, PngConverter, resolve_image_source

__all__ = [
    'FieldExtractor',
    'ImageCapture',
    'ImageFetcher',
    'PngConverter',
    'Record',
    'RecordAssembler',
    'clean_text',
    'infer_attribute_name',
    'resolve_image_source',
]

import base64
import struct
import zlib

import pytest
import requests
from bs4 import BeautifulSoup

from pagescoop.core.extraction.images import (
    FetchedImage,
    ImageCapture,
    ImageFetcher,
    PngConverter,
    infer_extension_from_content_type,
    infer_extension_from_url,
    resolve_image_source,
)
from pagescoop.utils.exceptions import ImageFetchError


def _img(markup):
    return BeautifulSoup(markup, 'lxml').img


def test_source_priority_srcset_then_src_then_data_src():
    page = 'https://x.example/articles/1'

    assert resolve_image_source(_img('<img srcset="a.png 1x, b.png 2x" src="c.png">'), page) == 'https://x.example/articles/a.png'
    assert resolve_image_source(_img('<img src="/c.png" data-src="d.png">'), page) == 'https://x.example/c.png'
    assert resolve_image_source(_img('<img data-src="//cdn.example/d.png">'), page) == 'https://cdn.example/d.png'
    assert resolve_image_source(_img('<img alt="none">'), page) is None


def test_data_url_source_is_not_resolved():
    source = resolve_image_source(_img('<img src="data:image/gif;base64,R0lGOD">'), 'https://x.example')

    assert source == 'data:image/gif;base64,R0lGOD'


def test_extension_inference():
    assert infer_extension_from_content_type('image/jpeg') == 'jpg'
    assert infer_extension_from_content_type('image/avif') == 'avif'
    assert infer_extension_from_content_type('text/html') is None
    assert infer_extension_from_url('https://x.example/p/photo.WEBP?size=2#top') == 'webp'
    assert infer_extension_from_url('https://x.example/photo') is None
    assert infer_extension_from_url('data:image/png;base64,AAA') is None


def test_fetcher_decodes_data_urls_without_network(mocker):
    session = mocker.Mock()
    fetcher = ImageFetcher(session=session)

    image = fetcher.fetch(f'data:image/gif;base64,{base64.b64encode(b"GIF89a").decode()}')

    assert image.content == b'GIF89a'
    assert image.content_type == 'image/gif'
    session.get.assert_not_called()


def test_fetcher_strips_content_type_parameters(mocker):
    session = mocker.Mock()
    session.get.return_value = mocker.Mock(ok=True, content=b'abc', headers={'content-type': 'image/png; q=1'})

    image = ImageFetcher(session=session).fetch('https://x.example/a.png', referer='https://x.example')

    assert image.content_type == 'image/png'
    assert session.get.call_args.kwargs['headers']['Referer'] == 'https://x.example'


def test_fetcher_raises_on_bad_status(mocker):
    session = mocker.Mock()
    session.get.return_value = mocker.Mock(ok=False, status_code=404)

    with pytest.raises(ImageFetchError, match='HTTP 404'):
        ImageFetcher(session=session).fetch('https://x.example/missing.png')


def test_fetcher_retries_connection_errors_then_raises(mocker):
    mocker.patch('tenacity.nap.time.sleep')
    session = mocker.Mock()
    session.get.side_effect = requests.ConnectionError('refused')

    with pytest.raises(ImageFetchError):
        ImageFetcher(session=session, max_attempts=2).fetch('https://x.example/a.png')
    assert session.get.call_count == 2


def test_png_converter_round_trips_real_images(png_bytes):
    assert PngConverter().to_png(png_bytes).startswith(b'\x89PNG')


def test_png_converter_falls_back_to_incremental_parser(mocker, png_bytes):
    converter = PngConverter()
    direct = mocker.Mock(side_effect=OSError('truncated'))
    direct.__name__ = '_open_directly'
    converter.strategies[0] = direct

    assert converter.to_png(png_bytes).startswith(b'\x89PNG')
    direct.assert_called_once()


def test_png_converter_gives_up_on_garbage():
    assert PngConverter().to_png(b'definitely not an image') is None
    assert PngConverter().to_png(b'') is None


def test_capture_of_inline_image_has_no_source_url(mocker, png_bytes):
    fetcher = mocker.Mock()
    fetcher.fetch.return_value = FetchedImage(url='data:', content=png_bytes, content_type='image/png')
    capture = ImageCapture(fetcher=fetcher)

    descriptors = capture.capture(_img('<img src="data:image/png;base64,AAAA">'), 'logo')

    assert len(descriptors) == 2
    assert all(descriptor.source_url is None for descriptor in descriptors)
    assert descriptors[0].file_name == 'logo'


def test_capture_uses_url_suffix_when_content_type_is_generic(mocker):
    fetcher = mocker.Mock()
    fetcher.fetch.return_value = FetchedImage(url='https://x.example/a.tiff', content=b'xx')
    capture = ImageCapture(fetcher=fetcher, converter=mocker.Mock(to_png=mocker.Mock(return_value=None)))

    descriptor = capture.capture(_img('<img src="https://x.example/a.tiff">'), 'scan', file_name='42')

    assert descriptor.extension == 'tiff'
    assert descriptor.file_name == '42'
    assert descriptor.data_url.startswith('data:application/octet-stream;base64,')


def _oversized_png_header(width=20000, height=20000):
    ihdr = struct.pack('>IIBBBBB', width, height, 8, 2, 0, 0, 0)
    chunk = struct.pack('>I', len(ihdr)) + b'IHDR' + ihdr + struct.pack('>I', zlib.crc32(b'IHDR' + ihdr))
    return b'\x89PNG\r\n\x1a\n' + chunk


def test_png_converter_refuses_decompression_bombs():
    assert PngConverter().to_png(_oversized_png_header()) is None


def test_capture_keeps_original_encoding_of_oversized_image(mocker):
    content = _oversized_png_header()
    fetcher = mocker.Mock()
    fetcher.fetch.return_value = FetchedImage(url='https://x.example/huge.png', content=content, content_type='image/png')

    descriptor = ImageCapture(fetcher=fetcher).capture(_img('<img src="https://x.example/huge.png">'), 'poster')

    assert descriptor.extension == 'png'
    assert descriptor.data_url == f'data:image/png;base64,{base64.b64encode(content).decode()}'

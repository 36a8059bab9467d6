import io

import pytest
from bs4 import BeautifulSoup
from PIL import Image

from pagescoop.core.extraction import FieldExtractor, ImageCapture, PngConverter


@pytest.fixture
def listing_html():
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Listing</title>
    </head>
    <body>
        <div id="root">
            <ul class="products">
                <li class="product">
                    <h2 class="name">Blue Kettle</h2>
                    <span class="price">  $19.99 </span>
                    <a class="link" href="/p/1" data-sku="K-1">View</a>
                </li>
                <li class="product">
                    <h2 class="name">Red   Mug</h2>
                    <span class="price">$5.00</span>
                    <a class="link" href="/p/2" data-sku="M-2">View</a>
                </li>
                <li class="product">
                    <h2 class="name">Green Teapot</h2>
                    <a class="link" href="/p/3" data-sku="T-3">View</a>
                </li>
            </ul>
        </div>
    </body>
    </html>
    """


@pytest.fixture
def registry_html():
    return """
    <html>
    <body>
        <div id="contenu">
            <h3>Company</h3>
            <div><p class="principal">Acme Ltd</p></div>
            <h3>Officers</h3>
            <div>
                <p class="principal">Jane Roe</p>
                <p class="principal">John Doe</p>
                <p class="other">Clerk</p>
            </div>
            <form>
                <label>Street:</label>
                <input name="street" value="1 Main St">
                <label>City:</label>
                <input name="city" value="Springfield">
            </form>
        </div>
    </body>
    </html>
    """


@pytest.fixture
def listing_soup(listing_html):
    return BeautifulSoup(listing_html, 'lxml')


@pytest.fixture
def registry_soup(registry_html):
    return BeautifulSoup(registry_html, 'lxml')


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new('RGB', (2, 2), color=(255, 0, 0)).save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def offline_extractor(mocker):
    """Extractor whose image capture never touches the network."""
    fetcher = mocker.Mock()
    return FieldExtractor(page_url='https://shop.example/list', images=ImageCapture(fetcher=fetcher, converter=PngConverter()))


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line('markers', 'integration: marks tests as integration tests')
    config.addinivalue_line('markers', 'unit: marks tests as unit tests')


def pytest_collection_modifyitems(config, items):
    """Apply directory-based marks to collected test items."""

    for item in items:
        if hasattr(item, 'fspath'):
            file_path = str(item.fspath)

            if '/tests/integration/' in file_path:
                item.add_marker(pytest.mark.integration)
            elif '/tests/unit/' in file_path:
                item.add_marker(pytest.mark.unit)

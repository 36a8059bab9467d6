import base64
import csv
import json

import pytest

from pagescoop.models import ImageDescriptor, ScrapeResult
from pagescoop.storage import (
    FileNameRegistry,
    ResultStorage,
    determine_image_extension,
    ensure_extension,
    normalise_value,
    sanitize_file_name_segment,
)


@pytest.fixture
def storage(tmp_path, mocker):
    mocker.patch('pagescoop.utils.files.get_project_root', return_value=tmp_path)
    return ResultStorage(tmp_path / 'out', session=mocker.Mock())


def _read_csv(path):
    with open(path, encoding='utf-8', newline='') as f:
        return list(csv.reader(f))


def test_sanitize_file_name_segment():
    assert sanitize_file_name_segment('a/b\\c:d*e?"f"<g>|h i') == 'a_b_c_d_e_f_g_h_i'
    assert sanitize_file_name_segment('') == ''


def test_ensure_extension_does_not_duplicate():
    assert ensure_extension('photo', 'png') == 'photo.png'
    assert ensure_extension('photo.PNG', 'png') == 'photo.PNG'
    assert ensure_extension('photo', None) == 'photo'


def test_determine_image_extension_order():
    assert determine_image_extension('image/jpeg; charset=binary', 'https://x.example/a.gif') == 'jpg'
    assert determine_image_extension('application/octet-stream', 'https://x.example/a.gif?v=2') == 'gif'
    assert determine_image_extension(None, None) == 'png'


def test_normalise_value():
    assert normalise_value(None) == ''
    assert normalise_value('  a \n b ') == 'a b'
    assert normalise_value(['images/a.png', 'images/a.jpg']) == '["images/a.png", "images/a.jpg"]'
    assert normalise_value(3) == '3'


def test_registry_reserves_unique_names(tmp_path):
    (tmp_path / 'photo.png').touch()
    registry = FileNameRegistry(tmp_path)

    assert registry.reserve('photo', 'png') == 'photo-1.png'
    assert registry.reserve('photo', 'png') == 'photo-2.png'
    assert registry.reserve('photo', 'jpg') == 'photo.jpg'
    assert registry.reserve('my photo', 'jpg') == 'my_photo.jpg'


def test_save_writes_json_and_csv(storage):
    result = ScrapeResult(id='job-1', url='https://shop.example', data=[{'name': 'Kettle', 'price': '$19'}])

    path = storage.save(result)

    assert path == storage.json_dir / 'job-1.json'
    payload = json.loads(path.read_text())
    assert payload['id'] == 'job-1'
    assert payload['data'] == [{'name': 'Kettle', 'price': '$19'}]

    rows = _read_csv(storage.csv_path)
    assert rows[0] == ['id', 'timestamp', 'url', 'name', 'price']
    assert rows[1][0] == 'job-1'
    assert rows[1][3:] == ['Kettle', '$19']


def test_csv_header_is_widened_and_old_rows_realigned(storage):
    storage.save(ScrapeResult(id='a', url='https://x.example', data=[{'name': 'one'}]))
    storage.save(ScrapeResult(id='b', url='https://x.example', data=[{'price': '2', 'name': 'two'}]))

    rows = _read_csv(storage.csv_path)
    assert rows[0] == ['id', 'timestamp', 'url', 'name', 'price']
    assert rows[1][0] == 'a'
    assert rows[1][3:] == ['one', '']
    assert rows[2][0] == 'b'
    assert rows[2][3:] == ['two', '2']


def test_result_without_id_uses_timestamped_name(storage, mocker):
    mocker.patch('pagescoop.storage.time.time', return_value=1700000000.5)

    path = storage.save(ScrapeResult(url='https://x.example', data=[{'a': '1'}]))

    assert path.name == 'data_1700000000500.json'


def test_error_result_is_saved_as_json_only(storage):
    path = storage.save(ScrapeResult(id='bad', url='https://x.example', error='Element #x not found within time limit'))

    assert json.loads(path.read_text()) == {'error': 'Element #x not found within time limit'}
    assert not storage.csv_path.exists()


def test_image_descriptors_are_written_and_replaced_by_paths(storage, png_bytes):
    data_url = f'data:image/png;base64,{base64.b64encode(png_bytes).decode()}'
    photos = [
        ImageDescriptor(name='photo', data_url=data_url, extension='png', content_type='image/png', file_name='job-9'),
        ImageDescriptor(name='photo', data_url=data_url, extension='png', content_type='image/png', file_name='job-9'),
    ]
    result = ScrapeResult(id='job-9', url='https://x.example', data=[{'title': 'T', 'photo': photos}])

    path = storage.save(result)

    payload = json.loads(path.read_text())
    assert payload['data'][0]['photo'] == ['images/job-9.png', 'images/job-9-1.png']
    assert (storage.image_dir / 'job-9.png').read_bytes() == png_bytes
    assert (storage.image_dir / 'job-9-1.png').exists()

    rows = _read_csv(storage.csv_path)
    assert rows[1][rows[0].index('photo')] == '["images/job-9.png", "images/job-9-1.png"]'


def test_image_given_only_by_url_is_downloaded(storage, mocker):
    storage.session.get.return_value = mocker.Mock(ok=True, status_code=200, content=b'GIF89a')
    descriptor = {'type': 'img', 'name': 'logo', 'sourceUrl': 'https://x.example/logo.gif'}

    saved = storage.save_image(descriptor, 'job', 0, 'logo')

    assert saved == 'images/logo.gif'
    assert (storage.image_dir / 'logo.gif').read_bytes() == b'GIF89a'


def test_image_download_failure_keeps_descriptor(storage, mocker):
    storage.session.get.return_value = mocker.Mock(ok=False, status_code=404, content=b'')
    result = ScrapeResult(
        id='j',
        url='https://x.example',
        data=[{'logo': {'type': 'image', 'name': 'logo', 'sourceUrl': 'https://x.example/missing.png'}}],
    )

    payload = json.loads(storage.save(result).read_text())

    assert payload['data'][0]['logo']['sourceUrl'] == 'https://x.example/missing.png'
    assert list(storage.image_dir.iterdir()) == []

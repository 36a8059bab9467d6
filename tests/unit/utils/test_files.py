from pathlib import Path

import pytest

from pagescoop.utils.files import get_logs_path, get_project_root, init_pagescoop


@pytest.mark.parametrize('marker', ['pyproject.toml', '.pagescoop', '.git'])
def test_project_root_found_from_nested_job_directory(monkeypatch, tmp_path, marker):
    workspace = tmp_path / 'scrapes'
    jobs_dir = workspace / 'jobs' / 'shop'
    jobs_dir.mkdir(parents=True)
    marker_path = workspace / marker
    if marker.startswith('.'):
        marker_path.mkdir()
    else:
        marker_path.touch()
    monkeypatch.setattr(Path, 'cwd', lambda: jobs_dir)

    assert get_project_root() == workspace


def test_project_root_falls_back_to_cwd(monkeypatch, tmp_path):
    monkeypatch.setattr(Path, 'cwd', lambda: tmp_path)

    assert get_project_root() == tmp_path


def test_init_pagescoop_default_layout(mocker, tmp_path):
    project_root = tmp_path / 'project'
    project_root.mkdir()
    mocker.patch('pagescoop.utils.files.get_project_root', return_value=project_root)

    output = init_pagescoop()

    assert output == project_root / '.pagescoop' / 'output'
    assert (output / 'jsons').is_dir()
    assert (output / 'images').is_dir()
    assert (project_root / '.pagescoop' / '.gitignore').read_text() == '# Automatically created by pagescoop\n*\n'
    assert get_logs_path() == project_root / '.pagescoop' / 'logs'


def test_init_pagescoop_explicit_directory(mocker, tmp_path):
    mocker.patch('pagescoop.utils.files.get_project_root', return_value=tmp_path / 'elsewhere')

    output = init_pagescoop(tmp_path / 'out')

    assert output == tmp_path / 'out'
    assert (output / 'jsons').is_dir()
    assert not (tmp_path / 'elsewhere' / '.pagescoop').exists()

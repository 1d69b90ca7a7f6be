from pathlib import Path

import pytest

from stardict import config as CFG


@pytest.mark.parametrize("cpus, items, per_worker, expected", [
    (8, 3, 1, 3),
    (8, 100, 1, 8),
    (8, 100, CFG.WORDS_PER_WORKER, 1),
    (8, 5000, CFG.WORDS_PER_WORKER, 4),
    (8, 0, 1, 1),
])
def test_worker_count(monkeypatch, cpus, items, per_worker, expected):
    monkeypatch.setattr(CFG.os, "cpu_count", lambda: cpus)
    assert CFG.worker_count(items, per_worker) == expected


def test_load_dictionaries_resolves_paths(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    conf = tmp_path / "conf" / "sdview.conf"
    conf.parent.mkdir()
    conf.write_text(
        "[General]\ntheme = dark\n\n"
        "[Dictionaries]\n"
        "Czech-English = dicts/cs-en.ifo\n"
        "Home = ~/home.ifo\n"
        "Abs = /srv/abs.ifo\n"
    )
    assert CFG.load_dictionaries(str(conf)) == [
        ("Czech-English", str(conf.parent / "dicts" / "cs-en.ifo")),
        ("Home", str(tmp_path / "home.ifo")),
        ("Abs", "/srv/abs.ifo"),
    ]


def test_config_location_from_environment(tmp_path: Path, monkeypatch):
    conf = tmp_path / "custom.conf"
    monkeypatch.setenv(CFG.CONFIG_ENV, str(conf))
    assert CFG.config_path() == str(conf)
    assert CFG.load_dictionaries() == []

    conf.write_text("[General]\nx = 1\n")
    assert CFG.load_dictionaries() == []

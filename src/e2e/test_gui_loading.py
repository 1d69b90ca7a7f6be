from types import SimpleNamespace

import pytest

gui = pytest.importorskip("frontend.gui")

from stardict.errors import InvalidData


class _FakeApp(SimpleNamespace):
    """Stands in for the Tk window: records scheduled callbacks and UI calls."""

    def __init__(self, registry):
        super().__init__(
            session=SimpleNamespace(registry=registry),
            scheduled=[], statuses=[], logs=[],
            progress=SimpleNamespace(stop=lambda: None),
            load_failed=False, destroyed=False,
        )

    def after(self, _ms, fn):
        self.scheduled.append(fn)

    def _set_status(self, text):
        self.statuses.append(text)

    def _log(self, text):
        self.logs.append(text)

    def destroy(self):
        self.destroyed = True

    def _on_load_error(self, exc):
        gui.DictionaryApp._on_load_error(self, exc)


def _failing_registry():
    def load():
        raise InvalidData("broken.ifo: wordcount must be positive")
    return SimpleNamespace(load=load)


def test_load_error_reaches_the_user(monkeypatch):
    shown = []
    monkeypatch.setattr(gui.mb, "showerror", lambda title, msg: shown.append(msg))
    app = _FakeApp(_failing_registry())

    gui.DictionaryApp._load_worker(app)
    assert len(app.scheduled) == 1
    app.scheduled[0]()

    assert shown and "broken.ifo" in shown[0]
    assert app.statuses == ["Error while loading dictionaries."]
    assert app.logs and app.logs[0].startswith("ERROR: broken.ifo")
    assert app.load_failed is True and app.destroyed is True


def test_run_reports_failed_load(monkeypatch):
    class _Window:
        def __init__(self, session):
            self.load_failed = False

        def start_loading(self):
            self.load_failed = True

        def mainloop(self):
            pass

    monkeypatch.setattr(gui, "DictionaryApp", _Window)
    assert gui.run(session=None) == 1

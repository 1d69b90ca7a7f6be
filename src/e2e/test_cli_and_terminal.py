import io
from pathlib import Path

import pytest

from frontend import Session
from frontend.__main__ import main
from frontend.terminal import TerminalApp, format_row
from stardict import __version__
from stardict.view import Row


def test_version(capsys):
    assert main(["--version"]) == 0
    assert __version__ in capsys.readouterr().out


def test_bad_option_exits_with_one(capsys):
    assert main(["--no-such-option"]) == 1


def test_no_dictionaries_configured(tmp_path: Path, monkeypatch, capsys):
    monkeypatch.setenv("SDVIEW_CONFIG", str(tmp_path / "absent.conf"))
    assert main([]) == 1
    assert capsys.readouterr().err.startswith("error: no dictionaries")


@pytest.mark.e2e
def test_unloadable_dictionary(tmp_path: Path, capsys):
    assert main(["--web", str(tmp_path / "missing.ifo")]) == 1
    err = capsys.readouterr().err
    assert err.startswith("error: ") and "missing.ifo" in err


@pytest.mark.e2e
def test_web_mode_serves_loaded_session(fruit, monkeypatch):
    import frontend.web as webmod
    calls = []

    def fake_serve(session, host, port, debug):
        calls.append((session.registry.current.display_name, len(session.view.entries), host, port))

    monkeypatch.setattr(webmod, "serve", fake_serve)
    assert main(["--web", "--port", "9123", fruit]) == 0
    assert calls and calls[0][0] == "fruit" and calls[0][1] > 0 and calls[0][2:] == ("127.0.0.1", 9123)


def test_format_row_pads_word_column():
    row = Row(offset=0, word="apple", matched=3, text="the apple", selected=False)
    assert format_row(row, 10, 40) == "apple     the apple"
    cont = Row(offset=0, word=None, matched=0, text="x" * 50, selected=True)
    line = format_row(cont, 10, 40)
    assert line.startswith(" " * 10) and len(line) == 40 and line.endswith("…")
    assert format_row(row, 10, 40, color=True).startswith("\x1b[4mapp\x1b[0mle")


@pytest.mark.e2e
def test_terminal_session(fruit, build_dict, monkeypatch):
    monkeypatch.setenv("COLUMNS", "80")
    monkeypatch.setenv("LINES", "9")
    colors = build_dict("colors", {"black": "no light", "red": "blood"})
    session = Session.create([fruit, colors])
    session.load()
    out = io.StringIO()
    app = TerminalApp(session, out=out, color=False)
    keys = iter(["red", ":j", ":help", ":d 2", ":d 9", ":tab", ":]", ""])
    try:
        assert app.run(read=lambda prompt: next(keys)) == 0
        text = out.getvalue()
        assert "red                     the red" in text
        assert ":tab" in text and "(no dictionary 9)" in text
        assert "no exact match" not in text
        assert session.registry.current_index == 1
        assert session.view.height == 6 and session.view.width == 80
        assert app.running is False
    finally:
        session.close()


@pytest.mark.e2e
def test_terminal_status_line(fruit):
    session = Session.create([fruit], height=4)
    session.load()
    app = TerminalApp(session, out=io.StringIO(), color=False)
    try:
        app.handle("reds")
        lines = app.render()
        assert lines[0] == "1:fruit"
        assert lines[-1] == "no exact match for 'reds'"
        assert len(lines) == 1 + 4 + 1
        app.handle(":q")
        assert app.running is False
    finally:
        session.close()

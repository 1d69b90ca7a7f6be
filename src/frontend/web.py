from __future__ import annotations
import argparse
import logging
import sys
import threading

from flask import Flask, Response, jsonify, request

from stardict.errors import StardictError
from stardict.view import Action

from . import Session

app = Flask(__name__)
_session: Session | None = None
_lock = threading.Lock()

log = logging.getLogger(__name__)


def _require_session() -> Session:
    if _session is None:
        raise RuntimeError("Session not initialized. Call serve(...) first.")
    return _session


def _view_json(session: Session) -> dict:
    view = session.view
    slot = session.current
    return {
        "dictionary": slot.display_name if slot else None,
        "current": session.registry.current_index,
        "input": view.input.text,
        "found": view.found,
        "top_position": view.top_position,
        "top_offset": view.top_offset,
        "selected": view.selected,
        "height": view.height,
        "width": view.width,
        "rows": [
            {"offset": r.offset, "word": r.word, "matched": r.matched,
             "text": r.text, "selected": r.selected}
            for r in view.rows()
        ],
    }


def _bad_request(message: str):
    return jsonify({"error": message}), 400


# ---------- API ----------
@app.get("/health")
def health():
    session = _require_session()
    return jsonify({"status": "ok", "dictionaries": len(session.registry)})


@app.get("/api/dictionaries")
def api_dictionaries():
    session = _require_session()
    items = [
        {"index": i, "name": slot.display_name, "path": slot.path,
         "words": len(slot.dictionary) if slot.dictionary is not None else None}
        for i, slot in enumerate(session.registry)
    ]
    return jsonify({"current": session.registry.current_index, "dictionaries": items})


@app.post("/api/select")
def api_select():
    session = _require_session()
    body = request.get_json(silent=True) or {}
    with _lock:
        if "index" in body:
            if not isinstance(body["index"], int) or not session.select(body["index"]):
                return _bad_request(f"no dictionary at index {body['index']!r}")
        elif body.get("action") == "last":
            session.switch_to_last()
        elif body.get("action") in ("next", "previous"):
            session.cycle(1 if body["action"] == "next" else -1)
        else:
            return _bad_request("expected 'index' or 'action' (last, next, previous)")
        return jsonify(_view_json(session))


@app.get("/api/view")
def api_view():
    session = _require_session()
    q = request.args.get("q", None, type=str)
    with _lock:
        if q is not None and q != session.view.input.text:
            session.view.set_input(q)
        return jsonify(_view_json(session))


@app.post("/api/scroll")
def api_scroll():
    session = _require_session()
    body = request.get_json(silent=True) or {}
    with _lock:
        if "action" in body:
            try:
                action = Action(body["action"])
            except ValueError:
                return _bad_request(f"unknown action {body['action']!r}")
            session.view.process_action(action)
        elif isinstance(body.get("delta"), int):
            session.view.scroll(body["delta"])
        else:
            return _bad_request("expected 'action' or an integer 'delta'")
        return jsonify(_view_json(session))


@app.post("/api/resize")
def api_resize():
    session = _require_session()
    body = request.get_json(silent=True) or {}
    height, width = body.get("height"), body.get("width")
    if not isinstance(height, int) or height < 1:
        return _bad_request("'height' must be a positive integer")
    if width is not None and (not isinstance(width, int) or width < 1):
        return _bad_request("'width' must be a positive integer")
    with _lock:
        session.view.resize(height, width)
        return jsonify(_view_json(session))


# ---------- UI ----------
@app.get("/")
def home():
    html = r"""
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width,initial-scale=1" />
<title>sdview</title>
<style>
:root{
  --bg:#0b0f14; --panel:#0f141b; --ink:#cfd8e3; --muted:#8a94a6;
  --accent:#6ee7ff; --border:#1c2530; --sel:#16202b;
}
*{box-sizing:border-box}
body{
  margin:0; background:var(--bg); color:var(--ink);
  font:15px/1.5 system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,Arial;
}
.container{ max-width:980px; margin:24px auto; padding:0 16px }
.card{ background:var(--panel); border:1px solid var(--border); border-radius:16px; padding:18px }
.tabs{ display:flex; gap:8px; flex-wrap:wrap; margin-bottom:12px }
.tab{ padding:6px 12px; border-radius:10px; border:1px solid var(--border); cursor:pointer; color:var(--muted) }
.tab.on{ color:var(--ink); border-color:var(--accent) }
#q{
  width:100%; padding:12px 14px; border-radius:12px; border:1px solid var(--border);
  background:#0b1117; color:var(--ink); outline:none; font-size:16px;
}
#q:focus{ border-color:var(--accent) }
.meta{ color:var(--muted); font-size:13px; margin:6px 0 }
.rows{ border:1px solid var(--border); border-radius:12px; overflow:hidden }
.row{ display:grid; grid-template-columns:14rem 1fr; gap:10px; padding:2px 12px; min-height:1.5em }
.row.sel{ background:var(--sel) }
.word{ font-weight:600 }
.word u{ text-decoration-color:var(--accent) }
kbd{ background:#111825; border:1px solid var(--border); padding:1px 6px; border-radius:6px }
</style>
</head>
<body>
  <div class="container">
    <div class="card">
      <div id="tabs" class="tabs"></div>
      <input id="q" type="text" placeholder="Search…" autocomplete="off" autofocus />
      <div id="meta" class="meta">Ready.</div>
      <div id="rows" class="rows"></div>
      <div class="meta">
        <kbd>↑</kbd>/<kbd>↓</kbd> definitions, <kbd>Alt</kbd>+<kbd>↑</kbd>/<kbd>↓</kbd> entries,
        <kbd>PgUp</kbd>/<kbd>PgDn</kbd> pages, <kbd>Ctrl</kbd>+<kbd>←</kbd>/<kbd>→</kbd> dictionaries
      </div>
    </div>
  </div>
<script>
const $ = (sel) => document.querySelector(sel);
const q = $("#q"), rows = $("#rows"), meta = $("#meta"), tabs = $("#tabs");
let t;

function esc(s){ return String(s ?? "").replace(/[&<>"]/g, c => ({"&":"&amp;","<":"&lt;",">":"&gt;",'"':"&quot;"}[c])); }
function matched(word, n){
  const bytes = new TextEncoder().encode(word);
  const head = new TextDecoder().decode(bytes.slice(0, n)).replace(/�$/, "");
  return `<u>${esc(head)}</u>${esc(word.slice(head.length))}`;
}

function show(v){
  meta.textContent = v.found || !v.input ? `${v.dictionary} • ${v.top_position + 1}` : `${v.dictionary} • no exact match`;
  rows.innerHTML = v.rows.map(r => `
    <div class="row${r.selected ? " sel" : ""}">
      <div class="word">${r.word === null ? "" : matched(r.word, r.matched)}</div>
      <div>${esc(r.text)}</div>
    </div>`).join("");
  for (const el of tabs.children) el.classList.toggle("on", Number(el.dataset.i) === v.current);
}

async function call(url, body){
  const opts = body === undefined ? {} : {method:"POST", headers:{"Content-Type":"application/json"}, body:JSON.stringify(body)};
  const resp = await fetch(url, opts);
  if(!resp.ok){ meta.textContent = `Error: HTTP ${resp.status}`; return null; }
  return resp.json();
}

async function loadTabs(){
  const d = await call("/api/dictionaries");
  if(!d) return;
  tabs.innerHTML = d.dictionaries.map(x => `<div class="tab" data-i="${x.index}">${esc(x.name)}</div>`).join("");
  for (const el of tabs.children) el.addEventListener("click", async () => {
    const v = await call("/api/select", {index:Number(el.dataset.i)}); if(v) show(v);
  });
}

async function fit(){
  const v = await call("/api/resize", {height:Math.max(1, Math.floor((innerHeight - 220) / 24))});
  if(v) show(v);
}

async function search(){
  const v = await call(`/api/view?q=${encodeURIComponent(q.value)}`);
  if(v) show(v);
}

async function act(action){
  const v = await call("/api/scroll", {action}); if(v) show(v);
}

q.addEventListener("input", () => { clearTimeout(t); t = setTimeout(search, 150); });
window.addEventListener("resize", () => { clearTimeout(t); t = setTimeout(fit, 150); });
window.addEventListener("keydown", async (ev) => {
  const keys = {
    ArrowUp: ev.altKey ? "entry-previous" : "definition-previous",
    ArrowDown: ev.altKey ? "entry-next" : "definition-next",
    PageUp: "page-previous", PageDown: "page-next",
  };
  if(ev.ctrlKey && (ev.key === "ArrowLeft" || ev.key === "ArrowRight")){
    ev.preventDefault();
    const v = await call("/api/select", {action: ev.key === "ArrowRight" ? "next" : "previous"});
    if(v) show(v);
  }else if(keys[ev.key]){
    ev.preventDefault();
    act(keys[ev.key]);
  }
});
loadTabs().then(fit);
</script>
</body>
</html>
"""
    return Response(html, mimetype="text/html")


def serve(session: Session, host: str = "127.0.0.1", port: int = 8000, debug: bool = False) -> None:
    global _session
    _session = session
    log.info("Serving %d dictionaries on http://%s:%d/", len(session.registry), host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Serve the dictionary viewer over HTTP")
    ap.add_argument("dictionaries", nargs="*", metavar="dictionary.ifo")
    ap.add_argument("--config", default=None, help="Configuration file listing dictionaries")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO)

    try:
        session = Session.create(args.dictionaries, config=args.config)
        session.load()
    except (StardictError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    try:
        serve(session, host=args.host, port=args.port, debug=args.verbose)
    finally:
        session.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

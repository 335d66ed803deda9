from __future__ import annotations

import json
import logging
from html import escape
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, List, Optional
from urllib.parse import parse_qs, quote, urlparse

from .db import CredentialsError, QueryError
from .github import GitHubError
from .reconcile import ComparisonResult, DocumentSource, ReconcileError, Reconciler


logger = logging.getLogger(__name__)


_STYLE = (
    "body{font-family:system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,Cantarell,Noto Sans,sans-serif;margin:24px;}"
    "table{border-collapse:collapse;margin:8px 0 16px 0;}"
    "td,th{border:1px solid #ccc;padding:4px 8px;vertical-align:top;text-align:left;}"
    "pre{white-space:pre-wrap;margin:0;}"
    ".ok{color:#1a7f37;}.missing{color:#b35900;}"
)


def _page(title: str, body: str) -> str:
    return (
        "<!doctype html><html><head><meta charset=\"utf-8\"/>"
        "<meta name=\"viewport\" content=\"width=device-width, initial-scale=1\"/>"
        f"<title>{escape(title)}</title><style>{_STYLE}</style>"
        "</head><body>"
        f"{body}"
        "</body></html>"
    )


def _json_cell(value: Any) -> str:
    if value is None:
        return "<em>missing</em>"
    if isinstance(value, str):
        return escape(value)
    return f"<pre>{escape(json.dumps(value, ensure_ascii=False, indent=2))}</pre>"


def render_index_html(*, timeline_root: str) -> str:
    root = escape(timeline_root)
    return _page(
        "minutes-sync",
        "<h1>minutes-sync</h1>"
        f"<p><a href=\"/browse?dir={quote(timeline_root)}\">Browse {root}/</a></p>"
        "<h2>Compare</h2>"
        "<form method=\"post\" action=\"/compare\">"
        "<p><label>File <input name=\"path\" size=\"60\" placeholder=\""
        f"{root}/2024/January/week-1.md\"/></label></p>"
        "<p><label>or directory <input name=\"dir\" size=\"60\" placeholder=\""
        f"{root}/2024/January\"/></label></p>"
        "<p><button type=\"submit\">Compare</button></p>"
        "</form>",
    )


def render_browse_html(*, path: str, directories: List[str], files: List[str]) -> str:
    parts = [f"<p><a href=\"/\">← Back</a></p><h1>{escape(path or '/')}</h1>"]

    if directories:
        parts.append("<h2>Directories</h2><ul>")
        for name in directories:
            child = f"{path.rstrip('/')}/{name}" if path else name
            parts.append(f"<li><a href=\"/browse?dir={quote(child)}\">{escape(name)}/</a></li>")
        parts.append("</ul>")

    if files:
        parts.append(
            "<form method=\"post\" action=\"/compare\">"
            f"<input type=\"hidden\" name=\"dir\" value=\"{escape(path)}\"/>"
            "<button type=\"submit\">Compare all files</button></form>"
        )
        parts.append("<h2>Files</h2><ul>")
        for f in files:
            parts.append(
                "<li><form method=\"post\" action=\"/compare\" style=\"display:inline\">"
                f"<input type=\"hidden\" name=\"path\" value=\"{escape(f)}\"/>"
                f"<button type=\"submit\">Compare</button></form> {escape(f)}</li>"
            )
        parts.append("</ul>")

    if not directories and not files:
        parts.append("<p>Empty directory.</p>")

    return _page(f"Browse {path}", "".join(parts))


def render_results_html(results: List[ComparisonResult]) -> str:
    parts = ["<p><a href=\"/\">← Back</a></p><h1>Comparison results</h1>"]
    if not results:
        parts.append("<p>No workgroup records found.</p>")

    for r in results:
        parts.append(f"<h2>{escape(r.workgroup or '(no workgroup)')}</h2>")
        parts.append(f"<p><strong>File:</strong> <code>{escape(r.source_path)}</code></p>")

        if not r.matched:
            parts.append("<p class=\"missing\">No matching canonical record found.</p>")
        elif not r.differences:
            parts.append("<p class=\"ok\">Records match! No differences found.</p>")
        else:
            parts.append(f"<p>{len(r.differences)} difference(s)</p>")
            parts.append("<table><tr><th>Field</th><th>Minutes</th><th>Canonical</th></tr>")
            for d in r.differences:
                parts.append(
                    f"<tr><td><code>{escape(d.field)}</code></td>"
                    f"<td>{_json_cell(d.candidate_value)}</td>"
                    f"<td>{_json_cell(d.canonical_value)}</td></tr>"
                )
            parts.append("</table>")

        parts.append(
            "<details><summary>Ordered records</summary>"
            "<table><tr><th>Minutes</th><th>Canonical</th></tr><tr>"
            f"<td>{_json_cell(r.ordered_candidate)}</td>"
            f"<td>{_json_cell(r.ordered_canonical)}</td>"
            "</tr></table></details>"
        )

    return _page("Comparison results", "".join(parts))


class _Handler(BaseHTTPRequestHandler):
    server_version = "MinutesSyncHTTP/0.1"

    @property
    def _reconciler(self) -> Reconciler:
        return self.server.reconciler  # type: ignore[attr-defined]

    @property
    def _documents(self) -> DocumentSource:
        return self.server.documents  # type: ignore[attr-defined]

    def _render_error_page(self, *, title: str, message: str, status: int = 400) -> None:
        html = _page(title, f"<p><a href=\"/\">← Back</a></p><h1>{escape(title)}</h1><p>{escape(message)}</p>")
        self._send(status, html.encode("utf-8"), content_type="text/html; charset=utf-8")

    def _send_json(self, status: int, obj: object) -> None:
        payload = json.dumps(obj, ensure_ascii=False).encode("utf-8")
        self._send(status, payload, content_type="application/json; charset=utf-8")

    def _send_json_error(self, status: int, message: str) -> None:
        self._send_json(status, {"error": str(message)})

    def _read_form(self) -> dict:
        try:
            length = int(self.headers.get("Content-Length") or "0")
        except ValueError:
            length = 0
        body = self.rfile.read(length) if length > 0 else b""
        return parse_qs(body.decode("utf-8", errors="replace"))

    def _run_compare(self, *, path: Optional[str], directory: Optional[str]) -> List[ComparisonResult]:
        # A file path wins when both are given.
        if path:
            return self._reconciler.compare_path(path)
        return self._reconciler.compare_directory(directory or "")

    def do_GET(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        path = parsed.path
        query = parse_qs(parsed.query)

        if path == "/":
            html = render_index_html(timeline_root=self.server.timeline_root)  # type: ignore[attr-defined]
            self._send(200, html.encode("utf-8"), content_type="text/html; charset=utf-8")
            return

        if path == "/browse":
            directory = (query.get("dir") or [self.server.timeline_root])[0].strip("/")  # type: ignore[attr-defined]
            try:
                dirs = self._documents.list_directories(directory)
                files = self._documents.list_markdown_files(directory)
            except GitHubError as e:
                self._render_error_page(title="Browse failed", message=str(e), status=502)
                return
            html = render_browse_html(path=directory, directories=dirs, files=files)
            self._send(200, html.encode("utf-8"), content_type="text/html; charset=utf-8")
            return

        if path == "/api/compare":
            target = (query.get("path") or [""])[0].strip()
            directory = (query.get("dir") or [""])[0].strip()
            if not target and not directory:
                self._send_json_error(400, "Missing path or dir")
                return
            try:
                results = self._run_compare(path=target or None, directory=directory or None)
            except ReconcileError as e:
                self._send_json_error(422, str(e))
                return
            except (GitHubError, CredentialsError, QueryError) as e:
                self._send_json_error(502, str(e))
                return
            self._send_json(200, {"results": [r.to_dict() for r in results]})
            return

        self._send(404, b"Not found", content_type="text/plain; charset=utf-8")

    def do_POST(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)

        if parsed.path == "/compare":
            form = self._read_form()
            target = (form.get("path") or [""])[0].strip()
            directory = (form.get("dir") or [""])[0].strip()
            if not target and not directory:
                self._render_error_page(title="Nothing to compare", message="Enter a file path or a directory.")
                return
            try:
                results = self._run_compare(path=target or None, directory=directory or None)
            except ReconcileError as e:
                self._render_error_page(title="Comparison failed", message=str(e), status=422)
                return
            except (GitHubError, CredentialsError, QueryError) as e:
                self._render_error_page(title="Comparison failed", message=str(e), status=502)
                return
            html = render_results_html(results)
            self._send(200, html.encode("utf-8"), content_type="text/html; charset=utf-8")
            return

        self._send(404, b"Not found", content_type="text/plain; charset=utf-8")

    def log_message(self, fmt: str, *args) -> None:  # noqa: A003
        logger.debug("%s - %s", self.address_string(), fmt % args)

    def _send(self, status: int, data: bytes, *, content_type: str) -> None:
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


def make_server(
    *,
    reconciler: Reconciler,
    documents: DocumentSource,
    timeline_root: str = "timeline",
    host: str = "127.0.0.1",
    port: int = 8000,
) -> ThreadingHTTPServer:
    httpd = ThreadingHTTPServer((host, int(port)), _Handler)
    httpd.reconciler = reconciler  # type: ignore[attr-defined]
    httpd.documents = documents  # type: ignore[attr-defined]
    httpd.timeline_root = timeline_root  # type: ignore[attr-defined]
    return httpd


def serve(
    *,
    reconciler: Reconciler,
    documents: DocumentSource,
    timeline_root: str = "timeline",
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    httpd = make_server(
        reconciler=reconciler, documents=documents, timeline_root=timeline_root, host=host, port=port
    )
    try:
        httpd.serve_forever(poll_interval=0.25)
    finally:
        httpd.server_close()

from __future__ import annotations

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from jinja2 import TemplateNotFound, TemplateSyntaxError
from starlette.requests import Request

from useradmin.service import create_app
from useradmin.store import UserStore
from useradmin.templates import PAGE_TEMPLATES, STARTUP_TEMPLATES, TEMPLATE_DIR, TemplateCache


def _request() -> Request:
    return Request({"type": "http", "method": "GET", "path": "/", "headers": [], "query_string": b""})


def _write(path: Path, text: str) -> None:
    path.write_text(text, encoding="utf-8")
    # Push the modification time forward so a reload is observable on coarse clocks.
    stat = path.stat()
    os.utime(path, (stat.st_atime + 10, stat.st_mtime + 10))


def _page_dir(tmp_path: Path, **overrides: str) -> Path:
    for name in STARTUP_TEMPLATES:
        (tmp_path / name).write_text(overrides.get(name.replace(".html", ""), name), encoding="utf-8")
    return tmp_path


def test_packaged_templates_preload() -> None:
    cache = TemplateCache()
    assert cache.directory == TEMPLATE_DIR
    cache.preload()


def test_templates_are_cached_until_invalidated(tmp_path: Path) -> None:
    template = tmp_path / "page.html"
    template.write_text("first {{ value }}", encoding="utf-8")

    cache = TemplateCache(tmp_path)
    assert cache.auto_reload is False
    assert cache.render(_request(), "page.html", {"value": 1}).body == b"first 1"

    _write(template, "second {{ value }}")
    assert cache.render(_request(), "page.html", {"value": 2}).body == b"first 2"

    cache.invalidate()
    assert cache.render(_request(), "page.html", {"value": 3}).body == b"second 3"


def test_auto_reload_picks_up_changes(tmp_path: Path) -> None:
    template = tmp_path / "page.html"
    template.write_text("first", encoding="utf-8")

    cache = TemplateCache(tmp_path, auto_reload=True)
    assert cache.render(_request(), "page.html").body == b"first"

    _write(template, "second")
    assert cache.render(_request(), "page.html").body == b"second"


def test_render_uses_status_code(tmp_path: Path) -> None:
    (tmp_path / "page.html").write_text("oops", encoding="utf-8")
    response = TemplateCache(tmp_path).render(_request(), "page.html", status_code=404)
    assert response.status_code == 404


def test_render_escapes_html(tmp_path: Path) -> None:
    (tmp_path / "page.html").write_text("{{ value }}", encoding="utf-8")
    response = TemplateCache(tmp_path).render(_request(), "page.html", {"value": "<b>"})
    assert response.body == b"&lt;b&gt;"


def test_missing_templates_fail_application_start(tmp_path: Path, store: UserStore) -> None:
    (tmp_path / "index.html").write_text("home", encoding="utf-8")

    with pytest.raises(TemplateNotFound):
        create_app(store=store, templates=TemplateCache(tmp_path))


def test_missing_layout_fails_application_start(tmp_path: Path, store: UserStore) -> None:
    for name in PAGE_TEMPLATES:
        (tmp_path / name).write_text('{% extends "base.html" %}', encoding="utf-8")

    with pytest.raises(TemplateNotFound):
        create_app(store=store, templates=TemplateCache(tmp_path))


def test_broken_layout_fails_application_start(tmp_path: Path, store: UserStore) -> None:
    directory = _page_dir(tmp_path, base="{% block content %}unterminated")

    with pytest.raises(TemplateSyntaxError):
        create_app(store=store, templates=TemplateCache(directory))


def test_render_failure_returns_server_error_without_crashing(tmp_path: Path, store: UserStore) -> None:
    directory = _page_dir(tmp_path, admin="{{ users.missing.deeper }}")
    app = create_app(store=store, templates=TemplateCache(directory))

    with TestClient(app) as client:
        broken = client.get("/admin")
        assert broken.status_code == 500
        assert broken.json() == {"detail": "Internal Server Error"}

        home = client.get("/")
        assert home.status_code == 200
        assert home.text == "index.html"

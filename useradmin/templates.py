"""Compiled template cache for the admin pages."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from fastapi import Request
from fastapi.templating import Jinja2Templates
from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.responses import Response

logger = logging.getLogger("useradmin.templates")

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

PAGE_TEMPLATES = ("index.html", "admin.html", "admin_add.html", "admin_edit.html")

LAYOUT_TEMPLATES = ("base.html",)

STARTUP_TEMPLATES = LAYOUT_TEMPLATES + PAGE_TEMPLATES


class TemplateCache:
    """Load page templates once and render them with handler data.

    With ``auto_reload`` disabled a template is compiled the first time it is
    needed (or during :meth:`preload`) and reused until :meth:`invalidate` is
    called. With ``auto_reload`` enabled Jinja re-checks the file modification
    time on every render.
    """

    def __init__(self, directory: Path | str = TEMPLATE_DIR, *, auto_reload: bool = False) -> None:
        self._directory = Path(directory)
        self._environment = Environment(
            loader=FileSystemLoader(str(self._directory)),
            autoescape=select_autoescape(["html", "xml"]),
            auto_reload=auto_reload,
        )
        self._environment.filters["timestamp"] = _format_timestamp
        self._templates = Jinja2Templates(env=self._environment)

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def auto_reload(self) -> bool:
        return self._environment.auto_reload

    def preload(self, names: Iterable[str] = STARTUP_TEMPLATES) -> None:
        """Compile ``names`` eagerly so broken templates fail at start-up."""

        for name in names:
            self._environment.get_template(name)
        logger.debug("Loaded templates from %s", self._directory)

    def invalidate(self) -> None:
        """Drop every compiled template; the next render reads from disk."""

        cache = self._environment.cache
        if cache is not None:
            cache.clear()
        logger.info("Template cache invalidated")

    def render(
        self,
        request: Request,
        name: str,
        context: Optional[Mapping[str, Any]] = None,
        *,
        status_code: int = 200,
    ) -> Response:
        return self._templates.TemplateResponse(
            request,
            name,
            dict(context or {}),
            status_code=status_code,
        )


def _format_timestamp(value: Any) -> str:
    if value is None:
        return ""
    try:
        return value.strftime("%Y-%m-%d %H:%M:%S %Z")
    except AttributeError:
        return str(value)


__all__ = ["LAYOUT_TEMPLATES", "PAGE_TEMPLATES", "STARTUP_TEMPLATES", "TEMPLATE_DIR", "TemplateCache"]

"""Web UI route: a single page that submits jobs and polls their status."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from scrollcap.settings import get_settings

_TEMPLATE_DIR = Path(__file__).resolve().parent / "web_templates"
templates = Jinja2Templates(directory=str(_TEMPLATE_DIR))

web_router = APIRouter(tags=["web"])


@web_router.get("/", response_class=HTMLResponse)
async def index(request: Request) -> HTMLResponse:
    """Render the recording form."""
    settings = get_settings()
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "default_speed": settings.scroll.default_speed,
            "min_speed": settings.scroll.min_speed,
        },
    )

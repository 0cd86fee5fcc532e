"""Browser page: upload, preview, analyze, and results."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ayurvision.api.routes import current_state
from ayurvision.presentation import build_result_view

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

router = APIRouter()
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(request: Request) -> HTMLResponse:
    state = current_state(request)
    view = build_result_view(state.result) if state.result is not None else None
    return templates.TemplateResponse(
        request,
        "index.html",
        {"state": state, "view": view},
    )

"""Browser-facing CRM dashboard for the backoffice service."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from .config import Settings, load_settings
from .dashboard import mock_notifications, mock_stats, time_since
from .database import Database
from .models import User

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

logger = logging.getLogger("backoffice.web")


def create_app(
    *,
    database: Optional[Database] = None,
    settings: Optional[Settings] = None,
    session_secret: Optional[str] = None,
) -> FastAPI:
    """Create the dashboard web application."""

    if settings is None:
        settings = load_settings()

    if database is None:
        database = Database(settings.database_path)
        database.initialize()

    if session_secret is None:
        session_secret = settings.session_secret
    if not session_secret:
        raise RuntimeError(
            "BACKOFFICE_SESSION_SECRET must be configured to use the dashboard"
        )

    app = FastAPI(
        title="Backoffice Dashboard",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.database = database

    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie=settings.session_cookie,
        https_only=settings.secure_cookies,
        same_site="lax",
        max_age=60 * 60 * 8,
    )

    templates = Jinja2Templates(directory=str(TEMPLATE_DIR))
    templates.env.filters["time_since"] = time_since

    def _flash(request: Request, message: str, *, category: str = "info") -> None:
        messages = request.session.get("flash_messages")
        if not isinstance(messages, list):
            messages = []
        messages.append({"message": message, "category": category})
        request.session["flash_messages"] = messages

    def _consume_flash(request: Request) -> List[Dict[str, str]]:
        messages = request.session.pop("flash_messages", [])
        if isinstance(messages, list):
            return messages
        return []

    def _get_current_user(request: Request) -> Optional[User]:
        user_id = request.session.get("user_id")
        if not user_id:
            return None
        try:
            user = database.get_user(int(user_id))
        except (TypeError, ValueError):
            user = None
        if user is None:
            request.session.pop("user_id", None)
        return user

    def _render(request: Request, name: str, context: Dict[str, object]) -> HTMLResponse:
        context = {
            "current_user": _get_current_user(request),
            "messages": _consume_flash(request),
            **context,
        }
        return templates.TemplateResponse(request, name, context)

    @app.get("/", name="app_home")
    async def home(request: Request):
        return RedirectResponse(
            request.url_for("dashboard_crm"),
            status_code=status.HTTP_302_FOUND,
        )

    @app.get("/dashboard", response_class=HTMLResponse, name="dashboard_crm")
    async def dashboard(request: Request):
        return _render(
            request,
            "dashboard.html",
            {
                "page_title": "CRM Dashboard",
                "stats": mock_stats(),
                "notifications": mock_notifications(),
            },
        )

    @app.get("/dashboard/analytics", response_class=HTMLResponse, name="dashboard_analytics")
    async def analytics(request: Request):
        return _render(
            request,
            "dashboard/analytics.html",
            {"page_title": "Analytics Dashboard"},
        )

    @app.get("/login", response_class=HTMLResponse, name="show_login")
    async def login_form(request: Request):
        if _get_current_user(request) is not None:
            return RedirectResponse(
                request.url_for("dashboard_crm"),
                status_code=status.HTTP_303_SEE_OTHER,
            )
        error = request.session.pop("login_error", None)
        return _render(request, "login.html", {"page_title": "Sign in", "error": error})

    @app.post("/login", name="process_login")
    async def process_login(request: Request, email: str = Form(...), password: str = Form(...)):
        user = database.authenticate_user(email, password)
        if user is None:
            logger.warning("Failed login attempt for <%s>", email.strip().lower())
            request.session["login_error"] = "Invalid email or password."
            return RedirectResponse(
                request.url_for("show_login"),
                status_code=status.HTTP_303_SEE_OTHER,
            )

        request.session.clear()
        request.session["user_id"] = user.id
        _flash(request, f"Signed in as {user.email}.", category="success")
        return RedirectResponse(
            request.url_for("dashboard_crm"),
            status_code=status.HTTP_303_SEE_OTHER,
        )

    @app.get("/logout", name="logout")
    async def logout(request: Request):
        request.session.clear()
        return RedirectResponse(
            request.url_for("show_login"),
            status_code=status.HTTP_303_SEE_OTHER,
        )

    return app


__all__ = ["create_app"]

from __future__ import annotations
from typing import Optional
import hashlib, hmac

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from pydantic import ValidationError

from agent.agent import MatchAgent
from schemas import CatalogItem, LoginRequest, MatchResponse
from services.catalog_loader import SUPPORTED_EXTS, CatalogLoader, mime_type_for
from services.config import Settings, get_settings
from services.context_builder import UploadedImage
from services.errors import MatchError
from services.history import decode_history
from services.logger import get_logger, setup_logging

log = get_logger(__name__)

SESSION_COOKIE = "auth_session"
SESSION_MAX_AGE = 60 * 60 * 24  # 24h
IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"

# reachable without a session
PUBLIC_PREFIXES = ("/api/auth", "/api/catalog-image/", "/api/health")

LOGIN_PAGE = """<!doctype html>
<html><head><title>Sign in</title></head>
<body>
<form id="login">
  <input name="email" type="email" placeholder="Email" required>
  <input name="password" type="password" placeholder="Password" required>
  <button type="submit">Sign in</button>
  <p id="err"></p>
</form>
<script>
document.getElementById("login").addEventListener("submit", async (ev) => {
  ev.preventDefault();
  const f = new FormData(ev.target);
  const r = await fetch("/api/auth/login", {method: "POST", headers: {"Content-Type": "application/json"},
    body: JSON.stringify({email: f.get("email"), password: f.get("password")})});
  if (r.ok) { window.location.href = "/"; }
  else { document.getElementById("err").textContent = (await r.json()).error; }
});
</script>
</body></html>"""


def session_token(settings: Settings) -> str:
    return hmac.new(settings.auth_password.encode("utf-8"), settings.auth_email.encode("utf-8"),
                    hashlib.sha256).hexdigest()


def _is_authenticated(request: Request, settings: Settings) -> bool:
    cookie = request.cookies.get(SESSION_COOKIE)
    return bool(cookie) and hmac.compare_digest(cookie, session_token(settings))


def _is_public(path: str) -> bool:
    if path.startswith(PUBLIC_PREFIXES):
        return True
    return path.lower().endswith(SUPPORTED_EXTS + (".svg", ".ico"))


def create_app(settings: Optional[Settings] = None,
               loader: Optional[CatalogLoader] = None,
               agent: Optional[MatchAgent] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    loader = loader or CatalogLoader(settings.catalog_dir, settings.metadata_file)
    agent = agent or MatchAgent(loader=loader, settings=settings)

    app = FastAPI(title="Faucet Match")
    app.state.settings = settings
    app.state.loader = loader
    app.state.agent = agent

    @app.middleware("http")
    async def auth_gate(request: Request, call_next):
        if not settings.auth_configured:
            return await call_next(request)
        path = request.url.path
        if _is_public(path):
            return await call_next(request)
        authed = _is_authenticated(request, settings)
        if path == "/login":
            return RedirectResponse("/") if authed else await call_next(request)
        if authed:
            return await call_next(request)
        if path.startswith("/api/"):
            return JSONResponse({"error": "Not authenticated"}, status_code=401)
        return RedirectResponse("/login")

    # added last so it wraps the gate: preflights and 401s still carry CORS headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_credentials=True,
        allow_methods=["*"], allow_headers=["*"]
    )

    @app.exception_handler(MatchError)
    async def match_error_handler(request: Request, exc: MatchError):
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    # -------- pages ----------
    @app.get("/")
    def index():
        return {"service": "faucet-match", "analyze": "/api/analyze", "catalog": "/api/catalog"}

    @app.get("/login", response_class=HTMLResponse)
    def login_page():
        return LOGIN_PAGE

    # -------- auth ----------
    @app.post("/api/auth/login")
    async def login(req: Request):
        try:
            body = LoginRequest.model_validate(await req.json())
        except (ValueError, ValidationError):
            return JSONResponse({"error": "Invalid request"}, status_code=400)

        if not settings.auth_configured:
            return JSONResponse({"error": "Authentication not configured"}, status_code=500)

        email_ok = hmac.compare_digest(body.email, settings.auth_email)
        password_ok = hmac.compare_digest(body.password, settings.auth_password)
        if not (email_ok and password_ok):
            log.warning("Rejected login for %s", body.email)
            return JSONResponse({"error": "Invalid email or password"}, status_code=401)

        resp = JSONResponse({"success": True})
        resp.set_cookie(
            SESSION_COOKIE, session_token(settings),
            httponly=True, secure=settings.cookie_secure, samesite="lax",
            max_age=SESSION_MAX_AGE, path="/",
        )
        return resp

    # -------- catalog ----------
    @app.get("/api/health")
    def health():
        return {"status": "ok", "catalog_size": len(loader.entries())}

    @app.get("/api/catalog")
    def get_catalog():
        items = [CatalogItem(filename=e.filename, title=e.title, brand=e.brand,
                             color=e.color, color_code=e.color_code) for e in loader.entries()]
        return JSONResponse([it.model_dump(by_alias=True) for it in items])

    @app.get("/api/catalog-image/{filename:path}")
    def catalog_image(filename: str):
        try:
            path = loader.resolve_image(filename)
        except ValueError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except FileNotFoundError:
            return JSONResponse({"error": "Image not found"}, status_code=404)
        return Response(
            content=path.read_bytes(),
            media_type=mime_type_for(path.name),
            headers={"Cache-Control": IMAGE_CACHE_CONTROL},
        )

    # -------- matching ----------
    @app.post("/api/analyze", response_model=MatchResponse)
    async def analyze(
        message: Optional[str] = Form(None),
        image: Optional[UploadFile] = File(None),
        history: Optional[str] = Form(None),
    ):
        upload: Optional[UploadedImage] = None
        try:
            if image is not None:
                data = await image.read()
                ctype = image.content_type or ""
                if data:
                    # undeclared or generic types fall back to the builder's default
                    upload = UploadedImage(data=data, mime_type=ctype if ctype.startswith("image/") else None)
            return await agent.analyze(
                message=(message or None),
                image=upload,
                history=decode_history(history),
            )
        except MatchError:
            raise
        except Exception as e:
            log.exception("Error in analyze API")
            return JSONResponse({"error": str(e) or "An unexpected error occurred"}, status_code=500)
        finally:
            if image is not None:
                await image.close()

    return app


app = create_app()

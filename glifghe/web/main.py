"""
GlIFGHE web front end — entry point.

Server-rendered pages on top of the GlIFGHE API:
  /              login / create profile
  /onboarding    what GlIFGHE is
  /feed          main feed
  /posts/{id}    a post with its comments
  /profile/{id}  a user's profile, posts and follow graph

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Start the API and identity provider HTTP clients
  3. Expose Prometheus /metrics endpoint
"""
import logging
import secrets

from contextlib import asynccontextmanager
from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from prometheus_client import make_asgi_app
from starlette.middleware.sessions import SessionMiddleware

from glifghe.web import profile, queries, views
from glifghe.web.clients.api_client import api_client
from glifghe.web.clients.identity import (
    IdentityError,
    current_subject,
    identity_client,
    is_authenticated,
    store_tokens,
)
from glifghe.web.config import settings
from glifghe.web.telemetry import instrument_app, setup_tracing

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting GlIFGHE web (env=%s)", settings.environment)
    await api_client.start()
    await identity_client.start()
    yield
    logger.info("Shutting down...")
    await api_client.stop()
    await identity_client.stop()


app = FastAPI(title="GlIFGHE", version="1.0.0", lifespan=lifespan)
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret)

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

instrument_app(app)


def _see_other(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


# ─────────────────────── Login & session ──────────────────────────────────

@app.get("/", response_class=HTMLResponse)
async def login_page(request: Request):
    session = request.session
    if not is_authenticated(session):
        return views.render_login(authenticated=False)

    user = await queries.user_query(current_subject(session))
    if user.is_success and user.data:
        return _see_other("/onboarding")
    return views.render_login(authenticated=True, user=user)


@app.get("/login")
async def login(request: Request):
    state = secrets.token_urlsafe(16)
    request.session["oauth_state"] = state
    return RedirectResponse(identity_client.login_url(state, prompt="login"))


@app.get("/callback")
async def callback(request: Request, code: str = "", state: str = ""):
    expected = request.session.pop("oauth_state", None)
    if not code or not expected or state != expected:
        logger.warning("Rejected login callback (state mismatch or missing code)")
        return _see_other("/")

    try:
        token_set = await identity_client.exchange_code(code)
        store_tokens(request.session, token_set)
        info = await identity_client.userinfo(request.session["access_token"])
    except IdentityError as exc:
        logger.error("Login failed: %s", exc)
        request.session.clear()
        return _see_other("/")

    request.session["user"] = {"sub": info["sub"], "name": info.get("name")}
    logger.info("Logged in %s", info["sub"])
    return _see_other("/")


@app.get("/logout")
async def logout(request: Request):
    request.session.clear()
    return RedirectResponse(identity_client.logout_url(str(request.base_url)))


@app.post("/profile")
async def create_profile(request: Request, name: str = Form(""), bio: str = Form("")):
    session = request.session
    auth_id = current_subject(session)
    if not auth_id:
        return _see_other("/")

    user = {"name": name, "bio": bio, "font": "", "profile_picture": ""}
    try:
        token = await identity_client.get_access_token_silently(session)
        await queries.create_user_mutation(auth_id).run(user, token)
    except Exception as exc:
        logger.error("Failed to Update Profile: %s", exc)
        return _see_other("/")
    return _see_other("/onboarding")


@app.post("/profile/edit")
async def edit_profile(request: Request, name: str = Form(...), bio: str = Form("")):
    session = request.session
    auth_id = current_subject(session)
    if not auth_id:
        return _see_other("/")

    try:
        token = await identity_client.get_access_token_silently(session)
        await queries.update_user_mutation(auth_id).run({"name": name, "bio": bio}, token)
    except Exception as exc:
        logger.error("Failed to edit profile: %s", exc)
    return _see_other(f"/profile/{auth_id}")


# ─────────────────────── Pages ────────────────────────────────────────────

@app.get("/onboarding", response_class=HTMLResponse)
async def onboarding():
    return views.render_onboarding()


@app.get("/feed", response_class=HTMLResponse)
async def main_feed(request: Request):
    posts = await queries.posts_query()
    return views.render_main_feed(posts, authenticated=is_authenticated(request.session))


@app.post("/posts")
async def create_post(request: Request, image_url: str = Form(...), message: str = Form("")):
    try:
        token = await identity_client.get_access_token_silently(request.session)
        await queries.create_post_mutation().run(image_url, message or None, token)
    except Exception as exc:
        logger.error("Failed to create post: %s", exc)
    return _see_other("/feed")


@app.get("/posts/{post_id}", response_class=HTMLResponse)
async def post_page(request: Request, post_id: int):
    post = await queries.post_query(post_id)
    comments = await queries.comments_query(post_id)
    return views.render_post(post, comments, authenticated=is_authenticated(request.session))


@app.post("/posts/{post_id}/comments")
async def add_comment(request: Request, post_id: int, message: str = Form(...)):
    try:
        token = await identity_client.get_access_token_silently(request.session)
        await queries.add_comment_mutation().run(post_id, message, token)
    except Exception as exc:
        logger.error("Failed to add comment: %s", exc)
    return _see_other(f"/posts/{post_id}")


@app.get("/profile", response_class=HTMLResponse)
async def profile_without_id():
    return views.render_profile(None, None)


@app.get("/profile/{auth_id}", response_class=HTMLResponse)
async def profile_page(request: Request, auth_id: str):
    viewer = current_subject(request.session)
    resources = await profile.load_profile(auth_id)
    state = profile.reconcile(resources, viewer)
    return views.render_profile(
        state,
        auth_id,
        viewer_auth_id=viewer,
        follow_pending=queries.follow_pending(viewer),
    )


async def _launch_follow_change(request: Request, auth_id: str, follow: bool) -> RedirectResponse:
    session = request.session
    viewer = current_subject(session)
    action = "follow" if follow else "unfollow"
    if not viewer:
        return _see_other("/")

    try:
        token = await identity_client.get_access_token_silently(session)
    except Exception as exc:
        logger.error("Failed to %s user: %s", action, exc)
        return _see_other(f"/profile/{auth_id}")

    mutation = queries.follow_mutation(viewer) if follow else queries.unfollow_mutation(viewer)
    # Fire-and-forget: the page re-renders with the button busy until it settles
    mutation.launch(auth_id, token)
    return _see_other(f"/profile/{auth_id}")


@app.post("/profile/{auth_id}/follow")
async def follow(request: Request, auth_id: str):
    return await _launch_follow_change(request, auth_id, follow=True)


@app.post("/profile/{auth_id}/unfollow")
async def unfollow(request: Request, auth_id: str):
    return await _launch_follow_change(request, auth_id, follow=False)


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.service_name}

"""
HTML views.

Each render_* function turns already-fetched state into a page; none of
them performs I/O, so they can be exercised with hand-built QueryResults.
"""
import os
import random

import jinja2

from glifghe.web.images import image_url
from glifghe.web.profile import (
    ProfileFailed,
    ProfileLoading,
    ProfileNotFound,
    ProfileReady,
)
from glifghe.web.query_cache import QueryResult

template_dir = os.path.join(os.path.dirname(__file__), "templates")
jinja_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(template_dir), autoescape=True
)
jinja_env.filters["cdn"] = image_url

GLYPH_PRONUNCIATIONS = [
    "Glyph-ee",
    "Gee Life",
    "Glig-hefe",
    "Glyphee-ee",
    "Gli-ephee",
    "Gly-phae",
]


def render_str(template: str, **params) -> str:
    return jinja_env.get_template(template).render(params)


def render_loading() -> str:
    return render_str("loading.html")


def render_message(message: str, title: str = "GlIFGHE") -> str:
    return render_str("message.html", message=message, title=title)


def render_main_feed(posts: QueryResult, authenticated: bool = False) -> str:
    if posts.is_loading:
        return render_loading()
    if posts.is_error:
        return render_message("Error fetching posts")
    return render_str("feed.html", posts=posts.data or [], authenticated=authenticated)


def render_login(
    authenticated: bool,
    user: QueryResult | None = None,
    form: dict | None = None,
) -> str:
    if user is not None and user.is_loading:
        return render_loading()
    if user is not None and user.is_error:
        return render_message("Error loading user data")
    return render_str(
        "login.html",
        authenticated=authenticated,
        form=form or {"name": "", "bio": ""},
    )


def render_onboarding(glyph: str | None = None) -> str:
    return render_str(
        "onboarding.html", glyph=glyph or random.choice(GLYPH_PRONUNCIATIONS)
    )


def render_profile(
    state,
    auth_id: str | None,
    viewer_auth_id: str | None = None,
    follow_pending: bool = False,
) -> str:
    if not auth_id:
        return render_message("Error: User ID not provided in URL.")
    if isinstance(state, ProfileLoading):
        return render_loading()
    if isinstance(state, ProfileFailed):
        return render_message(state.text)
    if isinstance(state, ProfileNotFound):
        return render_message("User profile not found.")
    if not isinstance(state, ProfileReady):
        raise TypeError(f"Unexpected profile state: {state!r}")

    return render_str(
        "profile.html",
        state=state,
        profile=state.profile,
        auth_id=auth_id,
        viewer_auth_id=viewer_auth_id,
        show_follow=bool(viewer_auth_id) and viewer_auth_id != auth_id,
        is_own=viewer_auth_id == auth_id,
        follow_pending=follow_pending,
    )


def render_post(post: QueryResult, comments: QueryResult, authenticated: bool = False) -> str:
    if post.is_loading or comments.is_loading:
        return render_loading()
    if post.is_error:
        return render_message("Error fetching post")
    if comments.is_error:
        return render_message("Error fetching comments")
    return render_str(
        "post.html",
        post=post.data,
        comments=comments.data or [],
        authenticated=authenticated,
    )

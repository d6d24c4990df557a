from glifghe.web import views
from glifghe.web.profile import ProfileFailed, ProfileLoading, ProfileNotFound, ProfileReady
from glifghe.web.query_cache import QueryResult

MOCK_POSTS = [
    {
        "id": 1,
        "user_id": 1,
        "user_name": "Sofia",
        "image_url": "http://example.com/image1.jpg",
        "message": "First post!",
        "date_added": 1678886400,
    },
    {
        "id": 2,
        "user_id": 2,
        "user_name": "Nikola",
        "image_url": "http://example.com/image2.jpg",
        "message": "Second post here.",
        "date_added": 1678886500,
    },
]

PROFILE = {
    "id": 1,
    "auth_id": "auth0|sofia",
    "name": "Sofia",
    "bio": "",
    "font": "",
    "profile_picture": "pics/sofia",
}


# ─────────────────────── Main feed ────────────────────────────────────────

def test_feed_loading_shows_only_loading_text():
    html = views.render_main_feed(QueryResult.loading())
    assert "Loading..." in html
    assert "Main Feed" not in html
    assert "<img" not in html


def test_feed_error():
    html = views.render_main_feed(QueryResult.failure(RuntimeError("down")))
    assert "Error fetching posts" in html
    assert "Main Feed" not in html


def test_feed_lists_posts():
    html = views.render_main_feed(QueryResult.success(MOCK_POSTS))
    assert "Main Feed" in html
    for text in ("Sofia", "First post!", "Nikola", "Second post here."):
        assert text in html
    assert html.count("<img") == 2
    assert 'src="http://example.com/image1.jpg"' in html


def test_feed_escapes_user_content():
    post = {**MOCK_POSTS[0], "message": "<script>x</script>"}
    html = views.render_main_feed(QueryResult.success([post]))
    assert "<script>x</script>" not in html
    assert "&lt;script&gt;" in html


# ─────────────────────── Profile ──────────────────────────────────────────

def _ready(**kwargs) -> ProfileReady:
    return ProfileReady(profile=PROFILE, **kwargs)


def test_profile_missing_auth_id():
    html = views.render_profile(ProfileLoading(), None)
    assert "Error: User ID not provided in URL." in html


def test_profile_loading_shows_only_loading():
    html = views.render_profile(ProfileLoading(), "auth0|sofia")
    assert "Loading..." in html
    assert "Sofia" not in html


def test_profile_error_message():
    html = views.render_profile(ProfileFailed("followers", "Unknown error"), "auth0|sofia")
    assert "Error loading followers: Unknown error" in html
    assert "Sofia" not in html


def test_profile_not_found():
    html = views.render_profile(ProfileNotFound(), "auth0|sofia")
    assert "User profile not found." in html


def test_profile_ready_for_other_viewer_shows_follow_button():
    html = views.render_profile(_ready(), "auth0|sofia", viewer_auth_id="auth0|nikola")
    assert "<h1>Sofia</h1>" in html
    assert "No bio provided." in html
    assert "No posts yet." in html
    assert 'action="/profile/auth0|sofia/follow"' in html
    assert "bi-person-add" in html
    assert "/profile/edit" not in html
    assert "res.cloudinary.com/dfjgv0mp6/image/upload/c_fill,w_300,h_300/pics/sofia" in html


def test_profile_ready_when_following_shows_unfollow():
    html = views.render_profile(
        _ready(is_following=True), "auth0|sofia", viewer_auth_id="auth0|nikola"
    )
    assert 'action="/profile/auth0|sofia/unfollow"' in html
    assert "bi-person-dash" in html


def test_follow_button_busy_while_mutation_pending():
    html = views.render_profile(
        _ready(), "auth0|sofia", viewer_auth_id="auth0|nikola", follow_pending=True
    )
    assert "disabled" in html
    assert "..." in html
    assert "bi-person-add" not in html


def test_own_profile_has_edit_and_no_follow_button():
    html = views.render_profile(_ready(), "auth0|sofia", viewer_auth_id="auth0|sofia")
    assert "/profile/edit" in html
    assert "follow-button" not in html


def test_anonymous_viewer_gets_no_follow_button():
    html = views.render_profile(_ready(posts=MOCK_POSTS), "auth0|sofia")
    assert "follow-button" not in html
    assert "First post!" in html


# ─────────────────────── Login, onboarding, post ──────────────────────────

def test_login_page_logged_out():
    html = views.render_login(authenticated=False)
    assert "Login Page" in html
    assert "Log In" in html
    assert "Please log in to view and edit your profile." in html


def test_login_page_logged_in_without_profile_shows_form():
    html = views.render_login(authenticated=True, user=QueryResult.success(None))
    assert "Create Profile" in html
    assert 'name="name"' in html
    assert "Login Page" not in html


def test_login_page_states():
    assert "Loading..." in views.render_login(True, QueryResult.loading())
    assert "Error loading user data" in views.render_login(True, QueryResult.failure(RuntimeError()))


def test_onboarding():
    html = views.render_onboarding("Gee Life")
    assert "What is GlIFGHE" in html
    assert "pronounced Gee Life" in html
    assert 'href="/feed"' in html


def test_onboarding_picks_a_pronunciation():
    html = views.render_onboarding()
    assert any(glyph in html for glyph in views.GLYPH_PRONUNCIATIONS)


def test_post_page_renders_comments():
    comments = [
        {
            "id": 1,
            "post_id": 1,
            "user_id": 2,
            "auth_id": "auth0|nikola",
            "user_name": "Nikola",
            "profile_picture": "pics/nikola",
            "message": "Nice!",
        },
        {
            "id": 2,
            "post_id": 1,
            "user_id": 3,
            "auth_id": "auth0|patrick",
            "user_name": "Patrick",
            "profile_picture": "pics/patrick",
            "message": None,
        },
    ]
    html = views.render_post(QueryResult.success(MOCK_POSTS[0]), QueryResult.success(comments))
    assert "First post!" in html
    assert "Nice!" in html
    assert 'href="/profile/auth0|nikola"' in html
    assert "Nikola&#39;s profile" in html
    assert "c_fill/pics/patrick" in html
    assert html.count("<img") == 3


def test_post_page_error():
    html = views.render_post(QueryResult.success(MOCK_POSTS[0]), QueryResult.failure(RuntimeError()))
    assert "Error fetching comments" in html

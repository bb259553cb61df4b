"""Google OAuth sign-in routes."""
from urllib.parse import quote
import logging

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from auth import generate_secure_token
from errors import AppError
from middleware import set_auth_cookies, cookie_options
from services.oauth_service import google_oauth_service
from services.user_service import user_service
from services.activity_service import activity_service
from models.billing import ActivityAction
from utils.public_app_url import frontend_link

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["OAuth"])

STATE_COOKIE = "oauthState"
STATE_MAX_AGE = 600


def _error_redirect(message: str) -> RedirectResponse:
    return RedirectResponse(frontend_link(f"login?error={quote(message)}"), status_code=302)


@router.get("/google")
async def google_login():
    """Redirect to Google's consent screen."""
    state = generate_secure_token(16)
    url = google_oauth_service.build_authorization_url(state)
    response = RedirectResponse(url, status_code=302)
    options = cookie_options()
    options["max_age"] = STATE_MAX_AGE
    response.set_cookie(STATE_COOKIE, state, **options)
    return response


@router.get("/google/callback")
async def google_callback(request: Request, code: str = None, state: str = None, error: str = None):
    if error:
        return _error_redirect(error)

    expected_state = request.cookies.get(STATE_COOKIE)
    if not code or not state or state != expected_state:
        logger.warning("Google callback rejected: state mismatch or missing code")
        return _error_redirect("Google sign-in failed")

    try:
        tokens = await google_oauth_service.exchange_code(code)
        profile = await google_oauth_service.fetch_profile(tokens.get("access_token"))
        user = await user_service.find_or_create_google_user(
            google_id=profile["sub"],
            email=profile["email"],
            full_name=profile.get("name"),
            picture=profile.get("picture"),
        )
        access_token, refresh_token = await user_service.issue_tokens(user)
    except AppError as e:
        return _error_redirect(e.message)

    await activity_service.log(user["user_id"], ActivityAction.LOGIN, "Logged in with Google", request)

    response = RedirectResponse(frontend_link("oauth-success"), status_code=302)
    set_auth_cookies(response, access_token, refresh_token)
    response.delete_cookie(STATE_COOKIE)
    return response

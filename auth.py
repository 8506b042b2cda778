"""Admin session handling.

A successful login sets a cookie holding a signed JWT that expires after
``Settings.session_max_age_days``. Protected routes depend on
``require_session``; API-style requests without a valid session get a 401,
page requests are redirected to the login page.
"""
import hmac
import logging
import time
from typing import Optional

from authlib.jose import JoseError, jwt
from fastapi import Request, Response

from config import Settings, settings as default_settings
from errors import AuthError

logger = logging.getLogger(__name__)

LOGIN_PAGE = "/login"


class LoginRedirect(Exception):
    """Raised for page requests that need a session; rendered as a redirect."""

    def __init__(self, location: str = LOGIN_PAGE) -> None:
        self.location = location
        super().__init__(location)


def is_api_request(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return (
        request.headers.get("x-requested-with", "").lower() == "xmlhttprequest"
        or "application/json" in accept
        or request.url.path.startswith("/api/")
    )


class SessionManager:
    """Issues and validates the admin session token."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or default_settings

    def check_credentials(self, username: Optional[str], password: Optional[str]) -> bool:
        if username is None or password is None:
            return False
        user_ok = hmac.compare_digest(username.encode(), self.settings.admin_username.encode())
        pass_ok = hmac.compare_digest(password.encode(), self.settings.admin_password.encode())
        return user_ok and pass_ok

    def issue_token(self, username: str, now: Optional[int] = None) -> str:
        issued_at = int(now if now is not None else time.time())
        header = {"alg": self.settings.session_algorithm}
        payload = {
            "sub": username,
            "iat": issued_at,
            "exp": issued_at + self.settings.session_max_age_seconds,
        }
        return jwt.encode(header, payload, self.settings.session_secret).decode("ascii")

    def verify_token(self, token: Optional[str]) -> bool:
        if not token:
            return False
        try:
            claims = jwt.decode(token, self.settings.session_secret)
            claims.validate()
        except (JoseError, ValueError) as e:
            logger.debug(f"Rejected session token: {e}")
            return False
        return claims.get("sub") == self.settings.admin_username

    def login(self, response: Response, username: Optional[str], password: Optional[str]) -> None:
        """Set the session cookie on ``response`` or raise ``AuthError``."""
        if not self.check_credentials(username, password):
            logger.warning(f"Rejected login attempt for user '{username}'")
            raise AuthError("Wrong username or password")
        response.set_cookie(
            self.settings.session_cookie_name,
            self.issue_token(username),
            max_age=self.settings.session_max_age_seconds,
            httponly=True,
            secure=self.settings.is_production,
            samesite="lax",
        )

    def logout(self, response: Response) -> None:
        response.delete_cookie(self.settings.session_cookie_name)

    def authorize(self, request: Request) -> None:
        """Let the request through or raise ``AuthError`` / ``LoginRedirect``."""
        if self.verify_token(request.cookies.get(self.settings.session_cookie_name)):
            return
        if is_api_request(request):
            raise AuthError()
        raise LoginRedirect()

"""
Identity provider integration and the per-request session context.

Clerk owns sign-in and sessions. Its browser script keeps a short-lived
session token in the ``__session`` cookie; this module reads that token,
turns it into an IdentityUser, and forwards it as the Bearer credential on
backend calls.

The viewer's role comes from GET /auth/me, fetched once per identity session
and cached in the Flask session. Views read ``g.viewer`` and never look the
role up themselves.
"""

import logging
import time
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Dict, Optional

import requests
from flask import g, jsonify, redirect, render_template, request, session, url_for
from jose import JWTError, jwt

from .errors import ApiError

logger = logging.getLogger(__name__)

SESSION_COOKIE = "__session"
VIEWER_CACHE_KEY = "viewer"
JWKS_CACHE_SECONDS = 3600
CLOCK_SKEW_SECONDS = 10


@dataclass
class IdentityUser:
    """Signed-in user as described by the identity provider."""

    id: str
    session_id: str
    name: str = ""
    email: str = ""
    avatar: Optional[str] = None


@dataclass
class Viewer:
    """Whoever is looking at the page, signed in or not."""

    user: Optional[IdentityUser] = None
    token: Optional[str] = None
    role: Optional[str] = None
    profile: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.token)

    @property
    def display_name(self) -> str:
        if not self.user:
            return ""
        return self.profile.get("name") or self.user.name or self.user.email or "User"

    @property
    def email(self) -> str:
        if not self.user:
            return ""
        return self.profile.get("email") or self.user.email

    @property
    def avatar(self) -> Optional[str]:
        if not self.user:
            return None
        return self.profile.get("avatar") or self.user.avatar

    def has_role(self, *roles: str) -> bool:
        return self.is_authenticated and self.role in roles


ANONYMOUS = Viewer()


class ClerkIdentity:
    """
    Reads Clerk session tokens from incoming requests.

    When jwks_url is configured, token signatures are verified against the
    provider's key set; otherwise only expiry is checked and the backend is
    left to verify the signature.
    """

    def __init__(self, jwks_url: Optional[str] = None, timeout: float = 5.0):
        self.jwks_url = jwks_url
        self.timeout = timeout
        self._jwks: Optional[Dict[str, Any]] = None
        self._jwks_fetched_at = 0.0

    def token_from_request(self, req) -> Optional[str]:
        auth = req.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            return auth[len("Bearer "):].strip() or None
        return req.cookies.get(SESSION_COOKIE) or None

    def _key_set(self) -> Dict[str, Any]:
        now = time.time()
        if self._jwks is None or now - self._jwks_fetched_at > JWKS_CACHE_SECONDS:
            response = requests.get(self.jwks_url, timeout=self.timeout)
            response.raise_for_status()
            self._jwks = response.json()
            self._jwks_fetched_at = now
        return self._jwks

    def claims(self, token: str) -> Optional[Dict[str, Any]]:
        """Validated claims for token, or None if it is unusable."""
        try:
            if self.jwks_url:
                return jwt.decode(
                    token,
                    self._key_set(),
                    algorithms=["RS256"],
                    options={"verify_aud": False, "leeway": CLOCK_SKEW_SECONDS},
                )
            claims = jwt.get_unverified_claims(token)
        except JWTError as e:
            logger.info(f"Rejected session token: {e}")
            return None
        except requests.RequestException as e:
            logger.warning(f"Could not fetch identity key set: {e}")
            return None

        exp = claims.get("exp")
        if exp is not None and float(exp) + CLOCK_SKEW_SECONDS < time.time():
            logger.debug("Session token expired")
            return None
        return claims

    def current_user(self, req) -> Optional[IdentityUser]:
        token = self.token_from_request(req)
        if not token:
            return None
        claims = self.claims(token)
        if not claims or not claims.get("sub"):
            return None
        return IdentityUser(
            id=str(claims["sub"]),
            session_id=str(claims.get("sid") or claims["sub"]),
            name=claims.get("name") or "",
            email=claims.get("email") or "",
            avatar=claims.get("image_url") or claims.get("picture"),
        )

    def get_token(self, req) -> Optional[str]:
        """The session token presented with this request, if it is still valid."""
        token = self.token_from_request(req)
        if token and self.claims(token):
            return token
        return None


def load_viewer(identity: ClerkIdentity, client) -> Viewer:
    """
    Build the Viewer for the current request.

    The role lookup runs once per identity session; later requests reuse the
    cached result. A failed lookup is cached as "no role" so role-specific
    affordances stay hidden until the next sign-in.
    """
    user = identity.current_user(request)
    if user is None:
        session.pop(VIEWER_CACHE_KEY, None)
        return ANONYMOUS

    token = identity.get_token(request)
    cached = session.get(VIEWER_CACHE_KEY)
    if not cached or cached.get("sid") != user.session_id:
        cached = {"sid": user.session_id, "role": None, "profile": {}}
        try:
            me = client.get_me(token)
            cached["role"] = me.role
            cached["profile"] = {"name": me.name, "email": me.email, "avatar": me.avatar}
            logger.info(f"Resolved role for session {user.session_id[:8]}: {me.role}")
        except ApiError as e:
            logger.warning(f"Role lookup failed for session {user.session_id[:8]}: {e}")
        session[VIEWER_CACHE_KEY] = cached

    return Viewer(user=user, token=token, role=cached.get("role"), profile=cached.get("profile") or {})


def current_viewer() -> Viewer:
    return g.get("viewer", ANONYMOUS)


def sign_in_url(next_url: Optional[str] = None) -> str:
    from .extensions import get_settings

    target = get_settings().clerk_sign_in_url
    if target:
        return target
    if next_url:
        return url_for("sign_in", redirect_url=next_url)
    return url_for("sign_in")


def login_required(f):
    """
    Decorator to require a signed-in viewer.

    For HTMX and JSON requests: returns 401
    For page routes: redirects to sign-in, coming back afterwards
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_viewer().is_authenticated:
            if request.headers.get("HX-Request") == "true" or request.accept_mimetypes.best == "application/json":
                return jsonify({"error": "Not authenticated"}), 401
            return redirect(sign_in_url(request.full_path.rstrip("?")))
        return f(*args, **kwargs)
    return decorated_function


def role_required(*roles: str):
    """Decorator to restrict a signed-in route to the given roles."""
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            if not current_viewer().has_role(*roles):
                return render_template(
                    "error.html",
                    error="You do not have access to this page.",
                ), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator

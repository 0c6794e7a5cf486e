from typing import Iterable, Optional
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .security import TokenError

logger = logging.getLogger(__name__)

PUBLIC_PATHS = (
    "/",
    "/health",
    "/docs",
    "/redoc",
    "/api/v1/openapi.json",
    "/api/v1/info",
    "/api/v1/auth/register",
    "/api/v1/auth/login",
)

PUBLIC_PREFIXES = (
    "/static/",
    "/favicon",
    "/docs/",
)


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from an `Authorization: Bearer <token>` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme != "Bearer":
        return None
    token = token.strip()
    return token or None


def is_public_path(
    path: str,
    public_paths: Iterable[str] = PUBLIC_PATHS,
    public_prefixes: Iterable[str] = PUBLIC_PREFIXES,
) -> bool:
    if path in public_paths:
        return True
    return any(path.startswith(prefix) for prefix in public_prefixes)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Gate every non-public route on a verified bearer token.

    The verified identity is published on `request.state` as `user_id`,
    `user_role` and `user_email`.
    """

    def __init__(self, app, public_paths=PUBLIC_PATHS, public_prefixes=PUBLIC_PREFIXES):
        super().__init__(app)
        self.public_paths = tuple(public_paths)
        self.public_prefixes = tuple(public_prefixes)

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or is_public_path(
            request.url.path, self.public_paths, self.public_prefixes
        ):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("Authorization"))
        if token is None:
            return self._reject()

        token_service = request.app.state.token_service
        try:
            claims = token_service.verify(token)
        except TokenError as e:
            logger.warning(f"Rejected token on {request.url.path}: {type(e).__name__}")
            return self._reject()

        request.state.user_id = claims.subject_id
        request.state.user_role = claims.role
        request.state.user_email = claims.email

        return await call_next(request)

    @staticmethod
    def _reject() -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Unauthorized"},
            headers={"WWW-Authenticate": "Bearer"},
        )

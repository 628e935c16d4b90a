"""FastAPI middleware for authentication and logging."""

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from chatblocks.core.auth import get_user_from_header

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Resolve the calling user from the proxy header and reject anonymous API calls."""

    def __init__(
        self,
        app,
        debug_mode: bool = False,
        auth_header_name: str = "X-User-Email",
        test_user: Optional[str] = "test@test.com",
    ):
        super().__init__(app)
        self.debug_mode = debug_mode
        self.auth_header_name = auth_header_name
        self.test_user = test_user

    async def dispatch(self, request: Request, call_next) -> Response:
        logger.debug("Request: %s %s", request.method, request.url.path)

        # Skip auth for health/heartbeat checks
        if request.url.path in ('/api/health', '/api/heartbeat'):
            return await call_next(request)

        user_email = get_user_from_header(request.headers.get(self.auth_header_name))
        if user_email is None and self.debug_mode:
            # In debug mode, fall back to the configured test user
            user_email = self.test_user

        if not user_email:
            logger.warning(f"Missing authentication for endpoint: {request.url.path}")
            return JSONResponse(
                status_code=401,
                content={"detail": "Unauthorized"}
            )

        request.state.user_email = user_email

        response = await call_next(request)
        return response

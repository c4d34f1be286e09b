import logging
from functools import wraps
from flask import request, current_app
import jwt
from utils.response import error_response

logger = logging.getLogger(__name__)


class AuthMiddleware:
    """Verifies HS256 bearer tokens issued by the bot/gateway layer"""

    algorithms = ["HS256"]

    def decode(self, token: str) -> dict:
        secret = current_app.config.get('JWT_SECRET')
        if not secret:
            raise RuntimeError("JWT_SECRET is not configured")

        audience = current_app.config.get('JWT_AUDIENCE')
        return jwt.decode(
            token,
            key=secret,
            algorithms=self.algorithms,
            audience=audience,
            options={"verify_exp": True, "verify_aud": audience is not None, "require": ["sub"]},
            leeway=60  # Allow 60 seconds of clock skew
        )

    def token_required(self, f):
        @wraps(f)
        def decorated(*args, **kwargs):
            auth_header = request.headers.get("Authorization", "")

            if not auth_header.startswith("Bearer "):
                logger.warning("Missing or malformed Authorization header")
                return error_response("Unauthorized - No Bearer token", 401)

            token = auth_header.split("Bearer ", 1)[1]

            try:
                payload = self.decode(token)
            except jwt.ExpiredSignatureError:
                logger.warning("JWT token expired")
                return error_response("Token expired", 401)
            except jwt.InvalidTokenError as e:
                logger.warning("Invalid JWT token: %s", str(e))
                return error_response("Invalid token", 401)
            except RuntimeError as e:
                logger.error("JWT validation error: %s", str(e))
                return error_response("Authentication failed", 500)

            request.user = payload
            request.user_id = str(payload["sub"])
            logger.debug("JWT validated for user: %s", request.user_id)

            return f(*args, **kwargs)

        return decorated


# Global instance
auth_middleware = AuthMiddleware()
token_required = auth_middleware.token_required

import os

import jwt
from fastapi import Header, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from ..config import RECORD_ACTION_RATE_LIMIT
from ..exceptions import http_problem


def get_jwt_secret() -> str:
  secret = os.getenv("JWT_SECRET")
  if not secret:
    raise RuntimeError("JWT_SECRET environment variable is required")
  if len(secret) < 32 or secret.lower() in {"secret", "changeme", "default"}:
    raise RuntimeError(
        "JWT_SECRET must be at least 32 characters and not a common default"
    )
  return secret


JWT_ALG = "HS256"


def _rate_limits_disabled() -> bool:
  return (os.getenv("RATE_LIMITS_ENABLED") or "true").lower() == "false"


def _get_client_ip(request: Request) -> str:
  forwarded = request.headers.get("X-Forwarded-For")
  if forwarded:
    parts = [ip.strip() for ip in forwarded.split(",") if ip.strip()]
    if parts:
      return parts[-1]
  real_ip = request.headers.get("X-Real-IP")
  if real_ip:
    return real_ip
  return request.client.host if request.client else ""


limiter = Limiter(key_func=_get_client_ip)


def record_action_rate_limit() -> str:
  if _rate_limits_disabled():
    return "1000/second"
  return RECORD_ACTION_RATE_LIMIT


async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
  detail = exc.detail if isinstance(exc.detail, str) else ""
  if detail:
    message = f"rate limit exceeded: {detail}"
  else:
    message = "rate limit exceeded: please wait before recording another action."
  return JSONResponse(
      status_code=429,
      content={
          "type": "about:blank",
          "title": "Too Many Requests",
          "status": 429,
          "detail": message,
          "code": "rate_limit_exceeded",
      },
      media_type="application/problem+json",
  )


def _extract_bearer_token(authorization: str | None) -> str:
  if authorization and authorization.lower().startswith("bearer "):
    return authorization.split(" ", 1)[1]
  raise http_problem(
      status_code=401,
      detail="missing token",
      code="auth_missing_token",
  )


def decode_owner(token: str) -> str:
  """Return the ``sub`` claim of a signed token; the caller's owner id."""

  try:
    payload = jwt.decode(token, get_jwt_secret(), algorithms=[JWT_ALG])
  except jwt.ExpiredSignatureError:
    raise http_problem(
        status_code=401,
        detail="token expired",
        code="auth_token_expired",
    )
  except jwt.PyJWTError:
    raise http_problem(
        status_code=401,
        detail="invalid token",
        code="auth_invalid_token",
    )
  owner_id = payload.get("sub")
  if not isinstance(owner_id, str) or not owner_id:
    raise http_problem(
        status_code=401,
        detail="token has no subject",
        code="auth_invalid_token",
    )
  return owner_id


async def get_current_owner(authorization: str | None = Header(None)) -> str:
  return decode_owner(_extract_bearer_token(authorization))

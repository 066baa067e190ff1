from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge.errors import RateLimited, Unauthenticated
from ideaforge.logging import bind_request_context, get_logger
from ideaforge.rate_limit import HOUR_SECONDS
from ideaforge.security import InvalidCredential, MalformedCredentialPayload, verify_token
from ideaforge.services import Services, get_services

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later"
QA_RATE_LIMIT_MESSAGE = "Too many questions, please try again later"
AI_RATE_LIMIT_MESSAGE = "Too many AI requests, please try again later"


@dataclass(frozen=True)
class AuthContext:
  account_id: str


async def get_db(services: Services = Depends(get_services)) -> AsyncIterator[AsyncSession]:
  async with services.sessionmaker() as session:
    yield session


def bearer_token(request: Request) -> str | None:
  auth = request.headers.get("authorization")
  if not auth:
    return None
  scheme, _, token = auth.partition(" ")
  if scheme.lower() != "bearer":
    return None
  return token.strip() or None


async def require_auth(request: Request, services: Services = Depends(get_services)) -> AuthContext:
  token = bearer_token(request)
  if not token:
    raise Unauthenticated("Access token required")
  try:
    account_id = verify_token(services.settings, token)
  except MalformedCredentialPayload:
    logger.warning("token_payload_missing_account")
    raise Unauthenticated("Invalid token payload") from None
  except InvalidCredential as exc:
    logger.info("token_rejected", reason=str(exc))
    raise Unauthenticated("Invalid or expired token") from None
  bind_request_context(user_id=account_id)
  return AuthContext(account_id=account_id)


def client_ip(request: Request) -> str:
  return request.client.host if request.client else "unknown"


def rate_limited(scope: str, limit_setting: str, message: str = RATE_LIMIT_MESSAGE) -> Callable:
  """Fixed one-hour window per client address, limit read from settings on each hit."""

  async def _guard(
    request: Request,
    _auth: AuthContext = Depends(require_auth),
    services: Services = Depends(get_services),
  ) -> None:
    limit = int(getattr(services.settings, limit_setting))
    allowed, retry_after = services.limiter.hit(f"{scope}:ip:{client_ip(request)}", limit=limit, window_seconds=HOUR_SECONDS)
    if allowed:
      return
    logger.info("rate_limited", scope=scope)
    raise RateLimited(message, headers={"Retry-After": str(retry_after)})

  return _guard

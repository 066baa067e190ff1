from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from ideaforge.config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_ALGORITHM = "HS256"
ACCOUNT_CLAIM = "userId"


class InvalidCredential(Exception):
  """Bad signature, expired, or otherwise undecodable credential."""


class MalformedCredentialPayload(InvalidCredential):
  """Credential verified but carries no account identifier."""


def hash_password(password: str) -> str:
  return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
  if not password_hash:
    return False
  return pwd_context.verify(password, password_hash)


def issue_token(s: Settings, account_id: str, *, now: datetime | None = None, ttl: timedelta | None = None) -> str:
  if not account_id:
    raise ValueError("account id is required to issue a token")
  issued = now or datetime.now(timezone.utc)
  expires = issued + (ttl if ttl is not None else timedelta(days=s.jwt_ttl_days))
  claims = {
    ACCOUNT_CLAIM: account_id,
    "sub": account_id,
    "iss": s.jwt_issuer,
    "iat": issued,
    "exp": expires,
  }
  return jwt.encode(claims, s.jwt_secret, algorithm=TOKEN_ALGORITHM)


def verify_token(s: Settings, token: str) -> str:
  """Return the account id embedded in a self-issued token."""
  try:
    claims = jwt.decode(
      token,
      s.jwt_secret,
      algorithms=[TOKEN_ALGORITHM],
      issuer=s.jwt_issuer,
      options={"require": ["exp"]},
    )
  except jwt.InvalidTokenError as exc:
    raise InvalidCredential(str(exc)) from exc
  account_id = claims.get(ACCOUNT_CLAIM)
  if not account_id or not isinstance(account_id, str):
    raise MalformedCredentialPayload("token payload missing userId")
  return account_id

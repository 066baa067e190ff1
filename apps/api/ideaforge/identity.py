"""Federated identity (Google Sign-In through Firebase).

Firebase ID tokens are RS256 JWTs signed by Google's securetoken service
account. They are verified against the published JWKS with audience equal
to the Firebase project id and issuer `https://securetoken.google.com/<project>`.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Protocol

import jwt
from jwt import PyJWKClient
from jwt.exceptions import InvalidTokenError, PyJWKClientError

from ideaforge.logging import get_logger
from ideaforge.security import InvalidCredential

logger = get_logger(__name__)

FIREBASE_JWKS_URL = "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"
FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"
CLOCK_SKEW_SECONDS = 60


@dataclass(frozen=True)
class FederatedIdentity:
  uid: str
  email: str | None
  display_name: str | None = None
  photo_url: str | None = None


class IdentityVerifier(Protocol):
  def verify(self, id_token: str) -> FederatedIdentity: ...


class FirebaseIdentityVerifier:
  def __init__(self, project_id: str, *, jwks_url: str = FIREBASE_JWKS_URL, cache_ttl: int = 3600) -> None:
    self.project_id = project_id
    self.issuer = f"{FIREBASE_ISSUER_PREFIX}{project_id}"
    self.jwks_url = jwks_url
    self.cache_ttl = cache_ttl
    self._jwks_client: PyJWKClient | None = None
    self._lock = threading.Lock()

  def _client(self) -> PyJWKClient:
    with self._lock:
      if self._jwks_client is None:
        self._jwks_client = PyJWKClient(self.jwks_url, cache_keys=True, lifespan=self.cache_ttl)
      return self._jwks_client

  def _decode(self, id_token: str) -> dict[str, Any]:
    try:
      signing_key = self._client().get_signing_key_from_jwt(id_token)
      return jwt.decode(
        id_token,
        signing_key.key,
        algorithms=["RS256"],
        audience=self.project_id,
        issuer=self.issuer,
        leeway=CLOCK_SKEW_SECONDS,
        options={"require": ["exp", "iat", "sub"]},
      )
    except (InvalidTokenError, PyJWKClientError) as exc:
      logger.warning("federated_token_rejected", reason=str(exc))
      raise InvalidCredential("Invalid authentication token") from exc

  def verify(self, id_token: str) -> FederatedIdentity:
    claims = self._decode(id_token)
    uid = claims.get("sub")
    if not uid:
      raise InvalidCredential("Invalid authentication token")
    return FederatedIdentity(
      uid=str(uid),
      email=claims.get("email"),
      display_name=claims.get("name"),
      photo_url=claims.get("picture"),
    )


def build_identity_verifier(project_id: str | None) -> IdentityVerifier | None:
  if not project_id:
    return None
  return FirebaseIdentityVerifier(project_id)

from __future__ import annotations

import pytest
from httpx import AsyncClient

from ideaforge.identity import FederatedIdentity
from ideaforge.security import InvalidCredential, verify_token
from ideaforge.services import Services

from conftest import auth_headers, register


@pytest.mark.anyio
async def test_register_then_login_returns_usable_token(client: AsyncClient, services: Services) -> None:
  res = await client.post("/api/auth/register", json={"email": "  Ada@Example.com ", "password": "secret123"})
  assert res.status_code == 200, res.text
  body = res.json()
  assert body["user"]["email"] == "ada@example.com"
  assert set(body["user"].keys()) == {"id", "email"}
  assert verify_token(services.settings, body["token"]) == body["user"]["id"]

  res = await client.post("/api/auth/login", json={"email": "ada@example.com", "password": "secret123"})
  assert res.status_code == 200, res.text
  token = res.json()["token"]

  me = await client.get("/api/auth/me", headers=auth_headers(token))
  assert me.status_code == 200, me.text
  assert me.json()["email"] == "ada@example.com"
  assert me.json()["id"] == body["user"]["id"]


@pytest.mark.anyio
async def test_register_duplicate_email_rejected(client: AsyncClient) -> None:
  await register(client, "dup@example.com")
  res = await client.post("/api/auth/register", json={"email": "dup@example.com", "password": "another1"})
  assert res.status_code == 400, res.text
  assert res.json() == {"error": "Email already registered"}


@pytest.mark.anyio
async def test_register_short_password_is_validation_error(client: AsyncClient) -> None:
  res = await client.post("/api/auth/register", json={"email": "short@example.com", "password": "123"})
  assert res.status_code == 400, res.text
  body = res.json()
  assert body["error"] == "Validation error"
  assert body["details"][0]["path"] == ["password"]


@pytest.mark.anyio
async def test_login_bad_password(client: AsyncClient) -> None:
  await register(client, "bob@example.com")
  res = await client.post("/api/auth/login", json={"email": "bob@example.com", "password": "wrong-one"})
  assert res.status_code == 401, res.text
  assert res.json() == {"error": "Invalid credentials"}


@pytest.mark.anyio
async def test_guest_account_cannot_password_login(client: AsyncClient) -> None:
  res = await client.post("/api/auth/guest")
  assert res.status_code == 200, res.text
  user = res.json()["user"]
  assert user["isGuest"] is True
  assert user["email"].startswith("guest-") and user["email"].endswith("@temp.local")

  res = await client.post("/api/auth/login", json={"email": user["email"], "password": "anything"})
  assert res.status_code == 401, res.text


@pytest.mark.anyio
async def test_google_sign_in_unavailable_without_firebase(client: AsyncClient) -> None:
  res = await client.post("/api/auth/google", json={"idToken": "whatever"})
  assert res.status_code == 503, res.text
  assert "Google Sign-In is not available" in res.json()["error"]


class _StubVerifier:
  def __init__(self, identity: FederatedIdentity | None) -> None:
    self.identity = identity

  def verify(self, id_token: str) -> FederatedIdentity:
    if self.identity is None:
      raise InvalidCredential("bad token")
    return self.identity


@pytest.mark.anyio
async def test_google_sign_in_links_existing_account(client: AsyncClient, services: Services) -> None:
  existing = await register(client, "linked@example.com")
  services.identity = _StubVerifier(FederatedIdentity(uid="fb-1", email="linked@example.com", display_name="Linked", photo_url="https://x/p.png"))

  res = await client.post("/api/auth/google", json={"idToken": "token"})
  assert res.status_code == 200, res.text
  user = res.json()["user"]
  assert user["id"] == existing["user"]["id"]
  assert user["displayName"] == "Linked"

  again = await client.post("/api/auth/google", json={"idToken": "token"})
  assert again.json()["user"]["id"] == existing["user"]["id"]


@pytest.mark.anyio
async def test_google_sign_in_creates_account(client: AsyncClient, services: Services) -> None:
  services.identity = _StubVerifier(FederatedIdentity(uid="fb-2", email="New@Example.com"))
  res = await client.post("/api/auth/google", json={"idToken": "token"})
  assert res.status_code == 200, res.text
  token = res.json()["token"]
  me = await client.get("/api/auth/me", headers=auth_headers(token))
  assert me.json()["email"] == "new@example.com"


@pytest.mark.anyio
async def test_google_sign_in_rejects_invalid_token(client: AsyncClient, services: Services) -> None:
  services.identity = _StubVerifier(None)
  res = await client.post("/api/auth/google", json={"idToken": "token"})
  assert res.status_code == 401, res.text
  assert res.json() == {"error": "Invalid authentication token"}

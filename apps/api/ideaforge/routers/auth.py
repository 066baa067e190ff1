from __future__ import annotations

import secrets
import time

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ideaforge.deps import AuthContext, get_db, require_auth
from ideaforge.errors import NotFound, ServiceUnavailable, Unauthenticated, ValidationFailed
from ideaforge.identity import FederatedIdentity
from ideaforge.logging import get_logger
from ideaforge.models import User
from ideaforge.schemas import AccountOut, GoogleSignInIn, LoginIn, MeOut, RegisterIn, TokenOut
from ideaforge.security import InvalidCredential, hash_password, issue_token, verify_password
from ideaforge.services import Services, get_services

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = get_logger(__name__)

GUEST_EMAIL_DOMAIN = "temp.local"


def _token_out(services: Services, u: User, **extra) -> TokenOut:
  return TokenOut(token=issue_token(services.settings, u.id), user=AccountOut(id=u.id, email=u.email, **extra))


@router.post("/register", response_model=TokenOut, response_model_exclude_none=True)
async def register(
  payload: RegisterIn,
  db: AsyncSession = Depends(get_db),
  services: Services = Depends(get_services),
) -> TokenOut:
  res = await db.execute(select(User.id).where(User.email == payload.email))
  if res.scalar_one_or_none():
    raise ValidationFailed("Email already registered")
  u = User(email=payload.email, password_hash=hash_password(payload.password))
  db.add(u)
  try:
    await db.commit()
  except IntegrityError:
    await db.rollback()
    raise ValidationFailed("Email already registered") from None
  logger.info("account_registered", user_id=u.id)
  return _token_out(services, u)


@router.post("/login", response_model=TokenOut, response_model_exclude_none=True)
async def login(
  payload: LoginIn,
  db: AsyncSession = Depends(get_db),
  services: Services = Depends(get_services),
) -> TokenOut:
  email = payload.email.strip().lower()
  res = await db.execute(select(User).where(User.email == email))
  u = res.scalar_one_or_none()
  if not u or not verify_password(payload.password, u.password_hash):
    logger.info("login_failed")
    raise Unauthenticated("Invalid credentials")
  return _token_out(services, u)


@router.post("/guest", response_model=TokenOut, response_model_exclude_none=True)
async def guest(db: AsyncSession = Depends(get_db), services: Services = Depends(get_services)) -> TokenOut:
  email = f"guest-{int(time.time() * 1000)}-{secrets.token_hex(4)}@{GUEST_EMAIL_DOMAIN}"
  u = User(email=email)
  db.add(u)
  await db.commit()
  logger.info("guest_account_created", user_id=u.id)
  return _token_out(services, u, isGuest=True)


async def _upsert_federated_account(db: AsyncSession, identity: FederatedIdentity) -> User:
  res = await db.execute(select(User).where(User.firebase_uid == identity.uid))
  u = res.scalar_one_or_none()
  if u:
    return u
  if not identity.email:
    raise Unauthenticated("Invalid authentication token")
  email = identity.email.strip().lower()
  res = await db.execute(select(User).where(User.email == email))
  u = res.scalar_one_or_none()
  if u and u.firebase_uid is None:
    u.firebase_uid = identity.uid
    u.display_name = u.display_name or identity.display_name
    u.photo_url = u.photo_url or identity.photo_url
    logger.info("federated_identity_linked", user_id=u.id)
    return u
  if u:
    # Email already bound to a different federated uid.
    raise Unauthenticated("Invalid authentication token")
  u = User(email=email, firebase_uid=identity.uid, display_name=identity.display_name, photo_url=identity.photo_url)
  db.add(u)
  logger.info("federated_account_created")
  return u


@router.post("/google", response_model=TokenOut, response_model_exclude_none=True)
async def google_sign_in(
  payload: GoogleSignInIn,
  db: AsyncSession = Depends(get_db),
  services: Services = Depends(get_services),
) -> TokenOut:
  if services.identity is None:
    raise ServiceUnavailable("Google Sign-In is not available. Please use email/password authentication.")
  try:
    identity = await run_in_threadpool(services.identity.verify, payload.idToken)
  except InvalidCredential:
    raise Unauthenticated("Invalid authentication token") from None
  u = await _upsert_federated_account(db, identity)
  await db.commit()
  return _token_out(services, u, displayName=u.display_name, photoUrl=u.photo_url)


@router.get("/me", response_model=MeOut)
async def me(auth: AuthContext = Depends(require_auth), db: AsyncSession = Depends(get_db)) -> MeOut:
  u = await db.get(User, auth.account_id)
  if not u:
    raise NotFound("User not found")
  return MeOut(id=u.id, email=u.email, displayName=u.display_name, photoUrl=u.photo_url, createdAt=u.created_at)

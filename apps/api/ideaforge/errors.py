"""API error taxonomy and the handlers that render it.

Every error leaves the service as `{"error": str, "details"?: list}`.
Not-found and not-owned are deliberately the same `NotFound`.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ideaforge.logging import get_logger

logger = get_logger(__name__)


class ApiError(Exception):
  status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

  def __init__(self, message: str, *, details: list[Any] | None = None, headers: dict[str, str] | None = None) -> None:
    super().__init__(message)
    self.message = message
    self.details = details
    self.headers = headers


class ValidationFailed(ApiError):
  status_code = status.HTTP_400_BAD_REQUEST


class Unauthenticated(ApiError):
  status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(ApiError):
  status_code = status.HTTP_404_NOT_FOUND


class PayloadTooLarge(ApiError):
  status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


class RateLimited(ApiError):
  status_code = status.HTTP_429_TOO_MANY_REQUESTS


class UpstreamServiceError(ApiError):
  status_code = status.HTTP_502_BAD_GATEWAY


class ServiceUnavailable(ApiError):
  status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def error_body(message: str, details: list[Any] | None = None) -> dict[str, Any]:
  body: dict[str, Any] = {"error": message}
  if details:
    body["details"] = details
  return body


def _validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
  out: list[dict[str, Any]] = []
  for err in exc.errors():
    out.append(
      {
        "path": [p for p in err.get("loc", ()) if p != "body"],
        "message": err.get("msg", ""),
        "type": err.get("type", ""),
      }
    )
  return jsonable_encoder(out)


def install_error_handlers(app: FastAPI, *, expose_internal_errors: bool) -> None:
  @app.exception_handler(ApiError)
  async def _api_error_handler(_: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details), headers=exc.headers)

  @app.exception_handler(RequestValidationError)
  async def _validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_body("Validation error", _validation_details(exc)))

  @app.exception_handler(StarletteHTTPException)
  async def _http_error_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(str(exc.detail)), headers=getattr(exc, "headers", None))

  @app.exception_handler(Exception)
  async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, method=request.method)
    body = error_body("Internal server error")
    if expose_internal_errors:
      body["message"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)

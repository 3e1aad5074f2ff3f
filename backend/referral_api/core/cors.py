"""CORS headers for responses produced outside the CORS middleware (exception handlers)."""
from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from .config import settings


def add_cors_headers_to_response(response: JSONResponse, request: Request) -> JSONResponse:
    origin = (request.headers.get("origin") or "").rstrip("/")
    if origin and origin in settings.cors_allowed_origin_list:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"
    return response

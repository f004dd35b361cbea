"""
FastAPI middleware for logging API requests and responses.

Uses pure ASGI middleware (not BaseHTTPMiddleware) so file responses and
multipart uploads pass through untouched.

This middleware logs:
- Request: method, masked path, client, JSON body
- Response: status code, processing time, JSON body
- Credentials and patient identifiers are filtered; uploads and binary
  responses are never logged
"""

import json
import logging
import time
from typing import Dict, List, Optional
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, mask_path, truncate_large_data

logger = logging.getLogger(__name__)

MAX_BODY_LOG_LENGTH = 5000


def _decode_headers(raw_headers) -> Dict[str, str]:
    return {
        k.decode("utf-8", errors="ignore").lower(): v.decode("utf-8", errors="ignore")
        for k, v in raw_headers
    }


def _loggable_body(chunks: List[bytes], content_type: Optional[str]) -> Optional[str]:
    """Filtered JSON body text, or None for empty and non-JSON payloads."""
    if not chunks or not content_type or "application/json" not in content_type:
        return None
    body = b"".join(chunks)
    if not body:
        return None
    text = body.decode("utf-8", errors="ignore")
    try:
        payload = filter_sensitive_data(json.loads(text))
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=MAX_BODY_LOG_LENGTH)
    return truncate_large_data(json.dumps(payload, ensure_ascii=False), max_length=MAX_BODY_LOG_LENGTH)


def _extract_error_reason(response_text: Optional[str]) -> Optional[str]:
    """Concise error reason from the error envelope."""
    if not response_text:
        return None
    try:
        payload = json.loads(response_text)
    except json.JSONDecodeError:
        return truncate_large_data(response_text, max_length=500)
    if isinstance(payload, dict):
        for key in ("message", "error", "detail"):
            if payload.get(key):
                return str(payload[key])
    return None


class RequestLoggingMiddleware:
    """Pure ASGI middleware to log all API requests and responses."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[list] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are not logged at all (probes)
        """
        self.app = app
        self.exclude_paths = exclude_paths or ["/health", "/"]

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        request_id = id(scope)
        method = scope.get("method", "UNKNOWN")
        path = mask_path(scope.get("path", ""))
        request_headers = _decode_headers(scope.get("headers", []))
        client = scope.get("client")

        request_chunks: List[bytes] = []

        async def logging_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_chunks.append(message.get("body", b""))
            return message

        status_code = 0
        response_content_type: Optional[str] = None
        response_chunks: List[bytes] = []

        async def logging_send(message: Message) -> None:
            nonlocal status_code, response_content_type
            if message["type"] == "http.response.start":
                status_code = message.get("status", 0)
                response_content_type = _decode_headers(message.get("headers", [])).get("content-type")
            elif message["type"] == "http.response.body":
                response_chunks.append(message.get("body", b""))
            await send(message)

        logger.info(
            f"Request started: {method} {path}",
            extra={"extra_fields": {
                "request_id": request_id,
                "method": method,
                "path": path,
                "client": client[0] if client else None,
                "user_agent": request_headers.get("user-agent"),
            }}
        )

        try:
            await self.app(scope, logging_receive, logging_send)
        except Exception as e:
            logger.error(
                f"Request failed: {method} {path} - {str(e)}",
                exc_info=True,
                extra={"extra_fields": {
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(e),
                }}
            )
            raise

        duration_ms = round((time.time() - start_time) * 1000, 2)
        request_body = _loggable_body(request_chunks, request_headers.get("content-type"))
        response_body = _loggable_body(response_chunks, response_content_type)
        error_reason = _extract_error_reason(response_body) if status_code >= 400 else None

        if status_code < 400:
            log_level = logging.INFO
        elif status_code < 500:
            log_level = logging.WARNING
        else:
            log_level = logging.ERROR

        message = f"Request completed: {method} {path} - {status_code} ({duration_ms:.2f}ms)"
        if error_reason:
            message += f" | error_reason={error_reason}"

        logger.log(
            log_level,
            message,
            extra={"extra_fields": {
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "request_body": request_body,
                "response_body": response_body if logger.isEnabledFor(logging.DEBUG) else None,
                "error_reason": error_reason,
            }}
        )

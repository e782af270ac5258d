"""
Middleware for FastAPI: request logging and latency.
"""
import time
import hashlib
import logging
from typing import Callable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from farmstore.config import Config

# Configure logging
logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def hash_identifier(identifier: str) -> str:
    """Hash identifier for logging (no PII)"""
    return hashlib.sha256(identifier.encode()).hexdigest()[:8]


def masked_path(request: Request) -> str:
    """Request path with the order record id segment replaced by its hash"""
    record_id: Optional[str] = request.path_params.get("record_id") if request.path_params else None
    path = request.url.path
    if record_id:
        path = path.replace(record_id, hash_identifier(record_id))
    return path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware logging each request with its latency"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"Error: {request.method} {masked_path(request)}",
                extra={
                    "method": request.method,
                    "error": str(e),
                    "error_type": type(e).__name__
                },
                exc_info=True
            )
            # Re-raise the exception to let FastAPI handle it properly
            raise

        latency_ms = (time.time() - start_time) * 1000
        path = masked_path(request)

        logger.info(
            f"Response: {request.method} {path} {response.status_code}",
            extra={
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "latency_ms": round(latency_ms, 2),
                "remote_addr": request.client.host if request.client else None
            }
        )

        response.headers["X-Response-Time-Ms"] = f"{latency_ms:.2f}"
        return response

import time
from fastapi import Request, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware
from ..core.logging import logger
from ..utils.generate_key import generate_request_id


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.monotonic()
        request_id = generate_request_id()
        request.state.request_id = request_id

        # Log incoming request
        logger.request(
            operation="Incoming Request",
            request_id=request_id,
            method=request.method,
            url=str(request.url)
        )

        try:
            response = await call_next(request)
        except HTTPException as e:
            detail = e.detail if isinstance(e.detail, dict) else {}
            logger.error(
                f"HTTP Exception: {detail.get('error', {}).get('message', str(e.detail))}",
                request_id=request_id,
                status_code=e.status_code,
                error_code=detail.get("error", {}).get("code", "unknown_error")
            )
            raise
        except Exception as e:
            # Log unexpected exception
            logger.error(
                f"Unexpected error: {str(e)}",
                request_id=request_id,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            )
            raise

        process_time = time.monotonic() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        response.headers["X-Request-ID"] = request_id

        # Log response
        logger.response(
            operation="Outgoing Response",
            request_id=request_id,
            status_code=response.status_code,
            processing_time_ms=round(process_time * 1000)
        )

        return response

"""
ASGI middleware logging every request's start and final status.
"""
import logging
import time

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from relay.utils.logging import log_request_completed, log_request_failed, log_request_started

logger = logging.getLogger(__name__)


class StatusRecorder:
    """
    Wraps an ASGI send callable and remembers the first status code sent.
    
    Every message is forwarded unchanged.
    """
    
    def __init__(self, send: Send, default_status: int = 200):
        self._send = send
        self.status_code = default_status
        self._recorded = False
    
    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start" and not self._recorded:
            self.status_code = message["status"]
            self._recorded = True
        await self._send(message)


class LoggingMiddleware:
    """Logs method and path when a request starts and with its status when it ends."""
    
    def __init__(self, app: ASGIApp):
        self.app = app
    
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        
        method = scope["method"]
        path = scope["path"]
        recorder = StatusRecorder(send)
        start_time = time.time()
        
        log_request_started(logger, method=method, path=path)
        try:
            await self.app(scope, receive, recorder)
        except Exception as e:
            log_request_failed(
                logger,
                method=method,
                path=path,
                error=str(e),
                duration_ms=(time.time() - start_time) * 1000
            )
            raise
        
        log_request_completed(
            logger,
            method=method,
            path=path,
            status=recorder.status_code,
            duration_ms=(time.time() - start_time) * 1000
        )

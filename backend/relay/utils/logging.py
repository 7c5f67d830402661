"""
Production logging utility for structured JSON logging.

Provides event-specific logging functions with mandatory fields:
- timestamp (ISO8601)
- level
- service
- event

Optional fields (included when applicable):
- method
- path
- status
- duration_ms

Usage:
    from relay.utils.logging import configure_logging, log_request_started
    
    configure_logging('cos-cloudant-relay', 'INFO')
    log_request_started(logger, method='POST', path='/save-json')
"""
import logging
import sys
from typing import Optional, Dict, Any
from pythonjsonlogger import jsonlogger


class StructuredLogger:
    """Structured JSON logger with mandatory fields."""
    
    _service_name = None
    _configured = False
    
    @classmethod
    def configure(cls, service_name: str, log_level: str = "INFO"):
        """
        Configure structured JSON logging for the application.
        
        Args:
            service_name: Service identifier
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        if cls._configured:
            return  # Already configured
        
        cls._service_name = service_name
        
        # Remove default handlers
        root_logger = logging.getLogger()
        root_logger.handlers = []
        
        formatter = jsonlogger.JsonFormatter(
            '%(timestamp)s %(levelname)s %(name)s %(message)s',
            timestamp=True,
            json_ensure_ascii=False
        )
        
        # Console handler (for container logs)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        
        root_logger.addHandler(handler)
        root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        
        class ServiceFilter(logging.Filter):
            def filter(self, record):
                record.service = cls._service_name
                return True
        
        handler.addFilter(ServiceFilter())
        cls._configured = True


def _build_log_extra(
    event: str,
    method: Optional[str] = None,
    path: Optional[str] = None,
    duration_ms: Optional[float] = None,
    **kwargs
) -> Dict[str, Any]:
    """
    Build extra fields for structured logging.
    
    Args:
        event: Event name (mandatory)
        method: Optional HTTP method
        path: Optional request path
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
        
    Returns:
        Dictionary of extra fields
    """
    extra = {
        "event": event,
        **kwargs
    }
    
    if method:
        extra["method"] = method
    if path:
        extra["path"] = path
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
    
    return extra


# Request event functions

def log_request_started(logger: logging.Logger, method: str, path: str, **kwargs):
    """Log the start of an inbound request."""
    extra = _build_log_extra(
        event="request_started",
        method=method,
        path=path,
        **kwargs
    )
    logger.info(f"{method} {path} started", extra=extra)


def log_request_completed(
    logger: logging.Logger,
    method: str,
    path: str,
    status: int,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log the completion of an inbound request.
    
    Args:
        logger: Logger instance
        method: HTTP method (required)
        path: Request path (required)
        status: Final response status code (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="request_completed",
        method=method,
        path=path,
        duration_ms=duration_ms,
        status=status,
        **kwargs
    )
    logger.info(f"{method} {path} completed with {status}", extra=extra)


def log_request_failed(
    logger: logging.Logger,
    method: str,
    path: str,
    error: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a request whose handler raised instead of responding.
    
    The stack trace of the exception being handled is attached.
    """
    extra = _build_log_extra(
        event="request_failed",
        method=method,
        path=path,
        duration_ms=duration_ms,
        error=str(error),
        **kwargs
    )
    
    message = f"{method} {path} failed - {error}"
    exc_info = sys.exc_info()
    if exc_info[0] is not None:
        logger.error(message, extra=extra, exc_info=exc_info)
    else:
        logger.error(message, extra=extra)


# Upstream event functions

def log_upstream_request(
    logger: logging.Logger,
    service: str,
    operation: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a successful call to a remote service.
    
    Args:
        logger: Logger instance
        service: Remote service name (cos, cloudant) (required)
        operation: Operation name (put_object, save_document) (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields
    """
    extra = _build_log_extra(
        event="upstream_request",
        duration_ms=duration_ms,
        service_name=service,
        operation=operation,
        **kwargs
    )
    logger.info(f"Upstream request: {service}.{operation}", extra=extra)


def log_upstream_failure(
    logger: logging.Logger,
    service: str,
    operation: str,
    error: str,
    duration_ms: Optional[float] = None,
    **kwargs
):
    """
    Log a failed call to a remote service.
    
    Args:
        logger: Logger instance
        service: Remote service name (required)
        operation: Operation name (required)
        error: Error message (required)
        duration_ms: Optional duration in milliseconds
        **kwargs: Additional fields (e.g. upstream_status, upstream_body)
    """
    extra = _build_log_extra(
        event="upstream_failure",
        duration_ms=duration_ms,
        service_name=service,
        operation=operation,
        error=str(error),
        **kwargs
    )
    logger.warning(f"Upstream failure: {service}.{operation} - {error}", extra=extra)


def configure_logging(service_name: str, log_level: str = "INFO"):
    """Configure logging (alias for StructuredLogger.configure)."""
    StructuredLogger.configure(service_name, log_level)

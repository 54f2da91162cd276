"""
Common utilities for the edge Lambda functions: request parsing and response shaping.
"""

import base64
import binascii
import json
import os
from typing import Dict, Any, Optional
from aws_lambda_powertools import Logger, Metrics
from aws_lambda_powertools.metrics import MetricUnit

# Constants
HTTP_STATUS_OK = 200
HTTP_STATUS_FOUND = 302
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_NOT_FOUND = 404
HTTP_STATUS_CONFLICT = 409
HTTP_STATUS_INTERNAL_ERROR = 500
HTTP_STATUS_SERVICE_UNAVAILABLE = 503

STATUS_PHRASES = {
    HTTP_STATUS_OK: 'OK',
    HTTP_STATUS_BAD_REQUEST: 'Bad Request',
    HTTP_STATUS_NOT_FOUND: 'Not Found',
    HTTP_STATUS_CONFLICT: 'Conflict',
    HTTP_STATUS_INTERNAL_ERROR: 'Internal Server Error',
    HTTP_STATUS_SERVICE_UNAVAILABLE: 'Service Unavailable',
}

# CORS headers
CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, POST, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type, Authorization'
}

# Common response headers
JSON_HEADERS = {
    'Content-Type': 'application/json',
    **CORS_HEADERS
}

TEXT_HEADERS = {
    'Content-Type': 'text/plain; charset=utf-8',
    **CORS_HEADERS
}

REDIRECT_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0'
}


def get_base_url(event: Dict[str, Any]) -> str:
    """
    Get base URL from the HOST_URL environment variable or construct it from the event.

    Args:
        event: Lambda event object

    Returns:
        str: Base URL for the service, without a trailing slash
    """
    base_url = os.environ.get('HOST_URL')
    if base_url:
        return base_url.rstrip('/')

    # Construct from API Gateway context
    headers = event.get('headers') or {}
    host = headers.get('Host') or headers.get('host') or 'unknown-host'
    stage = (event.get('requestContext') or {}).get('stage')
    if not stage or stage == '$default':
        return f"https://{host}"
    return f"https://{host}/{stage}"


def get_http_method(event: Dict[str, Any]) -> str:
    """Return the upper-cased HTTP method for REST (v1) and HTTP API (v2) events."""
    method = event.get('httpMethod')
    if not method:
        method = (event.get('requestContext') or {}).get('http', {}).get('method', 'GET')
    return method.upper()


def get_request_path(event: Dict[str, Any]) -> str:
    """
    Get the request path relative to the function's mount point.

    A greedy ``{proxy+}`` path parameter, or the only parameter of a route
    such as ``/{key}``, wins over the raw path so that custom domain base
    paths and stage prefixes don't leak into routing. HTTP API events keep
    a named stage at the front of ``rawPath``; it is stripped here.

    Args:
        event: Lambda event object

    Returns:
        str: Path starting with '/' and without a trailing slash ('/' for the root)
    """
    path_params = event.get('pathParameters') or {}
    if 'proxy' in path_params:
        path = path_params.get('proxy') or ''
    elif len(path_params) == 1:
        path = next(iter(path_params.values())) or ''
    elif event.get('path'):
        path = event['path']
    else:
        path = _strip_stage_prefix(event.get('rawPath') or '/', event)

    path = '/' + path.strip('/')
    return path


def _strip_stage_prefix(raw_path: str, event: Dict[str, Any]) -> str:
    stage = (event.get('requestContext') or {}).get('stage')
    if not stage or stage == '$default':
        return raw_path

    prefix = f"/{stage}"
    if raw_path == prefix or raw_path.startswith(prefix + '/'):
        return raw_path[len(prefix):]
    return raw_path


def get_raw_body(event: Dict[str, Any]) -> str:
    """
    Return the request body as text, decoding base64 payloads.

    Args:
        event: Lambda event object

    Returns:
        str: Body text; empty string when the request has no body

    Raises:
        ValidationError: If a base64 body can't be decoded to UTF-8 text
    """
    body = event.get('body')
    if body is None:
        return ''

    if event.get('isBase64Encoded'):
        try:
            return base64.b64decode(body, validate=True).decode('utf-8')
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ValidationError(f"Request body is not valid UTF-8 text: {e}")

    return body


def parse_request_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse and validate a JSON object request body from a Lambda event.

    Args:
        event: Lambda event object

    Returns:
        Dict containing parsed body

    Raises:
        json.JSONDecodeError: If body is not valid JSON
        ValidationError: If body is missing or not a JSON object
    """
    if isinstance(event.get('body'), dict):
        return event['body']

    body = get_raw_body(event)
    if not body:
        raise ValidationError("Request body is required")

    parsed = json.loads(body)
    if not isinstance(parsed, dict):
        raise ValidationError(f"Request body must be a JSON object, got: {type(parsed).__name__}")

    return parsed


def create_json_response(
    status_code: int,
    body: Dict[str, Any],
    additional_headers: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """
    Create a standardized JSON response for Lambda.

    Args:
        status_code: HTTP status code
        body: Response body dictionary
        additional_headers: Optional additional headers

    Returns:
        Dict: Lambda response object
    """
    headers = JSON_HEADERS.copy()
    if additional_headers:
        headers.update(additional_headers)

    return {
        'statusCode': status_code,
        'headers': headers,
        'body': json.dumps(body)
    }


def create_text_response(
    status_code: int,
    body: str,
    additional_headers: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """
    Create a plain text response for Lambda. The body is passed through verbatim.
    """
    headers = TEXT_HEADERS.copy()
    if additional_headers:
        headers.update(additional_headers)

    return {
        'statusCode': status_code,
        'headers': headers,
        'body': body
    }


def create_preflight_response() -> Dict[str, Any]:
    """Answer a CORS preflight (OPTIONS) request with the allowed methods and headers."""
    return {
        'statusCode': HTTP_STATUS_OK,
        'headers': CORS_HEADERS.copy(),
        'body': ''
    }


def create_redirect_response(location: str) -> Dict[str, Any]:
    """
    Create a 302 redirect response.

    Args:
        location: URL to redirect to

    Returns:
        Dict: Lambda response object
    """
    headers = REDIRECT_HEADERS.copy()
    headers['Location'] = location

    return {
        'statusCode': HTTP_STATUS_FOUND,
        'headers': headers,
        'body': ''
    }


def create_error_response(
    status_code: int,
    error_message: str,
    logger: Logger,
    metrics: Metrics,
    metric_name: str = "Errors"
) -> Dict[str, Any]:
    """
    Create a plain text error response with logging and metrics.

    The detailed message only goes to the log; clients get the status phrase.

    Args:
        status_code: HTTP status code
        error_message: Error message to log
        logger: Lambda Powertools logger
        metrics: Lambda Powertools metrics
        metric_name: Metric name for error tracking

    Returns:
        Dict: Lambda response object
    """
    if status_code >= HTTP_STATUS_INTERNAL_ERROR:
        logger.error(f"Error {status_code}: {error_message}")
    else:
        logger.info(f"Error {status_code}: {error_message}")
    metrics.add_metric(name=metric_name, unit=MetricUnit.Count, value=1)

    return create_text_response(
        status_code=status_code,
        body=STATUS_PHRASES.get(status_code, 'Error')
    )


class LambdaError(Exception):
    """Base exception class for Lambda function errors."""

    def __init__(self, message: str, status_code: int = HTTP_STATUS_INTERNAL_ERROR):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(LambdaError):
    """Exception for validation errors."""

    def __init__(self, message: str):
        super().__init__(message, HTTP_STATUS_BAD_REQUEST)


class NotFoundError(LambdaError):
    """Exception for resource not found errors."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, HTTP_STATUS_NOT_FOUND)


class ConflictError(LambdaError):
    """Exception for resource conflict errors."""

    def __init__(self, message: str = "Resource conflict"):
        super().__init__(message, HTTP_STATUS_CONFLICT)


class CollisionError(LambdaError):
    """Raised when no free short key could be found within the retry budget."""

    def __init__(self, message: str = "Unable to allocate a unique short key"):
        super().__init__(message, HTTP_STATUS_SERVICE_UNAVAILABLE)

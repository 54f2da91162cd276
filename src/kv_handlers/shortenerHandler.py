import json
import os
from typing import Any, Dict
from aws_lambda_powertools import Logger, Tracer, Metrics
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.metrics import MetricUnit

from kvcommons.key_utils import generate_short_key, build_short_url, is_valid_short_key
from kvcommons.lambda_utils import (
    get_base_url, get_http_method, get_request_path, parse_request_body,
    create_json_response, create_text_response, create_redirect_response, create_preflight_response,
    create_error_response, ValidationError, NotFoundError, CollisionError, LambdaError,
    HTTP_STATUS_OK, HTTP_STATUS_BAD_REQUEST, HTTP_STATUS_INTERNAL_ERROR
)
from kvcommons.kv_store import KeyValueStore, DatabaseError, open_store

# Initialize powertools
logger = Logger()
tracer = Tracer()
metrics = Metrics(namespace="UrlShortenerService")

# Constants
TABLE_NAME_ENV = 'SHORTENER_TABLE_NAME'
CLEAR_PATH = '/c'
MAX_COLLISION_RETRIES = 5


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event, context):
    """
    Lambda handler for the URL shortener.

    Routes:
        GET  /       -> JSON object of every short URL and its target
        POST /       -> {"url": "<long url>"} creates a link, returns {"url": "<short url>"}
        POST /c      -> deletes every link
        GET  /{key}  -> 302 redirect to the stored URL, or 404
        OPTIONS any  -> CORS preflight
    """
    store = open_store(os.environ.get(TABLE_NAME_ENV))
    return handle_request(event, store, get_base_url(event))


def handle_request(event: Dict[str, Any], store: KeyValueStore, base_url: str) -> Dict[str, Any]:
    """
    Dispatch one shortener request against the given store.

    Args:
        event: API Gateway proxy event
        store: Key-value store holding short key -> long URL items
        base_url: Host base URL used to build short links

    Returns:
        Dict: Lambda response object
    """
    try:
        method = get_http_method(event)
        path = get_request_path(event)

        if method == 'OPTIONS':
            return create_preflight_response()

        if path == '/':
            if method == 'GET':
                return list_links(store, base_url)
            if method == 'POST':
                return create_link(event, store, base_url)
        elif method == 'POST' and path == CLEAR_PATH:
            return clear_links(store)
        elif method == 'GET':
            return resolve_link(path[1:], store)

        raise NotFoundError(f"No route for {method} {path}")

    except NotFoundError as e:
        return create_error_response(
            status_code=e.status_code,
            error_message=e.message,
            logger=logger,
            metrics=metrics,
            metric_name="UrlNotFound"
        )

    except ValidationError as e:
        return create_error_response(
            status_code=e.status_code,
            error_message=e.message,
            logger=logger,
            metrics=metrics,
            metric_name="ValidationErrors"
        )

    except json.JSONDecodeError as e:
        return create_error_response(
            status_code=HTTP_STATUS_BAD_REQUEST,
            error_message=f"Invalid JSON format: {e}",
            logger=logger,
            metrics=metrics,
            metric_name="JsonParseErrors"
        )

    except CollisionError as e:
        return create_error_response(
            status_code=e.status_code,
            error_message=e.message,
            logger=logger,
            metrics=metrics,
            metric_name="ShortKeyExhausted"
        )

    except DatabaseError as e:
        return create_error_response(
            status_code=e.status_code,
            error_message=e.message,
            logger=logger,
            metrics=metrics,
            metric_name="DatabaseErrors"
        )

    except LambdaError as e:
        return create_error_response(
            status_code=e.status_code,
            error_message=e.message,
            logger=logger,
            metrics=metrics
        )

    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return create_error_response(
            status_code=HTTP_STATUS_INTERNAL_ERROR,
            error_message="Internal server error",
            logger=logger,
            metrics=metrics,
            metric_name="UnexpectedErrors"
        )


def resolve_link(short_key: str, store: KeyValueStore) -> Dict[str, Any]:
    """Redirect to the URL stored under short_key."""
    if not is_valid_short_key(short_key):
        raise NotFoundError(f"Not a short key: {short_key[:50]}")

    long_url = store.get(short_key)
    if long_url is None:
        raise NotFoundError(f"Short key not found: {short_key}")

    logger.info(f"Redirecting {short_key} to {long_url[:50]}...")  # Truncate for security
    metrics.add_metric(name="SuccessfulRedirects", unit=MetricUnit.Count, value=1)

    return create_redirect_response(long_url)


def create_link(event: Dict[str, Any], store: KeyValueStore, base_url: str) -> Dict[str, Any]:
    """
    Create a short link for the 'url' field of the JSON request body.

    Raises:
        ValidationError: If 'url' is missing, empty or not a string
        json.JSONDecodeError: If the body is not valid JSON
        CollisionError: If no free key was found
    """
    body = parse_request_body(event)
    long_url = body.get('url')

    if not long_url:
        raise ValidationError('Missing required field: url')

    if not isinstance(long_url, str):
        raise ValidationError(f"Field url must be a string, got: {type(long_url).__name__}")

    short_key = create_short_key_with_retry(store, long_url)

    logger.info(f"Created new short link: {short_key} -> {long_url[:50]}")
    metrics.add_metric(name="NewUrlCreated", unit=MetricUnit.Count, value=1)

    return create_json_response(
        status_code=HTTP_STATUS_OK,
        body={'url': build_short_url(base_url, short_key)}
    )


def create_short_key_with_retry(store: KeyValueStore, long_url: str) -> str:
    """
    Store long_url under a freshly generated short key.

    The write is conditional on the key being absent, so an existing link is
    never overwritten, including by a concurrent request that drew the same key.

    Args:
        store: Key-value store for links
        long_url: The URL to store

    Returns:
        str: The short key the URL was stored under

    Raises:
        CollisionError: If every attempt hit an existing key
        DatabaseError: If database operations fail
    """
    for attempt in range(MAX_COLLISION_RETRIES):
        short_key = generate_short_key()

        if store.put_if_absent(short_key, long_url):
            return short_key

        logger.warning(f"Short key collision detected on attempt {attempt + 1}: {short_key}")
        metrics.add_metric(name="ShortKeyCollision", unit=MetricUnit.Count, value=1)

    raise CollisionError(f"Failed to create short key after {MAX_COLLISION_RETRIES} attempts")


def list_links(store: KeyValueStore, base_url: str) -> Dict[str, Any]:
    """Return every short URL mapped to its target URL."""
    links = {}
    for short_key in store.list_keys():
        long_url = store.get(short_key)
        if long_url is None:
            # Deleted between the scan and the read
            continue
        links[build_short_url(base_url, short_key)] = long_url

    logger.info(f"Listed {len(links)} short links")
    return create_json_response(status_code=HTTP_STATUS_OK, body=links)


def clear_links(store: KeyValueStore) -> Dict[str, Any]:
    """Delete every short link."""
    short_keys = store.list_keys()
    for short_key in short_keys:
        store.delete(short_key)

    logger.info(f"Cleared {len(short_keys)} short links")
    metrics.add_metric(name="LinksCleared", unit=MetricUnit.Count, value=len(short_keys))

    return create_text_response(status_code=HTTP_STATUS_OK, body="Cleared")

import os
from typing import Any, Dict
from aws_lambda_powertools import Logger, Tracer, Metrics
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.metrics import MetricUnit

from kvcommons.lambda_utils import (
    get_http_method, get_raw_body, create_text_response, create_error_response, create_preflight_response,
    LambdaError, HTTP_STATUS_OK, HTTP_STATUS_INTERNAL_ERROR
)
from kvcommons.kv_store import KeyValueStore, DatabaseError, open_store

# Initialize powertools
logger = Logger()
tracer = Tracer()
metrics = Metrics(namespace="ClipboardService")

# Constants
TABLE_NAME_ENV = 'CLIPBOARD_TABLE_NAME'
CLIP_KEY = 'clip'


@tracer.capture_lambda_handler
@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event, context):
    """
    Lambda handler for the single-slot clipboard.

    POST stores the raw request body and answers "ok"; OPTIONS answers CORS
    preflight; any other method returns the current clip as plain text
    (empty if nothing was stored).
    """
    store = open_store(os.environ.get(TABLE_NAME_ENV))
    return handle_request(event, store)


def handle_request(event: Dict[str, Any], store: KeyValueStore) -> Dict[str, Any]:
    try:
        method = get_http_method(event)
        if method == 'OPTIONS':
            return create_preflight_response()
        if method == 'POST':
            return set_clip(get_raw_body(event), store)
        return get_clip(store)

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
            metrics=metrics,
            metric_name="ValidationErrors"
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


def set_clip(text: str, store: KeyValueStore) -> Dict[str, Any]:
    """Overwrite the clip with text, stored verbatim."""
    store.put(CLIP_KEY, text)

    logger.info(f"Stored clip of {len(text)} characters")
    metrics.add_metric(name="ClipWritten", unit=MetricUnit.Count, value=1)

    return create_text_response(status_code=HTTP_STATUS_OK, body="ok")


def get_clip(store: KeyValueStore) -> Dict[str, Any]:
    """
    Return the current clip verbatim.

    A clip that was never written comes back as an empty 200 body, same as
    an empty clip; the two only differ in the log.
    """
    text = store.get(CLIP_KEY)

    if text is None:
        logger.info("Clipboard has never been written")
        text = ''
    else:
        logger.info(f"Read clip of {len(text)} characters")

    metrics.add_metric(name="ClipRead", unit=MetricUnit.Count, value=1)
    return create_text_response(status_code=HTTP_STATUS_OK, body=text)

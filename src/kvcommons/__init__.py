"""
Commons package for the key-value edge handlers.
"""

from .key_utils import (
    generate_short_key,
    build_short_url,
    is_valid_short_key,
    SHORT_KEY_LENGTH,
    SHORT_KEY_ALPHABET
)

from .lambda_utils import (
    get_base_url,
    get_http_method,
    get_request_path,
    get_raw_body,
    parse_request_body,
    create_json_response,
    create_text_response,
    create_redirect_response,
    create_preflight_response,
    create_error_response,
    ValidationError,
    ConflictError,
    CollisionError,
    LambdaError,
    NotFoundError
)

from .kv_store import (
    KeyValueStore,
    open_store,
    DatabaseError
)

__all__ = [
    # Key utilities
    'generate_short_key',
    'build_short_url',
    'is_valid_short_key',
    'SHORT_KEY_LENGTH',
    'SHORT_KEY_ALPHABET',

    # Lambda utilities
    'get_base_url',
    'get_http_method',
    'get_request_path',
    'get_raw_body',
    'parse_request_body',
    'create_json_response',
    'create_text_response',
    'create_redirect_response',
    'create_preflight_response',
    'create_error_response',
    'ValidationError',
    'ConflictError',
    'CollisionError',
    'LambdaError',
    'NotFoundError',

    # Key-value store
    'KeyValueStore',
    'open_store',
    'DatabaseError',
]

"""
DynamoDB-backed key-value store shared by the edge handlers.
"""

from functools import lru_cache
from typing import Optional, Dict, Any, List

import boto3
from botocore.exceptions import ClientError
from aws_lambda_powertools import Logger

from .lambda_utils import LambdaError, ConflictError, HTTP_STATUS_INTERNAL_ERROR

# Item layout: one item per key. 'key' and 'value' are DynamoDB reserved words.
KEY_ATTRIBUTE = 'itemKey'
VALUE_ATTRIBUTE = 'itemValue'

logger = Logger()


class DatabaseError(LambdaError):
    """Exception for database operation errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(f"Database error: {message}", HTTP_STATUS_INTERNAL_ERROR)
        self.original_error = original_error


def _handle_client_error(error: ClientError, operation: str) -> None:
    """
    Handle and convert DynamoDB ClientError to appropriate exceptions.

    Args:
        error: The ClientError from DynamoDB
        operation: Description of the operation that failed

    Raises:
        ConflictError: For conditional check failures
        DatabaseError: For missing tables and other database errors
    """
    error_code = error.response.get('Error', {}).get('Code', 'Unknown')
    error_message = error.response.get('Error', {}).get('Message', str(error))

    if error_code == 'ConditionalCheckFailedException':
        raise ConflictError("Key already exists")

    logger.error(f"DynamoDB {operation} failed: {error_code} - {error_message}")

    if error_code == 'ResourceNotFoundException':
        raise DatabaseError(f"{operation} failed: table not found", error)
    raise DatabaseError(f"{operation} failed: {error_message}", error)


class KeyValueStore:
    """
    String key -> string value store over a single DynamoDB table.

    The table needs a string partition key named ``itemKey``. A store built
    without a table raises DatabaseError on every operation.
    """

    def __init__(self, table=None):
        self.table = table

    def _require_table(self):
        if self.table is None:
            raise DatabaseError("DynamoDB table not configured")
        return self.table

    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under key.

        Args:
            key: Item key

        Returns:
            The stored value (possibly an empty string) or None if the key is absent

        Raises:
            DatabaseError: If database operation fails
        """
        table = self._require_table()
        try:
            response = table.get_item(Key={KEY_ATTRIBUTE: key}, ConsistentRead=True)
        except ClientError as e:
            _handle_client_error(e, "get_item")

        item = response.get('Item')
        if item is None:
            return None
        return item.get(VALUE_ATTRIBUTE, '')

    def put(self, key: str, value: str) -> None:
        """Write value under key, replacing any previous value."""
        table = self._require_table()
        try:
            table.put_item(Item=self._item(key, value))
        except ClientError as e:
            _handle_client_error(e, "put_item")

    def put_if_absent(self, key: str, value: str) -> bool:
        """
        Atomically write value under key unless the key already exists.

        Args:
            key: Item key
            value: Value to store

        Returns:
            bool: True if the item was written, False if the key was taken

        Raises:
            DatabaseError: If database operation fails
        """
        table = self._require_table()
        try:
            table.put_item(
                Item=self._item(key, value),
                ConditionExpression=f'attribute_not_exists({KEY_ATTRIBUTE})'
            )
            return True
        except ClientError as e:
            try:
                _handle_client_error(e, "put_item_if_absent")
            except ConflictError:
                return False

    def delete(self, key: str) -> bool:
        """
        Delete the item stored under key.

        Returns:
            bool: True if an item was removed, False if it didn't exist
        """
        table = self._require_table()
        try:
            response = table.delete_item(
                Key={KEY_ATTRIBUTE: key},
                ReturnValues='ALL_OLD'
            )
        except ClientError as e:
            _handle_client_error(e, "delete_item")

        return 'Attributes' in response

    def list_keys(self) -> List[str]:
        """
        List every key in the table, following scan pagination.

        Returns:
            List of keys in the order the table returns them
        """
        table = self._require_table()
        scan_kwargs: Dict[str, Any] = {
            'ProjectionExpression': '#k',
            'ExpressionAttributeNames': {'#k': KEY_ATTRIBUTE},
        }
        keys = []

        try:
            while True:
                response = table.scan(**scan_kwargs)
                keys.extend(item[KEY_ATTRIBUTE] for item in response.get('Items', []))

                last_key = response.get('LastEvaluatedKey')
                if not last_key:
                    break
                scan_kwargs['ExclusiveStartKey'] = last_key
        except ClientError as e:
            _handle_client_error(e, "scan")

        return keys

    @staticmethod
    def _item(key: str, value: str) -> Dict[str, Any]:
        return {KEY_ATTRIBUTE: key, VALUE_ATTRIBUTE: value}


@lru_cache(maxsize=None)
def _dynamodb_resource():
    # Built on first use so importing a handler doesn't need AWS configuration
    return boto3.resource('dynamodb')


def open_store(table_name: Optional[str]) -> KeyValueStore:
    """
    Open the key-value store backed by the named DynamoDB table.

    Args:
        table_name: DynamoDB table name, usually read from the environment

    Returns:
        KeyValueStore: bound to the table, or unbound if no name was given
    """
    if not table_name:
        logger.warning("DynamoDB table name not configured")
        return KeyValueStore()

    return KeyValueStore(_dynamodb_resource().Table(table_name))

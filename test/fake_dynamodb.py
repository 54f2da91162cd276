"""
In-memory stand-in for a boto3 DynamoDB Table resource, for tests only.

Implements the subset of the Table API the key-value store uses and raises
real botocore ClientErrors so error translation is exercised as in production.
"""

from botocore.exceptions import ClientError

from kvcommons.kv_store import KEY_ATTRIBUTE


def client_error(code, message, operation):
    return ClientError({'Error': {'Code': code, 'Message': message}}, operation)


class FakeTable:

    def __init__(self, items=None, page_size=None, failing_operations=()):
        # dicts keep insertion order, which stands in for scan order
        self.items = {}
        self.page_size = page_size
        self.failing_operations = set(failing_operations)
        self.calls = []
        for key, value in (items or {}).items():
            self.items[key] = {KEY_ATTRIBUTE: key, 'itemValue': value}

    def _record(self, operation):
        self.calls.append(operation)
        if operation in self.failing_operations:
            raise client_error('InternalServerError', 'Simulated failure', operation)

    def get_item(self, Key, ConsistentRead=False):
        self._record('GetItem')
        item = self.items.get(Key[KEY_ATTRIBUTE])
        return {'Item': dict(item)} if item is not None else {}

    def put_item(self, Item, ConditionExpression=None):
        self._record('PutItem')
        key = Item[KEY_ATTRIBUTE]
        if ConditionExpression is not None:
            assert ConditionExpression == f'attribute_not_exists({KEY_ATTRIBUTE})'
            if key in self.items:
                raise client_error(
                    'ConditionalCheckFailedException',
                    'The conditional request failed',
                    'PutItem'
                )
        self.items[key] = dict(Item)
        return {}

    def delete_item(self, Key, ReturnValues='NONE'):
        self._record('DeleteItem')
        old = self.items.pop(Key[KEY_ATTRIBUTE], None)
        if old is not None and ReturnValues == 'ALL_OLD':
            return {'Attributes': old}
        return {}

    def scan(self, ProjectionExpression=None, ExpressionAttributeNames=None, ExclusiveStartKey=None):
        self._record('Scan')
        keys = list(self.items)
        if ExclusiveStartKey is not None:
            keys = keys[keys.index(ExclusiveStartKey[KEY_ATTRIBUTE]) + 1:]

        page = keys if self.page_size is None else keys[:self.page_size]
        response = {'Items': [{KEY_ATTRIBUTE: key} for key in page]}
        if len(page) < len(keys):
            response['LastEvaluatedKey'] = {KEY_ATTRIBUTE: page[-1]}
        return response


class FakeLambdaContext:
    function_name = 'test-function'
    memory_limit_in_mb = 128
    invoked_function_arn = 'arn:aws:lambda:us-east-1:123456789012:function:test-function'
    aws_request_id = 'c6af9ac6-7b61-11e6-9a41-93e812345678'

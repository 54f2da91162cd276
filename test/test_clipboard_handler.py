import unittest
import base64
import sys
import os
from unittest import mock

os.environ.setdefault('POWERTOOLS_TRACE_DISABLED', 'true')

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))
sys.path.insert(0, os.path.dirname(__file__))

from kv_handlers import clipboardHandler
from kv_handlers.clipboardHandler import handle_request, lambda_handler, CLIP_KEY
from kvcommons.kv_store import KeyValueStore
from fake_dynamodb import FakeTable, FakeLambdaContext


class TestClipboardHandler(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.table = FakeTable()
        self.store = KeyValueStore(self.table)

    def tearDown(self):
        clipboardHandler.metrics.clear_metrics()

    def set_clip(self, text):
        return handle_request({'httpMethod': 'POST', 'path': '/', 'body': text}, self.store)

    def get_clip(self):
        return handle_request({'httpMethod': 'GET', 'path': '/'}, self.store)

    def test_set_clip_acknowledges(self):
        """Test a write is acknowledged with ok and stored"""
        response = self.set_clip('hello')

        self.assertEqual(response['statusCode'], 200)
        self.assertEqual(response['body'], 'ok')
        self.assertEqual(self.store.get(CLIP_KEY), 'hello')

    def test_round_trip_is_verbatim(self):
        """Test reads return exactly what was written, including empty and multi-line text"""
        for text in ('hello', '', 'line one\nline two\r\n\ttabbed', '  padded  ', 'ünïcødé ✂️', '{"json": true}'):
            self.set_clip(text)

            response = self.get_clip()

            self.assertEqual(response['statusCode'], 200)
            self.assertEqual(response['body'], text)

    def test_latest_write_wins(self):
        """Test each write overwrites the single slot"""
        self.set_clip('first')
        self.set_clip('second')

        self.assertEqual(self.get_clip()['body'], 'second')
        self.assertEqual(len(self.table.items), 1)

    def test_get_before_any_write_is_empty(self):
        """Test reading a never-written clip is an empty 200"""
        response = self.get_clip()

        self.assertEqual(response['statusCode'], 200)
        self.assertEqual(response['body'], '')
        self.assertTrue(response['headers']['Content-Type'].startswith('text/plain'))

    def test_post_without_body_stores_empty_clip(self):
        """Test a write without a body stores an empty clip"""
        handle_request({'httpMethod': 'POST', 'path': '/'}, self.store)
        self.assertEqual(self.store.get(CLIP_KEY), '')

    def test_base64_body_is_decoded(self):
        """Test base64-encoded bodies are decoded before storing"""
        text = 'copied\ntext ✓'
        event = {
            'httpMethod': 'POST',
            'path': '/',
            'body': base64.b64encode(text.encode('utf-8')).decode('ascii'),
            'isBase64Encoded': True
        }

        handle_request(event, self.store)

        self.assertEqual(self.get_clip()['body'], text)

    def test_undecodable_body_is_400(self):
        """Test an undecodable base64 body is a 400 and writes nothing"""
        event = {'httpMethod': 'POST', 'path': '/', 'body': '%%%', 'isBase64Encoded': True}

        response = handle_request(event, self.store)

        self.assertEqual(response['statusCode'], 400)
        self.assertEqual(self.table.items, {})

    def test_other_methods_read(self):
        """Test methods other than POST and OPTIONS read the clip"""
        self.set_clip('hello')
        response = handle_request({'httpMethod': 'PUT', 'path': '/anything'}, self.store)
        self.assertEqual(response['body'], 'hello')

    def test_options_preflight(self):
        """Test CORS preflight is answered without reading or writing the clip"""
        response = handle_request({'httpMethod': 'OPTIONS', 'path': '/'}, self.store)

        self.assertEqual(response['statusCode'], 200)
        self.assertEqual(response['body'], '')
        self.assertIn('OPTIONS', response['headers']['Access-Control-Allow-Methods'])
        self.assertEqual(self.table.calls, [])

    def test_store_failure_is_500(self):
        """Test a store error surfaces as a 500"""
        store = KeyValueStore(FakeTable(failing_operations={'PutItem'}))

        response = handle_request({'httpMethod': 'POST', 'path': '/', 'body': 'x'}, store)

        self.assertEqual(response['statusCode'], 500)
        self.assertEqual(response['body'], 'Internal Server Error')


class TestClipboardLambdaHandler(unittest.TestCase):

    def tearDown(self):
        clipboardHandler.metrics.clear_metrics()

    @mock.patch.dict(os.environ, {'CLIPBOARD_TABLE_NAME': 'clipboard'})
    def test_lambda_handler_round_trip(self):
        """Test the decorated entry point writes and reads the clip"""
        store = KeyValueStore(FakeTable())

        with mock.patch.object(clipboardHandler, 'open_store', return_value=store) as open_store:
            written = lambda_handler({'httpMethod': 'POST', 'path': '/', 'body': 'a\nb'}, FakeLambdaContext())
            read = lambda_handler({'httpMethod': 'GET', 'path': '/'}, FakeLambdaContext())

        open_store.assert_called_with('clipboard')
        self.assertEqual(written['body'], 'ok')
        self.assertEqual(read['body'], 'a\nb')


if __name__ == '__main__':
    unittest.main()

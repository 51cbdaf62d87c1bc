"""
Tests for utils app.
Tests cover: Error response shape, Request logging middleware, MongoDB log store.
"""
from unittest.mock import MagicMock, patch

from django.apps import apps
from django.http import JsonResponse
from django.test import SimpleTestCase, RequestFactory
from django.contrib.auth.models import AnonymousUser
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError
from rest_framework.exceptions import NotAuthenticated

from utils.exceptions import (
    ConflictOrRace, InvalidInput, PersistenceFailure, TrainNotFound, api_exception_handler,
)
from utils.middleware import APILoggingMiddleware
from utils.mongo import MongoLogStore


class ExceptionHandlerTests(SimpleTestCase):

    def test_booking_errors_share_one_shape(self):
        for exc, status_code, code in [
            (TrainNotFound(), 404, 'train_not_found'),
            (InvalidInput('Passenger 1: name is required.'), 400, 'invalid_input'),
            (ConflictOrRace(), 409, 'conflict'),
            (PersistenceFailure(), 500, 'persistence_failure'),
        ]:
            with self.subTest(code=code):
                response = api_exception_handler(exc, {})

                self.assertEqual(response.status_code, status_code)
                self.assertEqual(response.data, {'error': str(exc.detail), 'code': code})

    def test_nothing_booked_only_when_flagged(self):
        exc = ConflictOrRace()
        exc.nothing_booked = True

        response = api_exception_handler(exc, {})

        self.assertTrue(response.data['nothing_booked'])
        self.assertNotIn('nothing_booked', api_exception_handler(InvalidInput('Bad date.'), {}).data)

    def test_other_api_errors_untouched(self):
        response = api_exception_handler(NotAuthenticated(), {})

        self.assertEqual(response.status_code, 401)
        self.assertIn('detail', response.data)
        self.assertNotIn('nothing_booked', response.data)

    def test_non_api_errors_not_handled(self):
        self.assertIsNone(api_exception_handler(ValueError('boom'), {}))


class APILoggingMiddlewareTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.store = MagicMock()
        log_store = patch.object(apps.get_app_config('utils'), 'log_store', self.store)
        log_store.start()
        self.addCleanup(log_store.stop)

    def _run(self, request, response=None):
        request.user = AnonymousUser()
        middleware = APILoggingMiddleware(lambda r: response or JsonResponse({}))
        return middleware(request)

    def test_logs_train_search(self):
        self._run(self.factory.get('/api/trains/search/', {'source': 'Delhi', 'destination': 'Mumbai'}))

        self.store.log_api_request.assert_called_once()
        kwargs = self.store.log_api_request.call_args.kwargs
        self.assertEqual(kwargs['endpoint'], '/api/trains/search/')
        self.assertEqual(kwargs['request_params'], {'source': 'Delhi', 'destination': 'Mumbai'})
        self.assertIsNone(kwargs['user_id'])

    def test_booking_body_not_logged(self):
        self._run(self.factory.post('/api/bookings/', {'passengers': 'secret'}))

        kwargs = self.store.log_api_request.call_args.kwargs
        self.assertEqual(kwargs['method'], 'POST')
        self.assertEqual(kwargs['request_params'], {})

    def test_other_paths_not_logged(self):
        self._run(self.factory.get('/api/trains/1/availability/', {'date': '2026-12-01'}))
        self._run(self.factory.get('/api/profile/'))

        self.store.log_api_request.assert_not_called()

    def test_logging_failure_does_not_break_response(self):
        self.store.log_api_request.side_effect = PyMongoError('down')

        response = self._run(self.factory.get('/api/bookings/my/'))

        self.assertEqual(response.status_code, 200)


class MongoLogStoreTests(SimpleTestCase):

    def test_empty_uri_disables_logging(self):
        store = MongoLogStore('', 'railway_logs')

        with patch('utils.mongo.MongoClient') as client:
            store.log_api_request('/api/bookings/', 'POST', 1, {}, 201, 12.5)

        self.assertFalse(store.is_available)
        client.assert_not_called()

    def test_unreachable_server_disables_logging(self):
        store = MongoLogStore('mongodb://unreachable:27017/', 'railway_logs', timeout_ms=10)

        with patch('utils.mongo.MongoClient') as client:
            client.return_value.admin.command.side_effect = ServerSelectionTimeoutError('timeout')
            store.log_api_request('/api/bookings/', 'POST', 1, {}, 201, 12.5)
            store.log_api_request('/api/bookings/', 'POST', 1, {}, 201, 12.5)

        self.assertFalse(store.is_available)
        client.assert_called_once()

    def test_inserts_log_entry(self):
        store = MongoLogStore('mongodb://localhost:27017/', 'railway_logs')

        with patch('utils.mongo.MongoClient') as client:
            store.log_api_request('/api/trains/search/', 'GET', 7, {'source': 'Delhi'}, 200, 4.2, results_count=3)
            collection = client.return_value.__getitem__.return_value.api_logs

        entry = collection.insert_one.call_args.args[0]
        self.assertEqual(entry['user_id'], 7)
        self.assertEqual(entry['results_count'], 3)
        self.assertIn('timestamp', entry)

        store.close()
        client.return_value.close.assert_called_once()

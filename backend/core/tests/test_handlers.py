from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from rest_framework import serializers
from rest_framework.exceptions import NotAuthenticated

from core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from core.handlers import custom_exception_handler
from core.identity import Identity, Role, identity_for


class ExceptionHandlerTests(SimpleTestCase):
    def test_workflow_errors_map_to_status(self):
        cases = [
            (ValidationError('Message too short'), 400, 'validation_error'),
            (AuthorizationError('Not the owner'), 403, 'authorization_error'),
            (NotFoundError('Missing'), 404, 'not_found'),
            (ConflictError('Already responded'), 409, 'conflict'),
        ]
        for exc, code, error in cases:
            response = custom_exception_handler(exc, {'view': None})
            self.assertEqual(response.status_code, code)
            self.assertEqual(response.data['error'], error)
            self.assertEqual(response.data['detail'], exc.message)
            self.assertEqual(response.data['status_code'], code)

    def test_details_are_included(self):
        response = custom_exception_handler(ValidationError('Invalid semester', semester='Winter'), {})
        self.assertEqual(response.data['errors'], {'semester': 'Winter'})

    def test_drf_errors_keep_default_shape(self):
        response = custom_exception_handler(NotAuthenticated(), {})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.data['status_code'], 401)

        response = custom_exception_handler(serializers.ValidationError({'message': ['too short']}), {})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], ['too short'])

    def test_unknown_exceptions_are_not_handled(self):
        self.assertIsNone(custom_exception_handler(RuntimeError('boom'), {}))


class IdentityTests(TestCase):
    def test_identity_from_user(self):
        user = get_user_model().objects.create_user(username='ml', first_name='Mona', last_name='Leader', role=Role.MODULE_LEADER)
        identity = identity_for(user)
        self.assertEqual(identity, Identity(id=user.pk, role='module-leader', name='Mona Leader'))
        self.assertTrue(identity.is_module_leader)
        self.assertFalse(identity.is_teacher)

    def test_name_falls_back_to_username(self):
        user = get_user_model().objects.create_user(username='plain')
        self.assertEqual(identity_for(user).name, 'plain')
        self.assertTrue(identity_for(user).is_teacher)


class RequestTimingMiddlewareTests(TestCase):
    def test_request_id_is_echoed(self):
        response = self.client.get('/favicon.ico', HTTP_X_REQUEST_ID='abc123')
        self.assertEqual(response['X-Request-ID'], 'abc123')

    def test_request_id_is_generated(self):
        response = self.client.get('/favicon.ico')
        self.assertTrue(response['X-Request-ID'])

    def test_slow_requests_are_logged(self):
        with self.settings(SLOW_REQUEST_LOG_MS=0):
            with self.assertLogs('django.request', level='WARNING') as captured:
                self.client.get('/favicon.ico')
        self.assertIn('slow_request', captured.output[0])

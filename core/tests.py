"""
Tests for core app - passenger accounts and authentication.
Tests cover: User model, Registration/login validation, JWT flow, Health check.
"""
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase
from rest_framework import status

from core.serializers import UserRegistrationSerializer, UserLoginSerializer

User = get_user_model()


# =============================================================================
# UNIT TESTS - Models
# =============================================================================

class UserModelTests(TestCase):
    """User model constraints and helpers."""

    def test_create_user_with_email(self):
        user = User.objects.create_user(email='asha@example.com', password='TravelPass9!', name='Asha Verma')

        self.assertTrue(user.check_password('TravelPass9!'))
        self.assertFalse(user.is_admin)
        self.assertTrue(user.is_active)
        self.assertEqual(str(user), 'asha@example.com')
        self.assertEqual(user.get_short_name(), 'Asha')

    def test_create_user_without_email_raises_error(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='x', name='Nobody')

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser(email='root@example.com', password='x', name='Root')

        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_admin)


# =============================================================================
# UNIT TESTS - Serializers
# =============================================================================

class RegistrationSerializerTests(TestCase):

    def _data(self, **overrides):
        data = {
            'email': 'Asha@Example.com',
            'name': 'Asha Verma',
            'password': 'TravelPass9!',
            'password_confirm': 'TravelPass9!',
        }
        data.update(overrides)
        return data

    def test_email_is_lowercased(self):
        serializer = UserRegistrationSerializer(data=self._data())

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['email'], 'asha@example.com')
        self.assertNotIn('password_confirm', serializer.validated_data)

    def test_password_mismatch(self):
        serializer = UserRegistrationSerializer(data=self._data(password_confirm='Different9!'))

        self.assertFalse(serializer.is_valid())
        self.assertIn('password_confirm', serializer.errors)

    def test_weak_password(self):
        serializer = UserRegistrationSerializer(data=self._data(password='123', password_confirm='123'))

        self.assertFalse(serializer.is_valid())
        self.assertIn('password', serializer.errors)

    def test_duplicate_email_any_case(self):
        User.objects.create_user(email='asha@example.com', password='x', name='Asha')

        serializer = UserRegistrationSerializer(data=self._data())

        self.assertFalse(serializer.is_valid())
        self.assertIn('email', serializer.errors)

    def test_phone_must_be_digits(self):
        serializer = UserRegistrationSerializer(data=self._data(phone='98-765'))
        self.assertFalse(serializer.is_valid())
        self.assertIn('phone', serializer.errors)

        serializer = UserRegistrationSerializer(data=self._data(phone='+919876543210'))
        self.assertTrue(serializer.is_valid(), serializer.errors)


class LoginSerializerTests(TestCase):

    def setUp(self):
        User.objects.create_user(email='ravi@example.com', password='User@123', name='Ravi Kumar')

    def test_wrong_password(self):
        serializer = UserLoginSerializer(data={'email': 'ravi@example.com', 'password': 'nope'})
        self.assertFalse(serializer.is_valid())

    def test_email_case_insensitive(self):
        serializer = UserLoginSerializer(data={'email': 'RAVI@example.com', 'password': 'User@123'})

        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['user'].email, 'ravi@example.com')


# =============================================================================
# INTEGRATION TESTS - API Flow
# =============================================================================

class AuthenticationAPITests(APITestCase):

    register_data = {
        'email': 'flow@example.com',
        'name': 'Flow Test',
        'password': 'FlowPass123!',
        'password_confirm': 'FlowPass123!',
        'phone': '9876543210',
    }

    def test_register_returns_jwt_tokens(self):
        response = self.client.post('/api/register/', self.register_data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertEqual(response.data['user']['phone'], '9876543210')
        self.assertFalse(response.data['user']['is_admin'])

    def test_register_invalid_payload(self):
        response = self.client.post('/api/register/', {'email': 'not-an-email'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)
        self.assertIn('password', response.data)

    def test_login_records_last_login(self):
        user = User.objects.create_user(email='ravi@example.com', password='User@123', name='Ravi')

        response = self.client.post('/api/login/', {
            'email': 'ravi@example.com', 'password': 'User@123'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertIsNotNone(user.last_login)

    def test_login_invalid_credentials(self):
        response = self.client.post('/api/login/', {
            'email': 'ghost@example.com', 'password': 'whatever'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_register_then_profile_then_refresh(self):
        register_response = self.client.post('/api/register/', self.register_data, format='json')
        tokens = register_response.data['tokens']

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        profile_response = self.client.get('/api/profile/')
        self.assertEqual(profile_response.status_code, status.HTTP_200_OK)
        self.assertEqual(profile_response.data['email'], 'flow@example.com')

        self.client.credentials()
        refresh_response = self.client.post('/api/token/refresh/', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(refresh_response.status_code, status.HTTP_200_OK)
        self.assertIn('access', refresh_response.data)

    def test_profile_without_token(self):
        response = self.client.get('/api/profile/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_with_invalid_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer invalid_token_here')

        response = self.client.get('/api/profile/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class HealthCheckTests(TestCase):

    def test_health_ok(self):
        response = self.client.get('/api/health/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'OK')
        self.assertEqual(response.json()['database'], 'Connected')

    def test_health_reports_database_failure(self):
        with patch('railway_backend.urls.connection') as connection:
            connection.cursor.side_effect = DatabaseError('database is locked')
            response = self.client.get('/api/health/')

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['status'], 'ERROR')

    def test_api_root_lists_endpoints(self):
        response = self.client.get('/')

        self.assertEqual(response.status_code, 200)
        self.assertIn('bookings', response.json()['endpoints'])

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient


class MeViewTests(TestCase):
    def test_me_returns_role(self):
        user = get_user_model().objects.create_user(
            username='leader', first_name='Mona', last_name='Leader', role='module-leader', employee_id='E-1'
        )
        client = APIClient()
        client.force_authenticate(user=user)
        resp = client.get('/api/accounts/me/')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data['role'], 'module-leader')
        self.assertEqual(resp.data['name'], 'Mona Leader')
        self.assertEqual(resp.data['employee_id'], 'E-1')

    def test_token_login(self):
        get_user_model().objects.create_user(username='teacher', password='s3cret-pass')
        resp = APIClient().post('/api/accounts/token/', {'username': 'teacher', 'password': 's3cret-pass'}, format='json')
        self.assertEqual(resp.status_code, 200)
        self.assertIn('access', resp.data)

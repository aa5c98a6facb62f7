import pytest
from django.urls import reverse
from rest_framework.authtoken.models import Token
from rest_framework.test import APIClient

from care.models import User

pytestmark = pytest.mark.django_db

PASSWORD = 'Str0ng-Pass!9'


def login(client, email, password=PASSWORD, **extra):
    return client.post(reverse('login_view'), {'email': email, 'password': password, **extra}, format='json')


def test_login_returns_bearer_token_and_jwt_pair(make_account):
    make_account('admin', email='root@clinic.test')
    r = login(APIClient(), 'ROOT@clinic.test')
    assert r.status_code == 200
    data = r.data['data']
    assert data['token']
    assert data['jwt_access'] and data['jwt_refresh']
    assert data['user']['role'] == 'admin'
    assert data['profile'] is None


def test_login_with_wrong_password_is_401(make_account):
    make_account('patient', email='p@clinic.test', guardian=make_account('guardian').guardian_profile,
                 doctor=make_account('doctor').doctor_profile)
    r = login(APIClient(), 'p@clinic.test', password='not-the-password')
    assert r.status_code == 401
    assert r.data == {'success': False, 'message': 'Invalid credentials'}


def test_no_role_bypass_in_login(doctor):
    r = login(APIClient(), doctor.user.email, role='admin')
    assert r.status_code == 200
    assert r.data['data']['user']['role'] == 'doctor'
    doctor.user.refresh_from_db()
    assert doctor.user.role == 'doctor'


def test_bearer_token_authenticates_until_logout(guardian):
    client = APIClient()
    token = login(client, guardian.user.email).data['data']['token']

    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    me = client.get(reverse('me_view'))
    assert me.status_code == 200
    assert me.data['data']['profile']['id'] == guardian.pk

    assert client.post(reverse('logout_view'), {}, format='json').status_code == 200
    assert not Token.objects.filter(key=token).exists()
    assert client.get(reverse('me_view')).status_code == 401


def test_register_patient(guardian, doctor):
    r = APIClient().post(reverse('register_view'), {
        'role_name': 'patient',
        'name': 'Joao', 'email': 'joao@clinic.test',
        'password': PASSWORD, 'password_confirmation': PASSWORD,
        'phone': '555-0101', 'birth_date': '2012-04-02', 'document_number': 'DOC-77',
        'guardian_id': guardian.pk, 'doctor_id': doctor.pk,
    }, format='json')
    assert r.status_code == 201, r.data
    assert r.data['data']['token']
    user = User.objects.get(email='joao@clinic.test')
    assert user.role == 'patient'
    assert user.patient_profile.doctor_id == doctor.pk


def test_register_requires_contact_details_and_matching_confirmation():
    r = APIClient().post(reverse('register_view'), {
        'role_name': 'admin',
        'name': 'Nobody', 'email': 'nobody@clinic.test',
        'password': PASSWORD, 'password_confirmation': 'something else',
    }, format='json')
    assert r.status_code == 422
    errors = r.data['errors']
    assert {'phone', 'birth_date', 'document_number', 'password'} <= set(errors)


def test_register_rejects_duplicate_email(make_account):
    make_account('admin', email='taken@clinic.test')
    r = APIClient().post(reverse('register_view'), {
        'role_name': 'admin',
        'name': 'Again', 'email': 'taken@clinic.test',
        'password': PASSWORD, 'password_confirmation': PASSWORD,
        'phone': '555-0102', 'birth_date': '1990-01-01', 'document_number': 'DOC-78',
    }, format='json')
    assert r.status_code == 422
    assert 'email' in r.data['errors']


def test_register_underage_guardian_is_422():
    r = APIClient().post(reverse('register_view'), {
        'role_name': 'guardian', 'relationship': 'sibling',
        'name': 'Kid', 'email': 'kid@clinic.test',
        'password': PASSWORD, 'password_confirmation': PASSWORD,
        'phone': '555-0103', 'birth_date': '2015-01-01', 'document_number': 'DOC-79',
    }, format='json')
    assert r.status_code == 422
    assert r.data['message'] == 'Guardian must be 18 years or older'
    assert not User.objects.filter(email='kid@clinic.test').exists()


def test_healthz_reports_database():
    r = APIClient().get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'success': True, 'data': {'db': True}}

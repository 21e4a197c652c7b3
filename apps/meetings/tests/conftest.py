import pytest
from datetime import timedelta
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.meetings.models import Meeting, Property, Shareholder, UndoRequest


def authenticate(client, user):
    """Attach a bearer token for user to client."""
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def clerk(db):
    """Create and return a check-in clerk."""
    return User.objects.create_user(
        email='clerk@example.com',
        password='TestPass123!',
        display_name='Check-in Clerk',
    )


@pytest.fixture
def admin_user(db):
    """Create and return a meeting admin."""
    return User.objects.create_user(
        email='admin@example.com',
        password='TestPass123!',
        display_name='Meeting Admin',
        is_staff=True,
    )


@pytest.fixture
def clerk_client(clerk):
    """Return API client authenticated as the clerk."""
    return authenticate(APIClient(), clerk)


@pytest.fixture
def admin_client(admin_user):
    """Return API client authenticated as the admin."""
    return authenticate(APIClient(), admin_user)


@pytest.fixture
def meeting(db):
    """Meeting with room for three shareholders."""
    return Meeting.objects.create(
        year=2030,
        date=timezone.now() + timedelta(days=30),
        total_shareholders=3,
        has_initial_data=True,
    )


@pytest.fixture
def shareholder_a(meeting):
    return Shareholder.objects.create(
        shareholder_id='100001',
        name='Alice Owner',
        meeting=meeting,
        owner_mailing_address='1 First St',
        owner_city_state_zip='Riverton, UT 84065',
    )


@pytest.fixture
def shareholder_b(meeting):
    return Shareholder.objects.create(
        shareholder_id='100002',
        name='Bob Buyer',
        meeting=meeting,
        owner_mailing_address='2 Second St',
        owner_city_state_zip='Draper, UT 84020',
    )


@pytest.fixture
def shareholder_c(meeting):
    return Shareholder.objects.create(
        shareholder_id='100003',
        name='Carol Third',
        meeting=meeting,
    )


@pytest.fixture
def property_a(shareholder_a):
    """Sole property of shareholder A."""
    return Property.objects.create(
        account='A-1',
        num_of='1',
        shareholder=shareholder_a,
        service_address='10 Canal St',
        customer_name='Tenant Tina',
        customer_mailing_address='10 Canal St',
        city_state_zip='Riverton, UT 84065',
        owner_name='Alice Owner',
        owner_mailing_address='1 First St',
        owner_city_state_zip='Riverton, UT 84065',
        resident_name='Resident Rita',
        resident_mailing_address='10 Canal St',
        resident_city_state_zip='Riverton, UT 84065',
    )


@pytest.fixture
def property_b(shareholder_b):
    return Property.objects.create(
        account='B-1',
        shareholder=shareholder_b,
        service_address='20 Ditch Rd',
        owner_name='Bob Buyer',
    )


@pytest.fixture
def property_c(shareholder_c):
    return Property.objects.create(
        account='C-1',
        shareholder=shareholder_c,
        service_address='30 Lateral Rd',
        owner_name='Carol Third',
    )


@pytest.fixture
def roster(shareholder_a, shareholder_b, shareholder_c, property_a, property_b, property_c):
    """Three shareholders with one property each."""
    return {
        'shareholders': [shareholder_a, shareholder_b, shareholder_c],
        'properties': [property_a, property_b, property_c],
    }


@pytest.fixture
def pending_undo(shareholder_a):
    return UndoRequest.objects.create(
        shareholder_id=shareholder_a.shareholder_id,
        shareholder_name=shareholder_a.name,
        requested_by='clerk@example.com',
        reason='Checked in the wrong person',
    )

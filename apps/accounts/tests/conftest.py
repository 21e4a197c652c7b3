import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
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
def user_inactive(db):
    """Create and return an inactive user."""
    return User.objects.create_user(
        email='inactive@example.com',
        password='TestPass123!',
        display_name='Inactive User',
        is_active=False,
    )


@pytest.fixture
def authenticated_client(api_client, user):
    """Return API client authenticated as the clerk."""
    refresh = RefreshToken.for_user(user)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client

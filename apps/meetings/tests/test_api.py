import pytest
from io import StringIO
from unittest.mock import patch
from django.core.management import call_command
from django.urls import reverse
from rest_framework import status
from apps.meetings.models import Meeting, Property, PropertyTransfer, Shareholder, UndoRequest
from apps.meetings.services.exceptions import StorageError


# =============================================================================
# Meetings
# =============================================================================

@pytest.mark.django_db
class TestMeetingEndpoints:
    """Tests for /api/meetings/"""

    def test_list_meetings(self, clerk_client, meeting):
        url = reverse('meetings:meeting-list')
        response = clerk_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]['id'] == meeting.pk
        assert response.data[0]['remaining_capacity'] == 3

    def test_list_meetings_unauthenticated(self, api_client, meeting):
        url = reverse('meetings:meeting-list')
        response = api_client.get(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_meeting_as_admin(self, admin_client):
        url = reverse('meetings:meeting-list')
        response = admin_client.post(url, {
            'year': 2031,
            'date': '2031-03-14T18:00:00Z',
            'data_source': 'database',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['data_source'] == 'database'
        assert response.data['checked_in'] == 0

    def test_create_meeting_as_clerk_forbidden(self, clerk_client):
        url = reverse('meetings:meeting-list')
        response = clerk_client.post(url, {'year': 2031, 'date': '2031-03-14T18:00:00Z'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert not Meeting.objects.exists()

    def test_counters_are_read_only(self, admin_client, meeting):
        url = reverse('meetings:meeting-detail', kwargs={'pk': meeting.pk})
        response = admin_client.patch(url, {'checked_in': 3, 'year': 2032}, format='json')

        assert response.status_code == status.HTTP_200_OK
        meeting.refresh_from_db()
        assert meeting.year == 2032
        assert meeting.checked_in == 0

    def test_delete_meeting(self, admin_client, roster, meeting):
        url = reverse('meetings:meeting-detail', kwargs={'pk': meeting.pk})
        response = admin_client.delete(url)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Shareholder.objects.exists()

    def test_delete_missing_meeting(self, admin_client):
        url = reverse('meetings:meeting-detail', kwargs={'pk': 987654})
        response = admin_client.delete(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_stats(self, clerk_client, roster, meeting):
        clerk_client.post(reverse('meetings:checkin'), {'shareholder_id': '100001'}, format='json')

        url = reverse('meetings:meeting-stats', kwargs={'pk': meeting.pk})
        response = clerk_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['checked_in'] == 1
        assert response.data['remaining'] == 2
        assert response.data['checked_in_properties'] == 1
        assert response.data['meeting']['id'] == meeting.pk

    def test_import_roster(self, admin_client, meeting):
        url = reverse('meetings:meeting-import', kwargs={'pk': meeting.pk})
        response = admin_client.post(url, {'rows': [
            {'account': '1', 'owner_name': 'Ann', 'owner_mailing_address': '1 A St', 'owner_city_state_zip': 'X'},
            {'account': '2', 'owner_name': 'Ann', 'owner_mailing_address': '1 A St', 'owner_city_state_zip': 'X'},
        ]}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['total_records'] == 2
        assert response.data['total_shareholders'] == 1
        assert response.data['meeting']['total_shareholders'] == 1

    def test_import_roster_as_clerk_forbidden(self, clerk_client, meeting):
        url = reverse('meetings:meeting-import', kwargs={'pk': meeting.pk})
        response = clerk_client.post(url, {'rows': [{'account': '1'}]}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_import_roster_requires_rows(self, admin_client, meeting):
        url = reverse('meetings:meeting-import', kwargs={'pk': meeting.pk})
        response = admin_client.post(url, {'rows': []}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_mailers_generated(self, admin_client, meeting):
        url = reverse('meetings:meeting-mailers-generated', kwargs={'pk': meeting.pk})
        response = admin_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['mailers_generated'] is True

    def test_next_meeting(self, clerk_client, meeting):
        response = clerk_client.get(reverse('meetings:meeting-next'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == meeting.pk

    def test_next_meeting_none(self, clerk_client):
        response = clerk_client.get(reverse('meetings:meeting-next'))

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# Shareholders
# =============================================================================

@pytest.mark.django_db
class TestShareholderEndpoints:
    """Tests for /api/shareholders/"""

    def test_list_with_property_counts(self, clerk_client, roster, meeting):
        url = reverse('meetings:shareholder-list')
        response = clerk_client.get(url, {'meeting': meeting.pk})

        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 3
        first = response.data['results'][0]
        assert first['shareholder_id'] == '100001'
        assert first['total_properties'] == 1
        assert first['checked_in_properties'] == 0
        assert 'signature_image' not in first

    def test_search(self, clerk_client, roster):
        url = reverse('meetings:shareholder-list')
        response = clerk_client.get(url, {'search': 'carol'})

        assert [s['shareholder_id'] for s in response.data['results']] == ['100003']

    def test_retrieve_details(self, clerk_client, roster):
        url = reverse('meetings:shareholder-detail', kwargs={'shareholder_id': '100001'})
        response = clerk_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['shareholder']['name'] == 'Alice Owner'
        assert response.data['total_properties'] == 1
        assert response.data['properties'][0]['account'] == 'A-1'

    def test_retrieve_missing(self, clerk_client, meeting):
        url = reverse('meetings:shareholder-detail', kwargs={'shareholder_id': '999999'})
        response = clerk_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_create(self, clerk_client, meeting):
        url = reverse('meetings:shareholder-list')
        response = clerk_client.post(url, {'meeting_id': meeting.pk, 'name': 'New Owner'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['is_new'] is True
        assert len(response.data['shareholder_id']) == 6

    def test_create_duplicate_id(self, clerk_client, shareholder_a, meeting):
        url = reverse('meetings:shareholder-list')
        response = clerk_client.post(url, {
            'meeting_id': meeting.pk,
            'name': 'Dup',
            'shareholder_id': '100001',
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_rename(self, clerk_client, shareholder_a):
        url = reverse('meetings:shareholder-detail', kwargs={'shareholder_id': '100001'})
        response = clerk_client.patch(url, {'name': 'Alice Renamed'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['name'] == 'Alice Renamed'

    def test_designee_set_and_clear(self, clerk_client, shareholder_a):
        url = reverse('meetings:shareholder-designee', kwargs={'shareholder_id': '100001'})

        response = clerk_client.post(url, {'designee': 'Proxy Pat'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['designee'] == 'Proxy Pat'

        response = clerk_client.delete(url)
        assert response.status_code == status.HTTP_200_OK
        assert response.data['designee'] is None

    def test_comment(self, clerk_client, shareholder_a):
        url = reverse('meetings:shareholder-comment', kwargs={'shareholder_id': '100001'})

        response = clerk_client.post(url, {'comment': 'Bring deed'}, format='json')
        assert response.status_code == status.HTTP_200_OK

        response = clerk_client.get(url)
        assert response.data == {'comment': 'Bring deed'}


# =============================================================================
# Properties
# =============================================================================

@pytest.mark.django_db
class TestPropertyEndpoints:
    """Tests for /api/properties/"""

    def test_list_filtered_by_shareholder(self, clerk_client, roster):
        url = reverse('meetings:property-list')
        response = clerk_client.get(url, {'shareholder': '100002'})

        assert response.status_code == status.HTTP_200_OK
        assert [p['account'] for p in response.data['results']] == ['B-1']
        assert response.data['results'][0]['shareholder_name'] == 'Bob Buyer'

    def test_create(self, clerk_client, shareholder_a):
        url = reverse('meetings:property-list')
        response = clerk_client.post(url, {
            'shareholder_id': '100001',
            'account': 'A-9',
            'service_address': '9 Canal St',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['shareholder_id'] == '100001'

    def test_create_for_unknown_shareholder(self, clerk_client, meeting):
        url = reverse('meetings:property-list')
        response = clerk_client.post(url, {'shareholder_id': '999999', 'account': 'Z-1'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_details(self, clerk_client, property_a):
        url = reverse('meetings:property-detail', kwargs={'pk': property_a.pk})
        response = clerk_client.patch(url, {'service_address': '11 Canal St'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['service_address'] == '11 Canal St'

    def test_update_cannot_change_owner(self, clerk_client, property_a, shareholder_b):
        url = reverse('meetings:property-detail', kwargs={'pk': property_a.pk})
        response = clerk_client.patch(url, {'shareholder_id': '100002'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        property_a.refresh_from_db()
        assert property_a.shareholder_id == '100001'

    def test_delete_requires_admin(self, clerk_client, admin_client, property_a):
        url = reverse('meetings:property-detail', kwargs={'pk': property_a.pk})

        assert clerk_client.delete(url).status_code == status.HTTP_403_FORBIDDEN
        assert admin_client.delete(url).status_code == status.HTTP_204_NO_CONTENT
        assert not Property.objects.filter(pk=property_a.pk).exists()

    def test_transfer(self, clerk_client, property_a, shareholder_b):
        url = reverse('meetings:property-transfer', kwargs={'pk': property_a.pk})
        response = clerk_client.post(url, {'target_shareholder_id': '100002'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['property']['shareholder_id'] == '100002'
        assert response.data['property']['owner_name'] == 'Bob Buyer'
        assert response.data['property']['customer_name'] == 'Tenant Tina'
        assert response.data['previous_shareholder_deleted'] is True
        assert response.data['transfer_record']['from_shareholder_id'] == '100001'
        assert response.data['warnings'] == []
        assert not Shareholder.objects.filter(shareholder_id='100001').exists()

    def test_transfer_with_overrides(self, clerk_client, property_a, shareholder_b):
        url = reverse('meetings:property-transfer', kwargs={'pk': property_a.pk})
        response = clerk_client.post(url, {
            'target_shareholder_id': '100002',
            'owner_name': 'Bob Buyer Trust',
            'resident_name': 'New Resident',
            'resident_mailing_address': '',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['property']['owner_name'] == 'Bob Buyer Trust'
        assert response.data['property']['resident_name'] == 'New Resident'
        assert response.data['property']['resident_mailing_address'] == '10 Canal St'

    def test_transfer_audit_failure_reports_warning(self, clerk_client, property_a, shareholder_b):
        url = reverse('meetings:property-transfer', kwargs={'pk': property_a.pk})
        with patch(
            'apps.meetings.services.registry.insert_transfer_record',
            side_effect=StorageError('audit table missing')
        ):
            response = clerk_client.post(url, {'target_shareholder_id': '100002'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['transfer_record'] is None
        assert response.data['warnings'] == ['Transfer audit record could not be written']

    def test_transfer_storage_failure(self, clerk_client, property_a, shareholder_b):
        url = reverse('meetings:property-transfer', kwargs={'pk': property_a.pk})
        with patch(
            'apps.meetings.services.registry.update_property',
            side_effect=StorageError('write failed')
        ):
            response = clerk_client.post(url, {'target_shareholder_id': '100002'}, format='json')

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    def test_transfer_to_unknown_shareholder(self, clerk_client, property_a):
        url = reverse('meetings:property-transfer', kwargs={'pk': property_a.pk})
        response = clerk_client.post(url, {'target_shareholder_id': '999999'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_transfer_to_current_owner(self, clerk_client, property_a):
        url = reverse('meetings:property-transfer', kwargs={'pk': property_a.pk})
        response = clerk_client.post(url, {'target_shareholder_id': '100001'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['property']['shareholder_id'] == '100001'
        assert response.data['previous_shareholder_deleted'] is False
        assert response.data['warnings'] == []
        assert Shareholder.objects.filter(shareholder_id='100001').exists()

    def test_transfer_history(self, clerk_client, property_a, shareholder_b):
        clerk_client.post(
            reverse('meetings:property-transfer', kwargs={'pk': property_a.pk}),
            {'target_shareholder_id': '100002'},
            format='json'
        )

        url = reverse('meetings:property-transfers', kwargs={'pk': property_a.pk})
        response = clerk_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]['to_shareholder_id'] == '100002'
        assert response.data[0]['transferred_by'] == 'clerk@example.com'

    def test_bulk_uncheckin(self, admin_client, roster, meeting):
        admin_client.post(reverse('meetings:checkin'), {'shareholder_id': '100001'}, format='json')

        url = reverse('meetings:property-bulk-uncheckin')
        response = admin_client.post(url, {'meeting_id': meeting.pk}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['updated_count'] == 3
        meeting.refresh_from_db()
        assert meeting.checked_in == 0

    def test_bulk_uncheckin_as_clerk_forbidden(self, clerk_client, roster):
        url = reverse('meetings:property-bulk-uncheckin')
        response = clerk_client.post(url, {}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# Check-in
# =============================================================================

@pytest.mark.django_db
class TestCheckInEndpoints:
    """Tests for /api/checkin/ and /api/checkin/manual/"""

    def test_check_in(self, clerk_client, roster):
        response = clerk_client.post(reverse('meetings:checkin'), {
            'shareholder_id': '100001',
            'signature_image': 'data:image/png;base64,AAAA',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['meeting']['checked_in'] == 1
        assert Shareholder.objects.get(shareholder_id='100001').signature_hash is not None

    def test_check_in_is_capped(self, clerk_client, roster):
        url = reverse('meetings:checkin')
        for _ in range(4):
            response = clerk_client.post(url, {'shareholder_id': '100002'}, format='json')

        assert response.data['meeting']['checked_in'] == 3
        assert response.data['meeting']['remaining_capacity'] == 0

    def test_check_in_unknown_shareholder(self, clerk_client, roster):
        response = clerk_client.post(reverse('meetings:checkin'), {'shareholder_id': '100004'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_check_in_requires_shareholder_id(self, clerk_client):
        response = clerk_client.post(reverse('meetings:checkin'), {}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_check_in_unauthenticated(self, api_client, roster):
        response = api_client.post(reverse('meetings:checkin'), {'shareholder_id': '100001'}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_manual_check_in_guard(self, clerk_client, roster):
        url = reverse('meetings:manual-checkin')
        first = clerk_client.post(url, {'shareholder_id': '100001', 'action': 'checkin'}, format='json')
        second = clerk_client.post(url, {'shareholder_id': '100001', 'action': 'checkin'}, format='json')

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_400_BAD_REQUEST
        assert 'already checked in' in second.data['error']

    def test_manual_undo_forbidden_for_clerk(self, clerk_client, roster):
        url = reverse('meetings:manual-checkin')
        response = clerk_client.post(url, {'shareholder_id': '100001', 'action': 'undo'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_manual_undo_as_admin(self, admin_client, roster, property_a):
        url = reverse('meetings:manual-checkin')
        admin_client.post(url, {'shareholder_id': '100001', 'action': 'checkin'}, format='json')

        response = admin_client.post(url, {'shareholder_id': '100001', 'action': 'undo'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        property_a.refresh_from_db()
        assert property_a.checked_in is False


# =============================================================================
# Undo requests
# =============================================================================

@pytest.mark.django_db
class TestUndoRequestEndpoints:
    """Tests for /api/undo-requests/"""

    def test_clerk_files_request(self, clerk_client, shareholder_a):
        url = reverse('meetings:undo-request-list')
        response = clerk_client.post(url, {
            'shareholder_id': '100001',
            'shareholder_name': 'Alice Owner',
            'reason': 'Wrong person',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['status'] == 'pending'
        assert response.data['requested_by'] == 'clerk@example.com'

    def test_request_requires_id_and_name(self, clerk_client):
        url = reverse('meetings:undo-request-list')
        response = clerk_client.post(url, {'shareholder_id': '100001'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Shareholder ID and name are required'

    def test_request_unauthenticated(self, api_client):
        url = reverse('meetings:undo-request-list')
        response = api_client.post(url, {'shareholder_id': '1', 'shareholder_name': 'X'}, format='json')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list_requires_admin(self, clerk_client, admin_client, pending_undo):
        url = reverse('meetings:undo-request-list')

        assert clerk_client.get(url).status_code == status.HTTP_403_FORBIDDEN

        response = admin_client.get(url, {'status': 'pending'})
        assert response.status_code == status.HTTP_200_OK
        assert [r['id'] for r in response.data] == [pending_undo.pk]

    def test_list_unknown_status(self, admin_client):
        url = reverse('meetings:undo-request-list')
        response = admin_client.get(url, {'status': 'archived'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_approve(self, admin_client, clerk_client, roster, meeting, pending_undo, shareholder_a):
        clerk_client.post(reverse('meetings:checkin'), {'shareholder_id': '100001'}, format='json')

        url = reverse('meetings:undo-request-detail', kwargs={'pk': pending_undo.pk})
        response = admin_client.put(url, {'action': 'approve'}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'approved'
        assert response.data['approved_by'] == 'admin@example.com'
        shareholder_a.refresh_from_db()
        assert shareholder_a.checked_in is False
        meeting.refresh_from_db()
        assert meeting.checked_in == 1

    def test_resolve_twice(self, admin_client, pending_undo):
        url = reverse('meetings:undo-request-detail', kwargs={'pk': pending_undo.pk})
        admin_client.put(url, {'action': 'reject'}, format='json')

        response = admin_client.put(url, {'action': 'approve'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Request has already been processed'
        assert UndoRequest.objects.get(pk=pending_undo.pk).status == 'rejected'

    def test_resolve_as_clerk_forbidden(self, clerk_client, pending_undo):
        url = reverse('meetings:undo-request-detail', kwargs={'pk': pending_undo.pk})
        response = clerk_client.put(url, {'action': 'approve'}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_resolve_missing_request(self, admin_client):
        url = reverse('meetings:undo-request-detail', kwargs={'pk': 987654})
        response = admin_client.put(url, {'action': 'approve'}, format='json')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_resolve_invalid_action(self, admin_client, pending_undo):
        url = reverse('meetings:undo-request-detail', kwargs={'pk': pending_undo.pk})
        response = admin_client.put(url, {'action': 'maybe'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST


# =============================================================================
# Management command
# =============================================================================

@pytest.mark.django_db
class TestCreateSampleMeeting:
    """Tests for the create_sample_meeting command."""

    def test_creates_meeting_with_roster(self):
        out = StringIO()
        call_command('create_sample_meeting', stdout=out)

        meeting = Meeting.objects.get()
        assert meeting.has_initial_data is True
        assert meeting.total_shareholders == 5
        assert Property.objects.count() == 8
        assert 'created' in out.getvalue()

    def test_clear_replaces_existing_data(self, roster, clerk_client, property_a, shareholder_b):
        clerk_client.post(
            reverse('meetings:property-transfer', kwargs={'pk': property_a.pk}),
            {'target_shareholder_id': '100002'},
            format='json'
        )

        call_command('create_sample_meeting', '--clear', stdout=StringIO())

        assert Meeting.objects.count() == 1
        assert Shareholder.objects.count() == 5
        assert not PropertyTransfer.objects.exists()


# =============================================================================
# Health
# =============================================================================

@pytest.mark.django_db
class TestHealthCheck:
    """Tests for /api/health/"""

    def test_health_check(self, api_client):
        response = api_client.get(reverse('health-check'))

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {'status': 'ok', 'database': True}

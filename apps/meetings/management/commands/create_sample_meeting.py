"""
Management command to create a sample meeting for trying the API.

Usage:
    python manage.py create_sample_meeting [--clear]

This creates:
- 2 users (admin, clerk)
- 1 meeting four weeks from now
- A roster of 8 properties grouped into 5 shareholders
"""

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.meetings.models import Meeting, Property, UndoRequest
from apps.meetings.services import create_meeting, import_roster


SAMPLE_ROWS = [
    {
        'account': '10001', 'num_of': '1',
        'customer_name': 'Ada Tenant', 'customer_mailing_address': '12 Canal St', 'city_state_zip': 'Riverton, UT 84065',
        'owner_name': 'Harlan Farms LLC', 'owner_mailing_address': 'PO Box 41', 'owner_city_state_zip': 'Riverton, UT 84065',
        'service_address': '12 Canal St',
    },
    {
        'account': '10002', 'num_of': '2',
        'customer_name': 'Harlan Farms LLC', 'customer_mailing_address': 'PO Box 41', 'city_state_zip': 'Riverton, UT 84065',
        'owner_name': 'Harlan Farms LLC', 'owner_mailing_address': 'PO Box 41', 'owner_city_state_zip': 'Riverton, UT 84065',
        'service_address': '400 W Headgate Rd',
    },
    {
        'account': '10003', 'num_of': '1',
        'customer_name': 'Maria Ortiz', 'customer_mailing_address': '88 Sego Ln', 'city_state_zip': 'Bluffdale, UT 84065',
        'owner_name': 'Maria Ortiz', 'owner_mailing_address': '88 Sego Ln', 'owner_city_state_zip': 'Bluffdale, UT 84065',
        'service_address': '88 Sego Ln',
    },
    {
        'account': '10004', 'num_of': '1',
        'customer_name': 'Tom Becker', 'customer_mailing_address': '5 Ditch Rd', 'city_state_zip': 'Herriman, UT 84096',
        'owner_name': 'Tom Becker', 'owner_mailing_address': '5 Ditch Rd', 'owner_city_state_zip': 'Herriman, UT 84096',
        'service_address': '5 Ditch Rd',
        'resident_name': 'Sam Becker', 'resident_mailing_address': '5 Ditch Rd', 'resident_city_state_zip': 'Herriman, UT 84096',
    },
    {
        'account': '10005', 'num_of': '3',
        'customer_name': 'Tom Becker', 'customer_mailing_address': '5 Ditch Rd', 'city_state_zip': 'Herriman, UT 84096',
        'owner_name': 'Tom Becker', 'owner_mailing_address': '5 Ditch Rd', 'owner_city_state_zip': 'Herriman, UT 84096',
        'service_address': '7 Ditch Rd',
    },
    {
        'account': '10006', 'num_of': '1',
        'customer_name': 'Lena Park', 'customer_mailing_address': '310 Orchard Way', 'city_state_zip': 'Riverton, UT 84065',
        'owner_name': 'Lena Park', 'owner_mailing_address': '310 Orchard Way', 'owner_city_state_zip': 'Riverton, UT 84065',
        'service_address': '310 Orchard Way',
    },
    {
        'account': '10007', 'num_of': '1',
        'customer_name': 'Ward Irrigation Trust', 'customer_mailing_address': '1 Main St Ste 200', 'city_state_zip': 'Draper, UT 84020',
        'owner_name': 'Ward Irrigation Trust', 'owner_mailing_address': '1 Main St Ste 200', 'owner_city_state_zip': 'Draper, UT 84020',
        'service_address': '900 S Lateral Rd',
    },
    {
        'account': '10008', 'num_of': '2',
        'customer_name': 'Ward Irrigation Trust', 'customer_mailing_address': '1 Main St Ste 200', 'city_state_zip': 'Draper, UT 84020',
        'owner_name': 'Ward Irrigation Trust', 'owner_mailing_address': '1 Main St Ste 200', 'owner_city_state_zip': 'Draper, UT 84020',
        'service_address': '940 S Lateral Rd',
    },
]


class Command(BaseCommand):
    help = 'Create a sample meeting with a small roster'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Delete all meetings and undo requests before creating the sample',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample meeting...')

        admin, clerk = self.create_users()

        meeting_date = timezone.now() + timedelta(weeks=4)
        meeting = create_meeting(year=meeting_date.year, date=meeting_date, actor=admin)
        result = import_roster(meeting_id=meeting.pk, rows=SAMPLE_ROWS, actor=admin)

        self.stdout.write(self.style.SUCCESS(
            f"Meeting {meeting.pk} created with {result['total_records']} properties "
            f"and {result['total_shareholders']} shareholders"
        ))
        self.stdout.write('')
        self.stdout.write('Test accounts:')
        self.stdout.write('  admin@example.com / admin123 (meeting admin)')
        self.stdout.write('  clerk@example.com / password123')

    def clear_data(self):
        """Clear meeting data; properties go first because they protect shareholders."""
        UndoRequest.objects.all().delete()
        Property.objects.all().delete()
        Meeting.objects.all().delete()

    def create_users(self):
        self.stdout.write('  Creating users...')

        admin, _ = User.objects.get_or_create(
            email='admin@example.com',
            defaults={
                'display_name': 'Meeting Admin',
                'is_staff': True,
            }
        )
        admin.is_staff = True
        admin.set_password('admin123')
        admin.save()

        clerk, _ = User.objects.get_or_create(
            email='clerk@example.com',
            defaults={'display_name': 'Check-in Clerk'}
        )
        clerk.set_password('password123')
        clerk.save()

        return admin, clerk

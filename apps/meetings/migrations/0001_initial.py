import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Meeting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year', models.PositiveIntegerField()),
                ('date', models.DateTimeField()),
                ('data_source', models.CharField(choices=[('excel', 'Excel upload'), ('database', 'Database')], default='excel', max_length=20)),
                ('total_shareholders', models.PositiveIntegerField(default=0)),
                ('checked_in', models.PositiveIntegerField(default=0)),
                ('has_initial_data', models.BooleanField(default=False)),
                ('mailers_generated', models.BooleanField(default=False)),
                ('mailer_generation_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'meetings',
                'ordering': ['-date'],
                'indexes': [models.Index(fields=['date'], name='meetings_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='UndoRequest',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('shareholder_id', models.CharField(db_index=True, max_length=32)),
                ('shareholder_name', models.CharField(max_length=255)),
                ('requested_by', models.CharField(max_length=255)),
                ('requested_at', models.DateTimeField(auto_now_add=True)),
                ('reason', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending', max_length=20)),
                ('approved_by', models.CharField(blank=True, max_length=255, null=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'undo_requests',
                'ordering': ['requested_at', 'id'],
                'indexes': [models.Index(fields=['status', 'requested_at'], name='undo_status_requested_idx')],
            },
        ),
        migrations.CreateModel(
            name='Shareholder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('shareholder_id', models.CharField(db_index=True, max_length=32, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('owner_mailing_address', models.CharField(blank=True, max_length=255)),
                ('owner_city_state_zip', models.CharField(blank=True, max_length=255)),
                ('is_new', models.BooleanField(default=False)),
                ('checked_in', models.BooleanField(default=False)),
                ('checked_in_at', models.DateTimeField(blank=True, null=True)),
                ('signature_image', models.TextField(blank=True, null=True)),
                ('signature_hash', models.CharField(blank=True, max_length=64, null=True)),
                ('designee', models.CharField(blank=True, max_length=255, null=True)),
                ('comment', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('meeting', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shareholders', to='meetings.meeting')),
            ],
            options={
                'db_table': 'shareholders',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['meeting', 'checked_in'], name='shareholders_meeting_ci_idx'),
                    models.Index(fields=['name'], name='shareholders_name_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Property',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('account', models.CharField(max_length=64)),
                ('num_of', models.CharField(blank=True, max_length=32)),
                ('service_address', models.CharField(blank=True, max_length=255)),
                ('customer_name', models.CharField(blank=True, max_length=255)),
                ('customer_mailing_address', models.CharField(blank=True, max_length=255)),
                ('city_state_zip', models.CharField(blank=True, max_length=255)),
                ('owner_name', models.CharField(blank=True, max_length=255)),
                ('owner_mailing_address', models.CharField(blank=True, max_length=255)),
                ('owner_city_state_zip', models.CharField(blank=True, max_length=255)),
                ('resident_name', models.CharField(blank=True, max_length=255)),
                ('resident_mailing_address', models.CharField(blank=True, max_length=255)),
                ('resident_city_state_zip', models.CharField(blank=True, max_length=255)),
                ('checked_in', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('shareholder', models.ForeignKey(db_column='shareholder_id', on_delete=django.db.models.deletion.PROTECT, related_name='properties', to='meetings.shareholder', to_field='shareholder_id')),
            ],
            options={
                'verbose_name_plural': 'properties',
                'db_table': 'properties',
                'ordering': ['account', 'id'],
                'indexes': [
                    models.Index(fields=['account'], name='properties_account_idx'),
                    models.Index(fields=['shareholder', 'checked_in'], name='properties_owner_ci_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PropertyTransfer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_shareholder_id', models.CharField(max_length=32)),
                ('to_shareholder_id', models.CharField(max_length=32)),
                ('transfer_date', models.DateTimeField()),
                ('transferred_by', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('meeting', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='property_transfers', to='meetings.meeting')),
                ('property', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='transfers', to='meetings.property')),
            ],
            options={
                'db_table': 'property_transfers',
                'ordering': ['-transfer_date', '-id'],
                'indexes': [models.Index(fields=['property', 'transfer_date'], name='transfers_property_date_idx')],
            },
        ),
    ]

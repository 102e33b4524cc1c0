# donors/management/commands/import_donors.py
"""
Django management command to import donor data from Excel or CSV
Usage: python manage.py import_donors path/to/donors.xlsx
"""

from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model
from django.db import transaction
import pandas as pd

from algorithms.blood_compatibility import BLOOD_TYPES, normalize_blood_type
from algorithms.haversine import is_valid_coordinate
from donors.models import DonorProfile

User = get_user_model()

TRUTHY = {'1', 'true', 'yes', 'y'}


def _flag(value, default=False):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return default
    return str(value).strip().lower() in TRUTHY


def _text(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ''
    return str(value).strip()


def read_donor_sheet(path):
    if str(path).lower().endswith('.csv'):
        return pd.read_csv(path)
    return pd.read_excel(path)


class Command(BaseCommand):
    help = 'Import donors from an Excel or CSV file'

    def add_arguments(self, parser):
        parser.add_argument('path', type=str, help='Path to the .xlsx or .csv file')
        parser.add_argument('--password', default='ChangeMe123!', help='Initial password for new accounts')

    def handle(self, *args, **options):
        path = options['path']
        self.stdout.write(self.style.WARNING(f'Starting import from {path}...'))

        try:
            df = read_donor_sheet(path)
        except FileNotFoundError:
            raise CommandError(f'File not found: {path}')

        self.stdout.write(f'Found {len(df)} rows')
        if 'email' not in df.columns or 'blood_type' not in df.columns:
            raise CommandError('The file needs at least "email" and "blood_type" columns')

        df = df.dropna(subset=['email', 'blood_type'])

        imported_count = 0
        updated_count = 0
        skipped_count = 0

        with transaction.atomic():
            for index, row in df.iterrows():
                line = index + 2
                email = _text(row.get('email')).lower()
                blood_type = normalize_blood_type(_text(row.get('blood_type')))
                if blood_type not in BLOOD_TYPES:
                    self.stdout.write(self.style.WARNING(f'Skipping row {line}: Invalid blood type {blood_type}'))
                    skipped_count += 1
                    continue

                latitude = row.get('latitude')
                longitude = row.get('longitude')
                if pd.notna(latitude) and pd.notna(longitude):
                    if not is_valid_coordinate(latitude, longitude):
                        self.stdout.write(self.style.WARNING(f'Skipping row {line}: Invalid coordinates'))
                        skipped_count += 1
                        continue
                    latitude, longitude = float(latitude), float(longitude)
                else:
                    latitude = longitude = None

                username = email.split('@')[0].replace(' ', '_')[:30]
                user, user_created = User.objects.get_or_create(
                    email=email,
                    defaults={
                        'username': username,
                        'full_name': _text(row.get('full_name')),
                        'phone': _text(row.get('phone')),
                        'is_active': True,
                    }
                )
                if user_created:
                    user.set_password(options['password'])
                    user.save()

                donor, created = DonorProfile.objects.update_or_create(
                    user=user,
                    defaults={
                        'blood_type': blood_type,
                        'district': _text(row.get('district')),
                        'address': _text(row.get('address')),
                        'latitude': latitude,
                        'longitude': longitude,
                        'is_available': _flag(row.get('is_available'), default=True),
                        'is_verified': _flag(row.get('is_verified')),
                        'notify_by_email': _flag(row.get('notify_by_email')),
                        'notify_by_sms': _flag(row.get('notify_by_sms')),
                    }
                )

                if created:
                    imported_count += 1
                    self.stdout.write(f'✓ Created: {user.display_name} ({donor.blood_type}) - {user.email}')
                else:
                    updated_count += 1
                    self.stdout.write(f'↻ Updated: {user.display_name} ({donor.blood_type})')

        self.stdout.write(
            self.style.SUCCESS(
                f'\nImport complete!\n'
                f'Created: {imported_count}\n'
                f'Updated: {updated_count}\n'
                f'Skipped: {skipped_count}'
            )
        )

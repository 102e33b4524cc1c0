"""
Expire stale notifications and delete the ones that are done with.
Usage: python manage.py cleanup_notifications [--expire-only]
"""
from django.core.management.base import BaseCommand

from notifications import services


class Command(BaseCommand):
    help = 'Expire notifications past their expiry and delete expired or dismissed ones'

    def add_arguments(self, parser):
        parser.add_argument('--expire-only', action='store_true', help='Expire but do not delete')

    def handle(self, *args, **options):
        expired = services.expire_stale()
        self.stdout.write(f'Expired: {expired}')

        if options['expire_only']:
            return

        deleted = services.cleanup_expired()
        self.stdout.write(self.style.SUCCESS(f'Deleted: {deleted}'))

from django.core.management.base import BaseCommand
from django.utils import timezone
from datetime import timedelta
from rides.models import RideOffer, TERMINAL_STATUSES
import logging

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Delete offer rows of rides that ended long ago. Ride records are kept."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=30,
            help="Delete offers of rides created more than this many days ago (default: 30).",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be deleted without actually deleting.",
        )

    def handle(self, *args, **options):
        days = options["days"]
        dry_run = options["dry_run"]
        cutoff = timezone.now() - timedelta(days=days)

        old_offers = RideOffer.objects.filter(
            ride__created_at__lt=cutoff,
            ride__status__in=TERMINAL_STATUSES,
        )
        offers_count = old_offers.count()

        if dry_run:
            self.stdout.write(
                self.style.WARNING(
                    f"DRY RUN: Would delete {offers_count} offers of rides older than {days} days."
                )
            )
        else:
            old_offers.delete()
            logger.info("Cleaned up %d old offers", offers_count)
            self.stdout.write(
                self.style.SUCCESS(
                    f"Deleted {offers_count} offers of rides older than {days} days."
                )
            )

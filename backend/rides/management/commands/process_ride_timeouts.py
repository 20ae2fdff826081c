from django.core.management.base import BaseCommand

from services.ride_management.abandonment import sweep_overdue


class Command(BaseCommand):
    help = "Expire overdue pending rides, driver offers and pickup waits whose timers never fired."

    def handle(self, *args, **options):
        counts = sweep_overdue()

        self.stdout.write(
            self.style.SUCCESS(
                f"Expired {counts['rides_expired']} ride(s), {counts['offers_expired']} offer(s); "
                f"ended {counts['no_shows']} no-show ride(s)."
            )
        )

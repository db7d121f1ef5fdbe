# apps/queue/management/commands/reset_stuck_domains.py

from django.conf import settings
from django.core.management.base import BaseCommand

from apps.campaigns.services import reset_stuck_domains


class Command(BaseCommand):
    help = "Return domains stuck in PROCESSING to PENDING."

    def add_arguments(self, parser):
        parser.add_argument(
            "--minutes",
            type=int,
            default=getattr(settings, "STUCK_DOMAIN_THRESHOLD_MINUTES", 15),
            help="Reset domains whose last update is older than this",
        )

    def handle(self, *args, **options):
        reset = reset_stuck_domains(options["minutes"])
        self.stdout.write(self.style.SUCCESS(f"Reset {reset} stuck domain(s)"))

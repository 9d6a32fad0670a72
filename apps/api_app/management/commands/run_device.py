# apps/api_app/management/commands/run_device.py
import asyncio
import logging

from django.core.management.base import BaseCommand, CommandError

from apps.mobile.config import MobileConfig
from apps.mobile.runner import FixedPositionSource, run_child, run_parent

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = (
        "Run a headless child or parent device against the relay and REST API. "
        "Endpoints and storage come from SECURENEST_API_URL, SECURENEST_RELAY_URL "
        "and SECURENEST_STORAGE_PATH."
    )

    def add_arguments(self, parser):
        subparsers = parser.add_subparsers(dest='role', required=True)

        child = subparsers.add_parser('child', help="Stream a fixed position and evaluate geofences.")
        child.add_argument('--latitude', type=float, required=True)
        child.add_argument('--longitude', type=float, required=True)
        child.add_argument('--family-code', help="Authenticate with this family code before starting.")
        child.add_argument('--sos', metavar='MESSAGE', help="Send an SOS alert once connected.")
        child.add_argument('--duration', type=float, help="Seconds to run; runs until interrupted when omitted.")

        parent = subparsers.add_parser('parent', help="Follow the children's locations and SOS alerts.")
        parent.add_argument('--clerk-id', required=True)
        parent.add_argument('--duration', type=float, help="Seconds to run; runs until interrupted when omitted.")

    def handle(self, *args, **options):
        config = MobileConfig.from_env()
        role = options['role']
        if role == 'child':
            run = run_child(
                config,
                FixedPositionSource(options['latitude'], options['longitude']),
                family_code=options.get('family_code'),
                duration=options.get('duration'),
                sos_message=options.get('sos'),
            )
        else:
            run = run_parent(config, options['clerk_id'], duration=options.get('duration'))

        logger.info(f"Starting {role} device against {config.relay_url}")
        try:
            completed = asyncio.run(run)
        except KeyboardInterrupt:
            self.stdout.write(f"{role.capitalize()} device stopped.")
            return
        except asyncio.TimeoutError:
            raise CommandError(f"Could not reach the relay at {config.relay_url}")

        if not completed:
            raise CommandError(f"The {role} device could not be set up; see the log for details.")
        self.stdout.write(self.style.SUCCESS(f"{role.capitalize()} device finished."))

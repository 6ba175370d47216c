"""
Management command to report the resolved access policy of every endpoint.
"""
import json

from django.core.management.base import BaseCommand, CommandError

from apps.rbac.exceptions import AmbiguousAnnotation
from apps.rbac.policies import describe
from apps.rbac.registry import policy_registry
from apps.rbac.serializers import EndpointPolicySerializer


class Command(BaseCommand):
    help = 'Report the resolved access policy of every routed API operation'

    def add_arguments(self, parser):
        parser.add_argument(
            '--format',
            choices=['table', 'json'],
            default='table',
            help='Output format (default: table)'
        )
        parser.add_argument(
            '--urlconf',
            default=None,
            help='URLconf module to inspect (default: ROOT_URLCONF)'
        )

    def handle(self, *args, **options):
        """Resolve and display endpoint policies."""
        try:
            registered = policy_registry.register_urlconf(options['urlconf'])
        except AmbiguousAnnotation as e:
            raise CommandError(str(e)) from e

        if options['format'] == 'json':
            self.stdout.write(json.dumps(EndpointPolicySerializer(registered, many=True).data, indent=2))
            return

        self.stdout.write(self.style.SUCCESS('Endpoint access policies'))
        self.stdout.write('=' * 50)

        unconstrained = 0
        for row in registered:
            policy = describe(row.policy)
            line = f"  {row.route:<40} {row.operation:<16} {policy}"
            if row.policy is None:
                unconstrained += 1
                self.stdout.write(self.style.WARNING(line))
            else:
                self.stdout.write(line)

        self.stdout.write('\n' + '=' * 50)
        self.stdout.write(
            self.style.SUCCESS(
                f"{len(registered)} operations, {unconstrained} without access constraint"
            )
        )

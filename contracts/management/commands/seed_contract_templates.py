"""
Django management command to load the built-in contract templates.

Creates one platform-wide ContractTemplate per built-in definition. Running
it again skips templates that already exist for the same
(contract_type, usage_type, version).

Usage:
    python manage.py seed_contract_templates
    python manage.py seed_contract_templates --update   # Refresh existing bodies
"""

from django.core.management.base import BaseCommand

from contracts.default_templates import DEFAULT_TEMPLATE_DEFINITIONS
from contracts.models import ContractTemplate


class Command(BaseCommand):
    help = 'Load the built-in contract templates as platform-wide templates'

    def add_arguments(self, parser):
        parser.add_argument(
            '--update',
            action='store_true',
            help='Overwrite name, body and variables of existing templates',
        )

    def handle(self, *args, **options):
        created = updated = skipped = 0

        self.stdout.write('=' * 60)
        self.stdout.write('CONTRACT TEMPLATES')
        self.stdout.write('=' * 60)

        for definition in DEFAULT_TEMPLATE_DEFINITIONS:
            template = ContractTemplate.objects.filter(
                agency__isnull=True,
                contract_type=definition.key,
                usage_type=definition.usage,
                version=definition.version,
            ).first()

            if template is None:
                ContractTemplate.objects.create(
                    agency=None,
                    contract_type=definition.key,
                    usage_type=definition.usage,
                    name=definition.name,
                    language=definition.language,
                    version=definition.version,
                    body=definition.body,
                    variables=list(definition.variables),
                    metadata={'source': 'default'},
                )
                created += 1
                self.stdout.write(self.style.SUCCESS(f"✓ Created {definition.name} v{definition.version}"))
            elif options['update']:
                template.name = definition.name
                template.body = definition.body
                template.variables = list(definition.variables)
                template.save(update_fields=['name', 'body', 'variables', 'updated_at'])
                updated += 1
                self.stdout.write(f"↻ Updated {definition.name} v{definition.version}")
            else:
                skipped += 1
                self.stdout.write(self.style.WARNING(f"⊘ Exists {definition.name} v{definition.version}"))

        self.stdout.write('=' * 60)
        self.stdout.write(f"Created: {created}  Updated: {updated}  Skipped: {skipped}")

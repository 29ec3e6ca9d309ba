from django.conf import settings
from django.core.management.base import BaseCommand
from products.models import Category


class Command(BaseCommand):
    help = 'Seed the default product categories.'

    def add_arguments(self, parser):
        parser.add_argument(
            'names',
            nargs='*',
            help='Category names to create instead of PRODUCTS_DEFAULT_CATEGORIES.',
        )

    def handle(self, *args, **options):
        names = options['names'] or settings.PRODUCTS_DEFAULT_CATEGORIES
        created = 0
        for name in names:
            _, was_created = Category.objects.get_or_create(name=name.strip())
            if was_created:
                created += 1
        self.stdout.write(self.style.SUCCESS(f"Seeded {created} categories ({len(names) - created} already present)."))

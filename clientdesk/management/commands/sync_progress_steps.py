from django.core.management.base import BaseCommand, CommandError

from clientdesk.models import Client
from clientdesk.progress import sync_progress_steps


class Command(BaseCommand):
    help = "Create missing package-setup and component progress steps."

    def add_arguments(self, parser):
        parser.add_argument('--client', type=int, help='Only sync this client id.')

    def handle(self, *args, **options):
        clients = Client.objects.all()
        if options.get('client'):
            clients = clients.filter(pk=options['client'])
            if not clients.exists():
                raise CommandError(f"Client {options['client']} does not exist.")
        total = 0
        for client in clients:
            total += sync_progress_steps(client)
        self.stdout.write(self.style.SUCCESS(f"Created {total} progress step(s)."))

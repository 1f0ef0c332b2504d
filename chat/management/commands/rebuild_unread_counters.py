from django.core.management.base import BaseCommand

from chat.services import rebuild_unread_counters


class Command(BaseCommand):
    help = 'Recomputes every unread counter from the messages that have not been read yet.'

    def handle(self, *args, **options):
        self.stdout.write("Rebuilding unread counters...")
        total = rebuild_unread_counters()
        self.stdout.write(self.style.SUCCESS(f"Rebuilt {total} unread counters."))

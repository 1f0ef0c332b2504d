from django.core.management.base import BaseCommand

from chat.models import Message
from mentorship.models import User, Question


class Command(BaseCommand):
    help = 'Recomputes the question and chat counters stored on mentor accounts.'

    def add_arguments(self, parser):
        parser.add_argument('--dry-run', action='store_true', help='Report the new values without saving them.')

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        mentors = User.objects.filter(role=User.MENTOR).order_by('id')
        changed = 0

        for mentor in mentors:
            assigned = Question.objects.filter(selected_mentor=mentor)
            students = set(Message.objects.filter(receiver=mentor).values_list('sender_id', flat=True))
            stats = {
                'active_questions': assigned.filter(status__in=Question.PENDING_FOR_MENTOR).count(),
                'answered_questions': assigned.filter(status__in=Question.ANSWERED_FOR_MENTOR).count(),
                'total_chats': len(students),
            }
            if all(getattr(mentor, field) == value for field, value in stats.items()):
                continue

            changed += 1
            self.stdout.write(
                f"{mentor.username} ({mentor.email}): "
                + ", ".join(f"{field} {getattr(mentor, field)} -> {value}" for field, value in stats.items())
            )
            if not dry_run:
                User.objects.filter(pk=mentor.pk).update(**stats)

        verb = 'Would update' if dry_run else 'Updated'
        self.stdout.write(self.style.SUCCESS(f"{verb} {changed} of {mentors.count()} mentors."))

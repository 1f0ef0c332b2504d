from django.conf import settings
from django.core.management.base import BaseCommand
from django.db.models import Count, Q

from mentorship.models import AnswerCard


class Command(BaseCommand):
    help = 'Resets answer card follow-up counts to the number of follow-up questions actually asked.'

    def handle(self, *args, **options):
        cards = AnswerCard.objects.annotate(
            asked=Count('question__follow_ups', filter=Q(question__follow_ups__is_follow_up=True))
        )
        fixed = 0
        for card in cards:
            expected = min(card.asked, settings.MAX_FOLLOW_UPS)
            if card.follow_up_count != expected:
                self.stdout.write(f"Answer card {card.id}: {card.follow_up_count} -> {expected}")
                AnswerCard.objects.filter(pk=card.pk).update(follow_up_count=expected)
                fixed += 1

        self.stdout.write(self.style.SUCCESS(f"Fixed {fixed} answer cards."))

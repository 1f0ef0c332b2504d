"""
Question flow: quality scoring, submission and routing, follow-ups and
turning a mentor's experience into an answer card.

Functions take keyword-only arguments and raise the exceptions below; views
translate them into HTTP responses.
"""
import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from .emails import send_mentor_new_question_email
from .matching import extract_keywords, find_best_mentor
from .models import User, Question, MentorExperience, AnswerCard
from .moderation import get_moderator

logger = logging.getLogger(__name__)

VAGUE_WORDS = ('help', 'tips', 'advice', 'guidance', 'how', 'what')
CONTEXT_WORDS = ('currently', 'working on', 'struggling with', 'tried', 'background')

MAX_STEPS = 7
MAX_MISTAKES = 5


class NoCreditsError(Exception):
    pass


class NoMentorAvailable(Exception):
    pass


class FollowUpLimitReached(Exception):
    pass


class QuestionAlreadyAnswered(Exception):
    pass


def check_quality(text):
    text = text or ''
    lowered = text.lower()
    score = 0
    issues = []

    if len(text) < 50:
        issues.append('Question is too short. Add more details.')
        score += 20
    elif len(text) < 100:
        score += 50
    else:
        score += 70

    word_count = max(len(text.split()), 1)
    vague_count = sum(1 for word in VAGUE_WORDS if word in lowered)
    if vague_count / word_count > 0.3:
        issues.append('Question seems vague. Be more specific about your situation.')
        score -= 20
    else:
        score += 30

    if '?' not in text:
        issues.append('Add a clear question mark to improve clarity.')
        score -= 10

    if any(word in lowered for word in CONTEXT_WORDS):
        score += 10
    else:
        issues.append('Add context about your current situation.')

    score = max(0, min(100, score))
    return {
        'quality_score': score,
        'issues': issues,
        'needs_improvement': score < 60,
    }


def _decrement(field):
    return Greatest(F(field) - 1, Value(0))


def submit_question(*, user, question_text, title='', category=Question.CAREER, reason=''):
    if user.credits <= 0:
        raise NoCreditsError()

    question_text = get_moderator().clean(question_text.strip())
    keywords = extract_keywords(f"{title} {question_text}")
    match = find_best_mentor(keywords, exclude_user=user)
    if match is None:
        raise NoMentorAvailable()

    with transaction.atomic():
        locked = User.objects.select_for_update().get(pk=user.pk)
        if locked.credits <= 0:
            raise NoCreditsError()
        User.objects.filter(pk=user.pk).update(credits=F('credits') - 1)

        question = Question.objects.create(
            user=user,
            title=title,
            question_text=question_text,
            category=category,
            reason=reason,
            quality_score=check_quality(question_text)['quality_score'],
            keywords=keywords,
            selected_mentor=match.mentor,
            match_percentage=match.match_percentage,
            selection_reason=match.reason[:255],
            status=Question.MENTOR_ASSIGNED,
        )
        User.objects.filter(pk=match.mentor.pk).update(active_questions=F('active_questions') + 1)

    user.credits = locked.credits - 1
    logger.info(f"Question {question.id} from user {user.id} routed to mentor {match.mentor.id} "
                f"({match.match_percentage}% match)")
    send_mentor_new_question_email(match.mentor, question)
    return question


def submit_follow_up(*, user, answer_card_id, text):
    card = AnswerCard.objects.select_related('question', 'mentor').get(pk=answer_card_id)
    root = card.question
    if root.user_id != user.id:
        raise PermissionDenied("Unauthorized or question not found")
    mentor = root.selected_mentor or card.mentor

    text = get_moderator().clean(text.strip())
    with transaction.atomic():
        card = AnswerCard.objects.select_for_update().get(pk=card.pk)
        if card.follow_up_count >= settings.MAX_FOLLOW_UPS:
            raise FollowUpLimitReached()

        follow_up = Question.objects.create(
            user=user,
            question_text=text,
            category=root.category,
            keywords=extract_keywords(text),
            selected_mentor=mentor,
            match_percentage=root.match_percentage,
            selection_reason='Original mentor',
            status=Question.MENTOR_ASSIGNED,
            is_follow_up=True,
            parent_question=root,
        )
        card.follow_up_answers.append({
            'question_id': follow_up.id,
            'question_text': text,
            'asked_at': timezone.now().isoformat(),
            'answered_at': None,
            'answer_content': None,
        })
        card.follow_up_count += 1
        card.save(update_fields=['follow_up_answers', 'follow_up_count'])
        User.objects.filter(pk=mentor.pk).update(active_questions=F('active_questions') + 1)

    logger.info(f"Follow-up {follow_up.id} on answer card {card.id} sent to mentor {mentor.id}")
    send_mentor_new_question_email(mentor, follow_up)
    return follow_up, card


def build_answer_content(experience):
    steps = [
        line.strip().lstrip('-•*').strip()
        for line in experience.step_by_step.splitlines()
        if line.strip()
    ][:MAX_STEPS]
    mistakes = [part.strip() for part in experience.failures.split('.') if part.strip()][:MAX_MISTAKES]
    return {
        'main_answer': (
            f"Here's what worked based on real experience:\n\n{experience.what_worked}\n\n"
            f"The key was: {experience.step_by_step}"
        ),
        'situation': experience.situation,
        'first_attempt': experience.first_attempt,
        'key_mistakes': mistakes,
        'what_worked': experience.what_worked,
        'actionable_steps': [
            {'step': f"Step {index}", 'description': step}
            for index, step in enumerate(steps, start=1)
        ],
        'timeline': experience.timeline,
        'different_approach': experience.would_do_differently,
        'additional_notes': experience.additional_notes,
        'real_context': f"Based on direct experience with: {experience.situation}",
    }


def submit_experience(*, mentor, question_id, raw_experience):
    question = Question.objects.get(pk=question_id, selected_mentor=mentor)
    if question.status not in Question.PENDING_FOR_MENTOR:
        raise QuestionAlreadyAnswered()

    now = timezone.now()
    with transaction.atomic():
        experience = MentorExperience.objects.create(
            question=question,
            mentor=mentor,
            status=MentorExperience.SUBMITTED,
            **raw_experience
        )
        content = build_answer_content(experience)

        if question.is_follow_up and question.parent_question_id:
            card = AnswerCard.objects.select_for_update().get(question_id=question.parent_question_id)
            for entry in card.follow_up_answers:
                if entry.get('question_id') == question.id:
                    break
            else:
                entry = {
                    'question_id': question.id,
                    'question_text': question.question_text,
                    'asked_at': question.created_at.isoformat(),
                }
                card.follow_up_answers.append(entry)
            entry['answer_content'] = content
            entry['answered_at'] = now.isoformat()
            entry['mentor_experience_id'] = experience.id
            card.save(update_fields=['follow_up_answers'])
        else:
            card = AnswerCard.objects.create(
                question=question,
                mentor=mentor,
                mentor_experience=experience,
                answer_content=content,
                delivered_at=now,
            )

        experience.status = MentorExperience.PROCESSED
        experience.save(update_fields=['status', 'updated_at'])
        question.status = Question.DELIVERED
        question.save(update_fields=['status', 'updated_at'])
        User.objects.filter(pk=mentor.pk).update(
            active_questions=_decrement('active_questions'),
            answered_questions=F('answered_questions') + 1,
        )

    logger.info(f"Mentor {mentor.id} answered question {question.id}; answer card {card.id}")
    return card

import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .matching import extract_keywords, find_best_mentor, rank_mentors
from .models import Question, AnswerCard, MentorExperience
from .moderation import get_moderator
from .serializer import (
    QuestionInputSerializer, QuestionUpdateSerializer, QuestionSerializer, MentorQuestionSerializer,
    MentorExperienceSerializer, AnswerCardSerializer, AnswerFeedbackSerializer, FollowUpSerializer,
    MentorSummarySerializer
)
from .services import (
    check_quality, submit_question, submit_follow_up, submit_experience,
    NoCreditsError, NoMentorAvailable, FollowUpLimitReached, QuestionAlreadyAnswered
)
from .throttles import ApiRateThrottle, QuestionRateThrottle
from .views import IsMentor

logger = logging.getLogger(__name__)


def _error(message, code):
    return Response({'success': False, 'error': message}, status=code)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def check_eligibility(request):
    user = request.user
    strength = user.profile_strength()
    return Response({
        'success': True,
        'is_profile_complete': strength >= settings.MIN_PROFILE_STRENGTH,
        'profile_strength': strength,
        'credits': user.credits,
        'message_credits': user.message_credits,
        'missing_fields': user.missing_profile_fields(),
        'can_ask': strength >= settings.MIN_PROFILE_STRENGTH and user.credits > 0,
        'needs_upgrade': user.credits == 0,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, QuestionRateThrottle])
def preview_match(request):
    serializer = QuestionInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    keywords = extract_keywords(f"{data['title']} {data['question_text']}")
    match = find_best_mentor(keywords, exclude_user=request.user)
    if match is None:
        return Response({'success': True, 'matched': False, 'keywords': keywords})

    return Response({
        'success': True,
        'matched': True,
        'keywords': keywords,
        'match_percentage': match.match_percentage,
        'matched_keywords': match.matched_keywords,
        'mentor': {
            'expertise': match.mentor.expertise[:5],
            'institution_name': match.mentor.institution_name,
        },
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, QuestionRateThrottle])
def suggest_mentors(request):
    text = (request.data.get('question_text') or '').strip()
    if len(text) < 3:
        return _error('Question text is required', status.HTTP_400_BAD_REQUEST)

    keywords = extract_keywords(text)
    ranked = rank_mentors(keywords, exclude_user=request.user, limit=5)
    return Response({
        'success': True,
        'keywords': keywords,
        'mentors': [
            {
                **MentorSummarySerializer(match.mentor).data,
                'score': match.score,
                'match_percentage': match.match_percentage,
                'matched_keywords': match.matched_keywords,
            }
            for match in ranked
        ],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, QuestionRateThrottle])
def quality_check(request):
    text = request.data.get('question_text')
    if not isinstance(text, str) or not text.strip():
        return _error('Question text is required', status.HTTP_400_BAD_REQUEST)
    return Response({'success': True, **check_quality(text)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, QuestionRateThrottle])
def submit(request):
    serializer = QuestionInputSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        question = submit_question(user=request.user, **serializer.validated_data)
    except NoCreditsError:
        logger.warning(f"User {request.user.id} tried to ask a question without credits")
        return Response({
            'success': False,
            'error': 'No question credits left',
            'needs_upgrade': True,
        }, status=status.HTTP_403_FORBIDDEN)
    except NoMentorAvailable:
        return _error('No mentor available right now. Please try again later.', status.HTTP_404_NOT_FOUND)

    return Response({
        'success': True,
        'question_id': question.id,
        'status': question.status,
        'credits': request.user.credits,
        'message': 'Atyant Engine is processing your question...',
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_questions(request):
    questions = Question.objects.filter(user=request.user).select_related('answer_card')
    return Response({
        'success': True,
        'questions': QuestionSerializer(questions, many=True).data,
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def question_detail(request, question_id):
    try:
        question = Question.objects.get(pk=question_id, user=request.user)
    except Question.DoesNotExist:
        return _error('Question not found', status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        card = AnswerCard.objects.filter(question=question).first()
        return Response({
            'success': True,
            'question': QuestionSerializer(question).data,
            'answer_card': AnswerCardSerializer(card).data if card else None,
        })

    if not question.is_editable():
        return _error('Question can no longer be edited', status.HTTP_403_FORBIDDEN)

    serializer = QuestionUpdateSerializer(question, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    text = serializer.validated_data.get('question_text')
    if text is not None:
        serializer.validated_data['question_text'] = get_moderator().clean(text)
        serializer.validated_data['keywords'] = extract_keywords(text)
        serializer.validated_data['quality_score'] = check_quality(text)['quality_score']
    serializer.save()
    logger.info(f"Question {question.id} edited by user {request.user.id}")
    return Response({'success': True, 'question': QuestionSerializer(question).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, QuestionRateThrottle])
def follow_up(request):
    serializer = FollowUpSerializer(data=request.data)
    if not serializer.is_valid():
        return _error('Follow-up question too short', status.HTTP_400_BAD_REQUEST)

    try:
        question, card = submit_follow_up(
            user=request.user,
            answer_card_id=serializer.validated_data['answer_card_id'],
            text=serializer.validated_data['follow_up_text'],
        )
    except AnswerCard.DoesNotExist:
        return _error('Answer card not found', status.HTTP_404_NOT_FOUND)
    except PermissionDenied as e:
        return _error(str(e), status.HTTP_403_FORBIDDEN)
    except FollowUpLimitReached:
        return _error(
            f"Maximum {settings.MAX_FOLLOW_UPS} follow-up questions allowed per answer",
            status.HTTP_400_BAD_REQUEST,
        )

    return Response({
        'success': True,
        'message': 'Follow-up question submitted',
        'original_question_id': card.question_id,
        'follow_up_question_id': question.id,
        'answer_card_id': card.id,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def answer_feedback(request):
    serializer = AnswerFeedbackSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    try:
        card = AnswerCard.objects.select_related('question').get(pk=data['answer_card_id'])
    except AnswerCard.DoesNotExist:
        return _error('Answer card not found', status.HTTP_404_NOT_FOUND)
    if card.question.user_id != request.user.id:
        return _error('Unauthorized', status.HTTP_403_FORBIDDEN)

    card.helpful = data['helpful']
    if 'rating' in data:
        card.feedback_rating = data['rating']
    if data.get('comment'):
        card.feedback_comment = data['comment']
    card.save(update_fields=['helpful', 'feedback_rating', 'feedback_comment'])
    return Response({'success': True, 'message': 'Feedback submitted'})


# ---------- mentor side ----------

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsMentor])
def mentor_pending_questions(request):
    questions = Question.objects.filter(
        selected_mentor=request.user,
        status__in=Question.PENDING_FOR_MENTOR,
    )[:20]
    return Response({'success': True, 'questions': MentorQuestionSerializer(questions, many=True).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsMentor])
def mentor_answered_questions(request):
    questions = Question.objects.filter(
        selected_mentor=request.user,
        status__in=Question.ANSWERED_FOR_MENTOR,
    ).select_related('answer_card')[:50]
    return Response({'success': True, 'questions': MentorQuestionSerializer(questions, many=True).data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsMentor])
def mentor_submit_experience(request):
    question_id = request.data.get('question_id')
    raw = request.data.get('raw_experience')
    if not question_id or not isinstance(raw, dict):
        return _error('question_id and raw_experience are required', status.HTTP_400_BAD_REQUEST)

    for field in MentorExperience.REQUIRED_FIELDS:
        if not raw.get(field):
            return _error(f"Missing required field: {field}", status.HTTP_400_BAD_REQUEST)

    serializer = MentorExperienceSerializer(data=raw)
    serializer.is_valid(raise_exception=True)

    try:
        card = submit_experience(
            mentor=request.user,
            question_id=question_id,
            raw_experience=serializer.validated_data,
        )
    except Question.DoesNotExist:
        return _error('Question not found or not assigned to you', status.HTTP_404_NOT_FOUND)
    except AnswerCard.DoesNotExist:
        return _error('Parent answer card not found', status.HTTP_404_NOT_FOUND)
    except QuestionAlreadyAnswered:
        return _error('This question has already been answered', status.HTTP_409_CONFLICT)

    return Response({
        'success': True,
        'message': 'Experience submitted and answer delivered',
        'answer_card_id': card.id,
    }, status=status.HTTP_201_CREATED)

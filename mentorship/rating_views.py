import logging
import math

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, Q
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from .models import Rating
from .moderation import get_moderator
from .serializer import RatingVisibilitySerializer

logger = logging.getLogger(__name__)

User = get_user_model()


def _int_param(value, default, minimum=1, maximum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(minimum, number)
    if maximum is not None:
        number = min(maximum, number)
    return number


def _rating_error(message, code, http_status=status.HTTP_400_BAD_REQUEST):
    return Response({'success': False, 'message': message, 'code': code}, status=http_status)


def mentor_rating_stats(mentor):
    stats = Rating.objects.filter(mentor=mentor, is_public=True).aggregate(
        average=Avg('rating'),
        total=Count('id'),
        five_stars=Count('id', filter=Q(rating=5)),
        four_stars=Count('id', filter=Q(rating=4)),
        three_stars=Count('id', filter=Q(rating=3)),
        two_stars=Count('id', filter=Q(rating=2)),
        one_star=Count('id', filter=Q(rating=1)),
    )
    return {
        'average_rating': round(stats['average'], 1) if stats['average'] is not None else 0,
        'total_ratings': stats['total'],
        'five_stars': stats['five_stars'],
        'four_stars': stats['four_stars'],
        'three_stars': stats['three_stars'],
        'two_stars': stats['two_stars'],
        'one_star': stats['one_star'],
    }


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def submit_rating(request):
    """Rate a mentor once per chat session"""
    data = request.data
    mentor_id = data.get('mentor_id')
    session_id = str(data.get('chat_session_id') or '').strip()
    raw_rating = data.get('rating')

    if not mentor_id:
        return _rating_error('Mentor ID is required', 'MISSING_MENTOR_ID')
    if not session_id:
        return _rating_error('Chat session ID is required', 'MISSING_SESSION_ID')
    if raw_rating in (None, ''):
        return _rating_error('Rating is required', 'MISSING_RATING')
    try:
        rating = int(raw_rating)
    except (TypeError, ValueError):
        rating = 0
    if rating < 1 or rating > 5:
        return _rating_error('Rating must be between 1 and 5', 'INVALID_RATING')

    feedback = str(data.get('feedback_text') or '').strip()
    if len(feedback) > 500:
        return _rating_error('Feedback must be 500 characters or fewer', 'FEEDBACK_TOO_LONG')
    visibility = RatingVisibilitySerializer(data=data)
    if not visibility.is_valid():
        return _rating_error('is_public must be true or false', 'INVALID_VISIBILITY')

    try:
        mentor = User.objects.get(pk=mentor_id, role=User.MENTOR)
    except (User.DoesNotExist, ValueError):
        return _rating_error('Mentor not found', 'MENTOR_NOT_FOUND', status.HTTP_404_NOT_FOUND)

    if Rating.objects.filter(user=request.user, chat_session=session_id).exists():
        return _rating_error('You have already rated this session', 'ALREADY_RATED')

    try:
        with transaction.atomic():
            new_rating = Rating.objects.create(
                mentor=mentor,
                user=request.user,
                chat_session=session_id,
                rating=rating,
                feedback_text=get_moderator().clean(feedback),
                is_public=visibility.validated_data['is_public'],
            )
    except IntegrityError:
        # lost a race against an identical submission
        return _rating_error('You have already rated this session', 'ALREADY_RATED')

    logger.info(f"User {request.user.id} rated mentor {mentor.id} {rating}/5 (session {session_id})")
    return Response({
        'success': True,
        'message': 'Rating submitted successfully',
        'data': {
            'id': new_rating.id,
            'mentor': mentor.id,
            'rating': new_rating.rating,
            'feedback_text': new_rating.feedback_text,
            'chat_session': new_rating.chat_session,
            'created_at': new_rating.created_at.isoformat(),
        },
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def get_mentor_rating(request, mentor_id):
    try:
        mentor = User.objects.get(pk=mentor_id, role=User.MENTOR)
    except User.DoesNotExist:
        return Response({'success': False, 'message': 'Mentor not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'success': True, 'data': mentor_rating_stats(mentor)})


@api_view(['GET'])
@permission_classes([AllowAny])
def get_mentor_reviews(request, mentor_id):
    page = _int_param(request.query_params.get('page'), 1)
    limit = _int_param(request.query_params.get('limit'), 10, maximum=50)
    offset = (page - 1) * limit

    reviews = (
        Rating.objects.filter(mentor_id=mentor_id, is_public=True)
        .exclude(feedback_text='')
        .select_related('user')
    )
    total = reviews.count()
    return Response({
        'success': True,
        'data': {
            'reviews': [
                {
                    'id': review.id,
                    'rating': review.rating,
                    'feedback_text': review.feedback_text,
                    'created_at': review.created_at.isoformat(),
                    'user': {
                        'id': review.user.id,
                        'username': review.user.username,
                        'profile_picture': review.user.profile_picture,
                    },
                }
                for review in reviews[offset:offset + limit]
            ],
            'pagination': {
                'current_page': page,
                'total_pages': math.ceil(total / limit),
                'total_reviews': total,
                'has_more': page * limit < total,
            },
        },
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def get_top_mentors(request):
    limit = _int_param(request.query_params.get('limit'), 10, maximum=50)
    min_ratings = _int_param(request.query_params.get('min_ratings'), 5)

    mentors = (
        User.objects.filter(role=User.MENTOR, is_active=True)
        .annotate(
            average_rating=Avg('ratings_received__rating', filter=Q(ratings_received__is_public=True)),
            total_ratings=Count('ratings_received', filter=Q(ratings_received__is_public=True)),
        )
        .filter(total_ratings__gte=min_ratings)
        .order_by('-average_rating', '-total_ratings', 'id')[:limit]
    )
    return Response({
        'success': True,
        'data': [
            {
                'mentor_id': mentor.id,
                'username': mentor.username,
                'profile_picture': mentor.profile_picture,
                'bio': mentor.bio,
                'expertise': mentor.expertise,
                'average_rating': round(mentor.average_rating, 1),
                'total_ratings': mentor.total_ratings,
            }
            for mentor in mentors
        ],
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def check_session_rated(request, chat_session_id):
    rating = Rating.objects.filter(user=request.user, chat_session=chat_session_id).first()
    return Response({
        'success': True,
        'has_rated': rating is not None,
        'rating': rating.rating if rating else None,
    })

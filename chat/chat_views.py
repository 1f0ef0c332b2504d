import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.exceptions import PermissionDenied
from django.db.models import Avg, Q
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from mentorship.moderation import get_moderator
from mentorship.serializer import MentorSummarySerializer, PublicUserSerializer
from mentorship.throttles import ApiRateThrottle, ChatRateThrottle, ChatInfoRateThrottle

from .models import Message, CommunityMessage
from .serializer import CommunityPostSerializer
from .services import (
    ChatError, InsufficientCredits, MessageRejected, conversation_between, conversations_for, create_auto_reply,
    delete_message, is_viewing, mark_conversation_read, message_events, notify, send_private_message,
    unread_counts
)

logger = logging.getLogger(__name__)

User = get_user_model()

COMMUNITY_PAGE_SIZE = 50
COMMUNITY_MAX_PAGE_SIZE = 100
ONLINE_WINDOW = timedelta(minutes=10)


def _fan_out(sent):
    viewing = is_viewing(sent.message.receiver_id, sent.message.sender_id)
    for user_id, payload in message_events(sent, receiver_viewing=viewing):
        notify(user_id, payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, ChatInfoRateThrottle])
def get_conversations(request):
    """Contacts of the current user, most recent first"""
    conversations = conversations_for(request.user)
    return Response([
        {
            'partner': PublicUserSerializer(entry['partner']).data,
            'last_message': entry['last_message'].as_event(),
            'unread_count': entry['unread_count'],
        }
        for entry in conversations
    ])


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, ChatInfoRateThrottle])
def get_unread_counts(request):
    counts = unread_counts(request.user)
    return Response({
        'counts': {str(partner_id): count for partner_id, count in counts.items()},
        'total': sum(counts.values()),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def mark_read(request, partner_id):
    ids = mark_conversation_read(user=request.user, partner_id=partner_id)
    now = timezone.now().isoformat()
    for message_id in ids:
        notify(partner_id, {
            'type': 'message_status',
            'message_id': message_id,
            'status': Message.READ,
            'seen': True,
            'read_at': now,
        })
    return Response({'success': True, 'marked': len(ids), 'unread_count': 0})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, ChatInfoRateThrottle])
def get_chat_history(request, user1_id, user2_id):
    if request.user.id not in (user1_id, user2_id):
        return Response({'error': 'You can only read your own conversations'}, status=status.HTTP_403_FORBIDDEN)
    messages = conversation_between(user1_id, user2_id)
    return Response([message.as_event() for message in messages])


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, ChatRateThrottle])
def send_message(request):
    """Send a private message over REST; same rules as the websocket path"""
    data = request.data
    sender_id = data.get('sender')
    if sender_id is not None and str(sender_id) != str(request.user.id):
        return Response({'error': 'Unauthorized'}, status=status.HTTP_403_FORBIDDEN)

    try:
        sent = send_private_message(
            sender=request.user,
            receiver_id=data.get('receiver'),
            text=data.get('text') or data.get('message'),
        )
    except InsufficientCredits as e:
        notify(request.user.id, {
            'type': 'insufficient_credits',
            'message': str(e),
            'message_credits': e.credits,
        })
        return Response({
            'error': 'insufficient_credits',
            'message': str(e),
            'message_credits': e.credits,
        }, status=status.HTTP_402_PAYMENT_REQUIRED)
    except MessageRejected as e:
        return Response({'error': e.reason}, status=status.HTTP_400_BAD_REQUEST)
    except ChatError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    _fan_out(sent)
    reply = create_auto_reply(message=sent.message)
    if reply is not None:
        _fan_out(reply)

    return Response({
        **sent.message.as_event(),
        'message_credits': sent.credits_left,
    }, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def remove_message(request, message_id):
    try:
        deleted = delete_message(user=request.user, message_id=message_id)
    except Message.DoesNotExist:
        return Response({'error': 'Message not found'}, status=status.HTTP_404_NOT_FOUND)
    except PermissionDenied as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

    event = {'type': 'message_deleted', **deleted}
    notify(deleted['sender'], event)
    notify(deleted['receiver'], event)
    return Response({'success': True, **deleted})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, ChatInfoRateThrottle])
def list_mentors(request):
    """Mentor directory for starting a chat"""
    mentors = (
        User.objects.filter(role=User.MENTOR, is_active=True)
        .exclude(pk=request.user.pk)
        .annotate(rating_average=Avg('ratings_received__rating', filter=Q(ratings_received__is_public=True)))
        .order_by('-last_active', 'username')
    )
    search = (request.query_params.get('search') or '').strip()
    if search:
        mentors = mentors.filter(
            Q(username__icontains=search) | Q(institution_name__icontains=search) | Q(bio__icontains=search)
        )
    return Response(MentorSummarySerializer(mentors, many=True).data)


# ---------- community chat ----------

def _community_row(message):
    return {
        'id': message.id,
        'text': message.text,
        'is_anonymous': message.is_anonymous,
        'sender': None if message.is_anonymous else {
            'id': message.sender_id,
            'username': message.sender.username,
            'profile_picture': message.sender.profile_picture,
        },
        'sender_name': 'Anonymous' if message.is_anonymous else message.sender.username,
        'created_at': message.created_at.isoformat(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, ChatInfoRateThrottle])
def community_messages(request):
    try:
        limit = int(request.query_params.get('limit', COMMUNITY_PAGE_SIZE))
    except ValueError:
        limit = COMMUNITY_PAGE_SIZE
    limit = max(1, min(limit, COMMUNITY_MAX_PAGE_SIZE))

    recent = CommunityMessage.objects.select_related('sender')[:limit]
    return Response([_community_row(message) for message in reversed(list(recent))])


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, ChatRateThrottle])
def community_send(request):
    serializer = CommunityPostSerializer(data=request.data)
    if not serializer.is_valid():
        errors = next(iter(serializer.errors.values()))
        return Response({'error': str(errors[0])}, status=status.HTTP_400_BAD_REQUEST)

    message = CommunityMessage.objects.create(
        sender=request.user,
        text=get_moderator().clean(serializer.validated_data['text']),
        is_anonymous=serializer.validated_data['is_anonymous'],
    )
    logger.info(f"Community message {message.id} posted by user {request.user.id}")
    return Response(_community_row(message), status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
@throttle_classes([ApiRateThrottle, ChatInfoRateThrottle])
def community_online_users(request):
    since = timezone.now() - ONLINE_WINDOW
    sender_ids = set(
        CommunityMessage.objects.filter(created_at__gte=since).values_list('sender_id', flat=True)
    )
    sender_ids.add(request.user.id)
    users = User.objects.filter(pk__in=sender_ids, is_active=True).order_by('username')
    return Response({
        'count': len(users),
        'users': [
            {'id': user.id, 'username': user.username, 'profile_picture': user.profile_picture}
            for user in users
        ],
    })

"""
Private chat: sending with credit accounting, status acknowledgments, unread
counters and the fan-out of websocket events.

The functions here are synchronous; the websocket consumer calls them through
``database_sync_to_async`` and the REST views call them directly. Each public
function keeps its writes in one transaction so a message, the sender's credit
and the receiver's unread counter never drift apart.
"""
import logging
from typing import NamedTuple, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.db.models import Count, DateTimeField, F, OuterRef, Q, Subquery, Value
from django.db.models.functions import Coalesce, Greatest
from django.utils import timezone

from mentorship.moderation import get_moderator

from .models import Message, UnreadCounter

logger = logging.getLogger(__name__)

User = get_user_model()

ACTIVE_CHAT_TTL = 60 * 60
PREVIEW_LENGTH = 100

AUTO_REPLY_TEMPLATE = (
    "Hi! This is an automated message from {name}.\n"
    "I'm here to help you with your question. Please share your query in detail so I can guide you "
    "in the best way possible.\n"
    "If I'm unable to reply within 48 hours, feel free to reach out again or connect with another "
    "mentor — we're here to support you.\n"
    "Thank you for your patience! 🙏"
)


class ChatError(Exception):
    pass


class InsufficientCredits(ChatError):
    def __init__(self, credits=0):
        super().__init__("You have no message credits left")
        self.credits = credits


class MessageRejected(ChatError):
    def __init__(self, reason):
        super().__init__(reason)
        self.reason = reason


class SentMessage(NamedTuple):
    message: Message
    credits_left: Optional[int]
    unread_count: int


def group_name(user_id):
    return f"user_{user_id}"


def active_chat_key(user_id):
    return f"chat:active:{user_id}"


def is_viewing(user_id, partner_id):
    return cache.get(active_chat_key(user_id)) == int(partner_id)


def notify(user_id, payload):
    """Push one event to every socket of a user from synchronous code."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)(group_name(user_id), {"type": "chat.event", "payload": payload})


def touch_last_active(user_id):
    User.objects.filter(pk=user_id).update(last_active=timezone.now())


def _bump_unread(user_id, partner_id):
    counter, _ = UnreadCounter.objects.get_or_create(user_id=user_id, partner_id=partner_id)
    UnreadCounter.objects.filter(pk=counter.pk).update(count=F("count") + 1)
    return UnreadCounter.objects.values_list("count", flat=True).get(pk=counter.pk)


def _drop_unread(user_id, partner_id, amount):
    UnreadCounter.objects.filter(user_id=user_id, partner_id=partner_id).update(
        count=Greatest(F("count") - amount, Value(0))
    )
    return unread_count(user_id, partner_id)


def unread_count(user_id, partner_id):
    return (
        UnreadCounter.objects.filter(user_id=user_id, partner_id=partner_id)
        .values_list("count", flat=True)
        .first()
    ) or 0


def unread_counts(user):
    return dict(
        UnreadCounter.objects.filter(user=user, count__gt=0).values_list("partner_id", "count")
    )


def send_private_message(*, sender, receiver_id, text):
    text = (text or "").strip()
    if not text:
        raise MessageRejected("Message text is required")

    moderator = get_moderator()
    verdict = moderator.is_appropriate_content(text)
    if not verdict.is_appropriate:
        raise MessageRejected(verdict.reason)

    try:
        receiver = User.objects.get(pk=receiver_id, is_active=True)
    except (User.DoesNotExist, ValueError, TypeError):
        raise ChatError("Receiver not found")
    if receiver.pk == sender.pk:
        raise ChatError("You cannot message yourself")

    with transaction.atomic():
        locked = User.objects.select_for_update().get(pk=sender.pk)
        if locked.role == User.USER:
            if locked.message_credits <= 0:
                raise InsufficientCredits(locked.message_credits)
            locked.message_credits -= 1
            locked.save(update_fields=["message_credits"])

        message = Message.objects.create(sender=locked, receiver=receiver, text=moderator.clean(text))
        unread = _bump_unread(receiver.pk, locked.pk)
        first_contact = not Message.objects.filter(sender=locked, receiver=receiver).exclude(pk=message.pk).exists()
        if receiver.role == User.MENTOR and first_contact:
            User.objects.filter(pk=receiver.pk).update(total_chats=F("total_chats") + 1)

    sender.message_credits = locked.message_credits
    logger.info(f"Message {message.id} from user {sender.pk} to user {receiver.pk} "
                f"({locked.message_credits} credits left)")
    return SentMessage(message, locked.message_credits, unread)


def create_auto_reply(*, message):
    """First contact from a student gets a canned greeting from the mentor."""
    if not settings.MENTOR_AUTO_REPLY_ENABLED:
        return None
    student, mentor = message.sender, message.receiver
    if student.role != User.USER or mentor.role != User.MENTOR:
        return None
    if Message.objects.filter(sender=mentor, receiver=student).exists():
        return None
    if Message.objects.filter(sender=student, receiver=mentor).count() != 1:
        return None

    with transaction.atomic():
        reply = Message.objects.create(
            sender=mentor,
            receiver=student,
            text=AUTO_REPLY_TEMPLATE.format(name=mentor.get_full_name() or mentor.username),
            is_auto_reply=True,
        )
        unread = _bump_unread(student.pk, mentor.pk)

    logger.info(f"Auto-reply {reply.id} sent from mentor {mentor.pk} to user {student.pk}")
    return SentMessage(reply, None, unread)


def message_events(sent, receiver_viewing=False):
    """(user_id, payload) pairs announcing a newly stored message."""
    message = sent.message
    data = message.as_event()
    echo = {"type": "receive_private_message", **data}
    if sent.credits_left is not None:
        echo["message_credits"] = sent.credits_left

    events = [
        (message.receiver_id, {"type": "receive_private_message", **data}),
        (message.sender_id, echo),
        (message.receiver_id, {
            "type": "new_message",
            "message": data,
            "sender": message.sender_id,
            "unread_count": sent.unread_count,
        }),
    ]
    if not receiver_viewing:
        events.append((message.receiver_id, {
            "type": "chat_notification",
            "sender_id": message.sender_id,
            "sender_name": message.sender.username,
            "sender_avatar": message.sender.profile_picture,
            "preview": message.text[:PREVIEW_LENGTH],
            "message_id": message.id,
            "unread_count": sent.unread_count,
            "timestamp": data["timestamp"],
        }))
    return events


def _acknowledged(message_id, user):
    message = Message.objects.get(pk=message_id)
    if message.receiver_id != user.pk:
        raise PermissionDenied("Only the receiver can acknowledge a message")
    return message


def mark_delivered(*, user, message_id):
    """sent -> delivered. Returns the message, or None when it had already moved on."""
    message = _acknowledged(message_id, user)
    updated = Message.objects.filter(pk=message.pk, status=Message.SENT).update(
        status=Message.DELIVERED,
        delivered_at=timezone.now(),
    )
    if not updated:
        return None
    message.refresh_from_db()
    return message


def mark_read(*, user, message_id):
    """Any unread status -> read. Returns (message, unread_count), or None when already read."""
    message = _acknowledged(message_id, user)
    now = timezone.now()
    with transaction.atomic():
        updated = Message.objects.filter(pk=message.pk).exclude(status=Message.READ).update(
            status=Message.READ,
            seen=True,
            read_at=now,
            delivered_at=Coalesce("delivered_at", Value(now, output_field=DateTimeField())),
        )
        if not updated:
            return None
        unread = _drop_unread(user.pk, message.sender_id, 1)
    message.refresh_from_db()
    return message, unread


def mark_conversation_read(*, user, partner_id):
    """Reads every unseen message from partner and zeroes the counter. Returns the message ids."""
    now = timezone.now()
    with transaction.atomic():
        unseen = Message.objects.filter(sender_id=partner_id, receiver=user).exclude(status=Message.READ)
        ids = list(unseen.values_list("id", flat=True))
        Message.objects.filter(pk__in=ids).exclude(status=Message.READ).update(
            status=Message.READ,
            seen=True,
            read_at=now,
            delivered_at=Coalesce("delivered_at", Value(now, output_field=DateTimeField())),
        )
        UnreadCounter.objects.filter(user=user, partner_id=partner_id).update(count=0)
    if ids:
        logger.info(f"User {user.pk} read {len(ids)} messages from user {partner_id}")
    return ids


def delete_message(*, user, message_id):
    with transaction.atomic():
        message = Message.objects.select_for_update().get(pk=message_id)
        if message.sender_id != user.pk:
            raise PermissionDenied("You can only delete your own messages")
        if message.status != Message.READ:
            _drop_unread(message.receiver_id, message.sender_id, 1)
        deleted = {"message_id": message.pk, "sender": message.sender_id, "receiver": message.receiver_id}
        message.delete()
    logger.info(f"User {user.pk} deleted message {deleted['message_id']}")
    return deleted


def conversation_between(user1_id, user2_id):
    return Message.objects.filter(
        Q(sender_id=user1_id, receiver_id=user2_id) |
        Q(sender_id=user2_id, receiver_id=user1_id)
    ).order_by("timestamp", "id")


def conversations_for(user):
    """Contacts ordered by most recent message, with the last message and unread count."""
    thread = Message.objects.filter(
        Q(sender=user, receiver=OuterRef("pk")) | Q(sender=OuterRef("pk"), receiver=user)
    ).order_by("-timestamp", "-id")
    partners = list(
        User.objects.filter(
            Q(pk__in=Message.objects.filter(sender=user).values("receiver"))
            | Q(pk__in=Message.objects.filter(receiver=user).values("sender"))
        )
        .annotate(
            last_message_id=Subquery(thread.values("id")[:1]),
            last_message_at=Subquery(thread.values("timestamp")[:1]),
        )
        .order_by("-last_message_at", "-last_message_id")
    )

    messages = Message.objects.in_bulk([partner.last_message_id for partner in partners])
    counts = unread_counts(user)
    return [
        {
            "partner": partner,
            "last_message": messages[partner.last_message_id],
            "unread_count": counts.get(partner.pk, 0),
        }
        for partner in partners
    ]


def rebuild_unread_counters():
    """Recomputes every counter from the unseen messages. Returns the number of non-zero counters."""
    with transaction.atomic():
        UnreadCounter.objects.all().delete()
        totals = (
            Message.objects.exclude(status=Message.READ)
            .values("receiver_id", "sender_id")
            .annotate(total=Count("id"))
            .order_by()
        )
        counters = UnreadCounter.objects.bulk_create([
            UnreadCounter(user_id=row["receiver_id"], partner_id=row["sender_id"], count=row["total"])
            for row in totals
        ])
    return len(counters)

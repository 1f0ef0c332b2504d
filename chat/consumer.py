import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.core.cache import cache
from django.core.exceptions import PermissionDenied

from .models import Message
from .services import (
    ACTIVE_CHAT_TTL, ChatError, InsufficientCredits, MessageRejected, active_chat_key, create_auto_reply,
    group_name, mark_delivered, mark_read, message_events, send_private_message, touch_last_active
)

logger = logging.getLogger(__name__)

UNAUTHENTICATED = 4401


def _as_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class ChatGatewayConsumer(AsyncWebsocketConsumer):
    """
    One socket per browser tab. Every socket of a user sits in the ``user_<id>``
    group, so events addressed to a user reach all of their open tabs.

    Frames in both directions are JSON objects whose ``type`` names the event.
    """

    async def connect(self):
        self.user = self.scope.get("user")
        if self.user is None or not self.user.is_authenticated:
            await self.close(code=UNAUTHENTICATED)
            return

        self.groups_joined = set()
        await self.accept()
        await self.join(group_name(self.user.id))
        await database_sync_to_async(touch_last_active)(self.user.id)
        logger.info(f"Chat socket opened for user {self.user.id}")

    async def disconnect(self, close_code):
        for group in getattr(self, "groups_joined", ()):
            await self.channel_layer.group_discard(group, self.channel_name)
        if getattr(self, "user", None) is not None and self.user.is_authenticated:
            await self.forget_active_chat()
            logger.info(f"Chat socket closed for user {self.user.id} (code {close_code})")

    async def join(self, group):
        if group not in self.groups_joined:
            await self.channel_layer.group_add(group, self.channel_name)
            self.groups_joined.add(group)

    async def receive(self, text_data=None, bytes_data=None):
        try:
            content = json.loads(text_data or "")
        except ValueError:
            await self.send_event({"type": "message_error", "error": "Malformed frame"})
            return
        if not isinstance(content, dict):
            await self.send_event({"type": "message_error", "error": "Malformed frame"})
            return

        handler = self.handlers.get(content.get("type"))
        if handler is None:
            await self.send_event({"type": "message_error", "error": f"Unknown event: {content.get('type')}"})
            return
        await handler(self, content)

    # ---------- client -> server ----------

    async def join_user_room(self, content):
        if _as_id(content.get("user_id")) != self.user.id:
            await self.send_event({"type": "message_error", "error": "You can only join your own room"})
            return
        await self.join(group_name(self.user.id))

    async def private_message(self, content):
        receiver_id = _as_id(content.get("receiver"))
        claimed_sender = content.get("sender")
        if claimed_sender is not None and _as_id(claimed_sender) != self.user.id:
            await self.send_event({"type": "message_error", "error": "Sender does not match the connection"})
            return
        if receiver_id is None:
            await self.send_event({"type": "message_error", "error": "Receiver is required"})
            return

        try:
            sent = await database_sync_to_async(send_private_message)(
                sender=self.user, receiver_id=receiver_id, text=content.get("text")
            )
        except InsufficientCredits as e:
            await self.send_event({
                "type": "insufficient_credits",
                "message": str(e),
                "message_credits": e.credits,
            })
            return
        except MessageRejected as e:
            await self.send_event({"type": "message_error", "error": e.reason})
            return
        except ChatError as e:
            await self.send_event({"type": "message_error", "error": str(e)})
            return

        await self.fan_out(sent)
        reply = await database_sync_to_async(create_auto_reply)(message=sent.message)
        if reply is not None:
            await self.fan_out(reply)

    async def message_delivered(self, content):
        message_id = _as_id(content.get("message_id"))
        try:
            message = await database_sync_to_async(mark_delivered)(user=self.user, message_id=message_id)
        except (Message.DoesNotExist, ValueError):
            await self.send_event({"type": "message_error", "error": "Message not found"})
            return
        except PermissionDenied as e:
            await self.send_event({"type": "message_error", "error": str(e)})
            return
        if message is None:
            return

        status = {
            "message_id": message.id,
            "status": message.status,
            "delivered_at": message.delivered_at.isoformat(),
        }
        await self.emit(message.sender_id, {"type": "message_status", **status})
        await self.emit(self.user.id, {"type": "message_status_update", **status})

    async def message_read(self, content):
        message_id = _as_id(content.get("message_id"))
        try:
            result = await database_sync_to_async(mark_read)(user=self.user, message_id=message_id)
        except (Message.DoesNotExist, ValueError):
            await self.send_event({"type": "message_error", "error": "Message not found"})
            return
        except PermissionDenied as e:
            await self.send_event({"type": "message_error", "error": str(e)})
            return
        if result is None:
            return

        message, unread = result
        status = {
            "message_id": message.id,
            "status": message.status,
            "seen": message.seen,
            "delivered_at": message.delivered_at.isoformat(),
            "read_at": message.read_at.isoformat(),
        }
        await self.emit(message.sender_id, {"type": "message_status", **status})
        await self.emit(self.user.id, {
            "type": "message_status_update",
            "partner_id": message.sender_id,
            "unread_count": unread,
            **status,
        })

    async def enter_chat(self, content):
        partner_id = _as_id(content.get("partner_id"))
        if partner_id is not None:
            await cache.aset(active_chat_key(self.user.id), partner_id, timeout=ACTIVE_CHAT_TTL)

    async def leave_chat(self, content):
        partner_id = _as_id(content.get("partner_id"))
        if partner_id is not None and await cache.aget(active_chat_key(self.user.id)) == partner_id:
            await cache.adelete(active_chat_key(self.user.id))

    async def typing(self, content):
        await self.relay_typing(content, True)

    async def stop_typing(self, content):
        await self.relay_typing(content, False)

    handlers = {
        "join_user_room": join_user_room,
        "private_message": private_message,
        "message_delivered": message_delivered,
        "message_read": message_read,
        "enter_chat": enter_chat,
        "leave_chat": leave_chat,
        "typing": typing,
        "stop_typing": stop_typing,
    }

    # ---------- helpers ----------

    async def relay_typing(self, content, is_typing):
        receiver_id = _as_id(content.get("receiver"))
        if receiver_id is not None and receiver_id != self.user.id:
            await self.emit(receiver_id, {"type": "user_typing", "sender": self.user.id, "is_typing": is_typing})

    async def fan_out(self, sent):
        viewing = await cache.aget(active_chat_key(sent.message.receiver_id)) == sent.message.sender_id
        for user_id, payload in message_events(sent, receiver_viewing=viewing):
            await self.emit(user_id, payload)

    async def forget_active_chat(self):
        await cache.adelete(active_chat_key(self.user.id))

    async def emit(self, user_id, payload):
        await self.channel_layer.group_send(group_name(user_id), {"type": "chat.event", "payload": payload})

    async def send_event(self, payload):
        await self.send(text_data=json.dumps(payload))

    # ---------- group -> socket ----------

    async def chat_event(self, event):
        await self.send_event(event["payload"])

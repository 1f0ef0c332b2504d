import pytest
from channels.db import database_sync_to_async
from channels.testing import WebsocketCommunicator

from chat.models import Message
from mentorship.models import User

from .helpers import communicator_for, make_user, receive_until

pytestmark = [pytest.mark.asyncio, pytest.mark.django_db(transaction=True)]


@database_sync_to_async
def fetch_message(message_id):
    return Message.objects.get(pk=message_id)


@database_sync_to_async
def message_credits(user):
    return User.objects.get(pk=user.pk).message_credits


@database_sync_to_async
def message_count():
    return Message.objects.count()


async def connect(application, user):
    communicator = communicator_for(application, user)
    connected, _ = await communicator.connect()
    assert connected
    return communicator


async def test_connection_without_token_is_refused(ws_application):
    communicator = communicator_for(ws_application)
    connected, code = await communicator.connect()
    assert not connected
    assert code == 4401


async def test_connection_with_bad_token_is_refused(ws_application):
    communicator = WebsocketCommunicator(ws_application, "/ws/chat/?token=not-a-jwt")
    connected, code = await communicator.connect()
    assert not connected
    assert code == 4401


async def test_message_goes_sent_delivered_read(ws_application, student, mentor):
    asha = await connect(ws_application, student)
    ravi = await connect(ws_application, mentor)

    await asha.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "Hello"})
    echo = await receive_until(asha, "receive_private_message")
    assert echo["status"] == Message.SENT
    assert echo["message_credits"] == 1

    incoming = await receive_until(ravi, "receive_private_message")
    message_id = incoming["_id"]
    assert incoming["text"] == "Hello"
    assert "message_credits" not in incoming
    new_message = await receive_until(ravi, "new_message")
    assert new_message["unread_count"] == 1

    await ravi.send_json_to({"type": "message_delivered", "message_id": message_id, "sender": student.id})
    status = await receive_until(asha, "message_status")
    assert status["message_id"] == message_id
    assert status["status"] == Message.DELIVERED
    assert status["delivered_at"]
    assert (await fetch_message(message_id)).status == Message.DELIVERED
    update = await receive_until(ravi, "message_status_update")
    assert update["status"] == Message.DELIVERED

    await ravi.send_json_to({
        "type": "message_read", "message_id": message_id, "sender": student.id, "receiver": mentor.id,
    })
    status = await receive_until(asha, "message_status")
    assert status["status"] == Message.READ
    update = await receive_until(ravi, "message_status_update")
    assert update["status"] == Message.READ
    assert update["unread_count"] == 0

    message = await fetch_message(message_id)
    assert message.status == Message.READ
    assert message.seen
    assert message.delivered_at is not None
    assert await message_credits(student) == 1

    await asha.disconnect()
    await ravi.disconnect()


async def test_read_before_delivered_does_not_regress(ws_application, student, mentor):
    asha = await connect(ws_application, student)
    ravi = await connect(ws_application, mentor)

    await asha.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "Quick question"})
    incoming = await receive_until(ravi, "receive_private_message")
    message_id = incoming["_id"]

    await ravi.send_json_to({"type": "message_read", "message_id": message_id})
    await receive_until(asha, "message_status")
    await ravi.send_json_to({"type": "message_delivered", "message_id": message_id})
    await ravi.send_json_to({"type": "unknown_event"})
    await receive_until(ravi, "message_error")

    message = await fetch_message(message_id)
    assert message.status == Message.READ
    assert message.delivered_at == message.read_at

    await asha.disconnect()
    await ravi.disconnect()


async def test_out_of_credits_emits_exactly_one_event(ws_application, mentor):
    broke = await database_sync_to_async(make_user)("broke", message_credits=0)
    sender = await connect(ws_application, broke)

    await sender.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "Hello"})
    event = await sender.receive_json_from(timeout=2)
    assert event["type"] == "insufficient_credits"
    assert event["message_credits"] == 0
    assert await sender.receive_nothing(timeout=0.3)
    assert await message_count() == 0

    await sender.disconnect()


async def test_mentor_messages_do_not_spend_credits(ws_application, student, mentor):
    await database_sync_to_async(User.objects.filter(pk=mentor.pk).update)(message_credits=0)
    ravi = await connect(ws_application, mentor)

    await ravi.send_json_to({"type": "private_message", "receiver": student.id, "text": "Happy to help"})
    echo = await receive_until(ravi, "receive_private_message")
    assert echo["message_credits"] == 0
    assert await message_count() == 1

    await ravi.disconnect()


async def test_blocked_language_is_rejected_over_the_socket(ws_application, student, mentor):
    asha = await connect(ws_application, student)

    await asha.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "this is shit"})
    error = await receive_until(asha, "message_error")
    assert error["error"] == "Message contains inappropriate language"
    assert await message_count() == 0
    assert await message_credits(student) == 2

    await asha.disconnect()


async def test_sender_must_match_the_connection(ws_application, student, mentor):
    asha = await connect(ws_application, student)

    await asha.send_json_to({
        "type": "private_message", "sender": mentor.id, "receiver": student.id, "text": "Hello",
    })
    error = await receive_until(asha, "message_error")
    assert "Sender" in error["error"]
    assert await message_count() == 0

    await asha.disconnect()


async def test_cannot_join_another_users_room(ws_application, student, mentor):
    asha = await connect(ws_application, student)

    await asha.send_json_to({"type": "join_user_room", "user_id": mentor.id})
    error = await receive_until(asha, "message_error")
    assert error["error"] == "You can only join your own room"

    await asha.disconnect()


async def test_only_the_receiver_acknowledges(ws_application, student, mentor):
    asha = await connect(ws_application, student)

    await asha.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "Hello"})
    echo = await receive_until(asha, "receive_private_message")
    await asha.send_json_to({"type": "message_read", "message_id": echo["_id"]})
    error = await receive_until(asha, "message_error")
    assert error["error"] == "Only the receiver can acknowledge a message"
    assert (await fetch_message(echo["_id"])).status == Message.SENT

    await asha.disconnect()


async def test_notification_is_suppressed_while_viewing_the_thread(ws_application, student, mentor):
    asha = await connect(ws_application, student)
    ravi = await connect(ws_application, mentor)

    await asha.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "First"})
    notification = await receive_until(ravi, "chat_notification")
    assert notification["sender_id"] == student.id
    assert notification["preview"] == "First"

    await ravi.send_json_to({"type": "enter_chat", "partner_id": student.id})
    # frames are handled in order; the error proves enter_chat was processed
    await ravi.send_json_to({"type": "ping"})
    await receive_until(ravi, "message_error")

    await asha.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "Second"})
    await receive_until(ravi, "receive_private_message")
    new_message = await receive_until(ravi, "new_message")
    assert new_message["unread_count"] == 2
    assert await ravi.receive_nothing(timeout=0.3)

    await asha.disconnect()
    await ravi.disconnect()


async def test_typing_is_relayed(ws_application, student, mentor):
    asha = await connect(ws_application, student)
    ravi = await connect(ws_application, mentor)

    await asha.send_json_to({"type": "typing", "receiver": mentor.id})
    event = await receive_until(ravi, "user_typing")
    assert event == {"type": "user_typing", "sender": student.id, "is_typing": True}

    await asha.send_json_to({"type": "stop_typing", "receiver": mentor.id})
    event = await receive_until(ravi, "user_typing")
    assert event["is_typing"] is False

    await asha.disconnect()
    await ravi.disconnect()


async def test_first_message_to_a_mentor_gets_an_auto_reply(ws_application, settings, student, mentor):
    settings.MENTOR_AUTO_REPLY_ENABLED = True
    asha = await connect(ws_application, student)

    await asha.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "Hello"})
    await receive_until(asha, "receive_private_message")
    reply = await receive_until(asha, "receive_private_message")
    assert reply["is_auto_reply"] is True
    assert reply["sender"] == mentor.id
    assert "48 hours" in reply["text"]

    await asha.send_json_to({"type": "private_message", "receiver": mentor.id, "text": "Are you there?"})
    await receive_until(asha, "receive_private_message")
    assert await message_count() == 3

    await asha.disconnect()

from channels.testing import WebsocketCommunicator
from rest_framework.test import APIClient

from mentorship.models import User
from mentorship.serializer import issue_tokens

PASSWORD = "StrongPass!234"


def make_user(username, role=User.USER, **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password=PASSWORD,
        role=role,
        **extra
    )


def client_for(user):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_tokens(user)['access']}")
    return client


def communicator_for(application, user=None):
    path = "/ws/chat/"
    if user is not None:
        path += f"?token={issue_tokens(user)['access']}"
    return WebsocketCommunicator(application, path)


async def receive_until(communicator, event_type, timeout=2):
    """Skip frames until one of the given type arrives."""
    while True:
        frame = await communicator.receive_json_from(timeout=timeout)
        if frame.get("type") == event_type:
            return frame

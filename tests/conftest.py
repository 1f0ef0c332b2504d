import pytest
from channels.routing import URLRouter
from django.core.cache import cache
from rest_framework.test import APIClient

from chat.middleware import JwtAuthMiddleware
from chat.routing import websocket_urlpatterns
from mentorship.models import User

from .helpers import client_for, make_user


@pytest.fixture(autouse=True)
def clear_cache():
    """Throttle history and active-chat hints live in the cache."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def auto_reply_off(settings):
    settings.MENTOR_AUTO_REPLY_ENABLED = False


@pytest.fixture
def student(db):
    return make_user("asha", message_credits=2, credits=1)


@pytest.fixture
def mentor(db):
    return make_user(
        "ravi",
        role=User.MENTOR,
        bio="Product manager, ex-startup founder",
        expertise=["Product Management", "Startups", "Interview Preparation"],
        institution_name="IIM Ahmedabad",
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def student_client(student):
    return client_for(student)


@pytest.fixture
def mentor_client(mentor):
    return client_for(mentor)


@pytest.fixture
def ws_application():
    return JwtAuthMiddleware(URLRouter(websocket_urlpatterns))

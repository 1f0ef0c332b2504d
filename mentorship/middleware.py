import json
import logging

from django.conf import settings
from django.http import JsonResponse

from .moderation import get_moderator, REJECTION_MESSAGE

logger = logging.getLogger(__name__)


class ContentModerationMiddleware:
    """
    Rejects JSON writes under the moderated API prefixes when one of the
    text fields fails moderation. Runs before the view, so nothing is stored.
    """
    methods = ('POST', 'PUT', 'PATCH')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if self._should_inspect(request):
            rejection = self._check(request)
            if rejection is not None:
                return rejection
        return self.get_response(request)

    def _should_inspect(self, request):
        if request.method not in self.methods:
            return False
        if request.content_type != 'application/json':
            return False
        return request.path.startswith(tuple(settings.MODERATED_PATH_PREFIXES))

    def _check(self, request):
        try:
            payload = json.loads(request.body or b'{}')
        except (ValueError, UnicodeDecodeError):
            # malformed bodies are the parser's problem, not ours
            return None
        if not isinstance(payload, dict):
            return None

        moderator = get_moderator()
        for field in settings.MODERATED_FIELDS:
            value = payload.get(field)
            if not isinstance(value, str):
                continue
            result = moderator.is_appropriate_content(value)
            if not result.is_appropriate:
                user_id = getattr(request.user, 'id', None) if hasattr(request, 'user') else None
                logger.warning(f"Moderation rejected field '{field}' on {request.path} (user {user_id}): {result.reason}")
                return JsonResponse({
                    'success': False,
                    'message': REJECTION_MESSAGE,
                    'details': result.reason,
                }, status=400)
        return None

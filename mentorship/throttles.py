from rest_framework.throttling import UserRateThrottle


class ApiRateThrottle(UserRateThrottle):
    scope = 'api'


class ChatRateThrottle(UserRateThrottle):
    scope = 'chat'


class ChatInfoRateThrottle(UserRateThrottle):
    scope = 'chat_info'


class QuestionRateThrottle(UserRateThrottle):
    scope = 'questions'

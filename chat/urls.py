from django.urls import path

from . import chat_views

urlpatterns = [
    path('conversations/', chat_views.get_conversations, name='get_conversations'),
    path('conversations/unread/', chat_views.get_unread_counts, name='get_unread_counts'),
    path('conversations/<int:partner_id>/read/', chat_views.mark_read, name='mark_conversation_read'),
    path('messages/send/', chat_views.send_message, name='send_message'),
    path('messages/<int:user1_id>/<int:user2_id>/', chat_views.get_chat_history, name='get_chat_history'),
    path('messages/<int:message_id>/', chat_views.remove_message, name='delete_message'),
    path('mentors/', chat_views.list_mentors, name='list_mentors'),
    path('community-chat/messages/', chat_views.community_messages, name='community_messages'),
    path('community-chat/send/', chat_views.community_send, name='community_send'),
    path('community-chat/online-users/', chat_views.community_online_users, name='community_online_users'),
]

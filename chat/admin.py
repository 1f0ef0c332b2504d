from django.contrib import admin

from .models import Message, UnreadCounter, CommunityMessage


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'sender', 'receiver', 'get_preview', 'status', 'is_auto_reply', 'timestamp']
    list_filter = ['status', 'is_auto_reply']
    search_fields = ['text', 'sender__username', 'receiver__username']
    ordering = ['-timestamp']
    raw_id_fields = ['sender', 'receiver']

    def get_preview(self, obj):
        return obj.text[:40]

    get_preview.short_description = 'Text'


@admin.register(UnreadCounter)
class UnreadCounterAdmin(admin.ModelAdmin):
    list_display = ['user', 'partner', 'count', 'updated_at']
    raw_id_fields = ['user', 'partner']


@admin.register(CommunityMessage)
class CommunityMessageAdmin(admin.ModelAdmin):
    list_display = ['id', 'sender', 'is_anonymous', 'get_preview', 'created_at']
    list_filter = ['is_anonymous']
    search_fields = ['text', 'sender__username']
    ordering = ['-created_at']

    def get_preview(self, obj):
        return obj.text[:40]

    get_preview.short_description = 'Text'

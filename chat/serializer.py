from rest_framework import serializers

COMMUNITY_MAX_LENGTH = 1000


class CommunityPostSerializer(serializers.Serializer):
    text = serializers.CharField(
        max_length=COMMUNITY_MAX_LENGTH,
        error_messages={
            'required': 'Message text is required',
            'blank': 'Message text is required',
            'null': 'Message text is required',
            'max_length': f"Message must be {COMMUNITY_MAX_LENGTH} characters or fewer",
        },
    )
    is_anonymous = serializers.BooleanField(default=False)

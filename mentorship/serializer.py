import logging

from django.conf import settings
from django.contrib.auth import get_user_model, authenticate
from django.contrib.auth.password_validation import validate_password
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from rest_framework import serializers
from rest_framework_simplejwt.tokens import RefreshToken

from .models import OTP, Question, MentorExperience, AnswerCard

logger = logging.getLogger(__name__)

User = get_user_model()


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    # copied into the access token as well
    refresh['username'] = user.username
    refresh['role'] = user.role
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }


def auth_payload(user):
    return {
        'user': {
            'id': user.id,
            'username': user.username,
            'email': user.email,
            'role': user.role,
        },
        'tokens': issue_tokens(user),
    }


class StringListField(serializers.ListField):
    child = serializers.CharField(max_length=100, allow_blank=False)


class SignupSerializer(serializers.ModelSerializer):
    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password]
    )
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'role']
        extra_kwargs = {
            'email': {'required': True, 'validators': []},
            'username': {'required': True, 'validators': []},
        }

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("User with this email already exists.")
        return value

    def validate_username(self, value):
        if User.objects.filter(username=value).exists():
            raise serializers.ValidationError("Username already taken.")
        return value

    def create(self, validated_data):
        user = User.objects.create_user(
            username=validated_data['username'],
            email=validated_data['email'],
            password=validated_data['password'],
            role=validated_data['role'],
        )
        logger.info(f"User created: {user.email} (ID: {user.id}, role: {user.role})")
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(style={'input_type': 'password'}, trim_whitespace=False)

    def validate(self, attrs):
        email = attrs.get('email', '').lower()
        user = authenticate(
            request=self.context.get('request'),
            username=email,
            password=attrs.get('password')
        )
        if not user:
            logger.warning(f"Login failed for email: {email}")
            raise serializers.ValidationError("Invalid credentials.")
        return auth_payload(user)


class GoogleLoginSerializer(serializers.Serializer):
    credential = serializers.CharField()
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES, default=User.USER)

    def validate(self, attrs):
        if not settings.GOOGLE_CLIENT_ID:
            raise serializers.ValidationError("Google login is not configured.")
        try:
            info = id_token.verify_oauth2_token(
                attrs['credential'], google_requests.Request(), settings.GOOGLE_CLIENT_ID
            )
        except ValueError as e:
            logger.warning(f"Google token rejected: {e}")
            raise serializers.ValidationError("Invalid Google credential.")

        email = (info.get('email') or '').lower()
        if not email or not info.get('email_verified', False):
            raise serializers.ValidationError("Google account email is not verified.")

        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            base = email.split('@')[0][:140]
            username = base
            suffix = 1
            while User.objects.filter(username=username).exists():
                suffix += 1
                username = f"{base}{suffix}"
            user = User.objects.create_user(
                username=username,
                email=email,
                password=None,
                role=attrs['role'],
                google_id=info.get('sub'),
                profile_picture=info.get('picture', ''),
            )
            logger.info(f"User created via Google: {user.email} (ID: {user.id})")
        elif not user.google_id:
            user.google_id = info.get('sub')
            user.save(update_fields=['google_id'])
        return auth_payload(user)


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField(required=True)

    def validate_email(self, value):
        if not User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("No user found with this email address.")
        return value.lower()


class VerifyOTPSerializer(serializers.Serializer):
    email = serializers.EmailField(required=True)
    otp_code = serializers.CharField(max_length=6, required=True)

    def validate(self, data):
        user = User.objects.filter(email__iexact=data.get('email')).first()
        if user is None:
            raise serializers.ValidationError("User not found.")

        otp = OTP.objects.filter(
            user=user,
            otp_code=data.get('otp_code'),
            purpose=OTP.PASSWORD_RESET,
            is_used=False
        ).order_by('-created_at').first()
        if not otp or not otp.is_valid():
            raise serializers.ValidationError("Invalid or expired OTP.")

        data['user'] = user
        data['otp'] = otp
        return data


class ResetPasswordSerializer(VerifyOTPSerializer):
    new_password = serializers.CharField(required=True, write_only=True, validators=[validate_password])
    confirm_password = serializers.CharField(required=True, write_only=True)

    def validate(self, data):
        if data['new_password'] != data['confirm_password']:
            raise serializers.ValidationError("Passwords don't match.")
        return super().validate(data)


class ProfileSerializer(serializers.ModelSerializer):
    expertise = StringListField(required=False, max_length=30)
    interests = StringListField(required=False, max_length=30)
    profile_strength = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'role', 'bio', 'expertise', 'interests', 'profile_picture',
            'institution_name', 'degree', 'city', 'state', 'country', 'latitude', 'longitude',
            'credits', 'message_credits', 'profile_strength',
        ]
        read_only_fields = ['id', 'email', 'role', 'credits', 'message_credits']

    def get_profile_strength(self, obj):
        return obj.profile_strength()

    def validate_username(self, value):
        taken = User.objects.filter(username=value).exclude(pk=self.instance.pk if self.instance else None)
        if taken.exists():
            raise serializers.ValidationError("Username already taken.")
        return value

    def validate_expertise(self, value):
        if self.instance is not None and not self.instance.is_mentor:
            raise serializers.ValidationError("Only mentors can set expertise.")
        return value

    def validate_profile_picture(self, value):
        if value and len(value) > 2 * 1024 * 1024:  # ~2MB limit for base64
            raise serializers.ValidationError("Image is too large. Maximum size is 2MB.")
        return value

    def validate(self, attrs):
        latitude = attrs.get('latitude', getattr(self.instance, 'latitude', None))
        longitude = attrs.get('longitude', getattr(self.instance, 'longitude', None))
        if (latitude is None) != (longitude is None):
            raise serializers.ValidationError("Latitude and longitude must be set together.")
        return attrs


class PublicUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'role', 'profile_picture', 'bio', 'expertise']


class MentorSummarySerializer(serializers.ModelSerializer):
    rating_average = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'profile_picture', 'bio', 'expertise', 'institution_name',
            'city', 'last_active', 'rating_average',
        ]

    def get_rating_average(self, obj):
        average = getattr(obj, 'rating_average', None)
        return round(average, 1) if average is not None else None


class QuestionInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    question_text = serializers.CharField(min_length=10, max_length=1000)
    category = serializers.ChoiceField(choices=Question.CATEGORY_CHOICES, default=Question.CAREER)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class QuestionUpdateSerializer(serializers.ModelSerializer):
    question_text = serializers.CharField(min_length=10, max_length=1000, required=False)

    class Meta:
        model = Question
        fields = ['title', 'question_text', 'category', 'reason']


class QuestionSerializer(serializers.ModelSerializer):
    has_answer_card = serializers.SerializerMethodField()

    class Meta:
        model = Question
        fields = [
            'id', 'title', 'question_text', 'category', 'reason', 'quality_score', 'keywords', 'status',
            'is_follow_up', 'parent_question', 'is_paid', 'paid_mentorship_type', 'paid_at',
            'has_answer_card', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_has_answer_card(self, obj):
        return hasattr(obj, 'answer_card')


class MentorQuestionSerializer(serializers.ModelSerializer):
    has_answer_card = serializers.SerializerMethodField()

    class Meta:
        model = Question
        fields = ['id', 'question_text', 'category', 'keywords', 'status', 'is_follow_up', 'has_answer_card', 'created_at']
        read_only_fields = fields

    def get_has_answer_card(self, obj):
        return hasattr(obj, 'answer_card')


class MentorExperienceSerializer(serializers.ModelSerializer):
    class Meta:
        model = MentorExperience
        fields = [
            'situation', 'first_attempt', 'failures', 'what_worked', 'step_by_step',
            'timeline', 'would_do_differently', 'additional_notes',
        ]


class AnswerCardSerializer(serializers.ModelSerializer):
    user_feedback = serializers.SerializerMethodField()

    class Meta:
        model = AnswerCard
        fields = [
            'id', 'question', 'answer_content', 'trust_message', 'signature', 'follow_up_answers',
            'follow_up_count', 'user_feedback', 'delivered_at', 'created_at',
        ]
        read_only_fields = fields

    def get_user_feedback(self, obj):
        return {
            'helpful': obj.helpful,
            'rating': obj.feedback_rating,
            'comment': obj.feedback_comment,
        }


class AnswerFeedbackSerializer(serializers.Serializer):
    answer_card_id = serializers.IntegerField()
    helpful = serializers.BooleanField()
    rating = serializers.IntegerField(min_value=1, max_value=5, required=False)
    comment = serializers.CharField(max_length=500, required=False, allow_blank=True)


class FollowUpSerializer(serializers.Serializer):
    answer_card_id = serializers.IntegerField()
    follow_up_text = serializers.CharField(min_length=5, max_length=1000, trim_whitespace=True)


class RatingVisibilitySerializer(serializers.Serializer):
    is_public = serializers.BooleanField(default=True)


class LocationUpdateSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    country = serializers.CharField(max_length=100, required=False, allow_blank=True)


class NearbySearchSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    max_distance_km = serializers.FloatField(min_value=0.1, max_value=20000, default=100)


class LocationSerializer(serializers.ModelSerializer):
    has_location = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['latitude', 'longitude', 'city', 'state', 'country', 'location_updated_at', 'has_location']
        read_only_fields = fields

    def get_has_location(self, obj):
        return obj.latitude is not None and obj.longitude is not None

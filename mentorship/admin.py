from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User, OTP, Question, MentorExperience, AnswerCard, Rating, Payment


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'username', 'role', 'institution_name', 'credits', 'message_credits', 'last_active']
    list_filter = ['role', 'is_active', 'is_staff']
    search_fields = ['email', 'username', 'institution_name', 'city']
    ordering = ['-date_joined']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Atyant profile', {
            'fields': ('role', 'bio', 'expertise', 'interests', 'profile_picture', 'institution_name', 'degree',
                       'city', 'state', 'country', 'latitude', 'longitude'),
        }),
        ('Credits and stats', {
            'fields': ('credits', 'message_credits', 'active_questions', 'answered_questions',
                       'profile_views', 'total_chats', 'last_active'),
        }),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'username', 'role', 'password1', 'password2'),
        }),
    )


@admin.register(OTP)
class OTPAdmin(admin.ModelAdmin):
    list_display = ['user', 'purpose', 'is_used', 'created_at', 'expires_at']
    list_filter = ['purpose', 'is_used']
    search_fields = ['user__email']


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ['id', 'user', 'selected_mentor', 'category', 'status', 'match_percentage', 'is_follow_up',
                    'is_paid', 'created_at']
    list_filter = ['status', 'category', 'is_follow_up', 'is_paid']
    search_fields = ['question_text', 'title', 'user__email', 'selected_mentor__email']
    ordering = ['-created_at']
    raw_id_fields = ['user', 'selected_mentor', 'parent_question']


@admin.register(MentorExperience)
class MentorExperienceAdmin(admin.ModelAdmin):
    list_display = ['question', 'mentor', 'status', 'submitted_at']
    list_filter = ['status']
    raw_id_fields = ['question', 'mentor']


@admin.register(AnswerCard)
class AnswerCardAdmin(admin.ModelAdmin):
    list_display = ['question', 'mentor', 'follow_up_count', 'helpful', 'feedback_rating', 'delivered_at']
    list_filter = ['helpful']
    raw_id_fields = ['question', 'mentor', 'mentor_experience']


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ['mentor', 'user', 'rating', 'is_public', 'get_chat_session', 'created_at']
    list_filter = ['rating', 'is_public']
    search_fields = ['mentor__username', 'user__username', 'feedback_text']
    ordering = ['-created_at']

    def get_chat_session(self, obj):
        return obj.chat_session[:20]

    get_chat_session.short_description = 'Chat session'


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ['razorpay_payment_id', 'user', 'mentor', 'purpose', 'mentorship_type', 'get_amount',
                    'status', 'created_at']
    list_filter = ['purpose', 'status', 'mentorship_type']
    search_fields = ['razorpay_payment_id', 'razorpay_order_id', 'user__email']
    ordering = ['-created_at']

    def get_amount(self, obj):
        return f"{obj.currency} {obj.amount / 100:.2f}"

    get_amount.short_description = 'Amount'

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from . import location_views, payment_views, question_views, rating_views
from .views import (
    SignupView, LoginView, GoogleLoginView, ForgotPasswordView, VerifyOTPView, ResetPasswordView,
    ProfileMeView, get_user_summary, get_iim_professors
)

urlpatterns = [
    path('auth/signup/', SignupView.as_view(), name='signup'),
    path('auth/login/', LoginView.as_view(), name='login'),
    path('auth/google/', GoogleLoginView.as_view(), name='google-login'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('auth/forgot-password/', ForgotPasswordView.as_view(), name='forgot-password'),
    path('auth/verify-otp/', VerifyOTPView.as_view(), name='verify-otp'),
    path('auth/reset-password/', ResetPasswordView.as_view(), name='reset-password'),
    path('profile/me/', ProfileMeView.as_view(), name='profile-me'),
    path('users/<int:user_id>/', get_user_summary, name='user-summary'),

    path('questions/check-eligibility/', question_views.check_eligibility, name='question-eligibility'),
    path('questions/preview-match/', question_views.preview_match, name='question-preview-match'),
    path('questions/suggest-mentors/', question_views.suggest_mentors, name='question-suggest-mentors'),
    path('questions/quality-check/', question_views.quality_check, name='question-quality-check'),
    path('questions/submit/', question_views.submit, name='question-submit'),
    path('questions/my-questions/', question_views.my_questions, name='my-questions'),
    path('questions/follow-up/', question_views.follow_up, name='question-follow-up'),
    path('questions/answer-feedback/', question_views.answer_feedback, name='answer-feedback'),
    path('questions/mentor/pending/', question_views.mentor_pending_questions, name='mentor-pending-questions'),
    path('questions/mentor/answered/', question_views.mentor_answered_questions, name='mentor-answered-questions'),
    path('questions/mentor/submit-experience/', question_views.mentor_submit_experience,
         name='mentor-submit-experience'),
    path('questions/<int:question_id>/', question_views.question_detail, name='question-detail'),

    path('ratings/', rating_views.submit_rating, name='submit-rating'),
    path('ratings/mentor/<int:mentor_id>/', rating_views.get_mentor_rating, name='mentor-rating'),
    path('ratings/mentor/<int:mentor_id>/reviews/', rating_views.get_mentor_reviews, name='mentor-reviews'),
    path('ratings/top-mentors/', rating_views.get_top_mentors, name='top-mentors'),
    path('ratings/check/<str:chat_session_id>/', rating_views.check_session_rated, name='check-session-rated'),

    path('payment/create-order/', payment_views.create_order, name='payment-create-order'),
    path('payment/verify-payment/', payment_views.verify_payment, name='payment-verify'),
    path('payment/create-mentorship-order/', payment_views.create_mentorship_order,
         name='payment-create-mentorship-order'),
    path('payment/verify-mentorship/', payment_views.verify_mentorship, name='payment-verify-mentorship'),
    path('payment/webhook/', payment_views.webhook, name='payment-webhook'),
    path('payment/status/<int:question_id>/', payment_views.payment_status, name='payment-status'),
    path('payment/my-payments/', payment_views.my_payments, name='my-payments'),
    path('payment/mentor-earnings/', payment_views.mentor_earnings, name='mentor-earnings'),

    path('location/update/', location_views.update_location, name='location-update'),
    path('location/me/', location_views.my_location, name='my-location'),
    path('location/nearby/', location_views.nearby, name='location-nearby'),

    path('iim/professors/<str:campus>/', get_iim_professors, name='iim-professors'),
]

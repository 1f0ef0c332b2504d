import logging
from html import escape

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def _deliver(subject, text, html, recipient):
    """send_mail wrapper: failures are logged and never reach the caller."""
    try:
        sent = send_mail(
            subject,
            text,
            settings.DEFAULT_FROM_EMAIL,
            [recipient],
            html_message=html,
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to send '{subject}' to {recipient}: {str(e)}")
        return False
    return bool(sent)


def send_mentor_new_question_email(mentor, question):
    dashboard_url = f"{settings.FRONTEND_URL}/mentor-dashboard"
    preview = question.question_text[:300]
    keywords = ', '.join(question.keywords[:8]) or 'general'
    label = 'follow-up question' if question.is_follow_up else 'question'

    subject = f"New {label} assigned to you on Atyant"
    text = (
        f"Hi {mentor.username},\n\n"
        f"A student has a new {label} that matches your experience:\n\n"
        f"\"{preview}\"\n\n"
        f"Keywords: {keywords}\n\n"
        f"Share what you went through at {dashboard_url}\n\n"
        f"Team Atyant"
    )
    html = (
        f"<p>Hi {escape(mentor.username)},</p>"
        f"<p>A student has a new {label} that matches your experience:</p>"
        f"<blockquote>{escape(preview)}</blockquote>"
        f"<p><strong>Keywords:</strong> {escape(keywords)}</p>"
        f"<p><a href=\"{dashboard_url}\">Open your mentor dashboard</a></p>"
        f"<p>Team Atyant</p>"
    )
    return _deliver(subject, text, html, mentor.email)


def send_mentorship_payment_email(mentor, student, question, payment):
    amount = payment.amount / 100
    kind = question.get_paid_mentorship_type_display() if question.paid_mentorship_type else 'mentorship'

    subject = f"{student.username} booked a paid {kind} session"
    text = (
        f"Hi {mentor.username},\n\n"
        f"{student.username} paid ₹{amount:.2f} for a {kind} session on their question:\n\n"
        f"\"{question.question_text[:300]}\"\n\n"
        f"Please reach out from your dashboard: {settings.FRONTEND_URL}/mentor-dashboard\n\n"
        f"Team Atyant"
    )
    html = (
        f"<p>Hi {escape(mentor.username)},</p>"
        f"<p>{escape(student.username)} paid <strong>₹{amount:.2f}</strong> for a {escape(kind)} session "
        f"on their question:</p>"
        f"<blockquote>{escape(question.question_text[:300])}</blockquote>"
        f"<p><a href=\"{settings.FRONTEND_URL}/mentor-dashboard\">Open your mentor dashboard</a></p>"
    )
    return _deliver(subject, text, html, mentor.email)


def send_password_reset_otp(user, otp_code):
    subject = "Your Atyant password reset code"
    text = (
        f"Hi {user.username},\n\n"
        f"Your password reset code is {otp_code}. It expires in 10 minutes.\n\n"
        f"If you did not ask for a reset, ignore this email.\n\n"
        f"Reset here: {settings.FRONTEND_URL}/reset-password?email={user.email}"
    )
    html = (
        f"<p>Hi {escape(user.username)},</p>"
        f"<p>Your password reset code is <strong>{otp_code}</strong>. It expires in 10 minutes.</p>"
        f"<p>If you did not ask for a reset, ignore this email.</p>"
    )
    return _deliver(subject, text, html, user.email)

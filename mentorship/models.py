from datetime import timedelta

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator, MaxValueValidator, MinLengthValidator, MaxLengthValidator
from django.db import models
from django.utils import timezone


class User(AbstractUser):
    USER = 'user'
    MENTOR = 'mentor'
    ROLE_CHOICES = [
        (USER, 'User'),
        (MENTOR, 'Mentor'),
    ]
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=USER)
    bio = models.TextField(max_length=1000, blank=True, default='')
    expertise = models.JSONField(default=list, blank=True)
    interests = models.JSONField(default=list, blank=True)
    profile_picture = models.TextField(blank=True, default='')

    institution_name = models.CharField(max_length=200, blank=True, default='')
    degree = models.CharField(max_length=100, blank=True, default='')

    city = models.CharField(max_length=100, blank=True, default='')
    state = models.CharField(max_length=100, blank=True, default='')
    country = models.CharField(max_length=100, blank=True, default='')
    latitude = models.FloatField(
        blank=True, null=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)]
    )
    longitude = models.FloatField(
        blank=True, null=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)]
    )

    location_updated_at = models.DateTimeField(blank=True, null=True)

    google_id = models.CharField(max_length=64, blank=True, null=True, unique=True)

    credits = models.PositiveIntegerField(default=settings.DEFAULT_QUESTION_CREDITS)
    message_credits = models.PositiveIntegerField(default=settings.DEFAULT_MESSAGE_CREDITS)

    active_questions = models.PositiveIntegerField(default=0)
    answered_questions = models.PositiveIntegerField(default=0)
    profile_views = models.PositiveIntegerField(default=0)
    total_chats = models.PositiveIntegerField(default=0)
    last_active = models.DateTimeField(blank=True, null=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['username']

    class Meta:
        indexes = [
            models.Index(fields=['role', 'last_active', 'active_questions'], name='user_routing_idx'),
            models.Index(fields=['role', 'institution_name'], name='user_institution_idx'),
            models.Index(fields=['latitude', 'longitude'], name='user_location_idx'),
        ]

    def __str__(self):
        return f"{self.username} ({self.get_role_display()})"

    @property
    def is_mentor(self):
        return self.role == self.MENTOR

    # Field name -> weight; weights add up to 100.
    PROFILE_WEIGHTS = {
        'username': 20,
        'bio': 20,
        'education': 20,
        'interests': 20,
        'profile_picture': 10,
        'city': 10,
    }

    def missing_profile_fields(self):
        filled = {
            'username': bool(self.username),
            'bio': bool(self.bio and self.bio.strip()),
            'education': bool(self.institution_name),
            'interests': bool(self.interests),
            'profile_picture': bool(self.profile_picture),
            'city': bool(self.city),
        }
        return [name for name, present in filled.items() if not present]

    def profile_strength(self):
        missing = set(self.missing_profile_fields())
        return sum(weight for name, weight in self.PROFILE_WEIGHTS.items() if name not in missing)


class OTP(models.Model):
    PASSWORD_RESET = 'password_reset'
    PURPOSE_CHOICES = [
        (PASSWORD_RESET, 'Password reset'),
    ]
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='otps')
    otp_code = models.CharField(max_length=6)
    purpose = models.CharField(max_length=20, choices=PURPOSE_CHOICES, default=PASSWORD_RESET)
    is_used = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()

    def save(self, *args, **kwargs):
        if not self.expires_at:
            self.expires_at = timezone.now() + timedelta(minutes=10)
        super().save(*args, **kwargs)

    def is_valid(self):
        return not self.is_used and timezone.now() < self.expires_at

    def __str__(self):
        return f"OTP for {self.user.email} ({self.purpose})"


class Question(models.Model):
    ACADEMIC = 'Academic & College Life'
    TECHNICAL = 'Technical Skills'
    CAREER = 'Career Growth'
    PERSONAL = 'Personal Development'
    ENTREPRENEURSHIP = 'Entrepreneurship'
    CATEGORY_CHOICES = [
        (ACADEMIC, ACADEMIC),
        (TECHNICAL, TECHNICAL),
        (CAREER, CAREER),
        (PERSONAL, PERSONAL),
        (ENTREPRENEURSHIP, ENTREPRENEURSHIP),
    ]

    DRAFT = 'draft'
    SUBMITTED = 'submitted'
    PENDING = 'pending'
    MENTOR_ASSIGNED = 'mentor_assigned'
    AWAITING_EXPERIENCE = 'awaiting_experience'
    EXPERIENCE_SUBMITTED = 'experience_submitted'
    ANSWER_GENERATED = 'answer_generated'
    DELIVERED = 'delivered'
    ANSWERED_INSTANTLY = 'answered_instantly'
    FAILED = 'failed'
    STATUS_CHOICES = [
        (DRAFT, 'Draft'),
        (SUBMITTED, 'Submitted'),
        (PENDING, 'Pending'),
        (MENTOR_ASSIGNED, 'Mentor assigned'),
        (AWAITING_EXPERIENCE, 'Awaiting experience'),
        (EXPERIENCE_SUBMITTED, 'Experience submitted'),
        (ANSWER_GENERATED, 'Answer generated'),
        (DELIVERED, 'Delivered'),
        (ANSWERED_INSTANTLY, 'Answered instantly'),
        (FAILED, 'Failed'),
    ]
    EDITABLE_STATUSES = (SUBMITTED, PENDING, MENTOR_ASSIGNED)
    PENDING_FOR_MENTOR = (MENTOR_ASSIGNED, AWAITING_EXPERIENCE)
    ANSWERED_FOR_MENTOR = (EXPERIENCE_SUBMITTED, ANSWER_GENERATED, DELIVERED)

    CHAT = 'chat'
    VIDEO = 'video'
    ROADMAP = 'roadmap'
    MENTORSHIP_TYPE_CHOICES = [
        (CHAT, 'Chat'),
        (VIDEO, 'Video call'),
        (ROADMAP, 'Roadmap'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='questions')
    title = models.CharField(max_length=200, blank=True, default='')
    question_text = models.TextField(validators=[MinLengthValidator(10), MaxLengthValidator(1000)])
    category = models.CharField(max_length=40, choices=CATEGORY_CHOICES, default=CAREER)
    reason = models.TextField(max_length=500, blank=True, default='')
    quality_score = models.PositiveSmallIntegerField(default=0)
    keywords = models.JSONField(default=list, blank=True)

    selected_mentor = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_questions'
    )
    match_percentage = models.PositiveSmallIntegerField(null=True, blank=True)
    selection_reason = models.CharField(max_length=255, blank=True, default='')
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=SUBMITTED)

    is_follow_up = models.BooleanField(default=False)
    parent_question = models.ForeignKey(
        'self', on_delete=models.CASCADE, null=True, blank=True, related_name='follow_ups'
    )

    is_paid = models.BooleanField(default=False)
    paid_mentorship_type = models.CharField(max_length=10, choices=MENTORSHIP_TYPE_CHOICES, blank=True, default='')
    paid_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['user', '-created_at'], name='question_user_created_idx'),
            models.Index(fields=['selected_mentor', 'status'], name='question_mentor_status_idx'),
        ]

    def __str__(self):
        return f"Question {self.id} by {self.user.username}: {self.question_text[:30]}"

    def is_editable(self, now=None):
        now = now or timezone.now()
        window = timedelta(minutes=settings.QUESTION_EDIT_WINDOW_MINUTES)
        return self.status in self.EDITABLE_STATUSES and now - self.created_at <= window


class MentorExperience(models.Model):
    DRAFT = 'draft'
    SUBMITTED = 'submitted'
    PROCESSED = 'processed'
    STATUS_CHOICES = [
        (DRAFT, 'Draft'),
        (SUBMITTED, 'Submitted'),
        (PROCESSED, 'Processed'),
    ]
    REQUIRED_FIELDS = (
        'situation', 'first_attempt', 'failures', 'what_worked',
        'step_by_step', 'timeline', 'would_do_differently',
    )

    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name='experiences')
    mentor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='experiences')
    situation = models.TextField(max_length=1000)
    first_attempt = models.TextField(max_length=1000)
    failures = models.TextField(max_length=1000)
    what_worked = models.TextField(max_length=1000)
    step_by_step = models.TextField(max_length=2000)
    timeline = models.TextField(max_length=500)
    would_do_differently = models.TextField(max_length=1000)
    additional_notes = models.TextField(max_length=500, blank=True, default='')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=DRAFT)
    submitted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        if self.status == self.SUBMITTED and not self.submitted_at:
            self.submitted_at = timezone.now()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Experience for question {self.question_id} by {self.mentor.username}"


class AnswerCard(models.Model):
    DEFAULT_TRUST_MESSAGE = "This answer is built from real experience, not AI-generated advice."
    DEFAULT_SIGNATURE = "— Atyant Expert Mentor"

    question = models.OneToOneField(Question, on_delete=models.CASCADE, related_name='answer_card')
    mentor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='answer_cards')
    mentor_experience = models.ForeignKey(
        MentorExperience, on_delete=models.SET_NULL, null=True, blank=True, related_name='answer_cards'
    )
    answer_content = models.JSONField(default=dict)
    trust_message = models.CharField(max_length=255, default=DEFAULT_TRUST_MESSAGE)
    signature = models.CharField(max_length=100, default=DEFAULT_SIGNATURE)

    follow_up_answers = models.JSONField(default=list, blank=True)
    follow_up_count = models.PositiveSmallIntegerField(
        default=0, validators=[MaxValueValidator(settings.MAX_FOLLOW_UPS)]
    )

    helpful = models.BooleanField(null=True, blank=True)
    feedback_rating = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    feedback_comment = models.TextField(max_length=500, blank=True, default='')

    delivered_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['mentor', '-created_at'], name='answercard_mentor_created_idx'),
        ]

    def __str__(self):
        return f"Answer card for question {self.question_id}"

    @property
    def can_follow_up(self):
        return self.follow_up_count < settings.MAX_FOLLOW_UPS


class Rating(models.Model):
    mentor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='ratings_received')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='ratings_given')
    chat_session = models.CharField(max_length=100)
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    feedback_text = models.TextField(max_length=500, blank=True, default='')
    is_public = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['user', 'chat_session'], name='unique_rating_per_session'),
        ]
        indexes = [
            models.Index(fields=['mentor', '-created_at'], name='rating_mentor_created_idx'),
        ]

    def __str__(self):
        return f"{self.user.username} rated {self.mentor.username} {self.rating}/5"


class Payment(models.Model):
    MESSAGE_CREDITS = 'message_credits'
    MENTORSHIP = 'mentorship'
    PURPOSE_CHOICES = [
        (MESSAGE_CREDITS, 'Message credits'),
        (MENTORSHIP, 'Paid mentorship'),
    ]

    CREATED = 'created'
    CAPTURED = 'captured'
    FAILED = 'failed'
    REFUNDED = 'refunded'
    STATUS_CHOICES = [
        (CREATED, 'Created'),
        (CAPTURED, 'Captured'),
        (FAILED, 'Failed'),
        (REFUNDED, 'Refunded'),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='payments')
    mentor = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name='mentorship_payments'
    )
    question = models.ForeignKey(
        Question, on_delete=models.SET_NULL, null=True, blank=True, related_name='payments'
    )
    purpose = models.CharField(max_length=20, choices=PURPOSE_CHOICES)
    mentorship_type = models.CharField(
        max_length=10, choices=Question.MENTORSHIP_TYPE_CHOICES, blank=True, default=''
    )
    razorpay_order_id = models.CharField(max_length=64)
    razorpay_payment_id = models.CharField(max_length=64, unique=True)
    razorpay_signature = models.CharField(max_length=128, blank=True, default='')
    amount = models.PositiveIntegerField(help_text='Amount in paise')
    currency = models.CharField(max_length=3, default='INR')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=CREATED)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.razorpay_payment_id} ({self.status})"

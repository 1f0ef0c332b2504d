from django.conf import settings
from django.db import models

User = settings.AUTH_USER_MODEL


class Message(models.Model):
    SENT = 'sent'
    DELIVERED = 'delivered'
    READ = 'read'
    STATUS_CHOICES = [
        (SENT, 'Sent'),
        (DELIVERED, 'Delivered'),
        (READ, 'Read'),
    ]

    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name="sent_messages")
    receiver = models.ForeignKey(User, on_delete=models.CASCADE, related_name="received_messages")
    text = models.TextField()
    timestamp = models.DateTimeField(auto_now_add=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default=SENT)
    seen = models.BooleanField(default=False)
    delivered_at = models.DateTimeField(null=True, blank=True)
    read_at = models.DateTimeField(null=True, blank=True)
    is_auto_reply = models.BooleanField(default=False)

    class Meta:
        ordering = ["timestamp", "id"]
        indexes = [
            models.Index(fields=["sender", "receiver", "timestamp"], name="message_pair_time_idx"),
        ]

    def __str__(self):
        return f"{self.sender_id} -> {self.receiver_id}: {self.text[:20]}"

    def as_event(self):
        return {
            "_id": self.id,
            "sender": self.sender_id,
            "receiver": self.receiver_id,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status,
            "seen": self.seen,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "is_auto_reply": self.is_auto_reply,
        }


class UnreadCounter(models.Model):
    """Unseen messages `user` has from `partner`."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="unread_counters")
    partner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="+")
    count = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "partner"], name="unique_unread_counter"),
        ]

    def __str__(self):
        return f"{self.user_id} has {self.count} unread from {self.partner_id}"


class CommunityMessage(models.Model):
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name="community_messages")
    text = models.TextField(max_length=1000)
    is_anonymous = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["-created_at"], name="community_created_idx"),
        ]

    def __str__(self):
        return f"{self.sender_id}: {self.text[:20]}"

import json
import logging
import time

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F, Sum
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, authentication_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from .emails import send_mentorship_payment_email
from .models import User, Question, Payment
from .payments import (
    PaymentGatewayError, create_order as create_razorpay_order, fetch_payment,
    verify_payment_signature, verify_webhook_signature
)
from .views import IsMentor

logger = logging.getLogger(__name__)

GATEWAY_ERROR = 'Payment gateway unavailable. Please try again.'


def _payment_row(payment, counterpart=None):
    row = {
        'id': payment.id,
        'razorpay_payment_id': payment.razorpay_payment_id,
        'purpose': payment.purpose,
        'mentorship_type': payment.mentorship_type,
        'amount': payment.amount / 100,
        'currency': payment.currency,
        'status': payment.status,
        'question': (
            {'id': payment.question_id, 'question_text': payment.question.question_text}
            if payment.question_id else None
        ),
        'created_at': payment.created_at.isoformat(),
    }
    if counterpart is not None:
        row[counterpart] = None
        person = getattr(payment, counterpart)
        if person is not None:
            row[counterpart] = {'id': person.id, 'username': person.username}
    return row


def _is_credit_pack(entity):
    notes = entity.get('notes') or {}
    return (notes.get('purpose') == Payment.MESSAGE_CREDITS
            and entity.get('amount') == settings.MESSAGE_CREDIT_PACK_PAISE)


def _credit_pack_problem(gateway_payment, user, order_id):
    """Why a fetched Razorpay payment cannot buy this user a credit pack, or None."""
    if gateway_payment.get('status') != Payment.CAPTURED:
        return f"payment not captured (status {gateway_payment.get('status')})"
    if gateway_payment.get('order_id') != order_id:
        return "payment belongs to a different order"
    if not _is_credit_pack(gateway_payment):
        return "order is not a message credit pack"
    if (gateway_payment.get('notes') or {}).get('user_id') != str(user.id):
        return "order was created for another user"
    return None


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_order(request):
    """Order for a pack of message credits"""
    receipt = f"C{str(int(time.time() * 1000))[-8:]}"
    try:
        order = create_razorpay_order(
            settings.MESSAGE_CREDIT_PACK_PAISE,
            receipt,
            notes={'user_id': str(request.user.id), 'purpose': Payment.MESSAGE_CREDITS},
        )
    except PaymentGatewayError:
        return Response({'message': 'Error creating order'}, status=status.HTTP_502_BAD_GATEWAY)

    return Response({
        'id': order['id'],
        'amount': order.get('amount', settings.MESSAGE_CREDIT_PACK_PAISE),
        'currency': order.get('currency', 'INR'),
        'razorpay_key_id': settings.RAZORPAY_KEY_ID,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_payment(request):
    order_id = request.data.get('razorpay_order_id')
    payment_id = request.data.get('razorpay_payment_id')
    signature = request.data.get('razorpay_signature')

    if not verify_payment_signature(order_id, payment_id, signature):
        logger.warning(f"Invalid credit-pack signature from user {request.user.id} (order {order_id})")
        return Response({'success': False, 'message': 'Payment verification failed'},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        gateway_payment = fetch_payment(payment_id)
    except PaymentGatewayError:
        return Response({'success': False, 'message': GATEWAY_ERROR}, status=status.HTTP_502_BAD_GATEWAY)

    problem = _credit_pack_problem(gateway_payment, request.user, order_id)
    if problem:
        logger.warning(f"Credit-pack payment {payment_id} from user {request.user.id} rejected: {problem}")
        return Response({'success': False, 'message': f"Payment verification failed: {problem}"},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            Payment.objects.create(
                user=request.user,
                purpose=Payment.MESSAGE_CREDITS,
                razorpay_order_id=order_id,
                razorpay_payment_id=payment_id,
                razorpay_signature=signature,
                amount=gateway_payment['amount'],
                currency=gateway_payment.get('currency', 'INR'),
                status=Payment.CAPTURED,
            )
            User.objects.filter(pk=request.user.pk).update(
                message_credits=F('message_credits') + settings.MESSAGE_CREDITS_PER_PACK
            )
    except IntegrityError:
        logger.info(f"Replayed credit-pack payment {payment_id} from user {request.user.id}")
        credits = User.objects.values_list('message_credits', flat=True).get(pk=request.user.pk)
        return Response({
            'success': True,
            'message': 'Payment already verified',
            'message_credits': credits,
        })

    credits = User.objects.values_list('message_credits', flat=True).get(pk=request.user.pk)
    logger.info(f"User {request.user.id} bought {settings.MESSAGE_CREDITS_PER_PACK} message credits "
                f"(payment {payment_id})")
    return Response({
        'success': True,
        'message': 'Payment verified successfully',
        'message_credits': credits,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_mentorship_order(request):
    amount = request.data.get('amount')
    mentorship_type = request.data.get('mentorship_type')
    question_id = request.data.get('question_id')

    if not amount or not mentorship_type or not question_id:
        return Response({'success': False, 'error': 'Missing required fields'},
                        status=status.HTTP_400_BAD_REQUEST)
    if mentorship_type not in dict(Question.MENTORSHIP_TYPE_CHOICES):
        return Response({'success': False, 'error': 'Unknown mentorship type'},
                        status=status.HTTP_400_BAD_REQUEST)
    try:
        amount_paise = int(round(float(amount) * 100))
    except (TypeError, ValueError):
        amount_paise = 0
    if amount_paise <= 0:
        return Response({'success': False, 'error': 'Invalid amount'}, status=status.HTTP_400_BAD_REQUEST)

    # Razorpay caps receipts at 40 characters
    receipt = f"M{str(int(time.time() * 1000))[-8:]}"
    try:
        order = create_razorpay_order(amount_paise, receipt, notes={
            'question_id': str(question_id),
            'purpose': Payment.MENTORSHIP,
            'mentorship_type': mentorship_type,
            'user_id': str(request.user.id),
        })
    except PaymentGatewayError:
        return Response({'success': False, 'error': GATEWAY_ERROR}, status=status.HTTP_502_BAD_GATEWAY)

    return Response({
        'success': True,
        'order': order,
        'razorpay_key_id': settings.RAZORPAY_KEY_ID,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_mentorship(request):
    data = request.data
    order_id = data.get('razorpay_order_id')
    payment_id = data.get('razorpay_payment_id')
    signature = data.get('razorpay_signature')
    mentorship_type = data.get('mentorship_type') or ''

    if not verify_payment_signature(order_id, payment_id, signature):
        logger.warning(f"Invalid mentorship signature from user {request.user.id} (order {order_id})")
        return Response({'success': False, 'error': 'Invalid payment signature'},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        question = Question.objects.select_related('selected_mentor').get(
            pk=data.get('question_id'), user=request.user
        )
    except (Question.DoesNotExist, ValueError, TypeError):
        return Response({'success': False, 'error': 'Question not found'}, status=status.HTTP_404_NOT_FOUND)
    if question.selected_mentor is None:
        return Response({'success': False, 'error': 'No mentor assigned to this question'},
                        status=status.HTTP_400_BAD_REQUEST)

    try:
        gateway_payment = fetch_payment(payment_id)
    except PaymentGatewayError:
        return Response({'success': False, 'error': GATEWAY_ERROR}, status=status.HTTP_502_BAD_GATEWAY)

    if gateway_payment.get('status') != Payment.CAPTURED:
        return Response({
            'success': False,
            'error': f"Payment not captured. Status: {gateway_payment.get('status')}",
        }, status=status.HTTP_400_BAD_REQUEST)

    try:
        with transaction.atomic():
            payment = Payment.objects.create(
                user=request.user,
                mentor=question.selected_mentor,
                question=question,
                purpose=Payment.MENTORSHIP,
                mentorship_type=mentorship_type,
                razorpay_order_id=order_id,
                razorpay_payment_id=payment_id,
                razorpay_signature=signature,
                amount=gateway_payment.get('amount', 0),
                currency=gateway_payment.get('currency', 'INR'),
                status=Payment.CAPTURED,
            )
            question.is_paid = True
            question.paid_mentorship_type = mentorship_type
            question.paid_at = timezone.now()
            question.save(update_fields=['is_paid', 'paid_mentorship_type', 'paid_at', 'updated_at'])
    except IntegrityError:
        logger.info(f"Replayed mentorship payment {payment_id} for question {question.id}")
        return Response({
            'success': True,
            'message': 'Payment already verified',
            'mentor_id': question.selected_mentor_id,
        })

    logger.info(f"Mentorship payment {payment_id} verified: {mentorship_type} for question {question.id}, "
                f"{payment.amount} paise")
    send_mentorship_payment_email(question.selected_mentor, request.user, question, payment)

    return Response({
        'success': True,
        'message': 'Payment verified successfully',
        'payment': _payment_row(payment),
        'mentor_id': question.selected_mentor_id,
    })


def _record_webhook_capture(entity):
    notes = entity.get('notes') or {}
    question = Question.objects.filter(pk=notes.get('question_id')).first() if notes.get('question_id') else None
    user = User.objects.filter(pk=notes.get('user_id')).first() if notes.get('user_id') else None
    if user is None:
        logger.warning(f"Webhook capture {entity.get('id')} carries no known user; ignoring")
        return
    if question is None and not _is_credit_pack(entity):
        logger.warning(f"Webhook capture {entity.get('id')} is neither a mentorship nor a credit-pack "
                       f"payment ({entity.get('amount')} paise); ignoring")
        return

    purpose = Payment.MENTORSHIP if question is not None else Payment.MESSAGE_CREDITS
    with transaction.atomic():
        Payment.objects.create(
            user=user,
            mentor=question.selected_mentor if question else None,
            question=question,
            purpose=purpose,
            mentorship_type=notes.get('mentorship_type', '') if question else '',
            razorpay_order_id=entity.get('order_id') or '',
            razorpay_payment_id=entity['id'],
            amount=entity.get('amount', 0),
            currency=entity.get('currency', 'INR'),
            status=Payment.CAPTURED,
        )
        if question is not None:
            Question.objects.filter(pk=question.pk).update(
                is_paid=True,
                paid_mentorship_type=notes.get('mentorship_type', ''),
                paid_at=timezone.now(),
            )
        else:
            User.objects.filter(pk=user.pk).update(
                message_credits=F('message_credits') + settings.MESSAGE_CREDITS_PER_PACK
            )


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def webhook(request):
    """Razorpay server-to-server events, signed with the webhook secret"""
    if not verify_webhook_signature(request.body, request.META.get('HTTP_X_RAZORPAY_SIGNATURE')):
        logger.warning("Rejected Razorpay webhook with an invalid signature")
        return Response({'error': 'Invalid signature'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        event = json.loads(request.body)
        name = event['event']
        entity = event.get('payload', {}).get('payment', {}).get('entity', {})
    except (ValueError, KeyError, AttributeError):
        return Response({'error': 'Malformed event'}, status=status.HTTP_400_BAD_REQUEST)

    payment_id = entity.get('id')
    logger.info(f"Razorpay webhook {name} for payment {payment_id}")

    if name == 'payment.captured' and payment_id:
        updated = Payment.objects.filter(razorpay_payment_id=payment_id).update(status=Payment.CAPTURED)
        if not updated:
            try:
                _record_webhook_capture(entity)
            except IntegrityError:
                logger.info(f"Payment {payment_id} was recorded concurrently by the verify endpoint")
    elif name == 'payment.failed' and payment_id:
        Payment.objects.filter(razorpay_payment_id=payment_id).exclude(
            status=Payment.CAPTURED
        ).update(status=Payment.FAILED)

    return Response({'status': 'ok'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_status(request, question_id):
    payment = (
        Payment.objects.filter(question_id=question_id, user=request.user, status=Payment.CAPTURED)
        .order_by('-created_at')
        .first()
    )
    if payment is None:
        return Response({'is_paid': False})
    return Response({
        'is_paid': True,
        'mentorship_type': payment.mentorship_type,
        'amount': payment.amount / 100,
        'paid_at': payment.created_at.isoformat(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_payments(request):
    payments = (
        Payment.objects.filter(user=request.user, status=Payment.CAPTURED)
        .select_related('question', 'mentor')
        .order_by('-created_at')
    )
    return Response([_payment_row(payment, counterpart='mentor') for payment in payments])


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsMentor])
def mentor_earnings(request):
    payments = (
        Payment.objects.filter(mentor=request.user, status=Payment.CAPTURED, purpose=Payment.MENTORSHIP)
        .select_related('question', 'user')
        .order_by('-created_at')
    )
    total = payments.aggregate(total=Sum('amount'))['total'] or 0
    return Response({
        'payments': [_payment_row(payment, counterpart='user') for payment in payments],
        'total_earnings': total / 100,
        'total_sessions': payments.count(),
    })

import hashlib
import hmac
import json
from unittest import mock

import pytest
from django.core import mail

from mentorship.models import Payment, Question
from mentorship.payments import PaymentGatewayError, verify_payment_signature, verify_webhook_signature

from .helpers import client_for, make_user

pytestmark = pytest.mark.django_db

KEY_SECRET = 'test-key-secret'
WEBHOOK_SECRET = 'test-webhook-secret'


@pytest.fixture(autouse=True)
def razorpay_keys(settings):
    settings.RAZORPAY_KEY_ID = 'rzp_test_key'
    settings.RAZORPAY_KEY_SECRET = KEY_SECRET
    settings.RAZORPAY_WEBHOOK_SECRET = WEBHOOK_SECRET


@pytest.fixture
def question(student, mentor):
    return Question.objects.create(
        user=student,
        question_text="How should I negotiate my first offer?",
        selected_mentor=mentor,
        status=Question.MENTOR_ASSIGNED,
    )


def sign(secret, body):
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def checkout(order_id='order_1', payment_id='pay_1', **extra):
    return {
        'razorpay_order_id': order_id,
        'razorpay_payment_id': payment_id,
        'razorpay_signature': sign(KEY_SECRET, f"{order_id}|{payment_id}".encode()),
        **extra,
    }


def post_webhook(client, event, secret=WEBHOOK_SECRET):
    body = json.dumps(event).encode()
    return client.post(
        '/api/payment/webhook/', body, content_type='application/json',
        HTTP_X_RAZORPAY_SIGNATURE=sign(secret, body),
    )


def captured(payment_id, **entity):
    return {
        'event': 'payment.captured',
        'payload': {'payment': {'entity': {'id': payment_id, 'amount': 500, 'currency': 'INR', **entity}}},
    }


def credit_pack_payment(user, payment_id='pay_1', order_id='order_1', **overrides):
    """A captured credit-pack payment as Razorpay's payments API returns it."""
    return {
        'id': payment_id,
        'order_id': order_id,
        'status': 'captured',
        'amount': 500,
        'currency': 'INR',
        'notes': {'purpose': Payment.MESSAGE_CREDITS, 'user_id': str(user.id)},
        **overrides,
    }


def verify_pack(client, gateway_payment, **extra):
    with mock.patch('mentorship.payment_views.fetch_payment', return_value=gateway_payment) as fetch:
        response = client.post('/api/payment/verify-payment/', checkout(**extra))
    return response, fetch


def test_signature_helpers():
    assert verify_payment_signature('order_1', 'pay_1', checkout()['razorpay_signature'])
    assert not verify_payment_signature('order_1', 'pay_2', checkout()['razorpay_signature'])
    assert not verify_payment_signature('order_1', 'pay_1', None)
    assert verify_webhook_signature(b'{}', sign(WEBHOOK_SECRET, b'{}'))
    assert not verify_webhook_signature(b'{}', sign(KEY_SECRET, b'{}'))


def test_create_order_for_a_credit_pack(student_client, student):
    order = {'id': 'order_1', 'amount': 500, 'currency': 'INR'}
    with mock.patch('mentorship.payment_views.create_razorpay_order', return_value=order) as create:
        response = student_client.post('/api/payment/create-order/')

    assert response.status_code == 200
    assert response.json() == {'id': 'order_1', 'amount': 500, 'currency': 'INR', 'razorpay_key_id': 'rzp_test_key'}
    amount, receipt = create.call_args.args
    assert amount == 500
    assert receipt.startswith('C') and len(receipt) == 9
    assert create.call_args.kwargs['notes']['user_id'] == str(student.id)


def test_create_order_when_the_gateway_is_down(student_client):
    with mock.patch('mentorship.payment_views.create_razorpay_order', side_effect=PaymentGatewayError()):
        response = student_client.post('/api/payment/create-order/')
    assert response.status_code == 502


def test_verified_pack_adds_credits_once(student_client, student):
    response, fetch = verify_pack(student_client, credit_pack_payment(student))
    assert response.status_code == 200
    assert response.json()['message_credits'] == 22
    fetch.assert_called_once_with('pay_1')

    response, _ = verify_pack(student_client, credit_pack_payment(student))
    assert response.status_code == 200
    assert response.json()['message'] == 'Payment already verified'

    student.refresh_from_db()
    assert student.message_credits == 22
    payment = Payment.objects.get()
    assert payment.purpose == Payment.MESSAGE_CREDITS
    assert payment.amount == 500


def test_bad_signature_changes_nothing(student_client, student):
    payload = {**checkout(), 'razorpay_signature': 'forged'}
    with mock.patch('mentorship.payment_views.fetch_payment') as fetch:
        response = student_client.post('/api/payment/verify-payment/', payload)
    assert response.status_code == 400
    assert response.json() == {'success': False, 'message': 'Payment verification failed'}
    fetch.assert_not_called()
    student.refresh_from_db()
    assert student.message_credits == 2
    assert not Payment.objects.exists()


def test_mentorship_order_cannot_be_redeemed_for_credits(student_client, student, question):
    # a cheap mentorship order carries a valid signature but is not a credit pack
    gateway = credit_pack_payment(student, amount=100, notes={
        'purpose': Payment.MENTORSHIP, 'question_id': str(question.id), 'user_id': str(student.id),
    })
    response, _ = verify_pack(student_client, gateway)

    assert response.status_code == 400
    assert response.json()['success'] is False
    student.refresh_from_db()
    assert student.message_credits == 2
    assert not Payment.objects.exists()


@pytest.mark.parametrize('overrides', [
    {'amount': 1},
    {'status': 'authorized'},
    {'order_id': 'order_other'},
    {'notes': {}},
])
def test_verify_payment_rejects_payments_that_are_not_this_pack(student_client, student, overrides):
    response, _ = verify_pack(student_client, credit_pack_payment(student, **overrides))

    assert response.status_code == 400
    student.refresh_from_db()
    assert student.message_credits == 2
    assert not Payment.objects.exists()


def test_verify_payment_rejects_another_users_pack(student_client, student, mentor):
    response, _ = verify_pack(student_client, credit_pack_payment(mentor))

    assert response.status_code == 400
    assert 'another user' in response.json()['message']
    student.refresh_from_db()
    assert student.message_credits == 2


def test_verify_payment_when_the_gateway_is_down(student_client, student):
    with mock.patch('mentorship.payment_views.fetch_payment', side_effect=PaymentGatewayError()):
        response = student_client.post('/api/payment/verify-payment/', checkout())

    assert response.status_code == 502
    student.refresh_from_db()
    assert student.message_credits == 2


def test_create_mentorship_order_in_paise(student_client, question):
    order = {'id': 'order_m', 'amount': 49900, 'currency': 'INR'}
    with mock.patch('mentorship.payment_views.create_razorpay_order', return_value=order) as create:
        response = student_client.post('/api/payment/create-mentorship-order/', {
            'amount': 499, 'mentorship_type': Question.VIDEO, 'question_id': question.id,
        })
    assert response.status_code == 200
    assert response.json()['order'] == order
    assert create.call_args.args[0] == 49900


@pytest.mark.parametrize('payload', [
    {'mentorship_type': 'video', 'question_id': 1},
    {'amount': 499, 'mentorship_type': 'coffee', 'question_id': 1},
    {'amount': -5, 'mentorship_type': 'video', 'question_id': 1},
])
def test_create_mentorship_order_validation(student_client, payload):
    with mock.patch('mentorship.payment_views.create_razorpay_order') as create:
        response = student_client.post('/api/payment/create-mentorship-order/', payload)
    assert response.status_code == 400
    create.assert_not_called()


def test_verify_mentorship_marks_the_question_paid(student_client, mentor, question):
    gateway = {'id': 'pay_m', 'status': 'captured', 'amount': 49900, 'currency': 'INR'}
    payload = checkout('order_m', 'pay_m', question_id=question.id, mentorship_type=Question.VIDEO)
    with mock.patch('mentorship.payment_views.fetch_payment', return_value=gateway):
        response = student_client.post('/api/payment/verify-mentorship/', payload)
        replay = student_client.post('/api/payment/verify-mentorship/', payload)

    assert response.status_code == 200
    assert response.json()['mentor_id'] == mentor.id
    assert replay.json()['message'] == 'Payment already verified'
    assert Payment.objects.count() == 1

    question.refresh_from_db()
    assert question.is_paid
    assert question.paid_mentorship_type == Question.VIDEO
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == [mentor.email]

    status = student_client.get(f'/api/payment/status/{question.id}/').json()
    assert status['is_paid'] is True
    assert status['amount'] == 499


def test_verify_mentorship_requires_a_captured_payment(student_client, question):
    payload = checkout('order_m', 'pay_m', question_id=question.id, mentorship_type=Question.CHAT)
    with mock.patch('mentorship.payment_views.fetch_payment', return_value={'status': 'authorized'}):
        response = student_client.post('/api/payment/verify-mentorship/', payload)
    assert response.status_code == 400
    assert not Payment.objects.exists()


def test_verify_mentorship_for_someone_elses_question(question):
    outsider = make_user('outsider')
    payload = checkout('order_m', 'pay_m', question_id=question.id, mentorship_type=Question.CHAT)
    with mock.patch('mentorship.payment_views.fetch_payment') as fetch:
        response = client_for(outsider).post('/api/payment/verify-mentorship/', payload)
    assert response.status_code == 404
    fetch.assert_not_called()


def test_webhook_rejects_bad_signatures(api_client):
    response = post_webhook(api_client, captured('pay_x'), secret='wrong')
    assert response.status_code == 400


def test_webhook_capture_records_an_unseen_credit_pack(api_client, student):
    event = captured('pay_w', order_id='order_w', notes={
        'purpose': Payment.MESSAGE_CREDITS, 'user_id': str(student.id),
    })
    assert post_webhook(api_client, event).json() == {'status': 'ok'}
    assert post_webhook(api_client, event).status_code == 200

    payment = Payment.objects.get(razorpay_payment_id='pay_w')
    assert payment.purpose == Payment.MESSAGE_CREDITS
    student.refresh_from_db()
    assert student.message_credits == 22


@pytest.mark.parametrize('amount, notes_purpose', [
    (100, Payment.MESSAGE_CREDITS),
    (500, Payment.MENTORSHIP),
    (500, None),
])
def test_webhook_capture_that_is_not_a_credit_pack_grants_nothing(api_client, student, amount, notes_purpose):
    notes = {'user_id': str(student.id)}
    if notes_purpose:
        notes['purpose'] = notes_purpose
    response = post_webhook(api_client, captured('pay_w', order_id='order_w', amount=amount, notes=notes))

    assert response.status_code == 200
    student.refresh_from_db()
    assert student.message_credits == 2
    assert not Payment.objects.exists()


def test_webhook_capture_after_verify_does_not_double_credit(api_client, student_client, student):
    verify_pack(student_client, credit_pack_payment(student))
    post_webhook(api_client, captured('pay_1', notes={
        'purpose': Payment.MESSAGE_CREDITS, 'user_id': str(student.id),
    }))

    student.refresh_from_db()
    assert student.message_credits == 22
    assert Payment.objects.count() == 1


def test_webhook_failure_never_downgrades_a_capture(api_client, student_client, student):
    verify_pack(student_client, credit_pack_payment(student))
    post_webhook(api_client, {'event': 'payment.failed', 'payload': {'payment': {'entity': {'id': 'pay_1'}}}})
    assert Payment.objects.get().status == Payment.CAPTURED


def test_payment_history_and_mentor_earnings(student_client, mentor_client, question):
    gateway = {'id': 'pay_m', 'status': 'captured', 'amount': 99900, 'currency': 'INR'}
    payload = checkout('order_m', 'pay_m', question_id=question.id, mentorship_type=Question.ROADMAP)
    with mock.patch('mentorship.payment_views.fetch_payment', return_value=gateway):
        student_client.post('/api/payment/verify-mentorship/', payload)

    history = student_client.get('/api/payment/my-payments/').json()
    assert len(history) == 1
    assert history[0]['mentor']['id'] == question.selected_mentor_id
    assert history[0]['amount'] == 999

    earnings = mentor_client.get('/api/payment/mentor-earnings/').json()
    assert earnings['total_earnings'] == 999
    assert earnings['total_sessions'] == 1
    assert earnings['payments'][0]['user']['id'] == question.user_id

    assert student_client.get('/api/payment/mentor-earnings/').status_code == 403

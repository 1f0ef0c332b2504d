from unittest import mock

import pytest
import requests
from django.core.mail import EmailMultiAlternatives

from mentorship.email_backend import ResendEmailBackend


def make_message():
    message = EmailMultiAlternatives(
        'New question', 'plain body', 'Atyant <notification@atyant.in>', ['ravi@example.com'],
    )
    message.attach_alternative('<p>html body</p>', 'text/html')
    return message


def test_posts_to_resend(settings):
    settings.RESEND_API_KEY = 're_test'
    response = mock.Mock()
    response.json.return_value = {'id': 'email_1'}

    with mock.patch('mentorship.email_backend.requests.post', return_value=response) as post:
        sent = ResendEmailBackend().send_messages([make_message()])

    assert sent == 1
    payload = post.call_args.kwargs['json']
    assert payload['to'] == ['ravi@example.com']
    assert payload['html'] == '<p>html body</p>'
    assert post.call_args.kwargs['headers'] == {'Authorization': 'Bearer re_test'}


def test_without_api_key_nothing_is_sent(settings):
    settings.RESEND_API_KEY = ''
    with mock.patch('mentorship.email_backend.requests.post') as post:
        assert ResendEmailBackend().send_messages([make_message()]) == 0
    post.assert_not_called()


def test_http_errors_raise_unless_silenced(settings):
    settings.RESEND_API_KEY = 're_test'
    failure = requests.ConnectionError('down')

    with mock.patch('mentorship.email_backend.requests.post', side_effect=failure):
        with pytest.raises(requests.ConnectionError):
            ResendEmailBackend().send_messages([make_message()])

    with mock.patch('mentorship.email_backend.requests.post', side_effect=failure):
        assert ResendEmailBackend(fail_silently=True).send_messages([make_message()]) == 0

import pytest

from mentorship.models import Rating, User

from .helpers import make_user

pytestmark = pytest.mark.django_db

LONG_FEEDBACK = ('good advice ' * 50)[:501]


def rate(client, mentor, session='session-1', rating=5, **extra):
    return client.post('/api/ratings/', {
        'mentor_id': mentor.id, 'chat_session_id': session, 'rating': rating, **extra,
    })


def test_submit_rating(student_client, student, mentor):
    response = rate(student_client, mentor, feedback_text="Very clear, practical advice")
    assert response.status_code == 201
    body = response.json()
    assert body['success'] is True
    assert body['data']['rating'] == 5
    assert Rating.objects.get().user_id == student.id


@pytest.mark.parametrize('payload, code', [
    ({'chat_session_id': 's', 'rating': 5}, 'MISSING_MENTOR_ID'),
    ({'mentor_id': 1, 'rating': 5}, 'MISSING_SESSION_ID'),
    ({'mentor_id': 1, 'chat_session_id': 's'}, 'MISSING_RATING'),
    ({'mentor_id': 1, 'chat_session_id': 's', 'rating': 6}, 'INVALID_RATING'),
    ({'mentor_id': 1, 'chat_session_id': 's', 'rating': 'five'}, 'INVALID_RATING'),
    ({'mentor_id': 1, 'chat_session_id': 's', 'rating': 4, 'feedback_text': LONG_FEEDBACK}, 'FEEDBACK_TOO_LONG'),
])
def test_rating_validation(student_client, payload, code):
    response = student_client.post('/api/ratings/', payload)
    assert response.status_code == 400
    assert response.json()['code'] == code


def test_rating_a_non_mentor(student_client):
    peer = make_user('peer')
    response = rate(student_client, peer)
    assert response.status_code == 404
    assert response.json()['code'] == 'MENTOR_NOT_FOUND'


def test_one_rating_per_session(student_client, mentor):
    assert rate(student_client, mentor).status_code == 201
    response = rate(student_client, mentor, rating=1)
    assert response.status_code == 400
    assert response.json()['code'] == 'ALREADY_RATED'
    assert Rating.objects.count() == 1


def test_is_public_false_string_keeps_the_rating_private(student_client, api_client, mentor):
    response = rate(student_client, mentor, rating=1, is_public='false')
    assert response.status_code == 201
    assert Rating.objects.get().is_public is False

    data = api_client.get(f'/api/ratings/mentor/{mentor.id}/').json()['data']
    assert data['total_ratings'] == 0


def test_rating_visibility_defaults_to_public(student_client, mentor):
    rate(student_client, mentor)
    assert Rating.objects.get().is_public is True


def test_unrecognised_visibility_is_rejected(student_client, mentor):
    response = rate(student_client, mentor, is_public='sometimes')
    assert response.status_code == 400
    assert response.json()['code'] == 'INVALID_VISIBILITY'
    assert not Rating.objects.exists()


def test_abusive_feedback_is_rejected(student_client, mentor):
    response = rate(student_client, mentor, feedback_text="total bullshit session")
    assert response.status_code == 400
    assert not Rating.objects.exists()


def test_stats_only_count_public_ratings(api_client, student, mentor):
    other = make_user('kabir')
    Rating.objects.create(mentor=mentor, user=student, chat_session='a', rating=5)
    Rating.objects.create(mentor=mentor, user=other, chat_session='b', rating=4)
    Rating.objects.create(mentor=mentor, user=other, chat_session='c', rating=1, is_public=False)

    response = api_client.get(f'/api/ratings/mentor/{mentor.id}/')
    assert response.status_code == 200
    data = response.json()['data']
    assert data['average_rating'] == 4.5
    assert data['total_ratings'] == 2
    assert data['five_stars'] == 1
    assert data['one_star'] == 0


def test_stats_for_unknown_mentor(api_client):
    assert api_client.get('/api/ratings/mentor/9999/').status_code == 404


def test_reviews_skip_empty_feedback_and_paginate(api_client, student, mentor):
    for index in range(3):
        Rating.objects.create(
            mentor=mentor, user=student, chat_session=f's{index}', rating=5, feedback_text=f"Review {index}",
        )
    Rating.objects.create(mentor=mentor, user=student, chat_session='silent', rating=4)

    response = api_client.get(f'/api/ratings/mentor/{mentor.id}/reviews/', {'limit': 2})
    data = response.json()['data']
    assert len(data['reviews']) == 2
    assert data['pagination'] == {'current_page': 1, 'total_pages': 2, 'total_reviews': 3, 'has_more': True}
    assert data['reviews'][0]['user']['username'] == student.username


def test_top_mentors_require_enough_ratings(api_client, student, mentor):
    rookie = make_user('kabir', role=User.MENTOR)
    for index in range(5):
        Rating.objects.create(mentor=mentor, user=student, chat_session=f'm{index}', rating=4)
    Rating.objects.create(mentor=rookie, user=student, chat_session='r0', rating=5)

    data = api_client.get('/api/ratings/top-mentors/').json()['data']
    assert [entry['mentor_id'] for entry in data] == [mentor.id]

    data = api_client.get('/api/ratings/top-mentors/', {'min_ratings': 1}).json()['data']
    assert [entry['mentor_id'] for entry in data] == [rookie.id, mentor.id]


def test_check_session_rated(student_client, mentor):
    response = student_client.get('/api/ratings/check/session-1/')
    assert response.json() == {'success': True, 'has_rated': False, 'rating': None}

    rate(student_client, mentor, rating=3)
    response = student_client.get('/api/ratings/check/session-1/')
    assert response.json() == {'success': True, 'has_rated': True, 'rating': 3}

import pytest

from mentorship.location import bounding_box, format_distance, haversine_km, nearby_mentors
from mentorship.models import User

from .helpers import client_for, make_user

pytestmark = pytest.mark.django_db

MUMBAI = (19.0760, 72.8777)


def place_mentor(username, latitude, longitude, **extra):
    return make_user(username, role=User.MENTOR, latitude=latitude, longitude=longitude, **extra)


@pytest.fixture
def mentors_around_mumbai():
    return {
        'pune': place_mentor('pune_mentor', 18.5204, 73.8567),
        'thane': place_mentor('thane_mentor', 19.2183, 72.9781),
        'bandra': place_mentor('bandra_mentor', 19.0596, 72.8295),
    }


def test_one_degree_of_latitude():
    assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.01)
    assert haversine_km(*MUMBAI, *MUMBAI) == 0


def test_format_distance():
    assert format_distance(0.5) == '500 m'
    assert format_distance(5.44) == '5.4 km'
    assert format_distance(120.3) == '120.3 km'
    assert format_distance(0.02) == 'Nearby'


def test_bounding_box_drops_longitude_bounds_across_the_antimeridian():
    min_lat, max_lat, min_lon, max_lon = bounding_box(0, 179.9, 100)
    assert min_lat < 0 < max_lat
    assert min_lon is None and max_lon is None


def test_nearby_mentors_are_sorted_by_distance(mentors_around_mumbai):
    found = nearby_mentors(*MUMBAI, max_distance_km=200)

    assert [mentor.username for mentor, _ in found] == ['bandra_mentor', 'thane_mentor', 'pune_mentor']
    distances = [distance for _, distance in found]
    assert distances == sorted(distances)
    assert distances[0] == pytest.approx(5.4, abs=0.2)


def test_nearby_mentors_respect_the_cutoff(mentors_around_mumbai):
    found = nearby_mentors(*MUMBAI, max_distance_km=50)
    assert [mentor.username for mentor, _ in found] == ['bandra_mentor', 'thane_mentor']

    found = nearby_mentors(*MUMBAI, max_distance_km=10)
    assert [mentor.username for mentor, _ in found] == ['bandra_mentor']


def test_nearby_mentors_skip_students_and_mentors_without_location():
    make_user('student_nearby', latitude=19.07, longitude=72.88)
    make_user('no_location', role=User.MENTOR)
    make_user('inactive_mentor', role=User.MENTOR, latitude=19.07, longitude=72.88, is_active=False)

    assert nearby_mentors(*MUMBAI) == []


def test_nearby_mentors_across_the_antimeridian():
    place_mentor('fiji_mentor', 0, -179.9)
    found = nearby_mentors(0, 179.9, max_distance_km=50)
    assert [mentor.username for mentor, _ in found] == ['fiji_mentor']
    assert found[0][1] == pytest.approx(22.2, abs=0.1)


def test_nearby_endpoint_orders_and_cuts_off(student_client, mentors_around_mumbai):
    response = student_client.post('/api/location/nearby/', {
        'latitude': MUMBAI[0], 'longitude': MUMBAI[1], 'max_distance_km': 50,
    })

    assert response.status_code == 200
    body = response.json()
    assert body['count'] == 2
    assert [m['username'] for m in body['mentors']] == ['bandra_mentor', 'thane_mentor']
    assert body['mentors'][0]['distance_text'] == '5.4 km'
    assert body['mentors'][0]['distance_km'] < body['mentors'][1]['distance_km']


def test_nearby_endpoint_uses_a_default_radius(student_client, mentors_around_mumbai):
    response = student_client.post('/api/location/nearby/', {'latitude': MUMBAI[0], 'longitude': MUMBAI[1]})

    assert response.status_code == 200
    assert 'pune_mentor' not in [m['username'] for m in response.json()['mentors']]


def test_nearby_endpoint_excludes_the_caller(mentors_around_mumbai):
    bandra = mentors_around_mumbai['bandra']
    response = client_for(bandra).post('/api/location/nearby/', {
        'latitude': bandra.latitude, 'longitude': bandra.longitude, 'max_distance_km': 50,
    })

    assert [m['username'] for m in response.json()['mentors']] == ['thane_mentor']


def test_nearby_endpoint_rejects_bad_coordinates(student_client):
    response = student_client.post('/api/location/nearby/', {'latitude': 91, 'longitude': 72.8})

    assert response.status_code == 400
    assert 'latitude' in response.json()['errors']


def test_nearby_requires_authentication(api_client):
    response = api_client.post('/api/location/nearby/', {'latitude': 19, 'longitude': 72})
    assert response.status_code == 401


def test_my_location_before_and_after_update(student, student_client):
    response = student_client.get('/api/location/me/')
    assert response.json() == {'success': True, 'location': None, 'has_location': False}

    response = student_client.post('/api/location/update/', {'latitude': MUMBAI[0], 'longitude': MUMBAI[1]})
    assert response.status_code == 200
    assert response.json()['message'] == 'Location updated successfully'

    location = student_client.get('/api/location/me/').json()['location']
    assert location['latitude'] == MUMBAI[0]
    assert location['longitude'] == MUMBAI[1]
    assert location['city'] == 'Location (19.0760, 72.8777)'
    assert location['has_location'] is True
    student.refresh_from_db()
    assert student.location_updated_at is not None


def test_update_location_keeps_a_given_city(student, student_client):
    student_client.post('/api/location/update/', {
        'latitude': MUMBAI[0], 'longitude': MUMBAI[1], 'city': 'Mumbai', 'state': 'Maharashtra',
    })

    student.refresh_from_db()
    assert student.city == 'Mumbai'
    assert student.state == 'Maharashtra'


def test_update_location_rejects_out_of_range_longitude(student, student_client):
    response = student_client.post('/api/location/update/', {'latitude': 19, 'longitude': 181})

    assert response.status_code == 400
    student.refresh_from_db()
    assert student.latitude is None

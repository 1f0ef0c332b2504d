from unittest import mock

import pytest

from mentorship.sheets import DirectoryUnavailable, get_professors, rows_to_records

pytestmark = pytest.mark.django_db


def test_rows_to_records_pads_short_rows_and_skips_blank_ones():
    rows = [
        ['Name', 'Area', 'Email'],
        ['A. Sharma', 'Finance', 'asharma@iima.ac.in'],
        ['', '', ''],
        ['B. Rao', 'Marketing'],
    ]
    assert rows_to_records(rows) == [
        {'Name': 'A. Sharma', 'Area': 'Finance', 'Email': 'asharma@iima.ac.in'},
        {'Name': 'B. Rao', 'Area': 'Marketing', 'Email': ''},
    ]


def test_rows_to_records_without_rows():
    assert rows_to_records([]) == []


def test_unconfigured_sheet_is_unavailable(settings):
    settings.GOOGLE_SHEET_ID = ''
    with pytest.raises(DirectoryUnavailable):
        get_professors('IIMA')


def test_directory_is_public(api_client):
    professors = [{'Name': 'A. Sharma', 'Area': 'Finance'}]
    with mock.patch('mentorship.views.get_professors', return_value=professors) as fetch:
        response = api_client.get('/api/iim/professors/IIMA/')

    fetch.assert_called_once_with('IIMA')
    assert response.status_code == 200
    assert response.json() == {'campus': 'IIMA', 'count': 1, 'professors': professors}


def test_directory_outage(api_client):
    with mock.patch('mentorship.views.get_professors', side_effect=DirectoryUnavailable('quota')):
        response = api_client.get('/api/iim/professors/IIMB/')
    assert response.status_code == 502

import logging
from urllib.parse import quote

from django.conf import settings
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account
from requests import RequestException

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/spreadsheets.readonly']
VALUES_URL = 'https://sheets.googleapis.com/v4/spreadsheets/{sheet_id}/values/{range}'


class DirectoryUnavailable(Exception):
    pass


def _session():
    credentials = service_account.Credentials.from_service_account_info(
        {
            'type': 'service_account',
            'project_id': settings.GOOGLE_PROJECT_ID,
            'client_email': settings.GOOGLE_CLIENT_EMAIL,
            'private_key': settings.GOOGLE_PRIVATE_KEY,
            'token_uri': 'https://oauth2.googleapis.com/token',
        },
        scopes=SCOPES,
    )
    return AuthorizedSession(credentials)


def read_range(range_name):
    if not (settings.GOOGLE_SHEET_ID and settings.GOOGLE_CLIENT_EMAIL and settings.GOOGLE_PRIVATE_KEY):
        raise DirectoryUnavailable("Google Sheets is not configured")

    url = VALUES_URL.format(sheet_id=settings.GOOGLE_SHEET_ID, range=quote(range_name, safe=''))
    try:
        response = _session().get(url, timeout=settings.OUTBOUND_TIMEOUT_SECONDS)
        response.raise_for_status()
    except (GoogleAuthError, RequestException, ValueError) as e:
        logger.error(f"Reading sheet range '{range_name}' failed: {e}")
        raise DirectoryUnavailable(str(e)) from e
    return response.json().get('values', [])


def rows_to_records(rows):
    """First row is the header; short rows are padded with empty strings."""
    if not rows:
        return []
    headers = [str(header).strip() for header in rows[0]]
    records = []
    for row in rows[1:]:
        if not any(str(cell).strip() for cell in row):
            continue
        records.append({
            header: (row[index] if index < len(row) else '')
            for index, header in enumerate(headers)
            if header
        })
    return records


def get_professors(campus):
    return rows_to_records(read_range(campus))

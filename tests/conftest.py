"""Pytest configuration and fixtures for the recording export tests."""

import json
import logging
import tempfile
from unittest.mock import MagicMock

import pytest

from commons import PVWASession


# Configure logging for tests
logging.basicConfig(level=logging.INFO)


def make_response(status_code=200, body=None, chunks=None, headers=None):
    """Build a fake requests.Response.

    Args:
        status_code: HTTP status to report
        body: Object returned by .json() and serialized into .text
        chunks: Byte chunks yielded by .iter_content()
        headers: Response headers
    """
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    if body is not None:
        response.json.return_value = body
        response.text = body if isinstance(body, str) else json.dumps(body)
    else:
        response.json.side_effect = ValueError("No JSON object could be decoded")
        response.text = ""
    response.iter_content.return_value = iter(chunks or [])
    return response


def make_recording_data(session_id, **extra):
    """A Recordings entry shaped like the server's."""
    data = {
        "SessionID": session_id,
        "SessionGuid": f"guid-{session_id}",
        "SafeName": "PSMRecordings",
        "FileName": f"{session_id}.Session.avi",
        "Start": 1717200000,
        "End": 1717203600,
        "Duration": 3600,
        "User": "auditor",
        "RemoteMachine": "srv01.example.com",
        "AccountUsername": "root",
        "AccountPlatformID": "UnixSSH",
        "AccountAddress": "10.0.0.5",
        "RecordedActivities": [],
        "ConnectionComponentID": "PSM-SSH",
        "FromIP": "10.0.0.10",
        "Client": "PSMP",
        "RiskScore": 12.5,
        "Severity": "Low",
        "RecordingFiles": [
            {
                "FileName": f"{session_id}.Session.avi",
                "RecordingType": 1,
                "LastReviewBy": "",
                "LastReviewDate": 0,
                "FileSize": 1024,
                "CompressedFileSize": 512,
                "Format": "avi",
            }
        ],
        "VideoSize": 1024,
        "TextSize": 0,
        "DetailsUrl": f"/recordings/{session_id}",
    }
    data.update(extra)
    return data


def make_page(start, count, total):
    """A listing page of count recordings numbered from start."""
    return make_response(body={
        "Recordings": [make_recording_data(f"S{n:05d}") for n in range(start, start + count)],
        "Total": total,
    })


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def mock_http():
    """Mock requests.Session for testing without a PVWA server."""
    http = MagicMock()
    http.headers = {}
    return http


@pytest.fixture
def pvwa_session(mock_http):
    """An already authenticated session."""
    session = PVWASession("https://pvwa.example.com/PasswordVault/API", "auditor", mock_http)
    session.set_token("test-token")
    return session

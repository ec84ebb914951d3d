# Common functions
import json
import logging
import os
import getpass
from datetime import datetime, timedelta

import pytz
import requests
from tqdm import tqdm

from constants import (
    CHUNK_SIZE,
    JSON_INDENT,
    LOGON_PATH,
    METADATA_EXTENSION,
    PAGE_SIZE,
    PASSWORD_ENV_VAR,
    PLAY_PATH,
    RECORDINGS_PATH,
    REFERENCE_YEAR,
    VIDEO_EXTENSION,
)
from errors import (
    AuthError,
    ConfigError,
    ProtocolError,
    StorageError,
    TransportError,
)
from models import Recording, RecordingSet

logger = logging.getLogger(__name__)


class PVWASession:
    """
    Authenticated connection to the PVWA API.

    Every request made through ``http`` carries the authorization token.
    The token's lifetime is the server's concern; it is never refreshed.
    """

    def __init__(self, base_url, username, http):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.http = http
        self.token = None

    def url(self, path):
        return self.base_url + path

    def set_token(self, token):
        self.token = token
        self.http.headers["Authorization"] = token


#===============================================
# Input helpers
#===============================================
def parse_months(months_text):
    """
    Parse a months option into a list of month numbers

    Accepts a range ("1-12") or a comma separated list ("5,6,7").

    :return: list of ints between 1 and 12
    """
    months = []
    if "-" in months_text:
        parts = months_text.split("-")
        if len(parts) != 2:
            raise ConfigError("invalid month range format. Use 'start-end' (e.g. '1-12')")
        try:
            start, end = int(parts[0]), int(parts[1])
        except ValueError as e:
            raise ConfigError(f"invalid month range {months_text!r}: {e}") from e
        candidates = range(start, end + 1)
    else:
        try:
            candidates = [int(m.strip()) for m in months_text.split(",")]
        except ValueError as e:
            raise ConfigError(f"invalid month in {months_text!r}: {e}") from e

    for month in candidates:
        if month < 1 or month > 12:
            raise ConfigError("months must be between 1 and 12")
        months.append(month)

    if not months:
        raise ConfigError(f"no months selected by {months_text!r}")
    return months


def get_password(username):
    """
    Password from the PVWA_PASSWORD environment variable, or prompt for it
    """
    password = os.environ.get(PASSWORD_ENV_VAR, "")
    if not password:
        try:
            password = getpass.getpass(f"Please enter password for user {username}: ")
        except (EOFError, KeyboardInterrupt) as e:
            raise ConfigError(f"error reading password: {e}") from e
        password = password.strip()
    if not password:
        raise ConfigError("password cannot be empty")
    return password


def month_output_dir(root, month):
    return os.path.join(root, str(month))


#===============================================
# PVWA functions
#===============================================
def authenticate(base_url, username, password, http=None):
    """
    Exchange the credentials for an authorization token

    Args:
        base_url (str): Root endpoint of the PVWA API
        username (str): User allowed to see the recordings
        password (str): Password for that user
        http (requests.Session, optional): Session to reuse for later calls

    Returns:
        PVWASession: Session with the token attached to every request
    """
    if not base_url:
        raise ConfigError("baseURL cannot be empty")
    if not username:
        raise ConfigError("username cannot be empty")
    if not password:
        raise ConfigError("password cannot be empty")

    session = PVWASession(base_url, username, http or requests.Session())
    logger.info("authenticating url=%s username=%s", session.base_url, username)

    try:
        response = session.http.post(
            session.url(LOGON_PATH),
            json={"username": username, "password": password},
        )
    except requests.RequestException as e:
        raise TransportError(f"error obtaining authorization token: {e}") from e

    if not 200 <= response.status_code < 300:
        raise AuthError(
            f"error obtaining authorization token: status code {response.status_code}"
        )

    token = response.text.strip().strip('"')
    if not token:
        raise AuthError("error obtaining authorization token: empty token returned")

    session.set_token(token)
    logger.info("authenticated username=%s", username)
    return session


def list_recordings(session, query_params):
    """
    Retrieve every recording matching the query, one page at a time

    The server returns at most PAGE_SIZE recordings per request, so the
    offset is advanced until a short page comes back. Paging also stops
    once the offset reaches the reported Total, in case the server keeps
    returning full pages.

    Args:
        session (PVWASession): Authenticated session
        query_params (dict): Filters such as sort, order, fromtime, totime

    Returns:
        RecordingSet: All recordings plus the server-reported Total
    """
    logger.info("retrieving recordings params=%s", query_params)
    result = RecordingSet()
    offset = 0

    while True:
        current_params = dict(query_params)
        current_params["offset"] = str(offset)

        page, total = _fetch_page(session, current_params, offset)
        logger.info(
            "retrieved page of recordings offset=%d count=%d total=%d",
            offset, len(page), total,
        )

        result.recordings.extend(page)
        result.total = total

        # A short page is the last one
        if len(page) < PAGE_SIZE:
            break

        offset += PAGE_SIZE

        if offset >= total:
            logger.warning(
                "stopping pagination offset=%d total=%d retrieved=%d",
                offset, total, len(result.recordings),
            )
            break

    return result


def _fetch_page(session, params, offset):
    try:
        response = session.http.get(session.url(RECORDINGS_PATH), params=params)
    except requests.RequestException as e:
        raise TransportError(f"could not retrieve recordings at offset {offset}: {e}") from e

    if response.status_code != 200:
        raise ProtocolError(
            f"could not retrieve recordings at offset {offset}: "
            f"status code {response.status_code}"
        )

    try:
        data = response.json()
    except ValueError as e:
        raise ProtocolError(f"could not decode recordings at offset {offset}: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError(f"unexpected recordings body at offset {offset}: {data!r}")

    try:
        entries = data.get("Recordings") or []
        total = int(data.get("Total") or 0)
        page = [Recording.from_dict(entry) for entry in entries]
    except (AttributeError, TypeError, ValueError, ProtocolError) as e:
        raise ProtocolError(f"malformed recordings at offset {offset}: {e}") from e

    return page, total


def list_all_recordings(session):
    """
    Recordings without a time filter, sorted by name
    """
    return list_recordings(session, {"sort": "name", "order": "asc"})


def month_bounds(month, year=REFERENCE_YEAR):
    """
    First and last second of a calendar month in UTC
    :return: (from, to) as epoch seconds
    """
    start = datetime(year, month, 1, tzinfo=pytz.utc)
    if month == 12:
        next_start = datetime(year + 1, 1, 1, tzinfo=pytz.utc)
    else:
        next_start = datetime(year, month + 1, 1, tzinfo=pytz.utc)
    end = next_start - timedelta(seconds=1)
    return int(start.timestamp()), int(end.timestamp())


def query_for_month(month, year=REFERENCE_YEAR):
    """
    Listing filters for one calendar month; month must already be in 1..12
    """
    from_time, to_time = month_bounds(month, year)
    return {
        "sort": "name",
        "order": "asc",
        "fromtime": str(from_time),
        "totime": str(to_time),
    }


def get_recordings_by_month(session, month, year=REFERENCE_YEAR):
    return list_recordings(session, query_for_month(month, year))


def _ensure_directory(path):
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise StorageError(f"error creating output directory {path}: {e}") from e


def download_recordings(session, output_dir, recordings):
    """
    Download the video of every recording into output_dir

    Videos are streamed in CHUNK_SIZE pieces so memory stays bounded
    whatever the recording size. Recordings are processed one at a time
    and the first failure stops the whole download.

    Args:
        session (PVWASession): Authenticated session
        output_dir (str): Directory to save the videos in
        recordings (RecordingSet): Recordings to download

    Returns:
        list: Paths of downloaded videos
    """
    logger.info("starting download of recordings count=%d path=%s", len(recordings), output_dir)
    _ensure_directory(output_dir)

    downloaded_files = []
    for recording in recordings:
        downloaded_files.append(download_recording(session, output_dir, recording))
    return downloaded_files


def download_recording(session, output_dir, recording):
    file_path = os.path.join(output_dir, recording.session_id + VIDEO_EXTENSION)

    try:
        out = open(file_path, "wb")
    except OSError as e:
        raise StorageError(f"error creating output file {file_path}: {e}") from e

    try:
        with out:
            total_bytes = _stream_video(session, recording.session_id, out)
    except BaseException:
        # Never leave a truncated video behind
        _remove_partial_file(file_path)
        raise

    logger.info(
        "download complete sessionID=%s bytes=%d file=%s",
        recording.session_id, total_bytes, file_path,
    )
    return file_path


def _stream_video(session, session_id, out):
    url = session.url(PLAY_PATH.format(session_id=session_id))
    try:
        response = session.http.post(url, headers={"Accept": "*/*"}, stream=True)
    except requests.RequestException as e:
        raise TransportError(f"error requesting video for session {session_id}: {e}") from e

    try:
        if response.status_code != 200:
            raise ProtocolError(
                f"unexpected status code {response.status_code} for session {session_id}"
            )

        total_size = _content_length(response)
        total_bytes = 0
        chunks = iter(response.iter_content(CHUNK_SIZE))
        with tqdm(
            desc=f"Downloading {session_id}",
            total=total_size or None,
            unit="B",
            unit_scale=True,
            leave=False,
        ) as prog_bar:
            while True:
                try:
                    chunk = next(chunks, None)
                except requests.RequestException as e:
                    raise TransportError(
                        f"error reading video for session {session_id} "
                        f"after {total_bytes} bytes: {e}"
                    ) from e
                if chunk is None:
                    break
                if not chunk:
                    continue

                try:
                    out.write(chunk)
                except OSError as e:
                    raise StorageError(
                        f"error writing video for session {session_id}: {e}"
                    ) from e
                total_bytes += len(chunk)
                prog_bar.update(len(chunk))
    finally:
        response.close()

    return total_bytes


def _content_length(response):
    # Only feeds the progress bar; a repeated header arrives merged as "n, n"
    try:
        return int(response.headers.get("content-length") or 0)
    except (TypeError, ValueError):
        return 0


def _remove_partial_file(file_path):
    try:
        os.remove(file_path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("could not remove partial file %s: %s", file_path, e)


def export_recordings_json(output_dir, recordings):
    """
    Write each recording's metadata to <SessionID>.json in output_dir

    Args:
        output_dir (str): Directory to save the files in
        recordings (RecordingSet): Recordings to export

    Returns:
        list: Paths of written files
    """
    logger.info("saving recordings to JSON directory=%s count=%d", output_dir, len(recordings))
    _ensure_directory(output_dir)

    written_files = []
    for recording in recordings:
        file_path = os.path.join(output_dir, recording.session_id + METADATA_EXTENSION)
        try:
            json_data = json.dumps(recording.to_dict(), indent=JSON_INDENT)
        except (TypeError, ValueError) as e:
            raise StorageError(
                f"error serializing session {recording.session_id} to JSON: {e}"
            ) from e

        try:
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(json_data)
        except OSError as e:
            raise StorageError(f"error writing JSON to file {file_path}: {e}") from e

        logger.info("saved recording JSON file=%s", file_path)
        written_files.append(file_path)

    return written_files

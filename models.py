# Recording data model
import os
from dataclasses import dataclass, field

from errors import ProtocolError


def check_session_id(session_id):
    """
    The SessionID names files on disk, so it must be a plain file name
    """
    separators = {"/", "\\", os.sep, os.altsep} - {None}
    if session_id in ("", ".", "..") or any(s in session_id for s in separators):
        raise ProtocolError(f"unusable SessionID {session_id!r}")
    return session_id


@dataclass(frozen=True)
class RecordingFile:
    """
    One media or log file attached to a recording
    """
    file_name: str = ""
    recording_type: int = 0
    last_review_by: str = ""
    last_review_date: int = 0
    file_size: int = 0
    compressed_file_size: int = 0
    format: str = ""

    @classmethod
    def from_dict(cls, data):
        return cls(
            file_name=data.get("FileName") or "",
            recording_type=data.get("RecordingType") or 0,
            last_review_by=data.get("LastReviewBy") or "",
            last_review_date=data.get("LastReviewDate") or 0,
            file_size=data.get("FileSize") or 0,
            compressed_file_size=data.get("CompressedFileSize") or 0,
            format=data.get("Format") or "",
        )

    def to_dict(self):
        return {
            "FileName": self.file_name,
            "RecordingType": self.recording_type,
            "LastReviewBy": self.last_review_by,
            "LastReviewDate": self.last_review_date,
            "FileSize": self.file_size,
            "CompressedFileSize": self.compressed_file_size,
            "Format": self.format,
        }


@dataclass(frozen=True)
class Recording:
    """
    Metadata about a single PSM recording session.

    The session_id is used to name both the downloaded video and the
    exported metadata file.
    """
    session_id: str
    session_guid: str = ""
    safe_name: str = ""
    file_name: str = ""
    start: int = 0
    end: int = 0
    duration: int = 0
    user: str = ""
    remote_machine: str = ""
    account_username: str = ""
    account_platform_id: str = ""
    account_address: str = ""
    recorded_activities: tuple = ()
    connection_component_id: str = ""
    from_ip: str = ""
    client: str = ""
    risk_score: float = 0.0
    severity: str = ""
    recording_files: tuple = ()
    video_size: int = 0
    text_size: int = 0
    details_url: str = ""

    @classmethod
    def from_dict(cls, data):
        """
        Build a Recording from one entry of the API "Recordings" list

        Args:
            data (dict): Decoded JSON object as returned by the server

        Returns:
            Recording: Missing fields are filled with empty values
        """
        return cls(
            session_id=check_session_id(str(data.get("SessionID") or "")),
            session_guid=data.get("SessionGuid") or "",
            safe_name=data.get("SafeName") or "",
            file_name=data.get("FileName") or "",
            start=data.get("Start") or 0,
            end=data.get("End") or 0,
            duration=data.get("Duration") or 0,
            user=data.get("User") or "",
            remote_machine=data.get("RemoteMachine") or "",
            account_username=data.get("AccountUsername") or "",
            account_platform_id=data.get("AccountPlatformID") or "",
            account_address=data.get("AccountAddress") or "",
            recorded_activities=tuple(data.get("RecordedActivities") or ()),
            connection_component_id=data.get("ConnectionComponentID") or "",
            from_ip=data.get("FromIP") or "",
            client=data.get("Client") or "",
            risk_score=float(data.get("RiskScore") or 0.0),
            severity=data.get("Severity") or "",
            recording_files=tuple(
                RecordingFile.from_dict(f) for f in data.get("RecordingFiles") or ()
            ),
            video_size=data.get("VideoSize") or 0,
            text_size=data.get("TextSize") or 0,
            details_url=data.get("DetailsUrl") or "",
        )

    def to_dict(self):
        """
        The recording with the vendor's field names, in the vendor's order
        """
        return {
            "SessionID": self.session_id,
            "SessionGuid": self.session_guid,
            "SafeName": self.safe_name,
            "FileName": self.file_name,
            "Start": self.start,
            "End": self.end,
            "Duration": self.duration,
            "User": self.user,
            "RemoteMachine": self.remote_machine,
            "AccountUsername": self.account_username,
            "AccountPlatformID": self.account_platform_id,
            "AccountAddress": self.account_address,
            "RecordedActivities": list(self.recorded_activities),
            "ConnectionComponentID": self.connection_component_id,
            "FromIP": self.from_ip,
            "Client": self.client,
            "RiskScore": self.risk_score,
            "Severity": self.severity,
            "RecordingFiles": [f.to_dict() for f in self.recording_files],
            "VideoSize": self.video_size,
            "TextSize": self.text_size,
            "DetailsUrl": self.details_url,
        }


@dataclass
class RecordingSet:
    """
    Recordings returned for one query plus the server-reported Total
    """
    recordings: list = field(default_factory=list)
    total: int = 0

    def __len__(self):
        return len(self.recordings)

    def __iter__(self):
        return iter(self.recordings)

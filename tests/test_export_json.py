"""Unit tests for the recording model and metadata export."""

import json
import os

import pytest

from commons import export_recordings_json
from errors import ProtocolError, StorageError
from models import Recording, RecordingFile, RecordingSet
from conftest import make_recording_data


@pytest.fixture
def sample_set():
    recordings = [Recording.from_dict(make_recording_data(sid)) for sid in ("11_1", "11_2")]
    return RecordingSet(recordings=recordings, total=2)


@pytest.mark.unit
class TestRecordingModel:
    """Test cases for Recording decoding."""

    def test_from_dict_round_trips_vendor_fields(self):
        data = make_recording_data("11_1")

        recording = Recording.from_dict(data)

        assert recording.session_id == "11_1"
        assert recording.risk_score == 12.5
        assert recording.recording_files[0] == RecordingFile(
            file_name="11_1.Session.avi", recording_type=1, file_size=1024,
            compressed_file_size=512, format="avi",
        )
        assert recording.to_dict() == data

    def test_missing_fields_get_empty_values(self):
        recording = Recording.from_dict({"SessionID": 5})

        assert recording.session_id == "5"
        assert recording.to_dict()["RecordingFiles"] == []
        assert recording.to_dict()["Severity"] == ""

    @pytest.mark.parametrize("session_id", ["", ".", "..", "../escape", "a/b", "a\\b"])
    def test_session_id_must_be_a_file_name(self, session_id):
        with pytest.raises(ProtocolError):
            Recording.from_dict(make_recording_data(session_id))

    def test_recording_is_immutable(self):
        recording = Recording(session_id="1")

        with pytest.raises(AttributeError):
            recording.session_id = "2"


@pytest.mark.unit
class TestExportRecordingsJson:
    """Test cases for export_recordings_json."""

    def test_one_file_per_recording(self, temp_data_dir, sample_set):
        files = export_recordings_json(temp_data_dir, sample_set)

        assert sorted(os.listdir(temp_data_dir)) == ["11_1.json", "11_2.json"]
        assert files == [os.path.join(temp_data_dir, "11_1.json"),
                         os.path.join(temp_data_dir, "11_2.json")]

    def test_indented_vendor_field_names(self, temp_data_dir, sample_set):
        export_recordings_json(temp_data_dir, sample_set)

        with open(os.path.join(temp_data_dir, "11_1.json"), encoding="utf-8") as f:
            text = f.read()
        assert text.startswith('{\n    "SessionID": "11_1",\n    "SessionGuid"')
        assert json.loads(text) == make_recording_data("11_1")

    def test_rerun_is_byte_identical(self, temp_data_dir, sample_set):
        export_recordings_json(temp_data_dir, sample_set)
        with open(os.path.join(temp_data_dir, "11_2.json"), "rb") as f:
            first = f.read()

        export_recordings_json(temp_data_dir, sample_set)
        with open(os.path.join(temp_data_dir, "11_2.json"), "rb") as f:
            second = f.read()

        assert first == second

    def test_overwrites_existing_file(self, temp_data_dir, sample_set):
        stale = os.path.join(temp_data_dir, "11_1.json")
        with open(stale, "w", encoding="utf-8") as f:
            f.write("stale" * 1000)

        export_recordings_json(temp_data_dir, sample_set)

        with open(stale, encoding="utf-8") as f:
            assert json.load(f)["SessionID"] == "11_1"

    def test_unwritable_directory(self, temp_data_dir, sample_set):
        blocker = os.path.join(temp_data_dir, "6")
        with open(blocker, "w", encoding="utf-8") as f:
            f.write("not a directory")

        with pytest.raises(StorageError):
            export_recordings_json(blocker, sample_set)

    def test_unserializable_recording_aborts(self, temp_data_dir):
        bad = Recording(session_id="bad", recorded_activities=(object(),))
        good = Recording(session_id="good")

        with pytest.raises(StorageError, match="bad"):
            export_recordings_json(temp_data_dir, RecordingSet(recordings=[bad, good], total=2))

        assert not os.path.exists(os.path.join(temp_data_dir, "good.json"))

"""Tests for JSON persistence and the cursor/transcript stores."""

import json

from streamarchive.models import CursorState, TranscriptDocument, TranscriptMessage
from streamarchive.storage.jsonfile import read_json, write_json


class TestJsonFile:
    def test_write_then_read(self, tmp_path):
        path = tmp_path / "nested" / "doc.json"
        write_json(path, {"name": "天硝路ろまん"})
        assert read_json(path) == {"name": "天硝路ろまん"}
        assert "天硝路ろまん" in path.read_text(encoding="utf-8")

    def test_missing_reads_none(self, tmp_path):
        assert read_json(tmp_path / "absent.json") is None

    def test_corrupt_reads_none(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        assert read_json(path) is None

    def test_no_temp_files_left(self, tmp_path):
        write_json(tmp_path / "doc.json", [1, 2, 3])
        assert [p.name for p in tmp_path.iterdir()] == ["doc.json"]


class TestJsonCursorRepository:
    def test_round_trip_preserves_unresolved_vs_null(self, cursor_repo):
        cursor_repo.save_all({
            "v1": CursorState(session_id="S1", continuation_token="tok1"),
            "v2": CursorState.unavailable(),
            "v3": CursorState(),
        })
        loaded = cursor_repo.load_all()
        assert loaded["v1"].resume_token == "tok1"
        assert loaded["v2"].is_terminal
        assert not loaded["v3"].session_resolved

    def test_on_disk_shape(self, cursor_repo):
        cursor_repo.save_all({"v1": CursorState(session_id="S1", continuation_token="")})
        data = json.loads(cursor_repo.path.read_text(encoding="utf-8"))
        assert data == {"v1": {"liveChatId": "S1", "nextPageToken": ""}}

    def test_missing_store_is_empty(self, cursor_repo):
        assert cursor_repo.load_all() == {}

    def test_corrupt_store_is_empty(self, cursor_repo):
        cursor_repo.path.parent.mkdir(parents=True)
        cursor_repo.path.write_text("not json", encoding="utf-8")
        assert cursor_repo.load_all() == {}

    def test_non_object_store_is_empty(self, cursor_repo):
        cursor_repo.path.parent.mkdir(parents=True)
        cursor_repo.path.write_text("[1, 2]", encoding="utf-8")
        assert cursor_repo.load_all() == {}


class TestJsonTranscriptRepository:
    def _doc(self):
        return TranscriptDocument(
            video_id="v1",
            channel_key="chanA",
            channel_name="A",
            messages=[TranscriptMessage(timestamp="2025-01-01T00:00:01Z", text="hi", offset_seconds=1)],
        )

    def test_save_and_get(self, transcript_repo):
        transcript_repo.save(self._doc())
        loaded = transcript_repo.get("chanA", "v1")
        assert loaded is not None
        assert loaded.messages[0].text == "hi"
        assert transcript_repo.exists("chanA", "v1")

    def test_grouped_by_channel(self, transcript_repo, tmp_path):
        transcript_repo.save(self._doc())
        assert transcript_repo.path_for("chanA", "v1") == tmp_path / "data" / "comments" / "chanA" / "v1.json"
        assert transcript_repo.path_for("chanA", "v1").exists()

    def test_get_missing(self, transcript_repo):
        assert transcript_repo.get("chanA", "nope") is None
        assert not transcript_repo.exists("chanA", "nope")

    def test_invalid_document_treated_as_absent(self, transcript_repo):
        path = transcript_repo.path_for("chanA", "v1")
        path.parent.mkdir(parents=True)
        path.write_text(json.dumps({"messages": "wrong"}), encoding="utf-8")
        assert transcript_repo.get("chanA", "v1") is None

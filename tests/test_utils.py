import pytest

import utils


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(utils, "UPLOAD_ROOT", "uploads")
    utils.setup_upload_directories()
    return tmp_path / "uploads"


class TestAssessmentVideos:

    async def test_saved_video_reads_back(self, upload_dir):
        url = await utils.save_assessment_video_bytes(b"video-bytes", "w1", "plumbing answer.mp4")
        assert url.startswith("/uploads/assessments/w1/")
        assert url.endswith("_plumbing_answer.mp4")

        assert await utils.read_assessment_video(url) == (b"video-bytes", "video/mp4")

    async def test_paths_outside_uploads_are_ignored(self, upload_dir):
        (upload_dir.parent / "secret.webm").write_bytes(b"x")
        assert await utils.read_assessment_video("/uploads/../secret.webm") is None
        assert await utils.read_assessment_video("https://cdn.example.com/a.webm") is None
        assert await utils.read_assessment_video("/uploads/assessments/w1/missing.webm") is None


def test_decode_data_url():
    data, mime = utils.decode_base64_payload("data:video/webm;base64,aGVsbG8=")
    assert data == b"hello"
    assert mime == "video/webm"


def test_decode_raw_base64():
    assert utils.decode_base64_payload("aGVsbG8=") == (b"hello", None)


def test_haversine_bangalore_to_mysore():
    assert utils.haversine_km(12.9716, 77.5946, 12.2958, 76.6394) == pytest.approx(127.6, abs=2)

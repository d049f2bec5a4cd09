from pathlib import Path
import wave

from PIL import Image

from capturepack.capture import FormatData, MediaInfo, get_format_data


def _write_jpeg(path: Path, *, width: int, height: int) -> Path:
    Image.new("RGB", (width, height), (200, 40, 40)).save(path, "JPEG")
    return path


def _write_wav(path: Path, *, rate: int, frames: int) -> Path:
    with wave.open(str(path), "wb") as writer:
        writer.setnchannels(1)
        writer.setsampwidth(2)
        writer.setframerate(rate)
        writer.writeframes(b"\x00\x00" * frames)
    return path


class _VideoProbe:
    def image_bounds(self, path: Path):
        return None

    def media_info(self, path: Path, *, video: bool):
        return MediaInfo(duration_ms=12_999, width=1280, height=720) if video else None


def test_jpeg_reports_bounds(tmp_path: Path) -> None:
    photo = _write_jpeg(tmp_path / "photo.jpg", width=640, height=480)

    assert get_format_data(str(photo), "image/jpeg") == FormatData(height=480, width=640)
    assert get_format_data(photo.as_uri()).to_dict() == {
        "height": 480,
        "width": 640,
        "bitrate": 0,
        "duration": 0,
        "codecs": "",
    }


def test_wav_duration_in_whole_seconds(tmp_path: Path) -> None:
    clip = _write_wav(tmp_path / "clip.wav", rate=8000, frames=16000)

    data = get_format_data(str(clip), "null")

    assert data.duration == 2
    assert (data.width, data.height) == (0, 0)


def test_video_uses_probe_dimensions(tmp_path: Path) -> None:
    movie = tmp_path / "movie.mp4"
    movie.write_bytes(b"\x00")

    data = get_format_data(str(movie), "video/mp4", probe=_VideoProbe())

    assert data == FormatData(height=720, width=1280, duration=12)


def test_unreadable_or_unknown_media_defaults_to_zero(tmp_path: Path) -> None:
    broken = tmp_path / "broken.wav"
    broken.write_bytes(b"RIFF-not-really")
    notes = tmp_path / "notes.txt"
    notes.write_text("hello", encoding="utf-8")

    assert get_format_data(str(broken)) == FormatData()
    assert get_format_data(str(notes)) == FormatData()
    assert get_format_data(str(tmp_path / "missing.jpg")) == FormatData()

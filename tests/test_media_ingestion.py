import cloudinary.uploader
import pytest

from conftest import FailingMediaHost, image_bytes
from src.media_ingestion import (
    INVALID_TYPE_MESSAGE,
    MAX_UPLOAD_BYTES,
    MISSING_FILE_MESSAGE,
    OPTIMIZATION_TRANSFORMATIONS,
    UNREADABLE_IMAGE_MESSAGE,
    MediaIngestionError,
    MediaValidationError,
    ingest,
    object_name_for,
)
from src.media_storage import (
    CloudinaryCredentials,
    CloudinaryMediaHost,
    GcsMediaHost,
    HostedObject,
    default_media_host,
    public_url,
)


def test_ingest_returns_hosted_reference(media_host):
    data = image_bytes("PNG", size=(80, 40))

    reference = ingest(data, "image/png", len(data), file_name="avatar.png", host=media_host)

    assert reference.url.startswith("https://media.test/portfolio/")
    assert reference.public_id == media_host.calls[0]["object_name"]
    assert (reference.width, reference.height) == (80, 40)
    assert reference.file_name == "avatar.png"
    assert reference.file_size == len(data)
    assert not reference.url.startswith("data:")


def test_upload_requests_optimization_with_original_bytes(media_host):
    data = image_bytes("JPEG")

    ingest(data, "image/jpg", len(data), file_name="photo.jpg", host=media_host)

    call = media_host.calls[0]
    assert call["data"] == data
    assert call["content_type"] == "image/jpeg"
    assert call["transformations"] == [{"quality": "auto:good"}, {"fetch_format": "auto"}]


def test_host_reported_dimensions_win(media_host, monkeypatch):
    data = image_bytes("PNG", size=(1600, 1200))

    def _resized(*args, **kwargs):
        hosted = type(media_host).upload(media_host, *args, **kwargs)
        return HostedObject(url=hosted.url, public_id=hosted.public_id, width=800, height=600)

    monkeypatch.setattr(media_host, "upload", _resized)
    reference = ingest(data, "image/png", len(data), file_name="wide.png", host=media_host)

    assert (reference.width, reference.height) == (800, 600)


def test_object_names_are_content_addressed():
    data = image_bytes("PNG")

    assert object_name_for(data, "image/png") == object_name_for(data, "IMAGE/PNG")
    assert object_name_for(data, "image/png") != object_name_for(image_bytes("PNG", size=(10, 10)), "image/png")
    assert object_name_for(data, "image/png").startswith("portfolio/")


@pytest.mark.parametrize(
    "data, mime_type, size, message",
    [
        (None, "image/png", 0, MISSING_FILE_MESSAGE),
        (b"", "image/png", 0, MISSING_FILE_MESSAGE),
        (b"BM....", "image/bmp", 6, INVALID_TYPE_MESSAGE),
        (b"\x89PNG", "image/png", MAX_UPLOAD_BYTES + 1, "File too large. Maximum size is 10MB."),
        (b"not an image at all", "image/png", 19, UNREADABLE_IMAGE_MESSAGE),
    ],
)
def test_validation_failures_never_reach_the_host(media_host, data, mime_type, size, message):
    with pytest.raises(MediaValidationError, match=message.replace(".", r"\.")):
        ingest(data, mime_type, size, file_name="x", host=media_host)

    assert media_host.calls == []


def test_type_is_checked_before_size(media_host):
    with pytest.raises(MediaValidationError, match="Invalid file type"):
        ingest(b"x" * 10, "image/bmp", MAX_UPLOAD_BYTES + 1, file_name="big.bmp", host=media_host)


def test_host_failure_carries_upstream_message():
    host = FailingMediaHost()
    data = image_bytes("GIF")

    with pytest.raises(MediaIngestionError) as excinfo:
        ingest(data, "image/gif", len(data), file_name="anim.gif", host=host)

    assert excinfo.value.details == "upstream unavailable"
    assert len(host.calls) == 1


def test_public_url_quotes_object_name():
    assert (
        public_url("bucket", "/portfolio/a b.png", base_url="https://cdn.example/")
        == "https://cdn.example/bucket/portfolio/a%20b.png"
    )


class TestCloudinaryHost:
    CREDENTIALS = CloudinaryCredentials(cloud_name="demo", api_key="key", api_secret="secret")

    def test_upload_applies_transformations_and_reads_result(self, monkeypatch):
        captured = {}

        def _fake_upload(file, **options):
            captured["bytes"] = file.read()
            captured["options"] = options
            return {
                "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/portfolio/abc.webp",
                "public_id": "portfolio/abc",
                "width": 640,
                "height": 480,
            }

        monkeypatch.setattr(cloudinary.uploader, "upload", _fake_upload)
        data = image_bytes("PNG", size=(1280, 960))

        reference = ingest(
            data,
            "image/png",
            len(data),
            file_name="hero.png",
            host=CloudinaryMediaHost(self.CREDENTIALS),
        )

        options = captured["options"]
        assert captured["bytes"] == data
        assert options["folder"] == "portfolio"
        assert options["public_id"] == object_name_for(data, "image/png")[len("portfolio/"):-len(".png")]
        assert options["transformation"] == [dict(step) for step in OPTIMIZATION_TRANSFORMATIONS]
        assert options["cloud_name"] == "demo"
        assert reference.url.startswith("https://res.cloudinary.com/")
        assert reference.public_id == "portfolio/abc"
        assert (reference.width, reference.height) == (640, 480)

    def test_upstream_error_is_wrapped(self, monkeypatch):
        def _rejected(file, **options):
            raise RuntimeError("Invalid api_key key")

        monkeypatch.setattr(cloudinary.uploader, "upload", _rejected)
        data = image_bytes("GIF")

        with pytest.raises(MediaIngestionError) as excinfo:
            ingest(data, "image/gif", len(data), file_name="a.gif", host=CloudinaryMediaHost(self.CREDENTIALS))

        assert excinfo.value.details == "Invalid api_key key"


def test_default_host_prefers_cloudinary_when_configured(monkeypatch):
    monkeypatch.delenv("CLOUDINARY_CLOUD_NAME", raising=False)
    assert isinstance(default_media_host(), GcsMediaHost)

    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")
    host = default_media_host()

    assert isinstance(host, CloudinaryMediaHost)
    assert host.credentials == CloudinaryCredentials("demo", "key", "secret")

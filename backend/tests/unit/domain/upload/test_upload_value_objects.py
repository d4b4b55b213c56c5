"""Unit tests for upload value objects (ImageFile, Phase, UploadedImage)."""

from pathlib import Path

import pytest

from domain.upload.core.exceptions import InvalidImageError
from domain.upload.core.value_objects import ImageFile, Phase, UploadedImage
from domain.upload.core.value_objects.image_file import MAX_FILE_SIZE_BYTES


class TestImageFile:
    def test_content_type_normalized(self) -> None:
        image = ImageFile(filename="a.JPG", content_type=" Image/JPEG ", data=b"x")

        assert image.content_type == "image/jpeg"
        assert image.extension == ".jpg"
        assert image.size == 1

    def test_empty_filename_rejected(self) -> None:
        with pytest.raises(ValueError, match="filename"):
            ImageFile(filename="", content_type="image/jpeg", data=b"x")

    def test_bytes_not_in_repr(self) -> None:
        image = ImageFile(filename="a.jpg", content_type="image/jpeg", data=b"secret-bytes")
        assert "secret-bytes" not in repr(image)

    @pytest.mark.parametrize(
        "content_type", ["image/jpeg", "image/png", "image/heic", "image/heif"]
    )
    def test_validate_accepts_supported_types(self, image_factory, content_type: str) -> None:
        image_factory(content_type=content_type).validate()

    def test_validate_rejects_unsupported_type(self, image_factory) -> None:
        image = image_factory(filename="a.gif", content_type="image/gif")

        with pytest.raises(InvalidImageError, match="Invalid file type"):
            image.validate()

    def test_validate_rejects_empty_payload(self, image_factory) -> None:
        with pytest.raises(InvalidImageError, match="empty"):
            image_factory(data=b"").validate()

    def test_validate_rejects_oversized_payload(self, image_factory) -> None:
        image = image_factory(data=b"\0" * (MAX_FILE_SIZE_BYTES + 1))

        with pytest.raises(InvalidImageError, match="Maximum size is 10MB"):
            image.validate()

    def test_validate_custom_limit(self, image_factory) -> None:
        image = image_factory(data=b"\0" * 2048)

        with pytest.raises(InvalidImageError, match="File too large \\(2.0 KB\\)"):
            image.validate(max_size_bytes=1024)

    def test_with_payload(self, image_factory) -> None:
        image = image_factory(filename="a.heic", content_type="image/heic")

        converted = image.with_payload(b"jpeg", "image/jpeg", "a.jpg")

        assert converted.filename == "a.jpg"
        assert converted.content_type == "image/jpeg"
        assert converted.data == b"jpeg"
        assert image.filename == "a.heic"

    def test_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "dinner.PNG"
        path.write_bytes(b"png-bytes")

        image = ImageFile.from_path(path)

        assert image.filename == "dinner.PNG"
        assert image.content_type == "image/png"
        assert image.data == b"png-bytes"

    def test_from_path_unknown_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        with pytest.raises(InvalidImageError):
            ImageFile.from_path(path)

    def test_from_path_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            ImageFile.from_path(tmp_path / "missing.jpg")


class TestPhase:
    def test_values(self) -> None:
        assert [p.value for p in Phase] == [
            "idle",
            "selected",
            "uploading",
            "analyzing",
            "done",
            "error",
        ]

    def test_busy_phases(self) -> None:
        assert {p for p in Phase if p.is_busy} == {Phase.UPLOADING, Phase.ANALYZING}

    def test_terminal_phases(self) -> None:
        assert {p for p in Phase if p.is_terminal} == {Phase.DONE, Phase.ERROR}


class TestUploadedImage:
    def test_valid(self) -> None:
        ref = UploadedImage(url="https://blob/x.jpg", blob_name="u/x.jpg")
        assert ref.blob_name == "u/x.jpg"

    @pytest.mark.parametrize("url,blob_name", [("", "u/x.jpg"), ("https://blob/x.jpg", "")])
    def test_empty_fields_rejected(self, url: str, blob_name: str) -> None:
        with pytest.raises(ValueError):
            UploadedImage(url=url, blob_name=blob_name)

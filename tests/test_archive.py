"""Tests for output naming and ZIP packaging."""
import io
import zipfile

import pytest

from cleave.archive import (
    ARCHIVE_NAME,
    build_archive,
    format_bytes,
    format_extension,
    output_filename,
    save_archive,
)


@pytest.mark.parametrize("mime_type, expected", [
    ("image/jpeg", "jpeg"),
    ("image/png", "png"),
    ("image/webp", "webp"),
    ("image/avif", "avif"),
    ("image/svg+xml", "svg"),
])
def test_format_extension(mime_type, expected):
    assert format_extension(mime_type) == expected


class TestOutputFilename:

    def test_simple(self):
        assert output_filename("photo.png", "image/jpeg") == "photo_converted.jpeg"

    def test_base_stops_at_first_dot(self):
        assert output_filename("photo.final.png", "image/svg+xml") == "photo_converted.svg"

    def test_dotfile(self):
        assert output_filename(".hidden", "image/png") == "image_converted.png"

    def test_directory_ignored(self):
        assert output_filename("some.dir/pic.webp", "image/png") == "pic_converted.png"


class TestArchive:

    def test_entries(self):
        data = build_archive({"a_converted.png": b"aaa", "b_converted.svg": b"<svg/>"})

        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["a_converted.png", "b_converted.svg"]
            assert zf.read("b_converted.svg") == b"<svg/>"
            assert zf.getinfo("a_converted.png").compress_type == zipfile.ZIP_DEFLATED

    def test_empty(self):
        with zipfile.ZipFile(io.BytesIO(build_archive({}))) as zf:
            assert zf.namelist() == []

    def test_save(self, tmp_path):
        path = save_archive({"x.png": b"x"}, tmp_path / ARCHIVE_NAME)

        assert path.name == "cleave_batch_converted.zip"
        with zipfile.ZipFile(path) as zf:
            assert zf.read("x.png") == b"x"


@pytest.mark.parametrize("num_bytes, expected", [
    (0, "0 Bytes"),
    (512, "512 Bytes"),
    (1536, "1.5 KB"),
    (1048576, "1 MB"),
    (1073741824, "1 GB"),
])
def test_format_bytes(num_bytes, expected):
    assert format_bytes(num_bytes) == expected

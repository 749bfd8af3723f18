"""
Tests for POST /api/posts/upload and static serving under /uploads
"""
import os

import pytest

from apps.blog import posts

MB = 1024 * 1024


def uploaded_files():
    return set(os.listdir(posts.UPLOAD_DIR)) if os.path.isdir(posts.UPLOAD_DIR) else set()


class TestImageUpload:
    """Test cases for image uploads"""

    def test_four_megabyte_jpeg_is_stored_and_served(self, client, author_headers):
        payload = b"\xff\xd8\xff" + b"\x00" * (4 * MB)

        response = client.post(
            "/api/posts/upload",
            files={"image": ("holiday.JPG", payload, "image/jpeg")},
            headers=author_headers,
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["filename"].startswith("image-")
        assert data["filename"].endswith(".jpg")
        assert data["path"] == f"/uploads/{data['filename']}"

        served = client.get(data["path"])
        assert served.status_code == 200
        assert served.content == payload

    def test_six_megabyte_file_is_rejected_and_not_written(self, client, author_headers):
        before = uploaded_files()

        response = client.post(
            "/api/posts/upload",
            files={"image": ("huge.png", b"\x89PNG" + b"\x00" * (6 * MB), "image/png")},
            headers=author_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "File too large. Max size: 5 MB"
        assert uploaded_files() == before

    def test_non_image_is_rejected(self, client, author_headers):
        before = uploaded_files()

        response = client.post(
            "/api/posts/upload",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=author_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Only image files are allowed"
        assert uploaded_files() == before

    def test_missing_file_is_400(self, client, author_headers):
        response = client.post("/api/posts/upload", data={"other": "x"}, headers=author_headers)

        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "image"

    def test_upload_requires_auth(self, client):
        response = client.post(
            "/api/posts/upload",
            files={"image": ("a.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 401

    @pytest.mark.parametrize("client_name,content_type,expected_ext", [
        ("photo.png/x", "image/png", ".png"),
        ("../../escape.gif", "image/gif", ".gif"),
        ("no-extension", "image/webp", ".webp"),
        ("odd.p%g", "image/png", ".png"),
        ("drawing.", "image/svg+xml", ".svg"),
    ])
    def test_client_filename_never_shapes_the_stored_path(
        self, client, author_headers, client_name, content_type, expected_ext
    ):
        response = client.post(
            "/api/posts/upload",
            files={"image": (client_name, b"\x89PNG", content_type)},
            headers=author_headers,
        )

        filename = response.json()["data"]["filename"]
        assert response.status_code == 200
        assert filename.endswith(expected_ext)
        assert "/" not in filename
        assert filename in uploaded_files()


class TestImageExtension:
    """Test cases for image_extension"""

    @pytest.mark.parametrize("filename,content_type,expected", [
        ("holiday.JPG", "image/jpeg", "jpg"),
        ("photo.png/x", "image/png", "png"),
        (None, "image/jpeg", "jpeg"),
        ("archive.tar.gz", "image/png", "gz"),
        ("bad.ex+t", "image/x-icon", "img"),
    ])
    def test_extension_choice(self, filename, content_type, expected):
        assert posts.image_extension(filename, content_type) == expected

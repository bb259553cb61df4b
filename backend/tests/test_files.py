"""
Hosted assets: upload validation and the public file endpoint.
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

from services.storage_adapter import validate_image, FileMetadata, AssetNotFoundError


def test_svg_upload_rejected():
    svg = b'<svg xmlns="http://www.w3.org/2000/svg"><script>fetch("/api")</script></svg>'
    with pytest.raises(ValueError, match="Only image files are allowed"):
        validate_image(svg, "image/svg+xml")


def test_png_upload_accepted():
    validate_image(b"\x89PNG\r\n\x1a\n0000", "image/png")


def test_oversized_image_rejected():
    with pytest.raises(ValueError, match="10MB"):
        validate_image(b"0" * (10 * 1024 * 1024 + 1), "image/png")


def test_served_asset_cannot_execute(client):
    meta = FileMetadata(
        file_id="65f0c0ffee0000000000abcd",
        filename="thumbnails/a.png",
        content_type="image/png",
        size_bytes=4,
        sha256_hash="",
        upload_timestamp=datetime.now(timezone.utc),
    )
    with patch("routes.files.storage_adapter.download_file", new=AsyncMock(return_value=(b"data", meta))):
        response = client.get("/api/v1/files/65f0c0ffee0000000000abcd")
    assert response.status_code == 200
    assert response.content == b"data"
    assert response.headers["content-security-policy"] == "default-src 'none'; sandbox"
    assert response.headers["x-content-type-options"] == "nosniff"


def test_missing_asset_is_404_envelope(client):
    with patch(
        "routes.files.storage_adapter.download_file",
        new=AsyncMock(side_effect=AssetNotFoundError("File not found: x")),
    ):
        response = client.get("/api/v1/files/nope")
    assert response.status_code == 404
    assert response.json()["message"] == "File not found"

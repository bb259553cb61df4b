"""Tests for frontend and asset base URLs used in emails and redirects."""
import os
import pytest
from unittest.mock import patch

from utils.public_app_url import get_frontend_base_url, frontend_link, asset_url


def test_frontend_url_strips_trailing_slash():
    with patch.dict(os.environ, {"FRONTEND_URL": "https://matty.example.com/"}, clear=False):
        assert get_frontend_base_url() == "https://matty.example.com"
        assert frontend_link("/oauth-success") == "https://matty.example.com/oauth-success"


def test_frontend_url_upgrades_plain_http_for_public_hosts():
    with patch.dict(os.environ, {"FRONTEND_URL": "http://matty.example.com"}, clear=False):
        assert get_frontend_base_url() == "https://matty.example.com"


def test_frontend_url_dev_fallback():
    with patch.dict(os.environ, {"FRONTEND_URL": "", "ENVIRONMENT": "development"}, clear=False):
        assert get_frontend_base_url() == "http://localhost:5173"


def test_frontend_url_required_in_production():
    with patch.dict(os.environ, {"FRONTEND_URL": "", "ENVIRONMENT": "production"}, clear=False):
        with pytest.raises(ValueError):
            get_frontend_base_url()


def test_asset_url_uses_public_api_url():
    with patch.dict(os.environ, {"PUBLIC_API_URL": "https://api.matty.example.com"}, clear=False):
        assert asset_url("abc123") == "https://api.matty.example.com/api/v1/files/abc123"

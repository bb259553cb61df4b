"""
Designs: ownership checks, visibility rules, tag parsing and thumbnail cleanup.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from errors import ValidationError, PermissionDeniedError, NotFoundError
from services.design_service import design_service, parse_tags, can_view

THUMB = {"file_id": "65f000000000000000000001", "secure_url": "http://localhost:8001/api/v1/files/65f000000000000000000001"}


def _design(**overrides):
    design = {
        "design_id": "DSN-1",
        "user_id": "USR-OWNER",
        "title": "Poster",
        "editor_json": "{}",
        "thumbnail": THUMB,
        "tags": ["poster"],
        "visibility": "private",
        "shared_with": [],
    }
    design.update(overrides)
    return design


def _db(design):
    db = MagicMock()
    db.designs.find_one = AsyncMock(return_value=design)
    db.designs.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    db.designs.update_one = AsyncMock(return_value=MagicMock(modified_count=1))
    db.designs.insert_one = AsyncMock()
    db.activity_logs.insert_one = AsyncMock()
    return db


OWNER = {"user_id": "USR-OWNER", "teams": []}
STRANGER = {"user_id": "USR-OTHER", "teams": []}


@pytest.mark.asyncio
async def test_delete_design_removes_thumbnail_asset():
    db = _db(_design())
    with patch("services.design_service.database.get_db", return_value=db):
        with patch("services.design_service.delete_asset", new_callable=AsyncMock) as delete_asset:
            await design_service.delete_design("DSN-1", OWNER)
    delete_asset.assert_called_once_with(THUMB)
    db.designs.delete_one.assert_called_once_with({"design_id": "DSN-1"})


@pytest.mark.asyncio
async def test_delete_design_by_non_owner_forbidden():
    db = _db(_design())
    with patch("services.design_service.database.get_db", return_value=db):
        with patch("services.design_service.delete_asset", new_callable=AsyncMock) as delete_asset:
            with pytest.raises(PermissionDeniedError):
                await design_service.delete_design("DSN-1", STRANGER)
    delete_asset.assert_not_called()
    db.designs.delete_one.assert_not_called()


@pytest.mark.asyncio
async def test_missing_design_not_found():
    db = _db(None)
    with patch("services.design_service.database.get_db", return_value=db):
        with pytest.raises(NotFoundError):
            await design_service.get_design("DSN-404", OWNER)


@pytest.mark.asyncio
async def test_update_with_new_thumbnail_replaces_old_asset():
    new_asset = {"file_id": "65f000000000000000000002", "secure_url": "http://x/api/v1/files/65f000000000000000000002"}
    db = _db(_design())
    with patch("services.design_service.database.get_db", return_value=db):
        with patch("services.design_service.upload_image", new_callable=AsyncMock, return_value=new_asset):
            with patch("services.design_service.delete_asset", new_callable=AsyncMock) as delete_asset:
                updated = await design_service.update_design(
                    "DSN-1", OWNER,
                    title="Poster v2",
                    thumbnail={"content": b"png", "filename": "t.png", "content_type": "image/png"},
                )
    delete_asset.assert_called_once_with(THUMB)
    assert updated["thumbnail"] == new_asset
    assert updated["title"] == "Poster v2"


@pytest.mark.asyncio
async def test_create_design_requires_thumbnail():
    with pytest.raises(ValidationError) as exc_info:
        await design_service.create_design(OWNER, "Poster", "{}", None, None)
    assert exc_info.value.message == "All fields are required"


@pytest.mark.asyncio
async def test_share_requires_team_membership():
    db = _db(_design())
    with patch("services.design_service.database.get_db", return_value=db):
        with pytest.raises(PermissionDeniedError):
            await design_service.share_with_team("DSN-1", OWNER, "TEAM-X")


@pytest.mark.asyncio
async def test_share_sets_team_visibility():
    owner = {"user_id": "USR-OWNER", "teams": [{"team_id": "TEAM-X", "role": "owner"}]}
    db = _db(_design())
    with patch("services.design_service.database.get_db", return_value=db):
        design = await design_service.share_with_team("DSN-1", owner, "TEAM-X")
    assert design["visibility"] == "team"
    assert design["shared_with"] == ["TEAM-X"]


def test_can_view_rules():
    member = {"user_id": "USR-M", "teams": [{"team_id": "TEAM-X"}]}
    assert can_view(_design(), OWNER)
    assert not can_view(_design(), STRANGER)
    assert can_view(_design(visibility="public"), STRANGER)
    assert can_view(_design(visibility="team", shared_with=["TEAM-X"]), member)
    assert not can_view(_design(visibility="team", shared_with=["TEAM-Y"]), member)


def test_parse_tags_formats():
    assert parse_tags(None) is None
    assert parse_tags('["a", " b "]') == ["a", "b"]
    assert parse_tags("a, b,,c") == ["a", "b", "c"]
    assert parse_tags(["x", ""]) == ["x"]
    with pytest.raises(ValidationError):
        parse_tags("[not json")

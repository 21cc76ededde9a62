import pytest

from storyslides.exceptions import AuthorizationError
from storyslides.services.moderation import AD_MANAGER_ROLES, require_admin

AD_DATA = {"videoUrl": "https://cdn.example/spring.mp4", "startDate": "2025-03-01", "endDate": "2025-03-31"}


@pytest.fixture
def admins(db):
    db.seed("admins", [
        {"user_id": "boss", "role": "super_admin"},
        {"user_id": "ads", "role": "ad_manager"},
        {"user_id": "mod", "role": "moderator"},
    ])
    return db


@pytest.mark.asyncio
async def test_create_ad(client, admins):
    async with client as ac:
        response = await ac.post("/manage-ads", json={"adminId": "ads", "action": "create", "adData": AD_DATA})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Ad created successfully"

    ad = admins.tables["ads"][0]
    assert ad["video_url"] == "https://cdn.example/spring.mp4"
    assert ad["start_date"] == "2025-03-01"
    assert ad["end_date"] == "2025-03-31"
    assert (ad["impressions"], ad["clicks"]) == (0, 0)
    assert body["data"]["id"] == ad["id"]

    audit = admins.tables["moderation_logs"][0]
    assert audit["admin_id"] == "ads"
    assert audit["action"] == "ad_create"
    assert audit["target_type"] == "ad"
    assert audit["target_id"] == ad["id"]


@pytest.mark.asyncio
async def test_update_and_delete_ad(client, admins):
    admins.seed("ads", [{"id": "ad-1", "video_url": "old.mp4", "start_date": "2025-01-01",
                         "end_date": "2025-01-02", "impressions": 7, "clicks": 1}])

    async with client as ac:
        updated = await ac.post(
            "/manage-ads", json={"adminId": "boss", "action": "update", "adId": "ad-1", "adData": AD_DATA}
        )
        assert updated.status_code == 200
        assert updated.json()["data"]["video_url"] == "https://cdn.example/spring.mp4"
        assert admins.tables["ads"][0]["impressions"] == 7

        deleted = await ac.post("/manage-ads", json={"adminId": "boss", "action": "delete", "adId": "ad-1"})

    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Ad deleted successfully"
    assert admins.tables["ads"] == []
    assert [row["action"] for row in admins.tables["moderation_logs"]] == ["ad_update", "ad_delete"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "admin_id, message",
    [
        ("stranger", "Unauthorized: Admin access required"),
        ("mod", "Unauthorized: Ad manager access required"),
    ],
)
async def test_only_ad_managers_manage_ads(client, admins, admin_id, message):
    async with client as ac:
        response = await ac.post("/manage-ads", json={"adminId": admin_id, "action": "create", "adData": AD_DATA})

    assert response.status_code == 403
    assert response.json() == {"error": message}
    assert "ads" not in admins.tables


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload, message",
    [
        ({"action": "archive", "adId": "ad-1"}, "Invalid action"),
        ({"action": "create"}, "Ad data required for create action"),
        ({"action": "update", "adData": AD_DATA}, "Ad ID and data required for update action"),
        ({"action": "delete"}, "Ad ID required for delete action"),
    ],
)
async def test_manage_ads_request_checks(client, admins, payload, message):
    async with client as ac:
        response = await ac.post("/manage-ads", json={"adminId": "ads", **payload})

    assert response.status_code == 400
    assert response.json() == {"error": message}


@pytest.mark.asyncio
async def test_ad_window_must_not_be_reversed(client, admins):
    bad = {**AD_DATA, "startDate": "2025-04-01", "endDate": "2025-03-01"}

    async with client as ac:
        response = await ac.post("/manage-ads", json={"adminId": "ads", "action": "create", "adData": bad})

    assert response.status_code == 400
    assert "ads" not in admins.tables


@pytest.mark.asyncio
async def test_store_failure_reports_action(client, admins):
    admins.fail("ads", "insert")

    async with client as ac:
        response = await ac.post("/manage-ads", json={"adminId": "ads", "action": "create", "adData": AD_DATA})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to create ad"}


@pytest.mark.asyncio
async def test_click_bumps_counter(client, db):
    async with client as ac:
        response = await ac.post("/ads/ad-9/click")

    assert response.status_code == 200
    assert db.calls("increment_ad_clicks") == [{"ad_id": "ad-9"}]


@pytest.mark.asyncio
async def test_click_failure_is_server_error(client, db):
    db.fail("rpc", "increment_ad_clicks")

    async with client as ac:
        response = await ac.post("/ads/ad-9/click")

    assert response.status_code == 500


@pytest.mark.asyncio
async def test_watched_marks_matching_impression(client, db):
    db.seed("ad_logs", [
        {"reader_id": "r-1", "ad_id": "ad-1", "slide_position": 6, "watched": False},
        {"reader_id": "r-1", "ad_id": "ad-1", "slide_position": 12, "watched": False},
        {"reader_id": "r-2", "ad_id": "ad-1", "slide_position": 6, "watched": False},
    ])

    async with client as ac:
        response = await ac.post("/ads/ad-1/watched", json={"readerId": "r-1", "slidePosition": 6})

    assert response.json() == {"success": True, "updated": 1}
    assert [row["watched"] for row in db.tables["ad_logs"]] == [True, False, False]


def test_require_admin_returns_role(admins):
    assert require_admin(admins, "boss", roles=AD_MANAGER_ROLES) == "super_admin"
    with pytest.raises(AuthorizationError):
        require_admin(admins, "mod", roles=AD_MANAGER_ROLES)
    assert require_admin(admins, "mod") == "moderator"

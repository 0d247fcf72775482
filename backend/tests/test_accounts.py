"""Tests for sign-up, login and the signed-in account endpoints (need the test Postgres; skipped otherwise)."""

import pytest
from httpx import AsyncClient

from user_service.models.enums import UserType
from user_service.services import accounts


async def _verify(verification_store, email):
    await verification_store.save_completion(email)


@pytest.mark.asyncio
async def test_join_requires_verified_email(client: AsyncClient, clean_db):
    resp = await client.post(
        "/user-service/users/join",
        json={"email": "new@test.com", "password": "securepass123", "nickname": "newbie"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == accounts.VERIFICATION_REQUIRED


@pytest.mark.asyncio
async def test_join_user_then_login_and_refresh(client: AsyncClient, clean_db, verification_store, refresh_store):
    await _verify(verification_store, "new@test.com")
    resp = await client.post(
        "/user-service/users/join",
        json={"email": "new@test.com", "password": "securepass123", "nickname": "newbie", "birthdate": "1999-01-31"},
    )
    assert resp.status_code == 200
    payload = resp.json()["payload"]
    assert payload["userId"]
    assert payload["createdAt"]
    # Marker is consumed by the join
    assert not await verification_store.has_completed_verification("new@test.com")

    resp = await client.post(
        "/user-service/login",
        json={"email": "new@test.com", "password": "securepass123", "userType": "USER"},
    )
    assert resp.status_code == 200
    tokens = resp.json()["payload"]
    assert await refresh_store.find(UserType.USER, "new@test.com") == tokens["refreshToken"]

    resp = await client.post("/user-service/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_join_duplicate_email(client: AsyncClient, clean_db, verification_store):
    body = {"email": "dup@test.com", "password": "x1", "nickname": "dup"}
    await _verify(verification_store, "dup@test.com")
    assert (await client.post("/user-service/users/join", json=body)).status_code == 200
    await _verify(verification_store, "dup@test.com")
    resp = await client.post("/user-service/users/join", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"] == accounts.EMAIL_TAKEN


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, clean_db, verification_store):
    await _verify(verification_store, "test@test.com")
    await client.post("/user-service/users/join", json={"email": "test@test.com", "password": "password123"})
    resp = await client.post(
        "/user-service/login",
        json={"email": "test@test.com", "password": "wrong", "userType": "USER"},
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == accounts.BAD_CREDENTIALS


@pytest.mark.asyncio
async def test_seller_join_and_login_are_separate_from_users(client: AsyncClient, clean_db, verification_store):
    await _verify(verification_store, "shop@test.com")
    resp = await client.post(
        "/user-service/sellers/join",
        json={"email": "shop@test.com", "password": "sellerpass", "sellerName": "Shop"},
    )
    assert resp.status_code == 200
    assert resp.json()["payload"]["sellerId"]

    resp = await client.post(
        "/user-service/login",
        json={"email": "shop@test.com", "password": "sellerpass", "userType": "USER"},
    )
    assert resp.status_code == 401

    resp = await client.post(
        "/user-service/login",
        json={"email": "shop@test.com", "password": "sellerpass", "userType": "SELLER"},
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_seller_join_requires_name(client: AsyncClient, verification_store):
    await _verify(verification_store, "shop@test.com")
    resp = await client.post(
        "/user-service/sellers/join",
        json={"email": "shop@test.com", "password": "sellerpass", "sellerName": "  "},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == accounts.SELLER_NAME_REQUIRED


async def _join_seller_and_login(client, verification_store, logo=None):
    await _verify(verification_store, "shop@test.com")
    body = {"email": "shop@test.com", "password": "sellerpass", "sellerName": "Shop"}
    if logo is not None:
        body["sellerLogo"] = logo
    assert (await client.post("/user-service/sellers/join", json=body)).status_code == 200
    resp = await client.post(
        "/user-service/login",
        json={"email": "shop@test.com", "password": "sellerpass", "userType": "SELLER"},
    )
    tokens = resp.json()["payload"]
    return {"Authorization": f"Bearer {tokens['accessToken']}"}, tokens


async def _join_user_and_login(client, verification_store):
    await _verify(verification_store, "new@test.com")
    body = {"email": "new@test.com", "password": "securepass123", "nickname": "newbie"}
    assert (await client.post("/user-service/users/join", json=body)).status_code == 200
    resp = await client.post(
        "/user-service/login",
        json={"email": "new@test.com", "password": "securepass123", "userType": "USER"},
    )
    tokens = resp.json()["payload"]
    return {"Authorization": f"Bearer {tokens['accessToken']}"}, tokens


@pytest.mark.asyncio
async def test_seller_logo_on_join_and_info(client: AsyncClient, clean_db, verification_store):
    headers, _ = await _join_seller_and_login(client, verification_store, logo="iVBORw0KGgo=")
    resp = await client.get("/user-service/sellers/me", headers=headers)
    assert resp.status_code == 200
    info = resp.json()["payload"]
    assert info["email"] == "shop@test.com"
    assert info["sellerName"] == "Shop"
    assert info["sellerLogo"] == "iVBORw0KGgo="
    assert info["sellerId"]


@pytest.mark.asyncio
async def test_seller_join_rejects_bad_logo(client: AsyncClient, verification_store):
    await _verify(verification_store, "shop@test.com")
    resp = await client.post(
        "/user-service/sellers/join",
        json={"email": "shop@test.com", "password": "sellerpass", "sellerName": "Shop", "sellerLogo": "abc"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_seller_update_name(client: AsyncClient, clean_db, verification_store):
    headers, _ = await _join_seller_and_login(client, verification_store)
    resp = await client.put("/user-service/sellers/me", headers=headers, json={"sellerName": "New Shop"})
    assert resp.status_code == 200
    payload = resp.json()["payload"]
    assert payload["sellerId"] and payload["updatedAt"]
    info = (await client.get("/user-service/sellers/me", headers=headers)).json()["payload"]
    assert info["sellerName"] == "New Shop"

    resp = await client.put("/user-service/sellers/me", headers=headers, json={"sellerName": " "})
    assert resp.status_code == 400
    assert resp.json()["error"] == accounts.SELLER_NAME_REQUIRED


@pytest.mark.asyncio
async def test_seller_password_change_rechecks_old_password(client: AsyncClient, clean_db, verification_store):
    headers, _ = await _join_seller_and_login(client, verification_store)
    resp = await client.put(
        "/user-service/sellers/me/password",
        headers=headers,
        json={"email": "shop@test.com", "oldPassword": "wrong", "newPassword": "newpass"},
    )
    assert resp.status_code == 401
    assert resp.json()["error"] == accounts.WRONG_PASSWORD

    resp = await client.put(
        "/user-service/sellers/me/password",
        headers=headers,
        json={"email": "other@test.com", "oldPassword": "sellerpass", "newPassword": "newpass"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == accounts.EMAIL_NOT_OWNED

    resp = await client.put(
        "/user-service/sellers/me/password",
        headers=headers,
        json={"email": "shop@test.com", "oldPassword": "sellerpass", "newPassword": "newpass"},
    )
    assert resp.status_code == 200
    old_login = await client.post(
        "/user-service/login",
        json={"email": "shop@test.com", "password": "sellerpass", "userType": "SELLER"},
    )
    assert old_login.status_code == 401
    new_login = await client.post(
        "/user-service/login",
        json={"email": "shop@test.com", "password": "newpass", "userType": "SELLER"},
    )
    assert new_login.status_code == 200


@pytest.mark.asyncio
async def test_seller_delete_rechecks_password_and_revokes_refresh_token(
    client: AsyncClient, clean_db, verification_store, refresh_store
):
    headers, tokens = await _join_seller_and_login(client, verification_store)
    resp = await client.request("DELETE", "/user-service/sellers/me", headers=headers, json={"password": "wrong"})
    assert resp.status_code == 401
    assert await refresh_store.find(UserType.SELLER, "shop@test.com") == tokens["refreshToken"]

    resp = await client.request("DELETE", "/user-service/sellers/me", headers=headers, json={"password": "sellerpass"})
    assert resp.status_code == 200
    assert await refresh_store.find(UserType.SELLER, "shop@test.com") is None
    resp = await client.get("/user-service/sellers/me", headers=headers)
    assert resp.status_code == 401
    resp = await client.post("/user-service/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_seller_find_password_needs_fresh_verification(
    client: AsyncClient, clean_db, verification_store, refresh_store
):
    _, tokens = await _join_seller_and_login(client, verification_store)
    body = {"email": "shop@test.com", "password": "resetpass"}
    resp = await client.post("/user-service/sellers/find-password", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"] == accounts.VERIFICATION_REQUIRED

    await _verify(verification_store, "shop@test.com")
    resp = await client.post("/user-service/sellers/find-password", json=body)
    assert resp.status_code == 200
    assert resp.json()["payload"]["sellerId"]
    assert not await verification_store.has_completed_verification("shop@test.com")
    assert await refresh_store.find(UserType.SELLER, "shop@test.com") is None
    resp = await client.post(
        "/user-service/login",
        json={"email": "shop@test.com", "password": "resetpass", "userType": "SELLER"},
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_find_password_for_unknown_account(client: AsyncClient, clean_db, verification_store):
    await _verify(verification_store, "ghost@test.com")
    resp = await client.post("/user-service/users/find-password", json={"email": "ghost@test.com", "password": "x"})
    assert resp.status_code == 400
    assert resp.json()["error"] == accounts.ACCOUNT_NOT_FOUND


@pytest.mark.asyncio
async def test_user_info_update_password_and_delete(client: AsyncClient, clean_db, verification_store):
    headers, _ = await _join_user_and_login(client, verification_store)
    info = (await client.get("/user-service/users/me", headers=headers)).json()["payload"]
    assert info["email"] == "new@test.com"
    assert info["nickname"] == "newbie"
    assert info["role"] == "USER"

    resp = await client.put(
        "/user-service/users/me", headers=headers, json={"nickname": "renamed", "birthdate": "2000-02-29"}
    )
    assert resp.status_code == 200
    assert resp.json()["payload"]["userId"] == info["userId"]
    info = (await client.get("/user-service/users/me", headers=headers)).json()["payload"]
    assert info["nickname"] == "renamed"
    assert info["birthdate"] == "2000-02-29"

    resp = await client.put("/user-service/users/me", headers=headers, json={})
    assert resp.status_code == 400

    resp = await client.put(
        "/user-service/users/me/password",
        headers=headers,
        json={"oldPassword": "securepass123", "newPassword": "another"},
    )
    assert resp.status_code == 200

    resp = await client.request("DELETE", "/user-service/users/me", headers=headers, json={"password": "securepass123"})
    assert resp.status_code == 401
    resp = await client.request("DELETE", "/user-service/users/me", headers=headers, json={"password": "another"})
    assert resp.status_code == 200
    resp = await client.post(
        "/user-service/login",
        json={"email": "new@test.com", "password": "another", "userType": "USER"},
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_user_token_cannot_reach_seller_profile(client: AsyncClient, clean_db, verification_store):
    headers, _ = await _join_user_and_login(client, verification_store)
    resp = await client.get("/user-service/sellers/me", headers=headers)
    assert resp.status_code == 401

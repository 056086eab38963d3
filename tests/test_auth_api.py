"""Account flows: signup, login, lockout, logout, password reset."""

from sqlmodel import select

from postflow.UAA.models import LoginLog, PasswordReset


async def _signup(client, email="jane@example.com", password="secret123", full_name="Jane Doe"):
    return await client.post("/auth/signup", json={"full_name": full_name, "email": email, "password": password})


async def _login(client, email="jane@example.com", password="secret123", path="/auth/login"):
    return await client.post(path, json={"email": email, "password": password})


class TestSignup:
    async def test_creates_user(self, client):
        resp = await _signup(client, email="Jane@Example.com")

        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Signup successful! Please verify your email."
        assert body["user"]["email"] == "jane@example.com"
        assert body["user"]["login_count"] == 0
        assert "hashed_password" not in body["user"]

    async def test_duplicate_email(self, client):
        await _signup(client)

        resp = await _signup(client, email="JANE@example.com")

        assert resp.status_code == 409
        assert resp.json() == {"detail": "User already exists with this email"}

    async def test_short_password(self, client):
        resp = await _signup(client, password="12345")

        assert resp.status_code == 400
        assert resp.json()["detail"] == "Password must be at least 6 characters long"

    async def test_malformed_body(self, client):
        resp = await client.post("/auth/signup", json={"email": "not-an-email", "password": "secret123"})

        assert resp.status_code == 400


class TestLogin:
    async def test_returns_token_and_records_login(self, client, db_session):
        await _signup(client)

        resp = await _login(client)

        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Login successful"
        assert body["token"]
        assert body["user"]["login_count"] == 1
        assert body["user"]["last_login"] is not None
        logs = (await db_session.execute(select(LoginLog))).scalars().all()
        assert len(logs) == 1

    async def test_signin_alias(self, client):
        await _signup(client)

        resp = await _login(client, path="/auth/signin")

        assert resp.status_code == 200
        assert resp.json()["user"]["email"] == "jane@example.com"

    async def test_wrong_password_and_unknown_email_look_alike(self, client):
        await _signup(client)

        wrong = await _login(client, password="nope-nope")
        unknown = await _login(client, email="ghost@example.com")

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"detail": "Invalid email or password"}

    async def test_lockout_after_repeated_failures(self, client):
        await _signup(client)
        for _ in range(5):
            assert (await _login(client, password="wrong-pass")).status_code == 401

        resp = await _login(client)

        assert resp.status_code == 401
        assert "locked" in resp.json()["detail"]

    async def test_success_clears_failed_attempts(self, client, redis):
        await _signup(client)
        for _ in range(4):
            await _login(client, password="wrong-pass")

        assert (await _login(client)).status_code == 200
        assert not any(key.startswith("la:") for key in redis.store)


class TestTokens:
    async def test_me(self, client, owner):
        headers, user = owner

        resp = await client.get("/users/me", headers=headers)

        assert resp.status_code == 200
        assert resp.json()["id"] == user["id"]

    async def test_missing_and_garbage_tokens(self, client):
        missing = await client.get("/users/me")
        garbage = await client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert missing.status_code == 401
        assert missing.json() == {"detail": "Access token required"}
        assert garbage.status_code == 401

    async def test_logout_revokes_token(self, client, owner):
        headers, _ = owner

        resp = await client.post("/auth/logout", headers=headers)

        assert resp.status_code == 200
        after = await client.get("/users/me", headers=headers)
        assert after.status_code == 401
        assert after.json() == {"detail": "Token revoked"}


class TestPasswordReset:
    async def _request_code(self, client, email="jane@example.com") -> str:
        resp = await client.post("/auth/forgot-password", json={"email": email})
        assert resp.status_code == 200
        return resp.json()["verification_code"]

    async def _reset(self, client, code, new_password="brand-new-pw", confirm=None, email="jane@example.com"):
        return await client.post(
            "/auth/reset-password",
            json={
                "email": email,
                "verification_code": code,
                "new_password": new_password,
                "confirm_password": confirm if confirm is not None else new_password,
            },
        )

    async def test_full_flow(self, client, db_session):
        await _signup(client)
        code = await self._request_code(client)
        assert len(code) == 6 and code.isdigit()

        resp = await self._reset(client, code)

        assert resp.status_code == 200
        assert resp.json() == {"message": "Password reset successfully"}
        assert (await _login(client)).status_code == 401
        assert (await _login(client, password="brand-new-pw")).status_code == 200
        assert (await db_session.execute(select(PasswordReset))).scalars().all() == []

    async def test_unknown_email_gets_same_message(self, client):
        resp = await client.post("/auth/forgot-password", json={"email": "ghost@example.com"})

        assert resp.status_code == 200
        assert resp.json() == {"message": "If the email exists, a verification code was sent."}

    async def test_only_latest_code_counts(self, client):
        await _signup(client)
        first = await self._request_code(client)
        second = await self._request_code(client)

        if first != second:
            stale = await self._reset(client, first)
            assert stale.status_code == 400
            assert stale.json() == {"detail": "Invalid or expired verification code"}
        assert (await self._reset(client, second)).status_code == 200

    async def test_code_is_single_use(self, client):
        await _signup(client)
        code = await self._request_code(client)

        assert (await self._reset(client, code)).status_code == 200
        assert (await self._reset(client, code, new_password="another-pw")).status_code == 400

    async def test_mismatched_confirmation(self, client):
        await _signup(client)
        code = await self._request_code(client)

        resp = await self._reset(client, code, confirm="something-else")

        assert resp.status_code == 400
        assert resp.json() == {"detail": "Passwords do not match"}

    async def test_wrong_code(self, client):
        await _signup(client)
        code = await self._request_code(client)
        wrong = "000000" if code != "000000" else "111111"

        assert (await self._reset(client, wrong)).status_code == 400

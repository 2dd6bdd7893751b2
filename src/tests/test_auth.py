"""Authentication flows: register, verify, login, refresh, logout, password reset, profile."""

from __future__ import annotations

import re
import time
from datetime import timedelta
from unittest import mock

import jwt
from django.conf import settings
from django.core import mail
from django.utils import timezone

from authentication.models import User
from authentication.services import BlocklistUnavailable, OneTimeTokenService, TokenService, hash_token
from tests.utils import StoryNestTestCase, auth_client, create_user, png_upload

API = "/api/v1/auth"


def _token_from_mail(message, route: str) -> str:
    match = re.search(rf"/{route}/([0-9a-f]+)", message.body)
    assert match, message.body
    return match.group(1)


class RegistrationTests(StoryNestTestCase):
    """Account creation and email verification."""

    payload = {"username": "newbie", "email": "New@Example.com", "password": "NewPass123!"}

    def test_register_sends_verification_email(self):
        response = self.api_client.post(f"{API}/register", self.payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 201)
        self.assertTrue(body["success"])
        self.assertIn("check your email", body["data"])

        user = User.objects.get(email="new@example.com")
        self.assertFalse(user.is_verified)
        self.assertEqual(user.role, "user")

        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.to, ["new@example.com"])
        html, mimetype = message.alternatives[0]
        self.assertEqual(mimetype, "text/html")
        self.assertIn("Welcome to StoryNest!", html)

        token = _token_from_mail(message, "verify-email")
        self.assertEqual(user.verification_token, hash_token(token))
        self.assertNotEqual(user.verification_token, token)

    def test_register_rejects_duplicate_email(self):
        create_user("new@example.com", username="someone")
        response = self.api_client.post(f"{API}/register", self.payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertFalse(body["success"])
        self.assertIn("email", body["errors"])

    def test_register_rejects_short_password(self):
        payload = {**self.payload, "password": "short"}
        response = self.api_client.post(f"{API}/register", payload, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(body["error"], "password: Please enter a password with 8 or more characters")

    def test_register_removes_account_when_email_fails(self):
        with mock.patch("authentication.views.emails.send_verification_email", side_effect=OSError("smtp down")):
            response = self.api_client.post(f"{API}/register", self.payload, format="json")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Registration failed, please try again.")
        self.assertFalse(User.objects.filter(email="new@example.com").exists())

    def test_verify_email_signs_user_in(self):
        self.api_client.post(f"{API}/register", self.payload, format="json")
        token = _token_from_mail(mail.outbox[0], "verify-email")

        response = self.api_client.put(f"{API}/verifyemail/{token}")
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertTrue(body["token"])
        self.assertEqual(body["data"]["email"], "new@example.com")
        self.assertTrue(body["data"]["isVerified"])
        self.assertIn("token", response.cookies)

        user = User.objects.get(email="new@example.com")
        self.assertTrue(user.is_verified)
        self.assertIsNone(user.verification_token)

        again = self.api_client.put(f"{API}/verifyemail/{token}")
        self.assertEqual(again.status_code, 400)
        self.assertEqual(again.json()["error"], "Invalid or expired verification token.")

    def test_verify_email_rejects_expired_token(self):
        user = create_user("late@example.com", is_verified=False)
        token = OneTimeTokenService.issue(user, OneTimeTokenService.VERIFICATION)
        User.objects.filter(pk=user.pk).update(verification_token_expires=timezone.now() - timedelta(seconds=1))

        response = self.api_client.put(f"{API}/verifyemail/{token}")

        self.assertEqual(response.status_code, 400)
        user.refresh_from_db()
        self.assertFalse(user.is_verified)


class LoginTests(StoryNestTestCase):
    """Credential checks and token issuance."""

    @classmethod
    def setUpTestData(cls):
        cls.password = "StrongPass123"
        cls.user = create_user("user@example.com", cls.password)

    def _login(self, email, password):
        return self.api_client.post(f"{API}/login", {"email": email, "password": password}, format="json")

    def test_login_returns_access_token_and_refresh_cookie(self):
        response = self._login(self.user.email, self.password)
        body = response.json()

        self.assertEqual(response.status_code, 200)
        payload = TokenService.decode_access_token(body["token"])
        self.assertEqual(payload["sub"], str(self.user.id))
        self.assertEqual(payload["role"], "user")
        self.assertTrue(payload["jti"])

        cookie = response.cookies["refreshToken"]
        self.assertTrue(cookie["httponly"])
        self.assertEqual(cookie["samesite"], "Strict")

        self.user.refresh_from_db()
        self.assertEqual(self.user.refresh_token_hash, hash_token(cookie.value))
        self.assertNotEqual(self.user.refresh_token_hash, cookie.value)

    def test_login_is_case_insensitive_on_email(self):
        response = self._login("USER@example.com", self.password)
        self.assertEqual(response.status_code, 200)

    def test_login_requires_both_fields(self):
        response = self.api_client.post(f"{API}/login", {"email": self.user.email}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Please provide an email and password")

    def test_login_wrong_password_401(self):
        response = self._login(self.user.email, "wrongpass")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid credentials")

    def test_login_unknown_email_401(self):
        response = self._login("ghost@example.com", self.password)

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid credentials")

    def test_login_unverified_account_401(self):
        create_user("pending@example.com", "PendingPass1", is_verified=False)
        response = self._login("pending@example.com", "PendingPass1")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Please verify your email address before logging in.")

    def test_oauth_only_account_cannot_password_login(self):
        User.objects.create_user(email="g@example.com", username="googler", password=None, is_verified=True)
        response = self._login("g@example.com", "anything-at-all")
        self.assertEqual(response.status_code, 401)


class SessionTests(StoryNestTestCase):
    """Refresh cookie exchange, logout and access-token verification."""

    @classmethod
    def setUpTestData(cls):
        cls.password = "StrongPass123"
        cls.user = create_user("user@example.com", cls.password)

    def _login(self):
        return self.api_client.post(
            f"{API}/login", {"email": self.user.email, "password": self.password}, format="json"
        ).json()

    def test_refresh_without_cookie_401(self):
        response = self.api_client.post(f"{API}/refresh")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Not authorized, no token")

    def test_refresh_with_valid_cookie_issues_access_token(self):
        self._login()
        response = self.api_client.post(f"{API}/refresh")
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(TokenService.decode_access_token(body["token"])["sub"], str(self.user.id))

    def test_refresh_with_unknown_cookie_403_and_cleared(self):
        self.api_client.cookies["refreshToken"] = "not-a-real-token"
        response = self.api_client.post(f"{API}/refresh")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "Forbidden, invalid refresh token")
        self.assertEqual(response.cookies["refreshToken"].value, "")

    def test_refresh_with_expired_cookie_403(self):
        self._login()
        User.objects.filter(pk=self.user.pk).update(refresh_token_expires=timezone.now() - timedelta(seconds=1))

        response = self.api_client.post(f"{API}/refresh")
        self.assertEqual(response.status_code, 403)

    def test_logout_revokes_tokens(self):
        login = self._login()
        refresh_token = self.api_client.cookies["refreshToken"].value
        client = auth_client(self.user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {login['token']}")

        response = client.post(f"{API}/logout")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])

        me_response = client.get(f"{API}/me")
        self.assertEqual(me_response.status_code, 401)
        self.assertEqual(me_response.json()["error"], "Token revoked.")

        self.user.refresh_from_db()
        self.assertIsNone(self.user.refresh_token_hash)
        stale = self.client_class()
        stale.cookies["refreshToken"] = refresh_token
        self.assertEqual(stale.post(f"{API}/refresh").status_code, 403)

    def test_logout_without_session_still_succeeds(self):
        response = self.api_client.post(f"{API}/logout")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])

    def test_logout_succeeds_when_blocklist_is_down(self):
        client = auth_client(self.user)
        with mock.patch.object(TokenService, "block_token", side_effect=BlocklistUnavailable("down")):
            response = client.post(f"{API}/logout")
        self.assertEqual(response.status_code, 200)

    def _expired_access_token(self) -> str:
        now = int(time.time())
        payload = {"sub": str(self.user.id), "role": "user", "jti": "stale", "iat": now - 3600, "exp": now - 2700}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=TokenService.ALGORITHM)

    def test_refresh_with_stale_access_cookie(self):
        self._login()
        self.api_client.cookies["token"] = self._expired_access_token()

        response = self.api_client.post(f"{API}/refresh")
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(TokenService.decode_access_token(body["token"])["sub"], str(self.user.id))
        self.assertEqual(response.cookies["token"].value, body["token"])
        self.assertEqual(
            response.cookies["token"]["max-age"], int(TokenService.access_ttl().total_seconds())
        )
        # The rewritten cookie authenticates again.
        self.assertEqual(self.api_client.get(f"{API}/me").status_code, 200)

    def test_logout_with_stale_access_cookie(self):
        self._login()
        self.api_client.cookies["token"] = self._expired_access_token()

        response = self.api_client.post(f"{API}/logout")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.user.refresh_from_db()
        self.assertIsNone(self.user.refresh_token_hash)

    def test_logout_with_revoked_bearer_token(self):
        client = auth_client(self.user)
        self.assertEqual(client.post(f"{API}/logout").status_code, 200)
        self.assertEqual(client.post(f"{API}/logout").status_code, 200)

    def test_stale_access_cookie_still_rejected_elsewhere(self):
        self.api_client.cookies["token"] = self._expired_access_token()
        response = self.api_client.get(f"{API}/me")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Token expired.")

    def test_blocklist_outage_fails_closed_with_503(self):
        client = auth_client(self.user)
        with mock.patch.object(TokenService, "is_token_blocked", side_effect=BlocklistUnavailable("down")):
            response = client.get(f"{API}/me")

        self.assertEqual(response.status_code, 503)
        self.assertFalse(response.json()["success"])

    def test_expired_access_token_401(self):
        now = int(time.time())
        payload = {"sub": str(self.user.id), "role": "user", "jti": "old", "iat": now - 120, "exp": now - 60}
        token = jwt.encode(payload, settings.JWT_SECRET, algorithm=TokenService.ALGORITHM)
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = self.api_client.get(f"{API}/me")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Token expired.")

    def test_tampered_access_token_401(self):
        payload = jwt.decode(
            TokenService.generate_access_token(self.user), settings.JWT_SECRET, algorithms=[TokenService.ALGORITHM]
        )
        forged = jwt.encode(payload, "a-different-secret-of-sufficient-length", algorithm=TokenService.ALGORITHM)
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {forged}")

        response = self.api_client.get(f"{API}/me")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "Invalid token.")

    def test_token_cookie_authenticates(self):
        self.api_client.cookies["token"] = TokenService.generate_access_token(self.user)
        response = self.api_client.get(f"{API}/me")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["email"], self.user.email)


class PasswordResetTests(StoryNestTestCase):
    """Forgot-password email and token-based reset."""

    @classmethod
    def setUpTestData(cls):
        cls.user = create_user("reset@example.com", "OldPass1234")

    def _request_reset(self) -> str:
        response = self.api_client.post(f"{API}/forgotpassword", {"email": self.user.email}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], "Email sent")
        return _token_from_mail(mail.outbox[-1], "reset-password")

    def test_unknown_email_404(self):
        response = self.api_client.post(f"{API}/forgotpassword", {"email": "nobody@example.com"}, format="json")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "No user with that email")

    def test_email_failure_clears_reset_token(self):
        with mock.patch("authentication.views.emails.send_password_reset_email", side_effect=OSError("smtp")):
            response = self.api_client.post(f"{API}/forgotpassword", {"email": self.user.email}, format="json")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Email could not be sent")
        self.user.refresh_from_db()
        self.assertIsNone(self.user.reset_password_token)
        self.assertIsNone(self.user.reset_password_expires)

    def test_reset_password_with_token(self):
        token = self._request_reset()
        response = self.api_client.put(f"{API}/resetpassword/{token}", {"password": "NewPass5678"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["token"])

        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password("NewPass5678"))
        self.assertFalse(self.user.check_password("OldPass1234"))
        self.assertIsNone(self.user.reset_password_token)

    def test_reset_password_invalid_token(self):
        response = self.api_client.put(f"{API}/resetpassword/deadbeef", {"password": "NewPass5678"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid token")

    def test_reset_token_expires_after_ten_minutes(self):
        token = self._request_reset()
        self.user.refresh_from_db()
        remaining = self.user.reset_password_expires - timezone.now()
        self.assertLessEqual(remaining, timedelta(minutes=10))

        User.objects.filter(pk=self.user.pk).update(reset_password_expires=timezone.now() - timedelta(seconds=1))
        response = self.api_client.put(f"{API}/resetpassword/{token}", {"password": "NewPass5678"}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_short_password_does_not_burn_token(self):
        token = self._request_reset()
        short = self.api_client.put(f"{API}/resetpassword/{token}", {"password": "short"}, format="json")
        self.assertEqual(short.status_code, 400)

        ok = self.api_client.put(f"{API}/resetpassword/{token}", {"password": "LongEnough1"}, format="json")
        self.assertEqual(ok.status_code, 200)


class ProfileTests(StoryNestTestCase):
    """GET/PATCH /auth/me and avatar upload."""

    @classmethod
    def setUpTestData(cls):
        cls.user = create_user("me@example.com", username="me")

    def test_me_requires_authentication(self):
        response = self.api_client.get(f"{API}/me")
        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_me_returns_profile_without_secrets(self):
        response = auth_client(self.user).get(f"{API}/me")
        data = response.json()["data"]

        self.assertEqual(response.status_code, 200)
        self.assertEqual(data["username"], "me")
        self.assertEqual(data["role"], "user")
        for secret in ("password_hash", "refresh_token_hash", "verification_token", "reset_password_token"):
            self.assertNotIn(secret, data)

    def test_patch_me_changes_username(self):
        response = auth_client(self.user).patch(f"{API}/me", {"username": "  renamed "}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["username"], "renamed")

    def test_patch_me_rejects_taken_username(self):
        create_user("other@example.com", username="taken")
        response = auth_client(self.user).patch(f"{API}/me", {"username": "taken"}, format="json")
        self.assertEqual(response.status_code, 400)

    def test_patch_me_cannot_change_email(self):
        response = auth_client(self.user).patch(f"{API}/me", {"email": "new@example.com"}, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(body["error"], "Email cannot be updated via this endpoint")
        self.user.refresh_from_db()
        self.assertEqual(self.user.email, "me@example.com")

    def test_patch_me_cannot_change_role(self):
        response = auth_client(self.user).patch(f"{API}/me", {"role": "admin"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.user.refresh_from_db()
        self.assertEqual(self.user.role, "user")

    def test_avatar_upload_replaces_previous_image(self):
        client = auth_client(self.user)
        first = client.put(f"{API}/me/avatar", {"avatar": png_upload("a.png")}, format="multipart")
        self.assertEqual(first.status_code, 200)
        self.user.refresh_from_db()
        first_id = self.user.avatar_public_id
        self.assertTrue(first_id.startswith("storynest_avatars/"))

        with mock.patch("authentication.views.release_image") as release:
            second = client.put(f"{API}/me/avatar", {"avatar": png_upload("b.png")}, format="multipart")

        self.assertEqual(second.status_code, 200)
        release.assert_called_once_with(first_id)
        self.user.refresh_from_db()
        self.assertNotEqual(self.user.avatar_public_id, first_id)
        self.assertEqual(second.json()["data"]["avatar"], self.user.avatar)

    def test_avatar_rejects_non_image(self):
        from django.core.files.uploadedfile import SimpleUploadedFile

        upload = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
        response = auth_client(self.user).put(f"{API}/me/avatar", {"avatar": upload}, format="multipart")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "avatar: Only JPEG and PNG images are allowed.")


class GoogleLoginTests(StoryNestTestCase):
    """Google ID-token sign-in with account creation and linking."""

    claims = {"sub": "google-123", "email": "Ada@Example.com", "name": "Ada Lovelace"}

    def _google_login(self, claims=None, side_effect=None):
        with mock.patch(
            "authentication.oauth.id_token.verify_oauth2_token",
            return_value=claims or self.claims,
            side_effect=side_effect,
        ) as verify:
            response = self.api_client.post(f"{API}/google", {"token": "id-token"}, format="json")
        return response, verify

    def test_creates_verified_account(self):
        response, verify = self._google_login()
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertTrue(body["token"])
        self.assertEqual(verify.call_args.kwargs["audience"], settings.GOOGLE_CLIENT_ID)

        user = User.objects.get(google_id="google-123")
        self.assertEqual(user.email, "ada@example.com")
        self.assertEqual(user.username, "AdaLovelace")
        self.assertTrue(user.is_verified)
        self.assertIsNone(user.password_hash)
        self.assertIn("refreshToken", response.cookies)

    def test_links_existing_email_account(self):
        existing = create_user("ada@example.com", username="ada")
        response, _ = self._google_login()

        self.assertEqual(response.status_code, 200)
        existing.refresh_from_db()
        self.assertEqual(existing.google_id, "google-123")
        self.assertEqual(User.objects.count(), 1)

    def test_second_login_finds_same_account(self):
        self._google_login()
        response, _ = self._google_login()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(User.objects.filter(google_id="google-123").count(), 1)

    def test_username_collision_gets_suffix(self):
        create_user("someone@example.com", username="AdaLovelace")
        self._google_login()

        user = User.objects.get(google_id="google-123")
        self.assertNotEqual(user.username, "AdaLovelace")
        self.assertTrue(user.username.startswith("AdaLovelace"))
        self.assertLessEqual(len(user.username), 30)

    def test_invalid_token_400(self):
        response, _ = self._google_login(side_effect=ValueError("Wrong number of segments"))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid Google token")

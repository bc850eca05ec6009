import pyotp

from conftest import (
    COMPLETE_PROFILE,
    STUDENT,
    last_code,
    login,
    register,
    register_verified,
    set_user_fields,
)


def test_register_requires_matching_institutional_email(client):
    response = client.post("/api/auth/register", json={**STUDENT, "email": "ada@run.edu.ng"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Email must be obi12345@run.edu.ng"}


def test_register_rejects_unknown_department(client):
    response = client.post("/api/auth/register", json={**STUDENT, "department": "Law"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid department"


def test_register_rejects_malformed_matric_number(client):
    response = client.post("/api/auth/register", json={**STUDENT, "matricNumber": "CSC/12345"})
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_register_rejects_duplicates(client, outbox):
    register(client)
    response = client.post("/api/auth/register", json=STUDENT)
    assert response.status_code == 400
    assert response.json()["error"] == "User with this email already exists"


def test_register_sends_code_and_points_to_verify(client, outbox):
    response = client.post("/api/auth/register", json=STUDENT)
    body = response.json()
    assert body["redirectTo"] == "/verify"
    assert outbox[-1]["to"] == STUDENT["email"]
    assert len(last_code(outbox, STUDENT["email"])) == 6


def test_login_before_verification_is_forbidden(client, outbox):
    register(client)
    response = client.post("/api/auth/login", json={"email": STUDENT["email"], "password": "secret1"})
    assert response.status_code == 403
    assert response.json()["error"] == "Email not verified"


def test_verify_with_wrong_code(client, outbox):
    register(client)
    response = client.post("/api/auth/verify", json={"email": STUDENT["email"], "code": "000000"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid or expired code"


def test_resend_code_replaces_previous_code(client, outbox):
    register(client)
    first = last_code(outbox, STUDENT["email"])
    assert client.post("/api/auth/resend-code", json={"email": STUDENT["email"]}).json()["message"] == "Code resent."
    second = last_code(outbox, STUDENT["email"])

    if first != second:
        stale = client.post("/api/auth/verify", json={"email": STUDENT["email"], "code": first})
        assert stale.status_code == 400
    fresh = client.post("/api/auth/verify", json={"email": STUDENT["email"], "code": second})
    assert fresh.status_code == 200


def test_verify_email_link_token(client, outbox):
    register(client)
    body = outbox[-1]["body"]
    token = body.split("token=")[1].split()[0]
    response = client.post("/api/auth/verify-email", json={"token": token})
    assert response.status_code == 200
    assert client.post("/api/auth/verify-email", json={"token": token}).status_code == 400


def test_login_errors(client, outbox):
    register_verified(client, outbox)
    missing = client.post("/api/auth/login", json={"email": "nobody@run.edu.ng", "password": "x"})
    assert missing.status_code == 404
    assert missing.json()["error"] == "User does not exist"

    wrong = client.post("/api/auth/login", json={"email": STUDENT["email"], "password": "wrong-password"})
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "Incorrect password"


def test_login_by_matric_number_returns_tokens_and_user(client, outbox):
    register_verified(client, outbox)
    response = client.post("/api/auth/login", json={"email": "run/csc/21/12345", "password": "secret1"})
    assert response.status_code == 200
    body = response.json()
    assert body["accessToken"] == body["token"]
    assert body["refreshToken"]
    assert body["user"]["email"] == STUDENT["email"]
    assert body["user"]["isApproved"] is False
    assert "hashedPassword" not in body["user"]


def test_me_and_refresh_and_logout(client, outbox):
    register_verified(client, outbox)
    login_body = client.post(
        "/api/auth/login", json={"email": STUDENT["email"], "password": "secret1"}
    ).json()
    headers = {"Authorization": f"Bearer {login_body['accessToken']}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.json()["data"]["matricNumber"] == "RUN/CSC/21/12345"

    assert client.get("/api/auth/token").status_code == 403
    refreshed = client.get(
        "/api/auth/token", headers={"Authorization": f"Bearer {login_body['refreshToken']}"}
    )
    assert refreshed.status_code == 200
    assert refreshed.json()["accessToken"]

    # an access token is not a refresh token
    assert client.get("/api/auth/token", headers=headers).status_code == 401

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    revoked = client.get(
        "/api/auth/token", headers={"Authorization": f"Bearer {login_body['refreshToken']}"}
    )
    assert revoked.status_code == 403


def test_password_reset_by_email_link(client, outbox):
    register_verified(client, outbox)
    assert client.post("/api/auth/forgot-password", json={"email": STUDENT["email"]}).status_code == 200
    token = outbox[-1]["body"].split("token=")[1].split()[0]

    response = client.post("/api/auth/reset-password", json={"token": token, "newPassword": "newpass1"})
    assert response.status_code == 200
    login(client, STUDENT["email"], "newpass1")


def test_two_factor_password_reset_requires_both_codes(client, outbox):
    register_verified(client, outbox)
    set_user_fields(client, STUDENT["email"], phone=COMPLETE_PROFILE["phone"])

    mismatch = client.post(
        "/api/auth/forgot-password-2fa",
        json={"email": STUDENT["email"], "phoneNumber": "+2340000000000"},
    )
    assert mismatch.status_code == 400
    assert mismatch.json()["error"] == "Phone number does not match our records"

    initiated = client.post(
        "/api/auth/forgot-password-2fa",
        json={"email": STUDENT["email"], "phoneNumber": COMPLETE_PROFILE["phone"]},
    )
    assert initiated.status_code == 200
    reset_token = initiated.json()["resetToken"]
    email_code = last_code(outbox, STUDENT["email"])
    phone_code = last_code(outbox, COMPLETE_PROFILE["phone"])
    wrong_phone_code = "000000" if phone_code != "000000" else "111111"

    bad = client.post("/api/auth/reset-password-2fa", json={
        "resetToken": reset_token,
        "emailCode": email_code,
        "phoneCode": wrong_phone_code,
        "newPassword": "brandnew1",
    })
    assert bad.status_code == 400
    assert bad.json()["error"] == "Invalid phone verification code"

    good = client.post("/api/auth/reset-password-2fa", json={
        "resetToken": reset_token,
        "emailCode": email_code,
        "phoneCode": phone_code,
        "newPassword": "brandnew1",
    })
    assert good.status_code == 200
    assert good.json()["message"] == "Password reset successfully with 2FA verification"
    login(client, STUDENT["email"], "brandnew1")


def test_totp_setup_enable_and_disable(client, outbox):
    register_verified(client, outbox)
    headers = login(client, STUDENT["email"], "secret1")

    assert client.post("/api/auth/verify-2fa", json={"token": "123456"}, headers=headers).json()["error"] \
        == "2FA setup not initiated"

    setup = client.post("/api/auth/setup-2fa", headers=headers).json()
    assert setup["qrCode"].startswith("data:image/png;base64,")
    assert setup["otpauthUrl"].startswith("otpauth://totp/")

    totp = pyotp.TOTP(setup["secret"])
    wrong = "000000" if totp.now() != "000000" else "111111"
    assert client.post("/api/auth/verify-2fa", json={"token": wrong}, headers=headers).status_code == 400

    enabled = client.post("/api/auth/verify-2fa", json={"token": totp.now()}, headers=headers)
    assert enabled.json()["message"] == "2FA enabled successfully"
    assert client.get("/api/auth/me", headers=headers).json()["data"]["twoFactorEnabled"] is True

    disabled = client.post("/api/auth/disable-2fa", json={"token": totp.now()}, headers=headers)
    assert disabled.status_code == 200


def test_profile_update_normalizes_semester(client, outbox):
    register_verified(client, outbox)
    headers = login(client, STUDENT["email"], "secret1")
    response = client.put(
        "/api/users/profile", json={**COMPLETE_PROFILE, "semester": "Harmattan"}, headers=headers
    )
    data = response.json()["data"]
    assert data["semester"] == "first"
    assert data["level"] == "200"
    assert data["phone"] == COMPLETE_PROFILE["phone"]

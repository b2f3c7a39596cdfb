import logging

from tradeguard.security.twofa import hotp, time_counter

URL = "/functions/two-factor-auth"
PIN_URL = "/functions/security-pin"


def setup_2fa(client, headers):
    resp = client.post(URL, json={"action": "setup"}, headers=headers)
    assert resp.status_code == 200
    return resp.json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_requests_without_identity_are_rejected(client, db):
    resp = client.post(URL, json={"action": "setup"})
    assert resp.status_code == 401

    resp = client.post(URL, json={"action": "setup"}, headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401

    from tradeguard.crud.security_settings import get_by_user_id
    assert get_by_user_id(db, "user-1") is None


def test_setup_response_shape(client, make_headers):
    body = setup_2fa(client, make_headers())

    assert body["success"] is True
    assert len(body["secret"]) == 32
    assert body["qrCodeUrl"].startswith("otpauth://totp/TradingApp:")
    assert f"secret={body['secret']}" in body["qrCodeUrl"]
    assert "issuer=TradingApp" in body["qrCodeUrl"]


def test_verify_enables_and_settings_reflect_it(client, make_headers, clock):
    headers = make_headers()
    secret = setup_2fa(client, headers)["secret"]

    resp = client.post(URL, json={"action": "verify", "token": hotp(secret, time_counter(clock()))}, headers=headers)

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "2FA enabled successfully"}

    settings = client.get("/security-settings", headers=headers).json()
    assert settings == {"pin_enabled": False, "two_factor_enabled": True, "two_factor_method": "authenticator"}


def test_verify_wrong_code(client, make_headers):
    headers = make_headers()
    setup_2fa(client, headers)

    resp = client.post(URL, json={"action": "verify", "token": "abc"}, headers=headers)

    assert resp.json() == {"success": False, "message": "Invalid verification code"}


def test_verify_before_setup(client, make_headers):
    resp = client.post(URL, json={"action": "verify", "token": "123456"}, headers=make_headers())
    assert resp.json() == {"success": False, "message": "No 2FA secret found"}


def test_validate_before_enable(client, make_headers):
    headers = make_headers()
    setup_2fa(client, headers)

    resp = client.post(URL, json={"action": "validate", "token": "123456"}, headers=headers)
    assert resp.json() == {"success": False, "message": "2FA not enabled"}


def test_validate_after_enable(client, make_headers, clock):
    headers = make_headers()
    secret = setup_2fa(client, headers)["secret"]
    client.post(URL, json={"action": "verify", "token": hotp(secret, time_counter(clock()))}, headers=headers)

    clock.advance(minutes=3)
    resp = client.post(URL, json={"action": "validate", "token": hotp(secret, time_counter(clock()))}, headers=headers)

    assert resp.json() == {"success": True, "message": "Valid code"}


def test_lockout_returns_429(client, make_headers, clock):
    headers = make_headers()
    secret = setup_2fa(client, headers)["secret"]
    for _ in range(5):
        resp = client.post(URL, json={"action": "verify", "token": "x"}, headers=headers)
        assert resp.status_code == 200

    resp = client.post(URL, json={"action": "verify", "token": hotp(secret, time_counter(clock()))}, headers=headers)

    assert resp.status_code == 429
    assert resp.json() == {
        "error": "Too many failed attempts. Please try again in 15 minutes.",
        "locked": True,
    }

    # other users are unaffected
    other = make_headers("user-2", "bob@example.com")
    setup_2fa(client, other)
    resp = client.post(URL, json={"action": "verify", "token": "x"}, headers=other)
    assert resp.status_code == 200


def test_setup_and_disable_ignore_lockout(client, make_headers):
    headers = make_headers()
    setup_2fa(client, headers)
    for _ in range(5):
        client.post(URL, json={"action": "verify", "token": "x"}, headers=headers)

    assert client.post(URL, json={"action": "disable"}, headers=headers).status_code == 200
    assert client.post(URL, json={"action": "setup"}, headers=headers).status_code == 200


def test_disable_twice(client, make_headers, clock):
    headers = make_headers()
    secret = setup_2fa(client, headers)["secret"]
    client.post(URL, json={"action": "verify", "token": hotp(secret, time_counter(clock()))}, headers=headers)

    for _ in range(2):
        resp = client.post(URL, json={"action": "disable"}, headers=headers)
        assert resp.json() == {"success": True, "message": "2FA disabled"}

    settings = client.get("/security-settings", headers=headers).json()
    assert settings["two_factor_enabled"] is False
    assert settings["two_factor_method"] is None


def test_unknown_action_is_rejected(client, make_headers):
    resp = client.post(URL, json={"action": "reset"}, headers=make_headers())
    assert resp.status_code == 422


def test_settings_never_expose_secret(client, make_headers):
    headers = make_headers()
    body = setup_2fa(client, headers)

    resp = client.get("/security-settings", headers=headers)

    assert body["secret"] not in resp.text
    assert resp.json() == {"pin_enabled": False, "two_factor_enabled": False, "two_factor_method": None}


def test_pin_set_and_verify(client, make_headers):
    headers = make_headers()

    resp = client.post(PIN_URL, json={"action": "set", "pin": "4821"}, headers=headers)
    assert resp.json() == {"success": True, "message": "PIN set successfully"}

    resp = client.post(PIN_URL, json={"action": "verify", "pin": "4821"}, headers=headers)
    assert resp.json() == {"success": True, "message": "PIN verified", "remainingAttempts": 5}

    resp = client.post(PIN_URL, json={"action": "verify", "pin": "0000"}, headers=headers)
    assert resp.json() == {"success": False, "message": "Invalid PIN", "remainingAttempts": 4}

    assert client.get("/security-settings", headers=headers).json()["pin_enabled"] is True


def test_pin_must_be_four_digits(client, make_headers):
    resp = client.post(PIN_URL, json={"action": "set", "pin": "12a4"}, headers=make_headers())
    assert resp.status_code == 422


def test_pin_verify_without_pin(client, make_headers):
    resp = client.post(PIN_URL, json={"action": "verify", "pin": "1234"}, headers=make_headers())
    assert resp.json() == {"success": False, "message": "No PIN set"}


def test_pin_lockout_is_separate_from_2fa(client, make_headers):
    headers = make_headers()
    client.post(PIN_URL, json={"action": "set", "pin": "4821"}, headers=headers)
    for _ in range(5):
        client.post(PIN_URL, json={"action": "verify", "pin": "0000"}, headers=headers)

    resp = client.post(PIN_URL, json={"action": "verify", "pin": "4821"}, headers=headers)
    assert resp.status_code == 429
    assert resp.json()["locked"] is True

    setup_2fa(client, headers)
    resp = client.post(URL, json={"action": "verify", "token": "x"}, headers=headers)
    assert resp.status_code == 200


def test_setup_fails_closed_without_random_source(client, make_headers, monkeypatch, db):
    from tradeguard.crud.security_settings import get_by_user_id
    from tradeguard.security import twofa

    def broken(*args, **kwargs):
        raise OSError("getrandom failed")

    monkeypatch.setattr(twofa.pyotp, "random_base32", broken)

    resp = client.post(URL, json={"action": "setup"}, headers=make_headers())

    assert resp.status_code == 500
    assert resp.json() == {"error": "Secure random source unavailable"}
    assert get_by_user_id(db, "user-1") is None


def test_numeric_token_costs_an_attempt(client, make_headers, tracker):
    headers = make_headers()
    setup_2fa(client, headers)

    resp = client.post(URL, json={"action": "verify", "token": 123456}, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": False, "message": "Invalid verification code"}

    resp = client.post(URL, json={"action": "verify", "token": None}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["success"] is False

    assert tracker.store.get("2fa:user-1").failed_count == 2


def test_pin_outcomes_are_logged_without_the_pin(client, make_headers, caplog):
    caplog.set_level(logging.INFO, logger="tradeguard")
    headers = make_headers()

    client.post(PIN_URL, json={"action": "set", "pin": "4821"}, headers=headers)
    client.post(PIN_URL, json={"action": "verify", "pin": "4821"}, headers=headers)
    client.post(PIN_URL, json={"action": "verify", "pin": "9357"}, headers=headers)

    assert "PIN set successfully for user user-1" in caplog.messages
    assert "PIN verify for user user-1: success" in caplog.messages
    assert "PIN verify for user user-1: invalid (failures=1)" in caplog.messages
    assert "4821" not in caplog.text
    assert "9357" not in caplog.text


def test_expired_identity_token_is_rejected(client):
    from tradeguard.core.security import Identity, create_identity_token

    token = create_identity_token(Identity(user_id="user-1"), expires_minutes=-1)

    resp = client.post(URL, json={"action": "setup"}, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401

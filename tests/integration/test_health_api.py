from fastapi.testclient import TestClient


def test_health_root(client: TestClient):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_health_stripe_reports_configuration(client: TestClient, monkeypatch):
    monkeypatch.setattr("poolsafe.config.STRIPE_SECRET_KEY", "sk_test_abc")
    monkeypatch.setattr("poolsafe.config.STRIPE_PUBLIC_KEY", "")
    monkeypatch.setattr("poolsafe.config.STRIPE_WEBHOOK_SECRET", "whsec_abc")
    data = client.get("/health/stripe").json()
    assert data == {"secret_key": True, "publishable_key": False, "webhook_secret": True, "live_mode": False}


def test_health_rate_limit_disabled_for_tests(client: TestClient):
    data = client.get("/health/rate-limit").json()
    assert data["enabled"] is False


def test_force_https_redirect(client: TestClient):
    res = client.get("/health", headers={"x-forwarded-proto": "http"}, follow_redirects=False)
    assert res.status_code == 301
    assert res.headers["location"].startswith("https://")

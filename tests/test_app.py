from api.config import get_config, TestingConfig, ProductionConfig, DevelopmentConfig


def test_unknown_route_uses_error_envelope(client):
    res = client.get("/api/v1/does-not-exist")

    assert res.status_code == 404
    body = res.get_json()
    assert body["statusCode"] == 404
    assert body["success"] is False
    assert body["errors"] == []
    assert body["message"]


def test_wrong_method_uses_error_envelope(client):
    res = client.get("/api/v1/users/login")

    assert res.status_code == 405
    assert res.get_json()["success"] is False


def test_health(client):
    res = client.get("/api/v1/health")

    assert res.status_code == 200
    assert res.get_json()["database"] == "ok"


def test_root(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.get_json()["docs"] == "/apidocs/"


def test_overrides_win_over_config_class(app, tmp_path):
    assert app.config["TESTING"] is True
    assert app.config["UPLOAD_FOLDER"] == str(tmp_path / "uploads")


def test_get_config_by_name():
    assert get_config("testing") is TestingConfig
    assert get_config("PROD") is ProductionConfig
    assert get_config("dev") is DevelopmentConfig

import pytest

from fleet_compliance import create_app, db

from .builders import CRON_SECRET, FakePushProvider


@pytest.fixture
def test_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        "CRON_SECRET": CRON_SECRET,
        "VAPID_PRIVATE_KEY": "test-vapid-private-key",
        "LOG_FILE": str(tmp_path / "app.log"),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()

        # 🛡️ Protect against real DB being wiped
        db_url = app.config["SQLALCHEMY_DATABASE_URI"]
        if "sqlite:///:memory:" not in db_url:
            raise RuntimeError(f"Refusing to drop_all() on non-test DB: {db_url}")

        db.drop_all()


@pytest.fixture
def client(test_app):
    return test_app.test_client()


@pytest.fixture
def fake_push(test_app):
    provider = FakePushProvider()
    test_app.extensions["push_provider"] = provider
    return provider


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {CRON_SECRET}"}

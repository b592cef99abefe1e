"""
pytest configuration and fixtures.

Every test gets its own app backed by a fresh SQLite file and upload folder.
The test client does not keep cookies, so each request states exactly which
tokens it presents.
"""
import io

import pytest

from api import create_app
from models import storage
from models.user import User
from models.video import Video
from models.subscription import Subscription
from utils.security import hash_password, create_access_token

PASSWORD = "s3cret-pass"


@pytest.fixture
def app(tmp_path):
    app = create_app(
        "testing",
        {
            "DATABASE_URL": f"sqlite:///{tmp_path / 'videotube-test.db'}",
            "UPLOAD_FOLDER": str(tmp_path / "uploads"),
        },
    )
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client(use_cookies=False)


@pytest.fixture
def register(client):
    """POST /register with sensible defaults; any field can be overridden or dropped (None)."""
    def _register(username="alice", email=None, full_name="Alice Doe", password=PASSWORD,
                  avatar=True, cover_image=False):
        form = {
            "fullName": full_name,
            "email": email if email is not None else f"{username}@example.com",
            "username": username,
            "password": password,
        }
        form = {k: v for k, v in form.items() if v is not None}
        if avatar:
            form["avatar"] = (io.BytesIO(b"\x89PNG avatar"), "avatar.png")
        if cover_image:
            form["coverImage"] = (io.BytesIO(b"\x89PNG cover"), "cover.png")
        return client.post("/api/v1/users/register", data=form, content_type="multipart/form-data")

    return _register


@pytest.fixture
def login(client):
    def _login(username="alice", password=PASSWORD, **extra):
        body = {"username": username, "password": password}
        body.update(extra)
        return client.post("/api/v1/users/login", json=body)

    return _login


@pytest.fixture
def make_user(app):
    """Insert a user directly and return its id."""
    def _make_user(username, full_name=None, watch_history=None):
        with app.app_context():
            user = User(
                username=username,
                email=f"{username}@example.com",
                full_name=full_name or username.title(),
                password_hash=hash_password(PASSWORD),
                avatar=f"/assets/{username}.png",
                watch_history=list(watch_history or []),
            )
            storage.new(user)
            storage.save()
            return user.id

    return _make_user


@pytest.fixture
def make_video(app):
    def _make_video(owner_id, title="A video"):
        with app.app_context():
            video = Video(
                video_file=f"/assets/{title}.mp4",
                thumbnail=f"/assets/{title}.jpg",
                title=title,
                description=f"{title} description",
                duration=12.5,
                owner_id=owner_id,
            )
            storage.new(video)
            storage.save()
            return video.id

    return _make_video


@pytest.fixture
def subscribe(app):
    def _subscribe(subscriber_id, channel_id):
        with app.app_context():
            storage.new(Subscription(subscriber_id=subscriber_id, channel_id=channel_id))
            storage.save()

    return _subscribe


@pytest.fixture
def set_watch_history(app):
    def _set(user_id, video_ids):
        with app.app_context():
            user = storage.get(User, user_id)
            user.watch_history = list(video_ids)
            storage.save()

    return _set


@pytest.fixture
def auth_headers(app):
    """Bearer header with a fresh access token for ``user_id``."""
    def _headers(user_id):
        with app.app_context():
            user = storage.get(User, user_id)
            return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers


@pytest.fixture
def stored_refresh_token(app):
    def _stored(user_id):
        with app.app_context():
            return storage.get(User, user_id).refresh_token

    return _stored

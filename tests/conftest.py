import pytest

from gridiron import create_app, db
from tests.factories import add_user


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def user(app):
    return add_user("alice")


@pytest.fixture
def other_user(app):
    return add_user("bob")


@pytest.fixture
def admin(app):
    return add_user("carol", is_admin=True)


@pytest.fixture
def api_token(user):
    token = user.generate_api_token()
    db.session.commit()
    return token


@pytest.fixture
def auth_headers(api_token):
    return {"Authorization": f"Bearer {api_token}"}

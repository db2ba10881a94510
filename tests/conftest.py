import pytest

from app import create_app


@pytest.fixture
def app():
    return create_app({"TESTING": True, "SIM_MAX_STEPS": 50})


@pytest.fixture
def client(app):
    return app.test_client()

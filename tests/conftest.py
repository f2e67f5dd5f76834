"""Shared fixtures: an app on in-memory SQLite with a recording mailer."""

import pytest
from fastapi.testclient import TestClient

from order_api.config import Settings
from order_api.emailer import Mailer
from order_api.errors import NotificationError
from order_api.main import create_app
from order_api.models import DeliveryAgent, Merchandise, User

STRONG_PASSWORD = "Abcdef!1"


class FakeMailer(Mailer):
    """Mailer that records messages instead of talking SMTP."""

    def __init__(self, settings):
        super().__init__(settings)
        self.sent = []
        self.fail = False

    def send(self, to_email, subject, body, html=None):
        if self.fail:
            raise NotificationError("Falha ao enviar e-mail")
        self.sent.append({"to": to_email, "subject": subject, "body": body, "html": html})


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        smtp_host="smtp.test",
        recovery_code_ttl_min=15,
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    application.state.mailer = FakeMailer(settings)
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def mailer(app):
    return app.state.mailer


@pytest.fixture
def session(app):
    """Session factory bound to the app's database; use as ``with session() as s``."""
    return app.state.session_factory


@pytest.fixture
def merchandise(session):
    with session() as s:
        m = Merchandise(name="Pizza Calabresa", price=49.9)
        s.add(m)
        s.commit()
        s.refresh(m)
        return {"id": m.id, "name": m.name}


@pytest.fixture
def delivery_agent(session):
    with session() as s:
        a = DeliveryAgent(name="Carlos", phone="51999990000")
        s.add(a)
        s.commit()
        s.refresh(a)
        return {"id": a.id, "name": a.name}


def user_payload(**overrides):
    data = {
        "nome": "Maria Souza",
        "email": "maria@empresa.com.br",
        "senha": STRONG_PASSWORD,
        "telefone": "51999998888",
        "endereco": "Rua das Flores, 100",
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_user(client):
    def _make(**overrides):
        resp = client.post("/usuario", json=user_payload(**overrides))
        assert resp.status_code == 201, resp.text
        return resp.json()["usuario"]

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def load_user(session):
    def _load(email):
        with session() as s:
            return s.query(User).filter(User.email == email).first()

    return _load

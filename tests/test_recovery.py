"""Tests for the two-step password recovery flow."""

import re
from datetime import datetime, timedelta

from conftest import STRONG_PASSWORD

from order_api.auth import verify_password
from order_api.models import User
from order_api.services.users import generate_recovery_code

NEW_PASSWORD = "Trocada#2024"


def reset_body(email, code, new=NEW_PASSWORD, confirm=None):
    return {
        "email": email,
        "codigoRecuperacao": code,
        "novaSenha": new,
        "confirmarSenha": new if confirm is None else confirm,
    }


def test_generated_codes_are_six_digits():
    for _ in range(200):
        assert re.fullmatch(r"[1-9]\d{5}", generate_recovery_code())


def test_request_recovery_sets_code_and_sends_one_mail(client, user, mailer, load_user):
    resp = client.post("/usuario/solicitar-recuperacao", json={"email": user["email"]})

    assert resp.status_code == 200
    assert resp.json() == {"message": "Código de recuperação enviado para seu email"}
    stored = load_user(user["email"])
    assert re.fullmatch(r"\d{6}", stored.recovery_code)
    assert stored.recovery_expires_at > datetime.utcnow()
    assert len(mailer.sent) == 1
    assert mailer.sent[0]["to"] == user["email"]
    assert stored.recovery_code in mailer.sent[0]["body"]


def test_request_recovery_requires_email(client, mailer):
    resp = client.post("/usuario/solicitar-recuperacao", json={})
    assert resp.status_code == 400
    assert resp.json() == {"erro": "Email é obrigatório"}
    assert mailer.sent == []


def test_request_recovery_unknown_email(client, mailer):
    resp = client.post("/usuario/solicitar-recuperacao", json={"email": "ninguem@empresa.com.br"})
    assert resp.status_code == 404
    assert mailer.sent == []


def test_request_recovery_mail_failure_is_internal_error(client, user, mailer):
    mailer.fail = True
    resp = client.post("/usuario/solicitar-recuperacao", json={"email": user["email"]})
    assert resp.status_code == 500


def test_reset_with_issued_code(client, user, load_user):
    client.post("/usuario/solicitar-recuperacao", json={"email": user["email"]})
    code = load_user(user["email"]).recovery_code

    resp = client.patch("/usuario/alterar-senha", json=reset_body(user["email"], code))

    assert resp.status_code == 200
    assert resp.json() == {"message": "Senha alterada com sucesso"}
    stored = load_user(user["email"])
    assert stored.recovery_code is None
    assert stored.recovery_expires_at is None
    assert verify_password(NEW_PASSWORD, stored.password_hash)
    assert client.post("/usuario/login", json={"email": user["email"], "senha": NEW_PASSWORD}).status_code == 200


def test_reset_accepts_numeric_code(client, user, load_user):
    client.post("/usuario/solicitar-recuperacao", json={"email": user["email"]})
    code = int(load_user(user["email"]).recovery_code)

    resp = client.patch("/usuario/alterar-senha", json=reset_body(user["email"], code))
    assert resp.status_code == 200


def test_reset_with_wrong_code_changes_nothing(client, user, load_user):
    client.post("/usuario/solicitar-recuperacao", json={"email": user["email"]})
    before = load_user(user["email"])
    wrong = "000000" if before.recovery_code != "000000" else "111111"

    resp = client.patch("/usuario/alterar-senha", json=reset_body(user["email"], wrong))

    assert resp.status_code == 400
    assert resp.json() == {"erro": "Código de recuperação inválido"}
    after = load_user(user["email"])
    assert after.recovery_code == before.recovery_code
    assert after.password_hash == before.password_hash
    assert verify_password(STRONG_PASSWORD, after.password_hash)


def test_reset_unknown_email_uses_invalid_code_message(client):
    resp = client.patch("/usuario/alterar-senha", json=reset_body("ninguem@empresa.com.br", "123456"))
    assert resp.status_code == 400
    assert resp.json() == {"erro": "Código de recuperação inválido"}


def test_reset_without_issued_code(client, user):
    resp = client.patch("/usuario/alterar-senha", json=reset_body(user["email"], "123456"))
    assert resp.status_code == 400


def test_reset_requires_every_field(client, user):
    body = reset_body(user["email"], "123456")
    del body["confirmarSenha"]

    resp = client.patch("/usuario/alterar-senha", json=body)

    assert resp.status_code == 400
    assert resp.json() == {"erro": "Todos os campos são obrigatórios"}


def test_reset_password_mismatch(client, user):
    resp = client.patch(
        "/usuario/alterar-senha",
        json=reset_body(user["email"], "123456", confirm="Diferente#1"),
    )
    assert resp.status_code == 400
    assert resp.json() == {"erro": "As senhas não coincidem"}


def test_reset_enforces_password_policy(client, user, load_user):
    client.post("/usuario/solicitar-recuperacao", json={"email": user["email"]})
    code = load_user(user["email"]).recovery_code

    resp = client.patch("/usuario/alterar-senha", json=reset_body(user["email"], code, new="fraquinha"))

    assert resp.status_code == 400
    assert resp.json()["erro"] == "Senha inválida"
    assert load_user(user["email"]).recovery_code == code


def test_reset_with_expired_code(client, user, session, load_user):
    client.post("/usuario/solicitar-recuperacao", json={"email": user["email"]})
    with session() as s:
        u = s.query(User).filter(User.email == user["email"]).first()
        u.recovery_expires_at = datetime.utcnow() - timedelta(minutes=1)
        code = u.recovery_code
        s.commit()

    resp = client.patch("/usuario/alterar-senha", json=reset_body(user["email"], code))

    assert resp.status_code == 400
    assert resp.json() == {"erro": "Código de recuperação inválido"}
    assert verify_password(STRONG_PASSWORD, load_user(user["email"]).password_hash)

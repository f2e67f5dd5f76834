# order_api/services/users.py
from __future__ import annotations

import hmac
import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional, Union

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth import create_token, hash_password, verify_password
from ..config import Settings
from ..emailer import Mailer
from ..errors import BadRequest, Conflict, NotFound, Unauthorized
from ..models import Order, User
from ..schemas import LoginOut, PasswordResetIn, UserIn, UserOut, UserSummary, password_problems

log = logging.getLogger(__name__)

BAD_CREDENTIALS = "Credenciais inválidas"
INVALID_CODE = "Código de recuperação inválido"


def _get_user(db: Session, user_id: str) -> User:
    u = db.query(User).filter(User.id == user_id).first()
    if not u:
        raise NotFound("Usuário não encontrado")
    return u


def normalize_email(email: str) -> str:
    # EmailStr lowercases the domain on registration; lookups must match
    local, sep, domain = email.strip().rpartition("@")
    if not sep:
        return email.strip()
    return f"{local}@{domain.lower()}"


def _find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def _commit_unique_email(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("E-mail já cadastrado.") from None


def generate_recovery_code() -> str:
    # uniform over 100000..999999
    return str(100000 + secrets.randbelow(900000))


# -------------------
# CRUD
# -------------------
def list_users(db: Session, phone: Optional[str] = None) -> Union[Optional[UserOut], List[UserOut]]:
    # any non-empty value is a lookup, even whitespace only
    if phone:
        u = db.query(User).filter(User.phone == phone.strip()).first()
        return UserOut.model_validate(u) if u else None

    return [UserOut.model_validate(u) for u in db.query(User).order_by(User.name.asc()).all()]


def get_user(db: Session, user_id: str) -> UserOut:
    return UserOut.model_validate(_get_user(db, user_id))


def search_users(db: Session, term: str) -> List[UserOut]:
    users = (
        db.query(User)
        .filter(or_(User.name.icontains(term, autoescape=True), User.phone.icontains(term, autoescape=True)))
        .order_by(User.name.asc())
        .all()
    )
    return [UserOut.model_validate(u) for u in users]


def register_user(db: Session, data: UserIn) -> UserOut:
    if _find_by_email(db, data.email):
        raise Conflict("E-mail já cadastrado.")

    u = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        phone=data.phone,
        address=data.address,
    )
    db.add(u)
    _commit_unique_email(db)
    db.refresh(u)

    log.info("User %s registered", u.id)
    return UserOut.model_validate(u)


def update_user(db: Session, user_id: str, data: UserIn) -> UserOut:
    u = _get_user(db, user_id)

    u.name = data.name
    u.email = data.email
    u.password_hash = hash_password(data.password)
    u.phone = data.phone
    u.address = data.address

    db.add(u)
    _commit_unique_email(db)
    db.refresh(u)

    log.info("User %s updated", u.id)
    return UserOut.model_validate(u)


def delete_user(db: Session, user_id: str) -> UserOut:
    u = _get_user(db, user_id)
    if db.query(Order.id).filter(Order.user_id == user_id).first():
        raise Conflict("Usuário possui pedidos vinculados")

    snapshot = UserOut.model_validate(u)
    db.delete(u)
    db.commit()

    log.info("User %s deleted", user_id)
    return snapshot


# -------------------
# Auth
# -------------------
def login(db: Session, settings: Settings, email: Optional[str], password: Optional[str]) -> LoginOut:
    if not email or not password:
        raise BadRequest("Email e senha são obrigatórios")

    u = _find_by_email(db, email)
    # same message for unknown e-mail and wrong password
    if not u or not verify_password(password, u.password_hash):
        log.warning("Failed login for %s", email)
        raise Unauthorized(BAD_CREDENTIALS)

    return LoginOut(
        message="Login bem-sucedido",
        token=create_token(settings, u.id, u.email),
        user=UserSummary.model_validate(u),
    )


# -------------------
# Password recovery
# -------------------
def request_recovery(db: Session, mailer: Mailer, settings: Settings, email: Optional[str]) -> None:
    if not email or not email.strip():
        raise BadRequest("Email é obrigatório")

    u = _find_by_email(db, email)
    if not u:
        raise NotFound("Usuário não encontrado")

    code = generate_recovery_code()
    u.recovery_code = code
    u.recovery_expires_at = datetime.utcnow() + timedelta(minutes=settings.recovery_code_ttl_min)
    db.add(u)
    db.commit()

    log.info("Recovery code issued for user %s", u.id)
    mailer.send_recovery_code(u.email, code)


def reset_password(db: Session, data: PasswordResetIn) -> None:
    if not (data.email and data.code and data.new_password and data.confirm_password):
        raise BadRequest("Todos os campos são obrigatórios")
    if data.new_password != data.confirm_password:
        raise BadRequest("As senhas não coincidem")

    problems = password_problems(data.new_password)
    if problems:
        raise BadRequest(
            "Senha inválida",
            details=[{"campo": "novaSenha", "mensagem": p} for p in problems],
        )

    u = _find_by_email(db, data.email)
    if not u or not _code_matches(u, data.code):
        log.warning("Invalid recovery code for %s", data.email)
        raise BadRequest(INVALID_CODE)

    u.password_hash = hash_password(data.new_password)
    u.recovery_code = None
    u.recovery_expires_at = None
    db.add(u)
    db.commit()

    log.info("Password reset for user %s", u.id)


def _code_matches(u: User, code: str) -> bool:
    if not u.recovery_code:
        return False
    if u.recovery_expires_at is not None and u.recovery_expires_at < datetime.utcnow():
        return False
    return hmac.compare_digest(u.recovery_code.encode(), code.strip().encode())

# order_api/schemas.py
from __future__ import annotations

import re
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import OrderStatus

_PHONE_RE = re.compile(r"\d{10,13}")
_UPPER_RE = re.compile(r"[A-Z]")
_SPECIAL_RE = re.compile(r"[^A-Za-z0-9]")


def password_problems(p: str) -> List[str]:
    problems: List[str] = []
    if len(p) < 8:
        problems.append("A senha deve ter no mínimo 8 caracteres")
    if not _UPPER_RE.search(p):
        problems.append("A senha deve conter pelo menos uma letra maiúscula")
    if not _SPECIAL_RE.search(p):
        problems.append("A senha deve conter pelo menos um caractere especial")
    return problems


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class _In(BaseModel):
    # JSON uses the Portuguese keys; attribute names are accepted too
    model_config = ConfigDict(populate_by_name=True)


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# -------------------
# Users
# -------------------
class UserIn(_In):
    name: str = Field(alias="nome")
    email: EmailStr
    password: str = Field(alias="senha")
    phone: str = Field(alias="telefone")
    address: str = Field(alias="endereco")

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Nome deve possuir, no mínimo, 2 caracteres")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        problems = password_problems(v)
        if problems:
            raise ValueError("; ".join(problems))
        return v

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v: str) -> str:
        if not _PHONE_RE.fullmatch(v):
            raise ValueError("Telefone deve conter apenas números e ter entre 10 e 13 dígitos")
        return v

    @field_validator("address")
    @classmethod
    def check_address(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Endereço deve possuir, no mínimo, 2 caracteres")
        return v


class UserOut(_Out):
    id: str
    name: str = Field(serialization_alias="nome")
    email: str
    phone: str = Field(serialization_alias="telefone")
    address: str = Field(serialization_alias="endereco")


class UserSummary(_Out):
    id: str
    name: str = Field(serialization_alias="nome")
    email: str


class RegisterOut(BaseModel):
    message: str
    user: UserOut = Field(serialization_alias="usuario")


class LoginIn(_In):
    email: Optional[str] = None
    password: Optional[str] = Field(default=None, alias="senha")


class LoginOut(BaseModel):
    message: str
    token: str
    user: UserSummary = Field(serialization_alias="usuario")


class RecoveryRequestIn(_In):
    email: Optional[str] = None


class PasswordResetIn(_In):
    email: Optional[str] = None
    code: Optional[str] = Field(default=None, alias="codigoRecuperacao")
    new_password: Optional[str] = Field(default=None, alias="novaSenha")
    confirm_password: Optional[str] = Field(default=None, alias="confirmarSenha")

    @field_validator("code", mode="before")
    @classmethod
    def code_as_text(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class MessageOut(BaseModel):
    message: str


# -------------------
# Orders
# -------------------
class OrderIn(_In):
    quantity: int = Field(alias="quantidade", ge=1, strict=True)
    status: OrderStatus
    merchandise_id: int = Field(alias="mercadoria_id", strict=True)
    user_id: str = Field(alias="usuario_id", min_length=1)
    delivery_agent_id: Optional[int] = Field(default=None, alias="motoboy_id", strict=True)


class StatusUpdateIn(_In):
    status: Optional[OrderStatus] = None
    delivery_agent_id: Optional[int] = Field(default=None, alias="motoboy_id", strict=True)

    status_blank = field_validator("status", mode="before")(_blank_to_none)


class MerchandiseOut(_Out):
    id: int
    name: str = Field(serialization_alias="nome")
    price: Optional[float] = Field(default=None, serialization_alias="preco")


class OrderOut(_Out):
    id: int
    quantity: int = Field(serialization_alias="quantidade")
    status: OrderStatus
    merchandise_id: int = Field(serialization_alias="mercadoria_id")
    user_id: str = Field(serialization_alias="usuario_id")
    delivery_agent_id: Optional[int] = Field(default=None, serialization_alias="motoboy_id")


class OrderWithMerchandiseOut(OrderOut):
    merchandise: MerchandiseOut = Field(serialization_alias="mercadoria")


class OrderDetailOut(OrderWithMerchandiseOut):
    user: UserOut = Field(serialization_alias="usuario")

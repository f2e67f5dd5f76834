# order_api/main.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings, settings as default_settings
from .db import get_db, init_db, make_engine, make_session_factory
from .emailer import Mailer, get_mailer
from .errors import ServiceError
from .logging_config import setup_logging
from .schemas import (
    LoginIn,
    LoginOut,
    MessageOut,
    OrderDetailOut,
    OrderIn,
    OrderOut,
    OrderWithMerchandiseOut,
    PasswordResetIn,
    RecoveryRequestIn,
    RegisterOut,
    StatusUpdateIn,
    UserIn,
    UserOut,
)
from .services import orders as order_service
from .services import users as user_service

log = logging.getLogger(__name__)

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# -------------------
# Errors
# -------------------
def _validation_details(exc: RequestValidationError) -> List[Dict[str, str]]:
    out: List[Dict[str, str]] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        ctx = err.get("ctx") or {}
        msg = str(ctx["error"]) if "error" in ctx else str(err.get("msg", ""))
        out.append({"campo": ".".join(loc) or "body", "mensagem": msg})
    return out


async def _service_error(_request: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def _request_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"erro": "Dados inválidos", "detalhes": _validation_details(exc)},
    )


async def _store_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.exception("Store failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"erro": "Erro interno no servidor"})


def _register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _service_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(SQLAlchemyError, _store_error)


# -------------------
# Health
# -------------------
@router.get("/")
def root():
    return {"ok": True, "service": "order-api"}


# -------------------
# Orders
# -------------------
@router.get("/pedido", response_model=List[OrderDetailOut])
def list_orders(status: Optional[str] = None, db: Session = Depends(get_db)):
    return order_service.list_orders(db, status)


@router.get("/pedido/{usuario_id}", response_model=List[OrderWithMerchandiseOut])
def list_orders_by_user(usuario_id: str, db: Session = Depends(get_db)):
    return order_service.list_orders_by_user(db, usuario_id)


@router.post("/pedido", status_code=201, response_model=OrderOut)
def create_order(payload: OrderIn, db: Session = Depends(get_db)):
    return order_service.create_order(db, payload)


@router.patch("/pedido/{order_id}", response_model=OrderOut)
def update_order_status(
    order_id: int,
    payload: StatusUpdateIn,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    return order_service.update_status(
        db,
        mailer,
        order_id,
        status=payload.status,
        delivery_agent_id=payload.delivery_agent_id,
    )


@router.delete("/pedido/{order_id}", response_model=OrderOut)
def delete_order(order_id: int, db: Session = Depends(get_db)):
    return order_service.delete_order(db, order_id)


# -------------------
# Users
# -------------------
@router.get("/usuario")
def list_users(telefone: Optional[str] = None, db: Session = Depends(get_db)):
    # single user (or null) when filtering by phone, list otherwise
    return user_service.list_users(db, telefone)


@router.get("/usuario/pesquisa/{termo}", response_model=List[UserOut])
def search_users(termo: str, db: Session = Depends(get_db)):
    return user_service.search_users(db, termo)


@router.get("/usuario/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    return user_service.get_user(db, user_id)


@router.post("/usuario", status_code=201, response_model=RegisterOut)
def register_user(payload: UserIn, db: Session = Depends(get_db)):
    u = user_service.register_user(db, payload)
    return RegisterOut(message="Usuário cadastrado com sucesso", user=u)


@router.post("/usuario/login", response_model=LoginOut)
def login(
    payload: Optional[LoginIn] = None,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    payload = payload or LoginIn()
    return user_service.login(db, settings, payload.email, payload.password)


@router.put("/usuario/{user_id}", response_model=UserOut)
def update_user(user_id: str, payload: UserIn, db: Session = Depends(get_db)):
    return user_service.update_user(db, user_id, payload)


@router.delete("/usuario/{user_id}", response_model=UserOut)
def delete_user(user_id: str, db: Session = Depends(get_db)):
    return user_service.delete_user(db, user_id)


@router.post("/usuario/solicitar-recuperacao", response_model=MessageOut)
def request_recovery(
    payload: Optional[RecoveryRequestIn] = None,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings),
):
    payload = payload or RecoveryRequestIn()
    user_service.request_recovery(db, mailer, settings, payload.email)
    return MessageOut(message="Código de recuperação enviado para seu email")


@router.patch("/usuario/alterar-senha", response_model=MessageOut)
def reset_password(payload: Optional[PasswordResetIn] = None, db: Session = Depends(get_db)):
    user_service.reset_password(db, payload or PasswordResetIn())
    return MessageOut(message="Senha alterada com sucesso")


# -------------------
# App
# -------------------
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.log_level)

    app = FastAPI(title=settings.project_name)

    engine = make_engine(settings.database_url)
    init_db(engine)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.mailer = Mailer(settings)

    _register_error_handlers(app)
    app.include_router(router)
    return app


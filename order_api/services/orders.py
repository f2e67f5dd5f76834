# order_api/services/orders.py
from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from ..emailer import Mailer
from ..errors import NotFound, ValidationFailed
from ..models import DeliveryAgent, Merchandise, Order, OrderStatus, User
from ..schemas import OrderDetailOut, OrderIn, OrderOut, OrderWithMerchandiseOut

log = logging.getLogger(__name__)


def parse_status(raw: Optional[str]) -> Optional[OrderStatus]:
    """Turn an optional ``?status=`` value into the enum, rejecting unknown values."""
    if raw is None:
        return None
    try:
        return OrderStatus(raw.strip())
    except ValueError:
        raise ValidationFailed(
            "Status inválido.",
            details=[{"campo": "status", "mensagem": f"Os valores permitidos são: {OrderStatus.allowed()}"}],
        ) from None


def _get_order(db: Session, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Pedido não encontrado")
    return order


def _require_refs(db: Session, user_id: str, merchandise_id: int, delivery_agent_id: Optional[int]) -> None:
    if not db.query(User.id).filter(User.id == user_id).first():
        raise NotFound("Usuário não encontrado")
    if not db.query(Merchandise.id).filter(Merchandise.id == merchandise_id).first():
        raise NotFound("Mercadoria não encontrada")
    if delivery_agent_id is not None:
        _require_delivery_agent(db, delivery_agent_id)


def _require_delivery_agent(db: Session, delivery_agent_id: int) -> None:
    if not db.query(DeliveryAgent.id).filter(DeliveryAgent.id == delivery_agent_id).first():
        raise NotFound("Motoboy não encontrado")


def list_orders(db: Session, status: Optional[str] = None) -> List[OrderDetailOut]:
    wanted = parse_status(status)

    q = db.query(Order).options(joinedload(Order.user), joinedload(Order.merchandise))
    if wanted is not None:
        q = q.filter(Order.status == wanted)

    return [OrderDetailOut.model_validate(o) for o in q.order_by(Order.id.desc()).all()]


def list_orders_by_user(db: Session, user_id: str) -> List[OrderWithMerchandiseOut]:
    orders = (
        db.query(Order)
        .options(joinedload(Order.merchandise))
        .filter(Order.user_id == user_id)
        .order_by(Order.id)
        .all()
    )
    return [OrderWithMerchandiseOut.model_validate(o) for o in orders]


def create_order(db: Session, data: OrderIn) -> OrderOut:
    _require_refs(db, data.user_id, data.merchandise_id, data.delivery_agent_id)

    order = Order(
        quantity=data.quantity,
        status=data.status,
        merchandise_id=data.merchandise_id,
        user_id=data.user_id,
        delivery_agent_id=data.delivery_agent_id,
    )
    db.add(order)
    db.commit()
    db.refresh(order)

    log.info("Order %s created for user %s", order.id, order.user_id)
    return OrderOut.model_validate(order)


def update_status(
    db: Session,
    mailer: Mailer,
    order_id: int,
    status: Optional[OrderStatus],
    delivery_agent_id: Optional[int] = None,
) -> OrderOut:
    if status is None:
        raise ValidationFailed("Informe o novo status do pedido")

    order = _get_order(db, order_id)
    if delivery_agent_id is not None:
        _require_delivery_agent(db, delivery_agent_id)
        order.delivery_agent_id = delivery_agent_id
    order.status = status

    db.add(order)
    db.commit()
    db.refresh(order)
    snapshot = OrderOut.model_validate(order)
    log.info("Order %s status set to %s", order.id, status.value)

    # the status write stays committed even if the e-mail below fails
    detail = (
        db.query(Order)
        .options(joinedload(Order.user), joinedload(Order.merchandise))
        .filter(Order.id == order_id)
        .first()
    )
    if detail:
        mailer.send_status_update(
            name=detail.user.name,
            email=detail.user.email,
            merchandise=detail.merchandise.name,
            status=status.value,
        )

    return snapshot


def delete_order(db: Session, order_id: int) -> OrderOut:
    order = _get_order(db, order_id)
    snapshot = OrderOut.model_validate(order)

    db.delete(order)
    db.commit()

    log.info("Order %s deleted", order_id)
    return snapshot

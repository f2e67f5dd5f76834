# order_api/models.py
from __future__ import annotations

import enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship

from .db import Base


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PREPARATION = "IN_PREPARATION"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def allowed(cls) -> str:
        return ", ".join(s.value for s in cls)


def _new_user_id() -> str:
    return str(uuid4())


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=_new_user_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    phone = Column(String(13), index=True, nullable=False)
    address = Column(String, nullable=False)
    recovery_code = Column(String(6), nullable=True)
    recovery_expires_at = Column(DateTime, nullable=True)

    orders = relationship("Order", back_populates="user")


class Merchandise(Base):
    __tablename__ = "merchandise"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=True)


class DeliveryAgent(Base):
    __tablename__ = "delivery_agents"
    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    phone = Column(String, nullable=True)


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True)
    quantity = Column(Integer, nullable=False)
    status = Column(Enum(OrderStatus, name="order_status"), nullable=False, default=OrderStatus.PENDING)
    merchandise_id = Column(Integer, ForeignKey("merchandise.id"), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    delivery_agent_id = Column(Integer, ForeignKey("delivery_agents.id"), nullable=True)

    user = relationship("User", back_populates="orders")
    merchandise = relationship("Merchandise")
    delivery_agent = relationship("DeliveryAgent")

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from convo_core.database import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text)
    category = Column(Text)
    service_type = Column(Text, nullable=False, default="service")  # service, plan, product
    price_base = Column(Numeric(10, 2))
    currency = Column(Text)
    duration_min = Column(Integer)
    service_url = Column(Text)
    active = Column(Boolean, nullable=False, default=True)
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    variants = relationship("ServiceVariant", back_populates="service")


class ServiceVariant(Base):
    __tablename__ = "service_variants"

    id = Column(Integer, primary_key=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False, index=True)
    variant_name = Column(Text, nullable=False)
    description = Column(Text)
    price = Column(Numeric(10, 2))
    currency = Column(Text)
    duration_min = Column(Integer)
    variant_url = Column(Text)
    size_token = Column(Text)  # small, medium, large, xl
    min_weight_lbs = Column(Numeric(6, 2))
    max_weight_lbs = Column(Numeric(6, 2))
    active = Column(Boolean, nullable=False, default=True)

    service = relationship("Service", back_populates="variants")

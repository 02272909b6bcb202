from app.database.database import Base
from sqlalchemy import Column, Integer, String, DateTime, Numeric, Enum, CheckConstraint
from app.common.mixins import TimestampMixin
import enum

SYSTEM_CONFIG_ID = 1


class Currency(str, enum.Enum):
    BS = "Bs"
    USD = "USD"


class SystemConfig(Base, TimestampMixin):
    """
    Configuración general del negocio (una sola fila).

    La tasa de cambio vigente vive aquí; la publica un administrador o la
    tarea periódica de actualización, y cada venta la lee una sola vez.
    """
    __tablename__ = "system_config"

    id = Column(Integer, primary_key=True, default=SYSTEM_CONFIG_ID)

    # Información general
    business_name = Column(String(150), nullable=False)
    rif = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(100), nullable=True)

    # Datos fiscales y monetarios
    exchange_rate = Column(Numeric(18, 6), nullable=False)  # Bs por USD
    exchange_rate_source = Column(String(50), nullable=True)
    exchange_rate_updated_at = Column(DateTime(timezone=True), nullable=True)
    vat_rate = Column(Numeric(5, 4), nullable=False, default=0)
    primary_currency = Column(Enum(Currency), nullable=False, default=Currency.BS)
    payment_terms = Column(String(255), nullable=True)  # Pie de factura

    # Preferencias
    timezone = Column(String(64), nullable=False)
    invoice_prefix = Column(String(10), nullable=False, default="")

    __table_args__ = (
        CheckConstraint("exchange_rate > 0", name="ck_system_config_rate_positive"),
    )

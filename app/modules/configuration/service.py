"""
Configuración del negocio y tasa de cambio vigente.

La tasa se trata como un valor publicado: las ventas leen el último valor
conocido y nunca disparan una consulta externa.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.common.dates import utcnow, as_utc
from app.common.exceptions import ExchangeRateUnavailable
from app.common.money import quantize_rate, to_decimal
from app.core.config import settings
from app.modules.configuration.models import SystemConfig, SYSTEM_CONFIG_ID
from app.modules.configuration.schemas import ExchangeRateOut

logger = logging.getLogger(__name__)


class ConfigurationService:
    """Servicio de configuración del sistema"""

    def __init__(self, db: Session):
        self.db = db

    def get_config(self) -> SystemConfig:
        """Obtener la configuración, creándola con los valores por defecto si no existe."""
        config = self.db.query(SystemConfig).filter(SystemConfig.id == SYSTEM_CONFIG_ID).first()
        if config:
            return config

        config = SystemConfig(
            id=SYSTEM_CONFIG_ID,
            business_name=settings.BUSINESS_NAME,
            exchange_rate=quantize_rate(settings.DEFAULT_EXCHANGE_RATE),
            exchange_rate_source="default",
            vat_rate=Decimal("0"),
            timezone=settings.BUSINESS_TIMEZONE,
            invoice_prefix=settings.INVOICE_PREFIX,
        )
        self.db.add(config)
        try:
            self.db.commit()
        except IntegrityError:
            # Otra petición la creó primero
            self.db.rollback()
            return self.db.query(SystemConfig).filter(SystemConfig.id == SYSTEM_CONFIG_ID).one()
        self.db.refresh(config)
        logger.info("Configuración del sistema inicializada con valores por defecto")
        return config

    def get_timezone(self) -> str:
        """Zona horaria del negocio, sin crear la configuración si aún no existe."""
        tz_name = (
            self.db.query(SystemConfig.timezone)
            .filter(SystemConfig.id == SYSTEM_CONFIG_ID)
            .scalar()
        )
        return tz_name or settings.BUSINESS_TIMEZONE

    def get_exchange_rate(self) -> ExchangeRateOut:
        config = self.get_config()
        rate = to_decimal(config.exchange_rate) if config.exchange_rate is not None else None
        if not rate or rate <= 0:
            raise ExchangeRateUnavailable()
        return ExchangeRateOut(
            rate=rate,
            source=config.exchange_rate_source,
            updated_at=config.exchange_rate_updated_at,
        )

    def publish_exchange_rate(self, rate: Decimal, source: str = "manual") -> SystemConfig:
        """Registrar una nueva tasa vigente."""
        rate = quantize_rate(rate)
        if rate <= 0:
            raise ValueError("La tasa de cambio debe ser mayor a cero")

        config = self.get_config()
        previous = config.exchange_rate
        config.exchange_rate = rate
        config.exchange_rate_source = source
        config.exchange_rate_updated_at = utcnow()
        self.db.commit()
        self.db.refresh(config)
        logger.info(f"Tasa de cambio publicada: {previous} -> {rate} Bs/USD (fuente: {source})")
        return config

    def is_rate_stale(self, max_age_hours: int, now: Optional[datetime] = None) -> bool:
        config = self.get_config()
        if config.exchange_rate_updated_at is None:
            return True
        now = now or utcnow()
        return now - as_utc(config.exchange_rate_updated_at) > timedelta(hours=max_age_hours)

"""
Background tasks for configuration module
"""
from decimal import Decimal, InvalidOperation
from typing import Optional
import logging

import requests

from app.core.celery import celery_app
from app.core.config import settings
from app.database.database import SessionLocal
from app.modules.configuration.service import ConfigurationService

logger = logging.getLogger(__name__)

RATE_SOURCE = "bcv"


def fetch_bcv_rate(url: Optional[str] = None, timeout: Optional[int] = None) -> Decimal:
    """
    Consultar la tasa oficial USD del BCV.

    Raises:
        requests.RequestException: error de red o status HTTP no exitoso
        ValueError: respuesta sin un precio numérico positivo
    """
    response = requests.get(
        url or settings.EXCHANGE_RATE_API_URL,
        timeout=timeout or settings.EXCHANGE_RATE_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    price = (response.json() or {}).get("price")
    if isinstance(price, bool) or not isinstance(price, (int, float, str)):
        raise ValueError(f"Respuesta sin precio válido: {price!r}")
    try:
        rate = Decimal(str(price))
    except InvalidOperation:
        raise ValueError(f"Precio no numérico: {price!r}")
    if rate <= 0:
        raise ValueError(f"Precio no positivo: {rate}")
    return rate


@celery_app.task
def refresh_exchange_rate(force: bool = False):
    """
    Periodic task: publish a fresh BCV rate when the stored one is older than
    EXCHANGE_RATE_REFRESH_HOURS. Never raises: a failed refresh only means
    sales keep using the last known rate.
    """
    db = SessionLocal()
    try:
        service = ConfigurationService(db)
        if not force and not service.is_rate_stale(settings.EXCHANGE_RATE_REFRESH_HOURS):
            return {"status": "fresh"}

        try:
            rate = fetch_bcv_rate()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"No se pudo actualizar la tasa automáticamente: {e}")
            return {"status": "failed", "error": str(e)}

        # Se publica aunque no cambie para renovar exchange_rate_updated_at
        service.publish_exchange_rate(rate, source=RATE_SOURCE)
        return {"status": "updated", "rate": str(rate)}

    except Exception as e:
        db.rollback()
        logger.error(f"Exchange rate refresh failed: {str(e)}")
        return {"status": "failed", "error": str(e)}
    finally:
        db.close()

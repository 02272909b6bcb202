from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.configuration.service import ConfigurationService
from app.modules.configuration.schemas import SystemConfigOut, ExchangeRateOut, ExchangeRateUpdate

config_router = APIRouter(prefix="/config", tags=["Configuration"])


@config_router.get("/", response_model=SystemConfigOut)
def get_config(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Configuración general del negocio."""
    return ConfigurationService(db).get_config()


@config_router.get("/exchange-rate", response_model=ExchangeRateOut)
def get_exchange_rate(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Tasa de cambio vigente (Bs por USD) que usarán las próximas ventas."""
    return ConfigurationService(db).get_exchange_rate()


@config_router.put("/exchange-rate", response_model=ExchangeRateOut)
def publish_exchange_rate(
    data: ExchangeRateUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["admin"]))
):
    """
    Publicar manualmente una nueva tasa.

    No afecta ventas ya registradas: cada venta guarda la tasa del momento.
    """
    service = ConfigurationService(db)
    service.publish_exchange_rate(data.rate, source=f"manual:{auth_context.user_id}")
    return service.get_exchange_rate()

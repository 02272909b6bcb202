from decimal import Decimal
from typing import Annotated
from fastapi import Depends
from app.dependencies.dbDependecies import db_dependency
from app.modules.configuration.service import ConfigurationService


def get_current_exchange_rate(db: db_dependency) -> Decimal:
    """Tasa vigente (Bs por USD); 503 si no hay ninguna registrada."""
    return ConfigurationService(db).get_exchange_rate().rate


# Tasa leída una sola vez por petición
exchange_rate_dependency = Annotated[Decimal, Depends(get_current_exchange_rate)]

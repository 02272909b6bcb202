from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional
from datetime import datetime

from app.modules.configuration.models import Currency


class SystemConfigOut(BaseModel):
    business_name: str
    rif: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    exchange_rate: Decimal = Field(description="Tasa vigente, Bs por USD")
    exchange_rate_source: Optional[str] = None
    exchange_rate_updated_at: Optional[datetime] = None
    vat_rate: Decimal
    primary_currency: Currency
    payment_terms: Optional[str] = None
    timezone: str
    invoice_prefix: str

    model_config = {"from_attributes": True}


class ExchangeRateOut(BaseModel):
    rate: Decimal
    source: Optional[str] = None
    updated_at: Optional[datetime] = None


class ExchangeRateUpdate(BaseModel):
    rate: Decimal = Field(..., gt=0, max_digits=18, decimal_places=6, description="Bs por USD")

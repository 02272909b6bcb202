"""
Sales Reports Service

Cashier report, dashboard KPIs, daily sales series and per-cashier
breakdown. Days are calendar days in the business timezone.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import selectinload

from .base import BaseReportService
from app.common.dates import business_date
from app.common.money import ZERO, quantize_money, sum_money
from app.core.config import settings
from app.modules.products.models import Product
from app.modules.sales.models import Sale
from app.modules.turnos.models import Turno, TurnoStatus
from app.modules.turnos.service import summarize_payments


def _average(total: Decimal, count: int) -> Decimal:
    return quantize_money(total / count) if count else ZERO


class SalesReportService(BaseReportService):
    """Service for generating sales reports"""

    def get_cashier_report(
        self,
        cashier_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Dict:
        """
        Ventas de un cajero.

        Sin fechas, se limita al turno abierto del cajero; si no tiene turno
        abierto el reporte sale vacío.
        """
        turno = None
        query = self._get_base_sale_query().filter(Sale.cashier_id == cashier_id)

        if start_date or end_date:
            start, end = self._range_window(start_date or end_date, end_date or start_date)
            query = self._apply_window(query, start, end)
        else:
            turno = self.db.query(Turno).filter(
                Turno.cashier_id == cashier_id,
                Turno.status == TurnoStatus.OPEN
            ).first()
            if not turno:
                query = None
            else:
                query = query.filter(Sale.turno_id == turno.id)

        sales = []
        if query is not None:
            sales = query.options(selectinload(Sale.payments)).order_by(Sale.sold_at.desc()).all()

        total_bs = sum_money(sale.total_bs for sale in sales)
        return {
            "cashier_id": cashier_id,
            "turno_id": turno.id if turno else None,
            "period_start": start_date or end_date,
            "period_end": end_date or start_date,
            "sales_count": len(sales),
            "total_bs": total_bs,
            "total_usd": sum_money(sale.total_usd for sale in sales),
            "average_ticket_bs": _average(total_bs, len(sales)),
            "payment_totals": [
                {"method": method, "amount_bs": values["bs"], "amount_usd": values["usd"]}
                for method, values in summarize_payments(sales).items()
            ],
            "sales": [
                {
                    "id": sale.id,
                    "invoice_number": sale.invoice_number,
                    "sold_at": sale.sold_at,
                    "total_bs": sale.total_bs,
                    "total_usd": sale.total_usd,
                    "payment_methods": sale.payment_methods,
                }
                for sale in sales
            ],
        }

    def get_kpis(self, now: Optional[datetime] = None, low_stock_threshold: Optional[Decimal] = None) -> Dict:
        """Indicadores del dashboard: hoy, últimos 7 días e inventario"""
        today_start, today_end = self._day_window(self._today(now))
        week_start, week_end = self._last_days_window(7, now)
        threshold = low_stock_threshold if low_stock_threshold is not None else settings.LOW_STOCK_THRESHOLD

        today_sales = self._apply_window(
            self._get_base_sale_query(), today_start, today_end
        ).with_entities(Sale.total_bs, Sale.total_usd).all()
        week_sales = self._apply_window(
            self._get_base_sale_query(), week_start, week_end
        ).with_entities(Sale.total_bs, Sale.total_usd).all()

        return {
            "day": self._today(now),
            "sales_today_bs": sum_money(row.total_bs for row in today_sales),
            "sales_today_usd": sum_money(row.total_usd for row in today_sales),
            "transactions_today": len(today_sales),
            "sales_last_7_days_bs": sum_money(row.total_bs for row in week_sales),
            "sales_last_7_days_usd": sum_money(row.total_usd for row in week_sales),
            "transactions_last_7_days": len(week_sales),
            "active_products": self._get_base_product_query().count(),
            "low_stock_products": self._get_base_product_query().filter(
                Product.stock <= threshold
            ).count(),
        }

    def get_daily_sales(self, days: int = 7, now: Optional[datetime] = None) -> Dict:
        """
        Serie diaria de ventas de los últimos `days` días (hoy incluido),
        con los días sin ventas en cero.
        """
        today = self._today(now)
        first_day = today - timedelta(days=days - 1)
        start, end = self._range_window(first_day, today)

        rows = self._apply_window(self._get_base_sale_query(), start, end).with_entities(
            Sale.sold_at, Sale.total_bs, Sale.total_usd
        ).all()

        buckets = {
            first_day + timedelta(days=offset): {"total_bs": ZERO, "total_usd": ZERO, "transactions": 0}
            for offset in range(days)
        }
        for row in rows:
            bucket = buckets.get(business_date(row.sold_at, self.tz_name))
            if bucket is None:
                continue
            bucket["total_bs"] += row.total_bs
            bucket["total_usd"] += row.total_usd
            bucket["transactions"] += 1

        return {
            "period_start": first_day,
            "period_end": today,
            "days": [
                {
                    "day": day,
                    "total_bs": quantize_money(values["total_bs"]),
                    "total_usd": quantize_money(values["total_usd"]),
                    "transactions": values["transactions"],
                }
                for day, values in sorted(buckets.items())
            ],
        }

    def get_sales_by_cashier(self, start_date: date, end_date: date) -> Dict:
        """Ventas por cajero en un rango de días, mayor total primero"""
        start, end = self._range_window(start_date, end_date)
        rows = self._apply_window(self._get_base_sale_query(), start, end).with_entities(
            Sale.cashier_id, Sale.cashier_name, Sale.total_bs, Sale.total_usd
        ).order_by(Sale.sold_at).all()

        by_cashier: Dict[str, Dict] = {}
        for row in rows:
            entry = by_cashier.setdefault(row.cashier_id, {
                "cashier_id": row.cashier_id,
                "cashier_name": row.cashier_name,
                "sales_count": 0,
                "total_bs": ZERO,
                "total_usd": ZERO,
            })
            # El nombre más reciente
            entry["cashier_name"] = row.cashier_name
            entry["sales_count"] += 1
            entry["total_bs"] += row.total_bs
            entry["total_usd"] += row.total_usd

        cashiers: List[Dict] = []
        for entry in by_cashier.values():
            entry["total_bs"] = quantize_money(entry["total_bs"])
            entry["total_usd"] = quantize_money(entry["total_usd"])
            entry["average_ticket_bs"] = _average(entry["total_bs"], entry["sales_count"])
            cashiers.append(entry)
        cashiers.sort(key=lambda entry: entry["total_bs"], reverse=True)

        return {
            "period_start": start_date or end_date,
            "period_end": end_date,
            "cashiers": cashiers,
            "total_bs": sum_money(entry["total_bs"] for entry in cashiers),
            "total_usd": sum_money(entry["total_usd"] for entry in cashiers),
        }

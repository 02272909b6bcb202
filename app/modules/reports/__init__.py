"""
Reports Module

Reportes de solo lectura sobre ventas, turnos e inventario para el
dashboard y los supervisores.

Este módulo NO crea nuevas tablas ni modifica datos: solo consulta las
tablas de otros módulos. Los cortes por día usan el calendario de la zona
horaria del negocio.

Architecture Pattern: Service Layer
- routers/ -> Endpoints FastAPI con validaciones
- services/ -> Consultas y agregación
- schemas/ -> Modelos Pydantic de respuesta
"""

from .routers import sales_router, inventory_router

__all__ = [
    "sales_router",
    "inventory_router",
]

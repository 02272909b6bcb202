"""
Módulo de Turnos de caja

ENTIDADES PRINCIPALES:
- Turno: sesión de trabajo de un cajero, unidad de responsabilidad del efectivo
- TurnoPaymentTotal: totales por método de pago guardados al cierre

FUNCIONALIDADES:
- Apertura con fondo en Bs y USD, un solo turno abierto por cajero
- Arqueo: efectivo esperado = fondo + ventas en efectivo del turno
- Cierre por supervisor con efectivo contado y descuadre (faltante/sobrante)
- Historial de turnos y cajeros con turno abierto

INTEGRACIÓN CON OTROS MÓDULOS:
- Sales: cada venta referencia el turno abierto de su cajero
- Reports: reporte del cajero sobre su turno abierto
"""

"""
Módulo de Ventas del punto de venta

ENTIDADES PRINCIPALES:
- Sale: venta confirmada, inmutable
- SaleLineItem: renglón con precio vivo y subtotales en Bs y USD
- SalePayment: parte del total asignada a cada método de pago

FUNCIONALIDADES:
- Confirmación atómica: descuento de stock y registro de la venta juntos
- Número de factura derivado de la hora local con desempate por sufijo
- Clave de idempotencia por cajero para reintentos seguros
- Historial y detalle de ventas

INTEGRACIÓN CON OTROS MÓDULOS:
- Inventory: descuento de stock con verificación y movimientos OUT
- Turnos: la venta exige un turno abierto del cajero
- Configuration: prefijo de factura, zona horaria y tasa vigente
"""

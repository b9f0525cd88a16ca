"""
Módulo de Gastos (Bills)

ENTIDADES PRINCIPALES:
- PurchaseInvoice: Facturas de proveedor con sus líneas
- PaymentOut: Pagos a proveedores, ligados o no a una factura

INTEGRACIÓN CON INVENTARIO Y SALDOS:
- received → incrementa stock y la deuda con el proveedor
- draft / ordered → sin efecto hasta la recepción
- salir de received (o anular) → revierte ambos

ESTADOS DE FACTURAS:
- draft: Borrador
- ordered: Pedida al proveedor
- received: Recibida, pendiente de pago
- partial: Pago parcial
- paid: Pagada completamente
- cancelled: Anulada
"""

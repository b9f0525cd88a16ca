"""
Módulo de Facturas de Venta

- Facturas de venta (SaleInvoice) con sus líneas
- Pagos recibidos (PaymentIn), ligados a una factura o genéricos

Las mutaciones pasan por app.modules.ledger.service.LedgerService.
"""

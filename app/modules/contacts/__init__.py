"""
Módulo de Contactos

Registro único para clientes, proveedores o ambos. Cada contacto lleva el
saldo corrido que mantienen las facturas y los pagos del ledger.

Componentes:
- models.py: modelo SQLAlchemy Contact
- schemas.py: esquemas Pydantic
- service.py: CRUD y movimiento atómico de saldo
- router.py: endpoints REST
- tests.py: pruebas
"""

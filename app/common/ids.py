"""
Identificadores únicos ordenables en el tiempo

Formato UUID versión 7: 48 bits de milisegundos Unix, 12 bits de contador
monótono y 62 bits aleatorios. Dos ids generados en el mismo proceso siempre
quedan en orden de creación, aunque caigan en el mismo milisegundo.
"""
import os
import threading
import time
from uuid import UUID

_lock = threading.Lock()
_last_ms = 0
_last_seq = 0

_SEQ_MAX = 0xFFF


def new_id() -> UUID:
    global _last_ms, _last_seq

    with _lock:
        ms = time.time_ns() // 1_000_000
        if ms > _last_ms:
            # Arrancar el contador en la mitad baja deja margen para incrementos
            seq = int.from_bytes(os.urandom(2), "big") & 0x7FF
        else:
            ms = _last_ms
            seq = _last_seq + 1
            if seq > _SEQ_MAX:
                ms += 1
                seq = 0
        _last_ms, _last_seq = ms, seq

    rand_b = int.from_bytes(os.urandom(8), "big") & ((1 << 62) - 1)
    value = (ms & ((1 << 48) - 1)) << 80
    value |= 0x7 << 76
    value |= seq << 64
    value |= 0b10 << 62
    value |= rand_b
    return UUID(int=value)


def id_timestamp_ms(value: UUID) -> int:
    """Milisegundos Unix embebidos en un id generado por new_id()."""
    return value.int >> 80

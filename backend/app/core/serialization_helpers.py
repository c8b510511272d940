"""
Helpers genéricos de serialización.
NO contiene lógica de negocio, solo utilidades de formato.
"""
from decimal import Decimal, InvalidOperation


def serialize_decimal(value):
    """Convierte Decimal a float para serialización JSON"""
    if value is None:
        return None
    return float(value)


def to_decimal(value) -> Decimal:
    """Convierte floats/ints/strings a Decimal sin arrastrar el error binario del float"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def fits_scale(value: Decimal, quantum: Decimal) -> bool:
    """True si el valor se puede guardar con la escala de quantum sin redondear"""
    try:
        return value == value.quantize(quantum)
    except InvalidOperation:
        return False

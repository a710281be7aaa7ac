"""
Saturating unsigned 128-bit arithmetic, identical to the matching engine contract's
"""
MAX_U128 = (1 << 128) - 1


def _clamp(value: int) -> int:
    if value < 0:
        return 0
    if value > MAX_U128:
        return MAX_U128
    return value


def sat_add(a: int, b: int) -> int:
    return _clamp(a + b)


def sat_sub(a: int, b: int) -> int:
    """Floors at zero"""
    return _clamp(a - b)


def sat_mul(a: int, b: int) -> int:
    return _clamp(a * b)


def sat_div(a: int, b: int) -> int:
    """Integer division; dividing by zero yields zero"""
    if b == 0:
        return 0
    return _clamp(a // b)

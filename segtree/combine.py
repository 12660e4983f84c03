import numpy as np
import numba


SUM = 0
MIN = 1
MAX = 2
XOR = 3
GCD = 4

OPERATORS = {
    "sum": SUM,
    "min": MIN,
    "max": MAX,
    "xor": XOR,
    "gcd": GCD,
}

DTYPES = (np.dtype(np.int64), np.dtype(np.float64))


def resolve(op, dtype):
    """
    Maps an operator name and dtype onto the (op code, dtype, neutral element)
    triple used by the kernels. xor and gcd are only defined on integers.
    """
    if op not in OPERATORS:
        raise ValueError(
            f"Unknown operator {op!r}, expected one of {sorted(OPERATORS)}"
        )
    dtype = np.dtype(dtype)
    if dtype not in DTYPES:
        raise ValueError(f"Unsupported dtype {dtype}, expected int64 or float64")
    code = OPERATORS[op]
    if code in (XOR, GCD) and dtype.kind != "i":
        raise ValueError(f"Operator {op!r} requires an integer dtype")

    return code, dtype, neutral_element(code, dtype)


def neutral_element(code, dtype):
    dtype = np.dtype(dtype)
    if code == MIN:
        if dtype.kind == "f":
            return dtype.type(np.inf)
        return dtype.type(np.iinfo(dtype).max)
    if code == MAX:
        if dtype.kind == "f":
            return dtype.type(-np.inf)
        return dtype.type(np.iinfo(dtype).min)
    # sum, xor and gcd all have 0 as identity
    return dtype.type(0)


@numba.njit(cache=True)
def gcd(a, b):
    a = abs(a)
    b = abs(b)
    while b != 0:
        a, b = b, a % b
    return a


@numba.njit(cache=True)
def combine(op, a, b):
    if op == SUM:
        return a + b
    elif op == MIN:
        return min(a, b)
    elif op == MAX:
        return max(a, b)
    elif op == XOR:
        # casts keep the branch typeable when compiled for float64 trees
        return np.int64(a) ^ np.int64(b)
    else:
        return gcd(np.int64(a), np.int64(b))

"""Minimal complex-number value type used by the FFT engine."""

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Complex:
    """An immutable complex value ``re + im*j``."""

    re: float = 0.0
    im: float = 0.0

    def __add__(self, other):
        return Complex(self.re + other.re, self.im + other.im)

    def __sub__(self, other):
        return Complex(self.re - other.re, self.im - other.im)

    def __mul__(self, other):
        """Multiply by another :class:`Complex` or by a real scalar.

        For ``a = m + ni`` and ``b = x + yi`` the product is
        ``(m*x - n*y) + (n*x + m*y)i``.
        """
        if isinstance(other, Complex):
            return Complex(
                self.re * other.re - self.im * other.im,
                self.im * other.re + self.re * other.im,
            )
        return Complex(self.re * other, self.im * other)

    __rmul__ = __mul__

    def __complex__(self):
        return complex(self.re, self.im)

    def __str__(self):
        sign = "-" if self.im < 0.0 else "+"
        return f"({self.re:f}{sign}{abs(self.im):f}j)"

    def conjugate(self):
        return Complex(self.re, -self.im)

    def magnitude(self):
        """Return ``sqrt(re² + im²)``."""
        r = math.sqrt(self.re * self.re + self.im * self.im)
        assert not math.isnan(r), "complex magnitude is NaN"
        assert not math.isinf(r), "complex magnitude overflowed"
        return r

    @classmethod
    def from_complex(cls, z):
        return cls(z.real, z.imag)


def cexp(x):
    """Return ``e^(xi)`` via Euler's formula: ``cos(x) + sin(x)i``."""
    return Complex(math.cos(x), math.sin(x))


def isclose(a, b, abs_tol=1e-9):
    """Component-wise closeness test for two complex values."""
    return (
        math.isclose(a.re, b.re, rel_tol=0.0, abs_tol=abs_tol)
        and math.isclose(a.im, b.im, rel_tol=0.0, abs_tol=abs_tol)
    )

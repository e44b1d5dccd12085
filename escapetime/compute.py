"""
Escape-time iteration functions using Numba JIT compilation.

Every kernel has the same signature:

    kernel(is_julia, x, y, c_re, c_im, max_iter, radius, normalised)
        -> (iterations, last_value, degree)

The orbit starts at z(0) = x + yi. In Mandelbrot mode the caller passes
c = (x, y); in Julia mode c is the fixed Julia constant. Iteration stops
when |z|^2 exceeds radius^2 (escaped after `iterations` steps) or when
max_iter steps have been taken (assumed inside the set, `iterations` is
max_iter). `last_value` is |z| at escape, only when `normalised` is set,
and is used by the colour maps for smooth colouring. `degree` is the
power of the recurrence, needed by the same formula.

Supported formulas:
- mandelbrot:                    z^2 + c
- mandelbrot cubic:              z^3 + c
- mandelbrot quartic:            z^4 + c
- mandelbrot quintic:            z^5 + c
- mandelbrot conjugate:          conj(z)^2 + c   (Tricorn / Mandelbar)
- mandelbrot conjugate cubic:    conj(z)^3 + c
- mandelbrot conjugate quartic:  conj(z)^4 + c
- mandelbrot conjugate quintic:  conj(z)^5 + c
- Collatz map (variant 1):       1/4 + z - (1 + 2z)cos(pi z)
- Collatz map (variant 2):       1/2 + 7z/4 - (2 + 5z)cos(pi z)

The Collatz maps are labelled with their textbook forms 1/4(1 + 4z - ...)
and 1/4(2 + 7z - ...), but the quarter only scales the linear part.
"""

import math
from dataclasses import dataclass
from typing import Callable, NamedTuple

from numba import jit


class IterationResult(NamedTuple):
    """Outcome of iterating a single point."""
    iterations: int
    last_value: float
    degree: int


@jit(nopython=True, cache=True)
def iterate_quadratic(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """
    Classical Mandelbrot, z(n+1) = z(n)^2 + c.

    Solving separately for the real and imaginary components:
    re(n+1) = re(n)^2 - im(n)^2 + re(c), and
    im(n+1) = 2 re(n) im(n) + im(c)
    """
    rl = x
    im = y
    sqrl = 0.0
    sqim = im * im
    sqr = radius * radius
    i = 0
    if not is_julia:
        # Main cardioid: these points never escape
        q = (x - 0.25) * (x - 0.25) + sqim
        if q * (q + x - 0.25) < sqim / 4.0:
            return max_iter, 0.0, 2
        # Period 2 bulb to the left of the cardioid
        if (x + 1.0) * (x + 1.0) + sqim < 0.0625:
            return max_iter, 0.0, 2

    while True:
        sqrl = rl * rl
        if sqrl + sqim > sqr:
            break
        im = 2.0 * rl * im + c_im
        rl = sqrl - sqim + c_re
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 2
        sqim = im * im

    if normalised:
        return i, math.sqrt(sqrl + sqim), 2
    return i, 0.0, 2


@jit(nopython=True, cache=True)
def iterate_cubic(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """
    z(n+1) = z(n)^3 + c

    re(n+1) = re(n)(re(n)^2 - 3im(n)^2) + re(c)
    im(n+1) = im(n)(3re(n)^2 - im(n)^2) + im(c)
    """
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        new_rl = rl * (sqrl - 3.0 * sqim) + c_re
        im = im * (3.0 * sqrl - sqim) + c_im
        rl = new_rl
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 3

    if normalised:
        return i, math.sqrt(sqrl + sqim), 3
    return i, 0.0, 3


@jit(nopython=True, cache=True)
def iterate_quartic(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """
    z(n+1) = z(n)^4 + c

    (a+bi)^4 = a^4 + b^4 - 6a^2b^2 + (4a^3b - 4ab^3)i
    """
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        new_rl = sqrl * sqrl + sqim * sqim - 6.0 * sqrl * sqim + c_re
        im = 4.0 * sqrl * rl * im - 4.0 * rl * sqim * im + c_im
        rl = new_rl
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 4

    if normalised:
        return i, math.sqrt(sqrl + sqim), 4
    return i, 0.0, 4


@jit(nopython=True, cache=True)
def iterate_quintic(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """
    z(n+1) = z(n)^5 + c

    (a+bi)^5 = a(a^4 - 10a^2b^2 + 5b^4) + b(b^4 - 10a^2b^2 + 5a^4)i
    """
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        rl = rl * (sqrl * (sqrl - sqim) - 9.0 * sqrl * sqim + 5.0 * sqim * sqim) + c_re
        im = im * (sqim * (sqim - 10.0 * sqrl) + 5.0 * sqrl * sqrl) + c_im
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 5

    if normalised:
        return i, math.sqrt(sqrl + sqim), 5
    return i, 0.0, 5


@jit(nopython=True, cache=True)
def iterate_conjugate(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """Mandelbar / Tricorn: z(n+1) = conj(z(n))^2 + c"""
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        im = -2.0 * rl * im + c_im
        rl = sqrl - sqim + c_re
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 2

    if normalised:
        return i, math.sqrt(sqrl + sqim), 2
    return i, 0.0, 2


@jit(nopython=True, cache=True)
def iterate_conjugate_cubic(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """z(n+1) = conj(z(n))^3 + c"""
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        rl = rl * (sqrl - 3.0 * sqim) + c_re
        im = im * (sqim - 3.0 * sqrl) + c_im
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 3

    if normalised:
        return i, math.sqrt(sqrl + sqim), 3
    return i, 0.0, 3


@jit(nopython=True, cache=True)
def iterate_conjugate_quartic(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """z(n+1) = conj(z(n))^4 + c"""
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        rlim = rl * im
        diffsq = sqrl - sqim
        im = c_im - 4.0 * rlim * diffsq
        rl = diffsq * diffsq - 4.0 * rlim * rlim + c_re
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 4

    if normalised:
        return i, math.sqrt(sqrl + sqim), 4
    return i, 0.0, 4


@jit(nopython=True, cache=True)
def iterate_conjugate_quintic(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """z(n+1) = conj(z(n))^5 + c"""
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        rl = rl * (sqrl * (sqrl - sqim) + sqim * (5.0 * sqim - 9.0 * sqrl)) + c_re
        im = im * (sqim * (sqrl - sqim) + sqrl * (9.0 * sqim - 5.0 * sqrl)) + c_im
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 5

    if normalised:
        return i, math.sqrt(sqrl + sqim), 5
    return i, 0.0, 5


@jit(nopython=True, cache=True)
def iterate_collatz(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """
    Collatz map, z(n+1) = 1/4 + z(n) - (1 + 2z(n))cos(pi z(n))

    cos(pi(a + bi)) = cos(pi a)cosh(pi b) - i sin(pi a)sinh(pi b)
    The map has no additive constant, so c is unused.
    """
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        c = math.cos(math.pi * rl) * math.cosh(math.pi * im)
        s = math.sin(math.pi * rl) * math.sinh(math.pi * im)
        # (1 + 2z)cos(pi z) = ((1 + 2re)c + 2im s) + (2im c - (1 + 2re)s)i
        new_rl = 0.25 + rl - (2.0 * rl + 1.0) * c - 2.0 * im * s
        new_im = (1.0 - 2.0 * c) * im + (2.0 * rl + 1.0) * s
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 5
        rl = new_rl
        im = new_im

    if normalised:
        return i, math.sqrt(sqrl + sqim), 5
    return i, 0.0, 5


@jit(nopython=True, cache=True)
def iterate_collatz_variant(is_julia, x, y, c_re, c_im, max_iter, radius, normalised):
    """Collatz map, z(n+1) = 1/2 + 7z(n)/4 - (2 + 5z(n))cos(pi z(n))"""
    rl = x
    im = y
    sqrl = 0.0
    sqim = 0.0
    sqr = radius * radius
    i = 0
    while True:
        sqrl = rl * rl
        sqim = im * im
        if sqrl + sqim > sqr:
            break
        c = math.cos(math.pi * rl) * math.cosh(math.pi * im)
        s = math.sin(math.pi * rl) * math.sinh(math.pi * im)
        new_rl = 0.5 + 7.0 * rl / 4.0 - 2.0 * c - 5.0 * (c * rl + s * im)
        new_im = 7.0 * im / 4.0 + 2.0 * s + 5.0 * (s * rl - c * im)
        i += 1
        if i >= max_iter:
            return max_iter, 0.0, 5
        rl = new_rl
        im = new_im

    if normalised:
        return i, math.sqrt(sqrl + sqim), 5
    return i, 0.0, 5


@dataclass(frozen=True)
class FractalFormula:
    """
    A named escape-time formula.

    Attributes:
        name: Identifier, also shown to the user
        equation: Right-hand side of the recurrence, without the constant
        kernel: JIT-compiled iteration function (see module docstring)
        degree: Power reported to the colour maps for smoothing
        adds_constant: Whether the recurrence ends with "+ c"
    """
    name: str
    equation: str
    kernel: Callable
    degree: int
    adds_constant: bool = True

    def iterate(self, is_julia, x, y, c_re, c_im, max_iter, radius, normalised=False):
        """Iterate a single point and return an IterationResult."""
        n, last_value, degree = self.kernel(
            bool(is_julia), float(x), float(y), float(c_re), float(c_im),
            int(max_iter), float(radius), bool(normalised)
        )
        return IterationResult(int(n), float(last_value), int(degree))

    def get_equation(self, is_julia=False):
        """Human-readable recurrence, e.g. 'z[n+1] = z[n]^2 + C'."""
        equation = 'z[n+1] = ' + self.equation
        if self.adds_constant:
            equation += ' + ' + ('C' if is_julia else 'z[0]')
        return equation


def default_formulas():
    """
    Build the standard set of formulas.

    Returns a new tuple on every call; callers pass it to a FractalModel
    rather than sharing a module-level registry.
    """
    return (
        FractalFormula('mandelbrot', 'z[n]^2', iterate_quadratic, 2),
        FractalFormula('mandelbrot cubic', 'z[n]^3', iterate_cubic, 3),
        FractalFormula('mandelbrot quartic', 'z[n]^4', iterate_quartic, 4),
        FractalFormula('mandelbrot quintic', 'z[n]^5', iterate_quintic, 5),
        FractalFormula('mandelbrot conjugate', 'conj(z[n])^2', iterate_conjugate, 2),
        FractalFormula('mandelbrot conjugate cubic', 'conj(z[n])^3', iterate_conjugate_cubic, 3),
        FractalFormula('mandelbrot conjugate quartic', 'conj(z[n])^4', iterate_conjugate_quartic, 4),
        FractalFormula('mandelbrot conjugate quintic', 'conj(z[n])^5', iterate_conjugate_quintic, 5),
        FractalFormula('Collatz map (variant 1)',
                       '1/4(1 + 4z[n] - (1 + 2z[n])cos(pi z[n]))',
                       iterate_collatz, 5, adds_constant=False),
        FractalFormula('Collatz map (variant 2)',
                       '1/4(2 + 7z[n] - (2 + 5z[n])cos(pi z[n]))',
                       iterate_collatz_variant, 5, adds_constant=False),
    )


def warmup_jit(formulas=None):
    """
    Warm up JIT compilation of every kernel.

    Call this once at startup to pre-compile the Numba functions,
    avoiding a delay on the first rendered band.
    """
    for formula in formulas or default_formulas():
        formula.iterate(False, 0.1, 0.1, 0.1, 0.1, 4, 2.0, True)

#
#  Copyright (C) 2024
#  Smithsonian Astrophysical Observatory
#
#
#  This program is free software; you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation; either version 3 of the License, or
#  (at your option) any later version.
#
#  This program is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License along
#  with this program; if not, write to the Free Software Foundation, Inc.,
#  51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA.
#

"""Finite-difference derivatives.

These are used by the gradient-based optimizers when the caller does
not provide a gradient function.

"""

from collections.abc import Callable

import numpy as np

from .types import ArrayType


__all__ = ('EPSILON', 'step_size', 'derivative', 'gradient')


EPSILON = float(np.finfo(np.float64).eps)


def step_size(x: float, order: int = 1) -> float:
    """The finite-difference step for a location.

    The step is ``eps^(1 / (1 + order)) * (1 + |x|)``, which balances
    truncation and round-off errors for a central difference of the
    given order.
    """
    return EPSILON ** (1.0 / (1.0 + order)) * (1.0 + abs(x))


def derivative(func: Callable[[float], float],
               x: float,
               h: float | None = None
               ) -> float:
    """Central-difference derivative of a scalar function.

    Parameters
    ----------
    func : callable
       The function, which takes and returns a scalar.
    x : number
       The location at which to evaluate the derivative.
    h : number or None, optional
       The step size. If not set, or not positive, then `step_size`
       is used.

    Returns
    -------
    dfdx : number

    """

    if h is None or h <= 0:
        h = step_size(x)

    return (func(x + h) - func(x - h)) / (2.0 * h)


def gradient(func: Callable[[np.ndarray], float],
             x: ArrayType,
             h: float | None = None
             ) -> np.ndarray:
    """Central-difference gradient of a multi-variate function.

    Each element requires two calls to func, so the gradient of an
    n-parameter function costs 2n evaluations.

    Parameters
    ----------
    func : callable
       The function, which takes an ndarray and returns a scalar.
    x : sequence of number
       The location at which to evaluate the gradient.
    h : number or None, optional
       The step size to use for every parameter. If not set, or not
       positive, then `step_size` is used for each parameter.

    Returns
    -------
    grad : ndarray

    Examples
    --------

    >>> gradient(lambda x: np.sum(x * x), [1, -2])
    array([ 2., -4.])

    """

    point = np.asarray(x, dtype=float)
    grad = np.zeros(point.size)
    hi = point.copy()
    lo = point.copy()
    for idx, xval in enumerate(point):
        step = step_size(xval) if h is None or h <= 0 else h
        hi[idx] += step
        lo[idx] -= step
        grad[idx] = (func(hi) - func(lo)) / (2.0 * step)
        hi[idx] = xval
        lo[idx] = xval

    return grad

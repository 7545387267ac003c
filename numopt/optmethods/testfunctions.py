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

"""Standard functions for testing the optimizers.

Apart from `fx`, which takes a scalar, each function takes an array
of parameter values. The location of the global minimum is given in
the docstring, along with the function value there.

References
----------

.. [1] Surjanovic, S., & Bingham, D., "Virtual Library of Simulation
       Experiments: Test Functions and Datasets",
       https://www.sfu.ca/~ssurjano/optimization.html

"""

import numpy as np


__all__ = ('fx', 'fxyz', 'dejong', 'rosenbrock', 'booth', 'matyas',
           'rastrigin', 'ackley', 'beale', 'goldstein_price',
           'three_hump_camel')


def fx(x):
    """(x + 3) (x - 1)^2

    On [-3, 3] the minimum is at x=1 (f=0) and the local maximum is
    at x=-5/3 (f=256/27).
    """
    return (x + 3.0) * (x - 1.0)**2


def fxyz(x):
    """fxyz(0.125, 0.2, 0.35) = 0"""
    return (4.0 * x[0] - 0.5)**2 + (3.0 * x[1] - 0.6)**2 + \
        (2.0 * x[2] - 0.7)**2


def dejong(x):
    """The sphere function: dejong(0, ..., 0) = 0"""
    x = np.asarray(x)
    return np.sum(x * x)


def rosenbrock(x):
    """rosenbrock(1, ..., 1) = 0"""
    x = np.asarray(x)
    return np.sum(100.0 * (x[1:] - x[:-1]**2)**2 + (1.0 - x[:-1])**2)


def booth(x):
    """booth(1, 3) = 0"""
    return (x[0] + 2.0 * x[1] - 7.0)**2 + (2.0 * x[0] + x[1] - 5.0)**2


def matyas(x):
    """matyas(0, 0) = 0"""
    return 0.26 * (x[0]**2 + x[1]**2) - 0.48 * x[0] * x[1]


def rastrigin(x):
    """rastrigin(0, ..., 0) = 0

    There is a regular grid of local minima.
    """
    x = np.asarray(x)
    return 10.0 * x.size + np.sum(x * x - 10.0 * np.cos(2.0 * np.pi * x))


def ackley(x):
    """ackley(0, 0) = 0"""
    a = -20.0 * np.exp(-0.2 * np.sqrt(0.5 * (x[0]**2 + x[1]**2)))
    b = np.exp(0.5 * (np.cos(2.0 * np.pi * x[0]) +
                      np.cos(2.0 * np.pi * x[1])))
    return a - b + np.e + 20.0


def beale(x):
    """beale(3, 0.5) = 0"""
    x0, x1 = x[0], x[1]
    return (1.5 - x0 + x0 * x1)**2 + (2.25 - x0 + x0 * x1**2)**2 + \
        (2.625 - x0 + x0 * x1**3)**2


def goldstein_price(x):
    """goldstein_price(0, -1) = 3"""
    x0, x1 = x[0], x[1]
    term1 = 1.0 + (x0 + x1 + 1.0)**2 * \
        (19.0 - 14.0 * x0 + 3.0 * x0**2 - 14.0 * x1 + 6.0 * x0 * x1 +
         3.0 * x1**2)
    term2 = 30.0 + (2.0 * x0 - 3.0 * x1)**2 * \
        (18.0 - 32.0 * x0 + 12.0 * x0**2 + 48.0 * x1 - 36.0 * x0 * x1 +
         27.0 * x1**2)
    return term1 * term2


def three_hump_camel(x):
    """three_hump_camel(0, 0) = 0"""
    x0, x1 = x[0], x[1]
    return 2.0 * x0**2 - 1.05 * x0**4 + x0**6 / 6.0 + x0 * x1 + x1**2

#
#  Copyright (C) 2023, 2024
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

"""
Basic routines for handling random numbers.

The stochastic optimizers own a `numpy.random.Generator`, created
from their seed at the start of each run, and all draws are made
through these routines so that a run can be repeated exactly.

"""

from collections.abc import Sequence
from typing import Literal, overload

import numpy as np


# Try to come up with a sensible type for the size field.
SizeType = int | Sequence[int] | np.ndarray


__all__ = ("choice", "create_rng", "integers", "random",
           "spawn_generators", "uniform")


def create_rng(seed: int | None) -> np.random.Generator:
    """Create the generator used by an optimizer.

    Parameters
    ----------
    seed : int or None
       The seed. If None then the generator is seeded from the
       operating system, and so runs are not repeatable.

    Returns
    -------
    rng : numpy.random.Generator

    """

    return np.random.default_rng(seed)


def spawn_generators(rng: np.random.Generator,
                     num: int
                     ) -> list[np.random.Generator]:
    """Create independent generators from an existing one.

    The root seed is drawn from rng, so the new generators are
    repeatable when rng is, and they are created following
    https://numpy.org/doc/stable/reference/random/parallel.html

    Parameters
    ----------
    rng : numpy.random.Generator
       The generator used to create the root seed.
    num : int
       The number of generators to create.

    Returns
    -------
    rngs : list of numpy.random.Generator

    """

    root_seed = rng.integers(np.iinfo(np.int64).max)
    seeds = np.random.SeedSequence(int(root_seed)).spawn(num)
    return [np.random.default_rng(seed) for seed in seeds]


def random(rng: np.random.Generator) -> float:
    """Create a random value [0, 1.0)"""
    return rng.random()


@overload
def uniform(rng: np.random.Generator,
            low: float,
            high: float,
            size: Literal[None] = None
            ) -> float:
    ...

@overload
def uniform(rng: np.random.Generator,
            low: float | np.ndarray,
            high: float | np.ndarray,
            size: SizeType
            ) -> np.ndarray:
    ...

def uniform(rng, low, high, size=None):
    """Create a random value within a uniform range.

    Parameters
    ----------
    rng : numpy.random.Generator
       The generator.
    low, high
       The range [low, high). These can be arrays, in which case
       each element is drawn from its own range.
    size
       The shape and size of the return.

    Returns
    -------
    value : number or ndarray

    """

    return rng.uniform(low, high, size=size)


def integers(rng: np.random.Generator,
             high: int
             ) -> int:
    """Create a random integer from [0, high)."""
    return int(rng.integers(high))


def choice(rng: np.random.Generator,
           xs: Sequence | np.ndarray,
           n: int,
           p: Sequence[float] | np.ndarray | None = None
           ) -> np.ndarray:
    """Create a subset of elements from xs with no duplication.

    Parameters
    ----------
    rng : numpy.random.Generator
       The generator.
    xs
       Sequence of values.
    n
       The number of values to select from xs.
    p
       The probability of selecting each element of xs. If not set
       the elements are equally likely.

    Returns
    -------
    values : ndarray

    """

    return rng.choice(xs, n, replace=False, p=p)

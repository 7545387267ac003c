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

"""Useful types for numopt.

This module should be considered an internal module as its contents are
likely to change as types get added and the typing ecosystem in Python
matures.

"""

from collections.abc import Callable, Sequence

import numpy as np


# Try to be generic when using arrays as input or output. There is no
# attempt to encode the data type or shape for ndarrays at this time.
#
ArrayType = Sequence[float] | np.ndarray

# The objective function is sent the parameter values and returns
# the value to optimize.
#
ObjectiveFunc = Callable[[np.ndarray], float]

# A one-dimensional objective (Brent and golden-section searches).
#
ScalarFunc = Callable[[float], float]

# The optional user-supplied gradient of an ObjectiveFunc.
#
GradientFunc = Callable[[np.ndarray], ArrayType]

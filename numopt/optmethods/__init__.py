#
#  Copyright (C) 2007, 2016, 2018 - 2021, 2023 - 2025
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

"""Optimization classes.

Each optimizer is created with the objective function, which is sent
an array of parameter values and returns a scalar, the number of
parameters, and the bounds (and, for the local methods, the starting
location). The `minimize` and `maximize` methods run the search and
return the best location as a `ParameterSet`:

>>> from numopt.optmethods import NelderMead
>>> def booth(x):
...     return (x[0] + 2 * x[1] - 7)**2 + (2 * x[0] + x[1] - 5)**2
>>> opt = NelderMead(booth, 2, [0, 0], [-10, -10], [10, 10])
>>> best = opt.minimize()
>>> opt.status
<OptimizationStatus.SUCCESS: 1>

The run can also be inspected with the `iterations`,
`function_evaluations`, and `parameter_set_trace` attributes.

Notes
-----

The local methods are `BrentSearch` and `GoldenSection` (for a single
parameter), `NelderMead`, `Powell`, `BFGS`, `ADAM`, and
`GradientDescent`. The global methods are `ParticleSwarm`,
`DifferentialEvolution`, `SimulatedAnnealing`,
`ShuffledComplexEvolution`, `MLSL`, and `MultiStart`; they use a
seeded random-number generator so that a run can be repeated. The
`AugmentedLagrange` class adds constraints to any of the other
optimizers.

The defaults for the budgets and tolerances are read from the
``[optimizer]`` section of the numopt configuration file.

Examples
--------

Find the maximum of a function with a single parameter:

>>> from numopt.optmethods import BrentSearch
>>> def fx(x):
...     return (x + 3) * (x - 1)**2
>>> opt = BrentSearch(fx, -3, 3)
>>> best = opt.maximize()
>>> round(opt.best_x, 3)
-1.667

Use a global search with a fixed seed:

>>> from numopt.optmethods import DifferentialEvolution
>>> opt = DifferentialEvolution(booth, 2, [-10, -10], [10, 10], seed=42)
>>> best = opt.minimize()
>>> [round(float(v), 3) for v in best.values]
[1.0, 3.0]

"""

from . import anneal, constrained, gradient, multistart, opt, \
    population, powell, quasinewton, sce, simplex, univariate
from .anneal import *
from .constrained import *
from .gradient import *
from .multistart import *
from .opt import *
from .population import *
from .powell import *
from .quasinewton import *
from .sce import *
from .simplex import *
from .univariate import *

__all__ = opt.__all__ + univariate.__all__ + simplex.__all__ + \
    powell.__all__ + gradient.__all__ + quasinewton.__all__ + \
    population.__all__ + anneal.__all__ + sce.__all__ + \
    multistart.__all__ + constrained.__all__

#
#  Copyright (C) 2010, 2024  Smithsonian Astrophysical Observatory
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
numopt specific exceptions
"""

__all__ = ('NumoptErr', 'OptimizerErr', 'NumericalErr')


class NumoptErr(Exception):
    "Base class for all numopt exceptions"

    def __init__(self, dict, *args):
        if len(args) == 0:
            errmsg = "Generic Error"
        else:
            key = args[0]
            if key in dict:
                errmsg = dict[key] % args[1:]
            else:
                errmsg = key
        Exception.__init__(self, errmsg)


class OptimizerErr(ValueError, NumoptErr):
    "Invalid optimizer configuration"

    dict = {'npar': "there must be at least 1 parameter, not %d",
            'noncall': "the %s must be callable",
            'badsize': "%s must have %d elements, not %d",
            'badbounds': "the upper bound (%g) must be larger than the lower bound (%g) for parameter %d",
            'invertedbounds': "the upper bound (%g) cannot be less than the lower bound (%g) for parameter %d",
            'outside': "initial value %g for parameter %d is outside the bounds [%g, %g]",
            'toosmall': "%s must be at least %s, not %s",
            'range': "%s must be in the range %s, not %s",
            'noconstraints': "there must be at least one constraint",
            'nested': "the inner optimizer cannot also be an augmented Lagrange optimizer",
            }

    def __init__(self, key, *args):
        NumoptErr.__init__(self, OptimizerErr.dict, key, *args)


class NumericalErr(ArithmeticError, NumoptErr):
    "The algorithm reached a numerically degenerate state"

    dict = {'roundoff': "roundoff problem in line search",
            'nonfinite': "the function value or gradient is not finite at the start of the line search",
            }

    def __init__(self, key, *args):
        NumoptErr.__init__(self, NumericalErr.dict, key, *args)

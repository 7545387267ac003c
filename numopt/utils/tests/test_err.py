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

import pytest

from numopt.utils.err import NumericalErr, NumoptErr, OptimizerErr


def test_optimizer_err_message():

    err = OptimizerErr('badsize', 'gradient', 3, 2)
    assert str(err) == "gradient must have 3 elements, not 2"


def test_optimizer_err_bounds():

    err = OptimizerErr('badbounds', 2, 2, 1)
    assert str(err) == "the upper bound (2) must be larger than the lower bound (2) for parameter 1"


def test_unknown_key_is_the_message():

    err = OptimizerErr('something went wrong')
    assert str(err) == "something went wrong"


def test_generic_error():

    err = NumoptErr({})
    assert str(err) == "Generic Error"


def test_numerical_err():

    err = NumericalErr('roundoff')
    assert str(err) == "roundoff problem in line search"


@pytest.mark.parametrize("cls,base",
                         [(OptimizerErr, ValueError),
                          (NumericalErr, ArithmeticError),
                          (OptimizerErr, NumoptErr),
                          (NumericalErr, NumoptErr)])
def test_err_hierarchy(cls, base):

    with pytest.raises(base):
        raise cls('noconstraints')

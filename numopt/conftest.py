#
#  Copyright (C) 2016 - 2024
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

import logging
import re

import pytest


# Follow https://docs.pytest.org/en/latest/example/simple.html#control-skipping-of-tests-according-to-command-line-option
# for adding a command-line option to let slow-running tests be run
# (not by default).
#
def pytest_addoption(parser):
    parser.addoption("--runslow", action="store_true", default=False,
                     help="run slow tests")


def pytest_collection_modifyitems(config, items):

    if config.getoption("--runslow"):
        return

    skip = pytest.mark.skip(reason="need --runslow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip)


def pytest_configure(config):
    """Add support for the "slow" test marker."""

    config.addinivalue_line("markers", "slow: mark test as slow to run")


# The objective functions used in the tests can overflow when an
# optimizer probes far from the minimum.
#
known_warnings = {
    RuntimeWarning:
        [
            r"overflow encountered in .*",
            r"invalid value encountered in .*",
        ],
}


def check_known_warning(warning):
    """Return True if this is an "allowed" warning."""

    message = warning.message
    for known_warning in known_warnings.get(type(message), []):
        pattern = re.compile(known_warning)
        if pattern.match(str(message)):
            return True

    return False


@pytest.fixture(scope="function", autouse=True)
def capture_all_warnings(request, recwarn):
    """Fail a test if it creates an unexpected warning."""

    def fin():
        warnings = [w for w in recwarn.list if not check_known_warning(w)]
        for idx, w in enumerate(warnings):
            print("{}/{} {}".format(idx + 1, len(warnings), w))

        assert len(warnings) == 0

    request.addfinalizer(fin)


@pytest.fixture
def hide_logging():
    """Set numopt's logging to ERROR for the test."""

    logger = logging.getLogger('numopt')
    olvl = logger.getEffectiveLevel()
    logger.setLevel(logging.ERROR)
    yield
    logger.setLevel(olvl)

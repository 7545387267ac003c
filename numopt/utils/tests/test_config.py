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

import os

import numopt


DEFAULT_CONFIG = os.path.join(os.path.dirname(numopt.__file__), 'numopt.rc')


def test_default_config_exists():
    assert os.path.isfile(DEFAULT_CONFIG)


def test_nonumoptrc(monkeypatch, tmp_path):

    rcfile = tmp_path / 'my.rc'
    rcfile.write_text('[optimizer]\n')
    monkeypatch.setenv('NONUMOPTRC', '1')
    monkeypatch.setenv('NUMOPTRC', str(rcfile))
    assert numopt.get_config() == DEFAULT_CONFIG


def test_numoptrc(monkeypatch, tmp_path):

    rcfile = tmp_path / 'my.rc'
    rcfile.write_text('[optimizer]\n')
    monkeypatch.delenv('NONUMOPTRC', raising=False)
    monkeypatch.setenv('NUMOPTRC', str(rcfile))
    assert numopt.get_config() == str(rcfile)


def test_home_directory(monkeypatch, tmp_path):

    monkeypatch.delenv('NONUMOPTRC', raising=False)
    monkeypatch.setenv('NUMOPTRC', str(tmp_path / 'does-not-exist'))
    monkeypatch.setenv('HOME', str(tmp_path))
    assert numopt.get_config() == DEFAULT_CONFIG

    rcfile = tmp_path / '.numopt.rc'
    rcfile.write_text('[optimizer]\n')
    assert numopt.get_config() == str(rcfile)

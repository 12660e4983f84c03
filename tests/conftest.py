import os
import pytest

os.environ["NUMBA_DISABLE_JIT"] = "0"

import numba


@pytest.hookimpl
def pytest_configure(config):
    version = numba.__version__.split('.')
    try:
        assert int(version[0]) > 0 or int(version[1]) >= 57
    except AssertionError:
        print('Install numba 0.57 or later.')

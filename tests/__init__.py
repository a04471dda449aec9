# flake8: noqa
# mypy: implicit-reexport
from tests.test_base import TestBase

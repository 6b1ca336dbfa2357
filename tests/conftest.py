from __future__ import annotations

import logging
from typing import Iterator

import pytest

import rotalog.api as rotalog_api
from rotalog.core.manager import GLOBAL_MANAGER


@pytest.fixture(autouse=True)
def reset_rotalog() -> Iterator[None]:
    yield
    GLOBAL_MANAGER.shutdown()
    GLOBAL_MANAGER.bus.clear()
    rotalog_api._CONFIGURED = False
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if type(h).__name__ != "BusHandler"]

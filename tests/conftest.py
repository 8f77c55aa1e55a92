"""
Shared pytest fixtures for cfgbind tests.

This module provides:
- Isolation of the process-wide store, loader and binder
- The sample records and YAML document used across the binding tests
- A store pre-filled with that document

Records are module-level dataclasses so their annotations resolve.
"""

import logging
from dataclasses import dataclass, field

import pytest
import structlog

from cfgbind import binder as binder_mod
from cfgbind import loader as loader_mod
from cfgbind.binder import Binder
from cfgbind.store import ConfigStore

YAML_EXAMPLE = """
firstparam: First
SecondParam: Second
Nested:
   FourthParam: true
   FifthParam: 78
   SixthParam: Sixth
ThirdParam: false
"""

COLLECTION_YAML = """
environment: SecondItem
environments:
  - name: FirstItem
    region: eu-west-1
    replicas: 1
  - name: SecondItem
    region: us-east-1
    replicas: 3
  - name: ThirdItem
    region: ap-south-1
    replicas: 5
"""


@dataclass
class RootConfig:
    first_param: str = field(default="", metadata={"help": "first parameter"})
    second_param: str = ""
    third_param: bool = False


@dataclass
class Child2Config:
    fourth_param: bool = False
    fifth_param: int = 0
    sixth_param: str = ""


@dataclass
class EnvironmentConfig:
    name: str = ""
    region: str = ""
    replicas: int = 0


@pytest.fixture(autouse=True)
def isolated_process_config(monkeypatch):
    """Fresh process-wide store, loader and binder for every test."""
    monkeypatch.setattr(loader_mod, "_store", None)
    monkeypatch.setattr(loader_mod, "_loader", None)
    monkeypatch.setattr(binder_mod, "_binder", None)
    for name in (
        "CFGBIND_CONFIG_FILE",
        "CFGBIND_APP_NAME",
        "CFGBIND_ENV_PREFIX",
        "CFGBIND_LOG_LEVEL",
        "CFGBIND_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def quiet_logging():
    """Only warnings and errors, resolved per call so captured streams stay valid."""
    structlog.reset_defaults()
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        cache_logger_on_first_use=False,
    )
    yield


@pytest.fixture
def store() -> ConfigStore:
    """Store holding YAML_EXAMPLE as its file layer."""
    store = ConfigStore()
    store.read_config(YAML_EXAMPLE, "yaml")
    return store


@pytest.fixture
def binder(store) -> Binder:
    return Binder(store=store)

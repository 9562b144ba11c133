from __future__ import annotations

import pytest

from bridge_config import BridgeConfig
from device_types import build_adapters
from discovery import DiscoveryEngine, InstanceBlacklist
from identity import ServiceIndex

from hap_fixtures import FakeHomebridge


@pytest.fixture
def config() -> BridgeConfig:
    return BridgeConfig(two_factor_auth_pin="1234")


@pytest.fixture
def index() -> ServiceIndex:
    return ServiceIndex()


@pytest.fixture
def adapters(config: BridgeConfig):
    return build_adapters(config)


@pytest.fixture
def client() -> FakeHomebridge:
    return FakeHomebridge()


@pytest.fixture
def blacklist(config: BridgeConfig) -> InstanceBlacklist:
    return InstanceBlacklist(config.instance_blacklist)


@pytest.fixture
def engine(client, index, adapters, config, blacklist) -> DiscoveryEngine:
    return DiscoveryEngine(client, index, adapters, config, blacklist)

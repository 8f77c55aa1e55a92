"""Tests for collection selection."""

import pytest

from cfgbind.collection import load_collection, select_and_bind, select_element
from cfgbind.errors import DecodeError, InvalidTargetKindError
from cfgbind.store import ConfigStore
from conftest import COLLECTION_YAML, EnvironmentConfig


@pytest.fixture
def env_store() -> ConfigStore:
    store = ConfigStore()
    store.read_config(COLLECTION_YAML, "yaml")
    return store


class TestSelectElement:
    ITEMS = [
        {"name": "FirstItem", "port": 1},
        {"Name": "SecondItem", "port": 2},
        {"name": "SecondItem", "port": 3},
        {"name": 4},
    ]

    def test_first_match_wins(self):
        assert select_element(self.ITEMS, "name", "SecondItem")["port"] == 2

    def test_compares_as_strings(self):
        assert select_element(self.ITEMS, "name", "4") == {"name": 4}

    def test_no_match(self):
        assert select_element(self.ITEMS, "name", "Nope") is None
        assert select_element(self.ITEMS, "name", None) is None


class TestSelectAndBind:
    """Tests for select_and_bind()."""

    def test_binds_selected_element(self, env_store):
        target = EnvironmentConfig()
        element = select_and_bind(env_store, "environments", "environment", target)
        assert element["name"] == "SecondItem"
        assert target == EnvironmentConfig("SecondItem", "us-east-1", 3)

    def test_selector_follows_store_precedence(self, env_store):
        env_store.set_flag("environment", "ThirdItem")
        target = EnvironmentConfig()
        select_and_bind(env_store, "environments", "environment", target)
        assert target.region == "ap-south-1"

    def test_explicit_fields_keep_flag_values(self, env_store):
        target = EnvironmentConfig(replicas=9)
        select_and_bind(env_store, "environments", "environment", target, explicit={"replicas"})
        assert target == EnvironmentConfig("SecondItem", "us-east-1", 9)

    def test_no_match_leaves_target(self, env_store):
        env_store.set("environment", "Nope")
        target = EnvironmentConfig(region="flag")
        assert select_and_bind(env_store, "environments", "environment", target) is None
        assert target == EnvironmentConfig(region="flag")

    def test_missing_collection_is_empty_selection(self):
        target = EnvironmentConfig()
        assert select_and_bind(ConfigStore(), "environments", "environment", target) is None

    def test_in_memory_items(self):
        store = ConfigStore()
        store.set("environment", "b")
        target = EnvironmentConfig()
        select_and_bind(store, "ignored", "environment", target, items=[{"name": "a"}, {"name": "b", "replicas": 2}])
        assert target.replicas == 2

    def test_collection_not_a_list(self, env_store):
        env_store.set("environments", "flat")
        with pytest.raises(DecodeError):
            select_and_bind(env_store, "environments", "environment", EnvironmentConfig())

    def test_element_decode_failure_carries_context(self, env_store):
        env_store.set("environments", [{"name": "SecondItem", "replicas": "many"}])
        with pytest.raises(DecodeError) as exc_info:
            select_and_bind(env_store, "environments", "environment", EnvironmentConfig())
        assert exc_info.value.context.record == "EnvironmentConfig"
        assert exc_info.value.context.metadata["collection"] == "environments"

    def test_target_must_be_record(self, env_store):
        with pytest.raises(InvalidTargetKindError):
            select_and_bind(env_store, "environments", "environment", {})


class TestLoadCollection:
    def test_decodes_every_element(self, env_store):
        items = load_collection(env_store, "environments", EnvironmentConfig)
        assert [i.name for i in items] == ["FirstItem", "SecondItem", "ThirdItem"]
        assert items[2].replicas == 5

    def test_missing_collection(self):
        assert load_collection(ConfigStore(), "environments", EnvironmentConfig) == []

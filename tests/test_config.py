"""
Tests for dataset configuration.
"""

import pytest

from quadset import Dataset, Template
from quadset.config import ConfigValidationError, ConfigValidator, DatasetConfig
from quadset.terms import NamedNode, Quad

EX = "http://example.org/"


class TestDatasetConfig:
    """Tests for DatasetConfig."""

    def test_defaults(self):
        config = DatasetConfig()
        assert config.index_orderings == ["SPOG", "POSG", "OSPG", "GSPO"]
        assert config.blank_node_prefix == "b"

    def test_defaults_are_not_shared(self):
        first = DatasetConfig()
        first.index_orderings.append("PSOG")
        assert DatasetConfig().index_orderings == ["SPOG", "POSG", "OSPG", "GSPO"]

    def test_dict_roundtrip(self):
        config = DatasetConfig(index_orderings=["SPOG", "GOSP"], blank_node_prefix="n")
        restored = DatasetConfig.from_dict(config.to_dict())
        assert restored == config

    def test_from_dict_partial(self):
        config = DatasetConfig.from_dict({"blank_node_prefix": "x"})
        assert config.index_orderings == ["SPOG", "POSG", "OSPG", "GSPO"]
        assert config.blank_node_prefix == "x"

    def test_from_env(self):
        config = DatasetConfig.from_env(environ={
            "QUADSET_INDEX_ORDERINGS": "spog, gspo",
            "QUADSET_BLANK_NODE_PREFIX": "node",
        })
        assert config.index_orderings == ["SPOG", "GSPO"]
        assert config.blank_node_prefix == "node"

    def test_from_env_empty_orderings(self):
        config = DatasetConfig.from_env(environ={"QUADSET_INDEX_ORDERINGS": ""})
        assert config.index_orderings == []

    def test_from_env_unset(self):
        assert DatasetConfig.from_env(environ={}) == DatasetConfig()

    def test_from_env_custom_prefix(self):
        config = DatasetConfig.from_env(prefix="QS_", environ={"QS_BLANK_NODE_PREFIX": "q"})
        assert config.blank_node_prefix == "q"

    def test_from_os_environ(self, monkeypatch):
        monkeypatch.setenv("QUADSET_INDEX_ORDERINGS", "OSPG")
        assert DatasetConfig.from_env().index_orderings == ["OSPG"]


class TestConfigValidator:
    """Tests for ConfigValidator."""

    def test_valid(self):
        assert ConfigValidator.validate(DatasetConfig()) == []
        assert ConfigValidator.validate(DatasetConfig(index_orderings=[])) == []

    @pytest.mark.parametrize("orderings", [
        ["SPO"],
        ["SPOX"],
        ["SSPO"],
        ["SPOG", "SPOG"],
        [42],
    ])
    def test_invalid_orderings(self, orderings):
        errors = ConfigValidator.validate(DatasetConfig(index_orderings=orderings))
        assert len(errors) == 1

    def test_empty_prefix(self):
        errors = ConfigValidator.validate(DatasetConfig(blank_node_prefix=""))
        assert any("blank_node_prefix" in e for e in errors)

    def test_validate_or_raise(self):
        with pytest.raises(ConfigValidationError):
            ConfigValidator.validate_or_raise(DatasetConfig(index_orderings=["XYZW"]))


class TestDatasetWithConfig:
    """Tests for datasets built from a configuration."""

    def test_invalid_config_rejected(self):
        with pytest.raises(ConfigValidationError):
            Dataset(config=DatasetConfig(index_orderings=["SPOG", "SPOG"]))

    def test_no_indexes_still_matches(self):
        s = NamedNode(EX + "s")
        quads = [
            Quad(s, NamedNode(EX + "p"), NamedNode(EX + "o")),
            Quad(NamedNode(EX + "t"), NamedNode(EX + "p"), NamedNode(EX + "o")),
        ]
        ds = Dataset(quads, config=DatasetConfig(index_orderings=[]))
        assert ds.match(Template(s)) == [quads[0]]
        assert ds.stats()["indexes"] == {}

    def test_blank_node_prefix(self):
        ds = Dataset(config=DatasetConfig(blank_node_prefix="gen"))
        node = ds.new_blank_node()
        assert node.id.startswith("gen-")
        assert len(node.id) == len("gen-") + 12

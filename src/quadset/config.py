"""
Dataset configuration.

Provides:
- DatasetConfig with dict round-tripping
- Environment overrides (QUADSET_* variables)
- Configuration validation
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from quadset.storage.indexing import DEFAULT_ORDERINGS, parse_ordering

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Configuration validation error."""
    pass


@dataclass
class DatasetConfig:
    """
    Configuration of a Dataset.

    Attributes:
        index_orderings: Index orderings to maintain, each a permutation of
            "SPOG". An empty list disables indexing (every pattern is a
            full scan).
        blank_node_prefix: Prefix of blank node ids generated by
            Dataset.new_blank_node()
    """
    index_orderings: List[str] = field(default_factory=lambda: list(DEFAULT_ORDERINGS))
    blank_node_prefix: str = "b"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index_orderings": list(self.index_orderings),
            "blank_node_prefix": self.blank_node_prefix,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DatasetConfig":
        return cls(
            index_orderings=list(data.get("index_orderings", DEFAULT_ORDERINGS)),
            blank_node_prefix=data.get("blank_node_prefix", "b"),
        )

    @classmethod
    def from_env(
        cls,
        prefix: str = "QUADSET_",
        environ: Optional[Mapping[str, str]] = None,
    ) -> "DatasetConfig":
        """
        Build a configuration from environment variables.

        Reads ``{prefix}INDEX_ORDERINGS`` (comma separated, may be empty)
        and ``{prefix}BLANK_NODE_PREFIX``. Unset variables keep defaults.
        """
        env = os.environ if environ is None else environ
        config = cls()

        orderings = env.get(f"{prefix}INDEX_ORDERINGS")
        if orderings is not None:
            config.index_orderings = [o.strip().upper() for o in orderings.split(",") if o.strip()]
        bnode_prefix = env.get(f"{prefix}BLANK_NODE_PREFIX")
        if bnode_prefix is not None:
            config.blank_node_prefix = bnode_prefix

        logger.debug(f"Loaded dataset config from environment: {config.to_dict()}")
        return config


class ConfigValidator:
    """Validates dataset configuration."""

    @staticmethod
    def validate(config: DatasetConfig) -> List[str]:
        """
        Validate configuration.

        Returns list of error messages (empty if valid).
        """
        errors = []

        seen = set()
        for ordering in config.index_orderings:
            if not isinstance(ordering, str):
                errors.append(f"Index ordering must be a string, got {ordering!r}")
                continue
            try:
                parse_ordering(ordering)
            except ValueError as e:
                errors.append(str(e))
                continue
            if ordering.upper() in seen:
                errors.append(f"Duplicate index ordering: {ordering}")
            seen.add(ordering.upper())

        if not config.blank_node_prefix:
            errors.append("blank_node_prefix must not be empty")

        return errors

    @staticmethod
    def validate_or_raise(config: DatasetConfig) -> None:
        """Validate configuration, raising on errors."""
        errors = ConfigValidator.validate(config)
        if errors:
            raise ConfigValidationError("; ".join(errors))

"""Hierarchical YAML configuration system using OmegaConf."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from omegaconf import DictConfig, OmegaConf


class SpearConfig:
    """Loads a scenario YAML file and merges optional overlays.

    Files under a ``sites/`` or ``fighters/`` directory beside the base
    file are merged in sorted order, then CLI-level dot-path overrides
    can be applied.
    """

    def __init__(self, config_path: str | Path = "config/default.yaml"):
        self._config_path = Path(config_path)
        self._config: DictConfig | None = None

    def load(self, validate: bool = False) -> DictConfig:
        """Load the base config and merge any overlays.

        Args:
            validate: If True, validate the loaded config against the
                Pydantic schema and raise ``pydantic.ValidationError``
                on invalid values.
        """
        if not self._config_path.exists():
            raise FileNotFoundError(f"Config not found: {self._config_path}")

        base = OmegaConf.load(self._config_path)
        if not isinstance(base, DictConfig):
            raise TypeError(f"Config root must be a mapping: {self._config_path}")

        config_dir = self._config_path.parent
        for subdir in ("sites", "fighters"):
            sub_path = config_dir / subdir
            if sub_path.is_dir():
                for yaml_file in sorted(sub_path.glob("*.yaml")):
                    base = OmegaConf.merge(base, OmegaConf.load(yaml_file))

        if validate or OmegaConf.select(base, "spear.system.validate_config", default=False):
            from spear.core.config_schema import validate_config

            validate_config(OmegaConf.to_container(base, resolve=True))

        self._config = base
        return self._config

    def override(self, dotpath: str, value: Any) -> None:
        """Override a config value using dot notation.

        Example: config.override("spear.scenario.time_step_s", 0.5)
        """
        if self._config is None:
            raise RuntimeError("Config not loaded yet. Call load() first.")
        OmegaConf.update(self._config, dotpath, value)

    @property
    def cfg(self) -> DictConfig:
        if self._config is None:
            raise RuntimeError("Config not loaded yet. Call load() first.")
        return self._config

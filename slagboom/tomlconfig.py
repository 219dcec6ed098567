"""Read configuration from toml file(s) into dataclasses."""

# ruff: noqa: TRY003

import tomllib
from collections.abc import Callable
from dataclasses import fields, is_dataclass
from pathlib import Path
from types import GenericAlias, NoneType, UnionType
from typing import Any, ClassVar


class ConfigError(Exception):
    """Configuration Error."""


class ConfigReader:
    """Read configuration from toml file(s).

    Supported targets: dataclasses, ``dict[str, X]``, ``list[X]``,
    ``X | None``, ``Any`` and plain types. A table of the form
    ``{ _include = "other.toml[:section]" }`` is replaced by the content of
    that file, relative to the file it is found in.
    """

    translators: ClassVar[dict[type, Callable[[Any], Any]]] = {
        Path: Path,
    }

    def __init__(self, cfg_file: Path) -> None:
        self.cfg_file = cfg_file

    @staticmethod
    def read_data_from_file(cfg_file: Path) -> dict:
        """Read data from toml file."""
        try:
            return tomllib.loads(cfg_file.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"Cannot read {cfg_file}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Invalid toml in {cfg_file}: {exc}") from exc

    @classmethod
    def from_file[T](cls, target: type[T], cfg_file: Path, name: str | None = None) -> T:
        """Read configuration from a toml file."""
        return cls(cfg_file).get_value(cls.read_data_from_file(cfg_file), target, name)

    @classmethod
    def from_dict[T](cls, target: type[T], data: dict, name: str | None = None) -> T:
        """Configuration from already parsed data (includes relative to cwd)."""
        return cls(Path("config.toml")).get_value(data, target, name)

    def include(self, val: dict) -> Any:
        """Content of an included file, optionally a section of it."""
        fn, _, section = val["_include"].partition(":")
        data = self.read_data_from_file(self.cfg_file.parent / fn)
        if section:
            try:
                data = data[section]
            except KeyError as exc:
                raise ConfigError(f"No section {section} in {fn}") from exc
        return data

    def get_value(self, val: Any, target: Any, name: str | None = None) -> Any:  # noqa: PLR0911
        """Produce the correct value for a setting."""
        if name is None:
            name = "configuration"

        if isinstance(val, dict) and len(val) == 1 and "_include" in val:
            val = self.include(val)

        # "SomeClass | None": None stays None, otherwise the first type
        if isinstance(target, UnionType):
            if val is None and NoneType in target.__args__:
                return None
            return self.get_value(val, target.__args__[0], name)

        if isinstance(target, GenericAlias):
            if target.__origin__ is dict:
                return self.convert_dict(val, target, name)
            if target.__origin__ is list:
                return self.convert_list(val, target, name)
            if isinstance(val, target.__origin__):
                return val
            raise ConfigError(f"Expecting {target} got {type(val).__name__} for {name}")

        if target is dict:
            return self.convert_dict(val, target, name)
        if is_dataclass(target):
            return self.convert_dataclass(val, target, name)
        if target is Any:
            return val
        # toml booleans are ints to python, do not let them through as numbers
        if isinstance(val, bool) and target is not bool:
            raise ConfigError(f"Expecting {target.__name__} got bool for {name}")
        if isinstance(val, target):
            return val
        if target in self.translators:
            return self.translators[target](val)
        raise ConfigError(f"Expecting {target.__name__} got {type(val).__name__} for {name}")

    def convert_dict(self, data: Any, target: Any, name: str) -> dict:
        """Process a dictionary target."""
        if not isinstance(data, dict):
            raise ConfigError(f"Expecting dict got {type(data).__name__} for {name}")
        if not hasattr(target, "__args__"):
            return data
        return {
            k: self.get_value(v, target.__args__[1], f"{name}[{k}]")
            for k, v in data.items()
        }

    def convert_list(self, data: Any, target: GenericAlias, name: str) -> list:
        """Process a list target, a single value becomes a list of one."""
        if not isinstance(data, list):
            data = [data]
        return [
            self.get_value(x, target.__args__[0], f"{name}[{i}]")
            for i, x in enumerate(data)
        ]

    def convert_dataclass[T](self, data: Any, target: type[T], name: str) -> T:
        """Convert a dict to a dataclass instance."""
        if not isinstance(data, dict):
            raise ConfigError(f"Expecting a table got {type(data).__name__} for {name}")

        # unknown keys are ignored
        values = {
            fld.name: self.get_value(data[fld.name], fld.type, f"{name}.{fld.name}")
            for fld in fields(target)
            if fld.name in data
        }
        try:
            return target(**values)
        except TypeError as exc:
            raise ConfigError(f"Missing required setting in {name}") from exc
        except AssertionError as exc:
            # __post_init__ uses assert for field constraints
            raise ConfigError(f"Invalid value in {name}: {exc}") from exc

"""
Configuration parsing for the Julia bindings generator

Two layers: an XML registry listing the modules to wrap (headers, include
directories, defines, target filters), and one TOML file per module holding
output settings and per-function API options.
"""

import os
import re
import tomllib
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from .constants import ALL_MODULES


class ConfigurationError(ValueError):
    """Invalid or inconsistent configuration; fatal for the affected module"""


TargetFilter = Union[str, re.Pattern]


@dataclass(frozen=True)
class ModuleSpec:
    """One logical module, i.e. one vendor sub-library"""
    name: str
    headers: tuple[str, ...]
    targets: tuple[TargetFilter, ...] = ()
    include_dirs: tuple[str, ...] = ()
    defines: tuple[tuple[str, Optional[str]], ...] = ()
    family: Optional[str] = None
    optional: bool = False
    config_path: Optional[str] = None

    @property
    def target_filters(self) -> tuple[TargetFilter, ...]:
        """Target filters, defaulting to the module's own headers"""
        if self.targets:
            return self.targets
        return tuple(os.path.normpath(h) for h in self.headers)

    def matches(self, selector: str) -> bool:
        """Whether a CLI selector picks this module"""
        return selector in (ALL_MODULES, self.name, self.family)


@dataclass
class BindingConfig:
    """Configuration for a whole generation run"""
    modules: list[ModuleSpec] = field(default_factory=list)
    include_dirs: list[str] = field(default_factory=list)
    defines: list[tuple[str, Optional[str]]] = field(default_factory=list)
    config_dir: str = "."

    def module_names(self) -> list[str]:
        names = []
        for module in self.modules:
            for name in (module.family, module.name):
                if name and name not in names:
                    names.append(name)
        return names

    def select(self, selector: str = ALL_MODULES) -> list[ModuleSpec]:
        """Return the modules picked by `selector`

        Raises ConfigurationError for a selector matching nothing.
        """
        selected = [m for m in self.modules if m.matches(selector)]
        if not selected:
            known = ", ".join(self.module_names())
            raise ConfigurationError(f"Unknown module '{selector}'. Known modules: {known}")
        return selected

    def options_path(self, module: ModuleSpec) -> Path:
        """Path of the TOML options file for a module"""
        if module.config_path:
            return Path(module.config_path)
        return Path(self.config_dir) / f"{module.name}.toml"


def _expand(path: str) -> str:
    return os.path.expanduser(os.path.expandvars(path.strip()))


def _parse_define(define, where: str) -> tuple[str, Optional[str]]:
    name = define.get("name")
    if not name:
        raise ConfigurationError(f"Define element{where} missing 'name' attribute")
    value = define.get("value")  # Optional, can be None
    if value is not None:
        value = value.strip()
    return name.strip(), value


def _parse_target(target, module_name: str) -> TargetFilter:
    is_regex = target.get("regex", "false").lower() == "true"
    if is_regex:
        pattern = target.get("pattern")
        if not pattern:
            raise ConfigurationError(f"Target element in module '{module_name}' missing 'pattern' attribute")
        try:
            return re.compile(pattern.strip())
        except re.error as e:
            raise ConfigurationError(f"Invalid target pattern '{pattern}' in module '{module_name}': {e}")
    path = target.get("path") or target.get("pattern")
    if not path:
        raise ConfigurationError(f"Target element in module '{module_name}' missing 'path' attribute")
    return path.strip()


def parse_config_file(config_path) -> BindingConfig:
    """Parse the XML module registry and return a BindingConfig object"""
    try:
        tree = ET.parse(config_path)
        root = tree.getroot()

        if root.tag != "bindings":
            raise ConfigurationError(f"Expected root element 'bindings', got '{root.tag}'")

        config = BindingConfig()

        # TOML files live next to the registry unless told otherwise
        base_dir = Path(config_path).resolve().parent
        config.config_dir = str(base_dir / _expand(root.get("config_dir", ".")))

        # Get global include directories
        for include_dir in root.findall("include_directory"):
            path = include_dir.get("path")
            if not path:
                raise ConfigurationError("Include directory element missing 'path' attribute")
            config.include_dirs.append(_expand(path))

        # Get global compiler defines
        for define in root.findall("define"):
            config.defines.append(_parse_define(define, ""))

        seen = set()
        for module in root.findall("module"):
            module_name = module.get("name")
            if not module_name:
                raise ConfigurationError("Module element missing 'name' attribute")
            module_name = module_name.strip()
            if module_name in seen:
                raise ConfigurationError(f"Duplicate module '{module_name}'")
            seen.add(module_name)

            headers = []
            for include in module.findall("include"):
                header_path = include.get("file")
                if not header_path:
                    raise ConfigurationError(f"Include element in module '{module_name}' missing 'file' attribute")
                headers.append(_expand(header_path))
            if not headers:
                raise ConfigurationError(f"Module '{module_name}' has no include elements")

            # Global include directories and defines come first
            include_dirs = list(config.include_dirs)
            for include_dir in module.findall("include_directory"):
                path = include_dir.get("path")
                if not path:
                    raise ConfigurationError(f"Include directory element in module '{module_name}' missing 'path' attribute")
                include_dirs.append(_expand(path))

            defines = list(config.defines)
            for define in module.findall("define"):
                defines.append(_parse_define(define, f" in module '{module_name}'"))

            targets = tuple(_parse_target(t, module_name) for t in module.findall("target"))

            options_file = module.get("config")
            if options_file is not None:
                options_file = str(base_dir / _expand(options_file))

            family = module.get("family")
            config.modules.append(ModuleSpec(
                name=module_name,
                headers=tuple(headers),
                targets=targets,
                include_dirs=tuple(include_dirs),
                defines=tuple(defines),
                family=family.strip() if family else None,
                optional=module.get("optional", "false").lower() == "true",
                config_path=options_file,
            ))

        return config

    except ET.ParseError as e:
        raise ConfigurationError(f"XML parsing error: {e}")
    except FileNotFoundError:
        raise FileNotFoundError(f"Configuration file not found: {config_path}")


# -- per-module options -------------------------------------------------------

@dataclass(frozen=True)
class FunctionOptions:
    """API options for one function, or for a template of functions"""
    argtypes: dict[str, str] = field(default_factory=dict)
    needs_context: bool = True


@dataclass(frozen=True)
class ModuleOptions:
    """Settings loaded from a module's TOML file"""
    output_file_path: str
    library_name: str
    checked_rettypes: frozenset[str] = frozenset()
    api: dict[str, FunctionOptions] = field(default_factory=dict)
    prologue_file_path: Optional[str] = None
    epilogue_file_path: Optional[str] = None
    output_ignorelist: tuple[re.Pattern, ...] = ()
    format_command: tuple[str, ...] = ()
    argtype_index_base: int = 0

    def is_ignored(self, name: str) -> bool:
        return any(pattern.fullmatch(name) for pattern in self.output_ignorelist)


def _parse_function_options(name: str, entry) -> FunctionOptions:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"api.{name} must be a table")
    argtypes = entry.get("argtypes", {})
    if not isinstance(argtypes, dict):
        raise ConfigurationError(f"api.{name}.argtypes must be a table")
    for index, typ in argtypes.items():
        if not isinstance(typ, str):
            raise ConfigurationError(f"api.{name}.argtypes.{index} must be a string, got {typ!r}")
    needs_context = entry.get("needs_context", True)
    if not isinstance(needs_context, bool):
        raise ConfigurationError(f"api.{name}.needs_context must be a boolean")
    return FunctionOptions(argtypes=dict(argtypes), needs_context=needs_context)


def _relative_to(base_dir: Path, path: Optional[str]) -> Optional[str]:
    if path is None:
        return None
    return str(base_dir / _expand(path))


def _string_list(value, where: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"{where} must be a list of strings")
    return value


def load_module_options(path, module_name: str) -> ModuleOptions:
    """Load and validate a module's TOML options file"""
    path = Path(path)
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"TOML parsing error in {path}: {e}")

    base_dir = path.resolve().parent
    general = data.get("general", {})
    api = data.get("api", {})
    for table, value in (("general", general), ("api", api)):
        if not isinstance(value, dict):
            raise ConfigurationError(f"{path}: [{table}] must be a table")

    output_file_path = general.get("output_file_path")
    if not output_file_path:
        raise ConfigurationError(f"{path}: general.output_file_path is required")
    for key in ("output_file_path", "library_name", "prologue_file_path", "epilogue_file_path"):
        if key in general and not isinstance(general[key], str):
            raise ConfigurationError(f"{path}: general.{key} must be a string")

    checked = _string_list(api.get("checked_rettypes", []), f"{path}: api.checked_rettypes")

    functions = {}
    for name, entry in api.items():
        if name == "checked_rettypes":
            continue
        functions[name] = _parse_function_options(name, entry)

    ignorelist = []
    for pattern in _string_list(general.get("output_ignorelist", []),
                                f"{path}: general.output_ignorelist"):
        try:
            ignorelist.append(re.compile(pattern))
        except re.error as e:
            raise ConfigurationError(f"{path}: invalid output_ignorelist pattern '{pattern}': {e}")

    format_command = _string_list(general.get("format_command", []),
                                  f"{path}: general.format_command")

    index_base = general.get("argtype_index_base", 0)
    if index_base not in (0, 1):
        raise ConfigurationError(f"{path}: general.argtype_index_base must be 0 or 1")

    return ModuleOptions(
        output_file_path=_relative_to(base_dir, output_file_path),
        library_name=general.get("library_name", f"lib{module_name}"),
        checked_rettypes=frozenset(checked),
        api=functions,
        prologue_file_path=_relative_to(base_dir, general.get("prologue_file_path")),
        epilogue_file_path=_relative_to(base_dir, general.get("epilogue_file_path")),
        output_ignorelist=tuple(ignorelist),
        format_command=tuple(format_command),
        argtype_index_base=index_base,
    )

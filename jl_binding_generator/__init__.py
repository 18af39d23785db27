"""
Julia Bindings Generator - Generate Julia @ccall bindings from C header files
"""

from .generator import JuliaBindingsGenerator
from .type_mapper import TypeMapper
from .code_generators import CodeGenerator, OutputBuilder
from .config import ConfigurationError, parse_config_file, load_module_options
from .parser import HeaderParseError, HeaderParser
from .constants import (
    JULIA_TYPE_MAP,
    AUTOGENERATED_NOTICE,
    TEMPLATE_PLACEHOLDER,
)

__version__ = "0.1.0"

__all__ = [
    "JuliaBindingsGenerator",
    "TypeMapper",
    "CodeGenerator",
    "OutputBuilder",
    "ConfigurationError",
    "HeaderParseError",
    "HeaderParser",
    "parse_config_file",
    "load_module_options",
    "JULIA_TYPE_MAP",
    "AUTOGENERATED_NOTICE",
    "TEMPLATE_PLACEHOLDER",
]

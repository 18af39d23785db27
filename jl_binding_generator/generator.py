"""
Main Julia bindings generator orchestration
"""

import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .aliases import prune_aliases
from .code_generators import CodeGenerator, OutputBuilder
from .config import BindingConfig, ConfigurationError, ModuleOptions, ModuleSpec, load_module_options
from .constants import ALL_MODULES
from .formatter import format_file
from .ir import DeclGraph
from .parser import HeaderParseError, HeaderParser, build_parser_args
from .rewriter import apply_ignorelist, filter_targets, rewrite
from .type_mapper import TypeMapper


logger = logging.getLogger(__name__)

# Failures that end one module's run without affecting the others
MODULE_ERRORS = (ConfigurationError, HeaderParseError, OSError, UnicodeDecodeError,
                 subprocess.CalledProcessError)


@dataclass
class ModuleResult:
    """Outcome of wrapping one module"""
    name: str
    output_file: Optional[str] = None
    error: Optional[BaseException] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class JuliaBindingsGenerator:
    """Main orchestrator for generating Julia bindings from C headers"""

    def __init__(self, parser: HeaderParser = None):
        self.type_mapper = TypeMapper()
        self.code_generator = CodeGenerator()
        self.parser = parser

    def _get_parser(self) -> HeaderParser:
        # libclang is only loaded once a module actually needs parsing
        if self.parser is None:
            self.parser = HeaderParser(self.type_mapper)
        return self.parser

    def build_graph(self, module: ModuleSpec, options: ModuleOptions) -> DeclGraph:
        """Parse a module's headers and run every pass up to emission"""
        args = build_parser_args(module.include_dirs, module.defines)
        graph = self._get_parser().parse(module.headers, args, options.library_name)

        prune_aliases(graph)
        filter_targets(graph, module.target_filters)
        apply_ignorelist(graph, options)
        rewrite(graph, options)
        return graph

    def emit(self, graph: DeclGraph, options: ModuleOptions) -> str:
        prologue = epilogue = ""
        if options.prologue_file_path:
            prologue = Path(options.prologue_file_path).read_text()
        if options.epilogue_file_path:
            epilogue = Path(options.epilogue_file_path).read_text()
        return OutputBuilder.build(graph, self.code_generator, prologue, epilogue)

    def wrap(self, module: ModuleSpec, options_path) -> str:
        """Generate, write and format the bindings of one module

        Returns the path of the generated file.
        """
        print(f"Wrapping {module.name}")
        if module.include_dirs:
            print(f"Include directories: {', '.join(module.include_dirs)}")

        options = load_module_options(options_path, module.name)
        graph = self.build_graph(module, options)

        output_file = Path(options.output_file_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(self.emit(graph, options))

        # prepend "autogenerated, do not edit!" comment
        output_file.write_text(OutputBuilder.add_notice(output_file.read_text()))

        format_file(output_file, options.format_command)
        print(f"Generated bindings: {output_file}")
        return str(output_file)

    def generate(self, config: BindingConfig, name: str = ALL_MODULES) -> dict[str, ModuleResult]:
        """Wrap every module selected by `name`

        Each module is processed independently: a failing module is reported
        and recorded, and the remaining modules are still attempted.
        """
        results = {}
        for module in config.select(name):
            result = ModuleResult(module.name)
            results[module.name] = result

            missing = [h for h in module.headers if not Path(h).exists()]
            if missing and module.optional:
                logger.warning("Skipping optional module %s, headers not available: %s",
                               module.name, ", ".join(missing))
                result.skipped = True
                continue

            try:
                result.output_file = self.wrap(module, config.options_path(module))
            except MODULE_ERRORS as e:
                print(f"Error in module {module.name}: {e}", file=sys.stderr)
                result.error = e

        return results

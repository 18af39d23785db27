#!/usr/bin/env python3
"""
CLI entry point for Julia bindings generator
Generates Julia @ccall wrappers for vendor C libraries
"""

import argparse
import logging
import sys
import clang.cindex

from jl_binding_generator.config import ConfigurationError, parse_config_file
from jl_binding_generator.constants import ALL_MODULES
from jl_binding_generator.generator import JuliaBindingsGenerator


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="jl-bindgen",
        description="Generate Julia bindings from C header files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --config bindings.xml
  %(prog)s --config bindings.xml cublas
  %(prog)s -C bindings.xml cusolver --clang-path /usr/lib/llvm-17/lib
        """
    )

    parser.add_argument(
        "name",
        nargs="?",
        default=ALL_MODULES,
        help="Module or module family to wrap (default: all)"
    )

    parser.add_argument(
        "-C", "--config",
        metavar="CONFIG_FILE",
        required=True,
        help="XML configuration file listing the modules to wrap"
    )

    parser.add_argument(
        "--clang-path",
        metavar="PATH",
        help="Path to libclang library (if not in default location)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every removed alias and options lookup"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        config = parse_config_file(args.config)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Error reading config file: {e}", file=sys.stderr)
        sys.exit(1)

    if not config.modules:
        print("Error: No modules found in config file", file=sys.stderr)
        sys.exit(1)

    # Unknown module names are a usage error
    try:
        config.select(args.name)
    except ConfigurationError as e:
        parser.error(str(e))

    # Set clang library path if provided
    if args.clang_path:
        clang.cindex.Config.set_library_path(args.clang_path)

    generator = JuliaBindingsGenerator()
    results = generator.generate(config, args.name)

    failed = [name for name, result in results.items() if not result.ok]
    if failed:
        print(f"Failed modules: {', '.join(failed)}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

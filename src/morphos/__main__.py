#!/usr/bin/env python3
"""
CLI for the MORPHOS pipeline.

Usage:
    python -m morphos check FILE.js
    python -m morphos run FILE.js -o OUT.stl [--timeout S] [--isolated]
    python -m morphos generate "PROMPT" -o OUT.stl [--config FILE]

Examples:
    # Security gate, parse and entry point check only
    python -m morphos check bracket.js

    # Run a program and write binary STL
    python -m morphos run bracket.js -o bracket.stl --timeout 5

    # Ask the generation service for a program, correcting failures
    GEMINI_API_KEY=... python -m morphos generate "M6 hex bolt, 30mm" -o bolt.stl

Exit status is 0 on success, 1 on failure and 2 on usage errors.
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .config import load_config
from .correction import CorrectionLoop
from .dsl import DslError, parse_source
from .errors import ConfigError
from .generation.sanitize import InvalidPromptError, sanitize_prompt
from .io.stl import write_stl
from .outcome import Program
from .pipeline.compiler import compile_program
from .pipeline.worker import compile_isolated
from .sandbox import ENTRY_POINT, MISSING_MAIN
from .security import scan


def _read(path: str):
    source_path = Path(path)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return None
    return source_path.read_text(encoding="utf-8")


def cmd_check(args, config) -> int:
    text = _read(args.file)
    if text is None:
        return 1

    report = scan(Program(text), config.max_program_length)
    if not report.ok:
        print(report.reason)
        for violation in report.violations:
            print(f"  {violation}")
        return 1

    try:
        tree = parse_source(text, args.file)
    except DslError as e:
        print(str(e))
        return 1

    if not tree.declares(ENTRY_POINT):
        print(f"Error: {MISSING_MAIN}")
        return 1

    print(f"OK: {Path(args.file).name} - {len(tree.body)} top-level statement(s), main() defined")
    return 0


def cmd_run(args, config) -> int:
    text = _read(args.file)
    if text is None:
        return 1

    budget = config.budget()
    if args.isolated or config.isolated:
        result = compile_isolated(text, budget, max_program_length=config.max_program_length)
    else:
        result = compile_program(Program(text), budget, max_program_length=config.max_program_length)

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if not result.ok:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    write_stl(result.artifact, args.output)
    print(f"Exported to: {args.output} ({result.artifact.triangle_count} triangles)")
    return 0


def cmd_generate(args, config) -> int:
    try:
        prompt = sanitize_prompt(args.prompt)
    except InvalidPromptError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    loop = CorrectionLoop(config.generation_client(), config.budget(), config.retry_ceiling)
    result = loop.run(prompt)

    if args.save_program and result.program is not None:
        Path(args.save_program).write_text(result.program.text, encoding="utf-8")
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if not result.ok:
        print(f"Error: {result.error} (after {result.attempts} attempt(s))", file=sys.stderr)
        return 1

    write_stl(result.artifact, args.output)
    print(f"Exported to: {args.output} ({result.artifact.triangle_count} triangles)")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='python -m morphos',
        description='MORPHOS program checker, runner and generator',
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('-c', '--config', metavar='FILE', help='YAML configuration file')

    subparsers = parser.add_subparsers(dest='action', required=True)

    # check command
    check_parser = subparsers.add_parser('check', help='Check a program without running it')
    check_parser.add_argument('file', help='Program source file')

    # run command
    run_parser = subparsers.add_parser('run', help='Run a program and export binary STL')
    run_parser.add_argument('file', help='Program source file')
    run_parser.add_argument('-o', '--output', metavar='FILE', required=True,
                            help='Output STL file')
    run_parser.add_argument('--timeout', type=float, metavar='SECONDS',
                            help='Wall-clock execution limit')
    run_parser.add_argument('--isolated', action='store_true',
                            help='Run in a separate worker process')

    # generate command
    gen_parser = subparsers.add_parser('generate', help='Generate a part from a description')
    gen_parser.add_argument('prompt', help='Natural-language description of the part')
    gen_parser.add_argument('-o', '--output', metavar='FILE', required=True,
                            help='Output STL file')
    gen_parser.add_argument('--save-program', metavar='FILE',
                            help='Also write the final program text')
    gen_parser.add_argument('--config', metavar='FILE', default=argparse.SUPPRESS,
                            help='YAML configuration file (same as -c)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        config = load_config(args.config)
        if getattr(args, 'timeout', None) is not None:
            config = replace(config, timeout_seconds=args.timeout)
            config.budget()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.action == 'check':
        return cmd_check(args, config)
    elif args.action == 'run':
        return cmd_run(args, config)
    elif args.action == 'generate':
        return cmd_generate(args, config)
    else:
        parser.print_help()
        return 2


if __name__ == '__main__':
    sys.exit(main())

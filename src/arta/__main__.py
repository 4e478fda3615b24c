#!/usr/bin/env python3
"""
CLI for the Arta system query language.

Usage:
    arta [--dry-run] [--allow-actions] [--json] [-v] [--config FILE] COMMAND ...

    arta query "SELECT MEMORY *"
    arta run FILE.arta [--arg KEY=VALUE ...] [--container NAME]
    arta check FILE.arta
    arta life TARGET [--interval SECONDS]
    arta explain "DELETE FILES FROM /tmp WHERE size > 100MB"
    arta explain FILE.arta
    arta containers

Examples:
    # Largest processes, as JSON
    arta --json query "SELECT PROCESS * WHERE cpu > 10"

    # Preview a cleanup script without deleting anything
    arta --dry-run run cleanup.arta --arg dir=/tmp/build

    # Watch memory every two seconds
    arta life memory --interval 2
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config
from .containers import ContainerRegistry
from .errors import ArtaError
from .output import format_result
from .parser import parse_command, parse_script
from .providers import SystemProvider
from .runtime import (
    RunPolicy, Interpreter, ScriptRunner, explain_command, explain_script,
    run_simple_monitor,
)
from .runtime.runner import SCRIPT_EXTENSION
from .validator import ValidationOptions, ValidationSeverity, validate_script, has_errors


def build_settings(args):
    """Merge config file values with command-line flags (flags win)."""
    config = load_config(args.config)
    policy = RunPolicy(
        dry_run=args.dry_run or config.dry_run,
        allow_actions=args.allow_actions or config.allow_actions,
        output_mode="json" if args.json else config.output,
        verbose=args.verbose or config.verbose,
        life_interval=config.life_interval,
    )
    provider = SystemProvider(config.max_delete_files, config.max_kill_processes)
    return config, policy, provider


def read_script(path: Path):
    return parse_script(path.read_text(encoding="utf-8"), str(path))


def cmd_query(args):
    """Execute a single statement."""
    config, policy, provider = build_settings(args)
    interpreter = Interpreter(provider=provider)
    command = parse_command(args.query)
    result = interpreter.execute(command, policy, interpreter.registry.active_environment)
    print(format_result(result, policy.output_mode))
    return 0


def cmd_run(args):
    """Validate, then run an .arta script."""
    config, policy, provider = build_settings(args)
    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    script = read_script(source_path)
    issues = validate_script(script, ValidationOptions(
        allow_actions=policy.allow_actions,
        allow_life_actions=config.allow_life_actions,
        max_nesting_depth=config.max_nesting_depth,
    ))
    for issue in issues:
        if issue.severity == ValidationSeverity.WARNING:
            print(f"Warning: {issue}", file=sys.stderr)
    if has_errors(issues):
        for issue in issues:
            if issue.severity == ValidationSeverity.ERROR:
                print(f"Error: {issue}", file=sys.stderr)
        print("Error: Script validation failed. Fix errors or use --allow-actions if needed.",
              file=sys.stderr)
        return 1

    runner = ScriptRunner(policy, provider=provider).with_args(args.arg or [])
    if args.container:
        runner.use_container(args.container)
        if policy.verbose:
            print(f"Running in container: {args.container}")

    result = runner.run_file(source_path)
    if not result.success:
        print(f"Error after {result.statements_executed} statement(s): {result.error}",
              file=sys.stderr)
        return 1

    if policy.verbose:
        print(f"\n--- Script completed: {result.statements_executed} statements executed ---")
    return 0


def cmd_check(args):
    """Validate a script without running it."""
    config, policy, provider = build_settings(args)
    source_path = Path(args.file)
    if not source_path.exists():
        print(f"Error: File not found: {source_path}", file=sys.stderr)
        return 1

    script = read_script(source_path)
    issues = validate_script(script, ValidationOptions(
        allow_actions=policy.allow_actions,
        allow_life_actions=config.allow_life_actions,
        max_nesting_depth=config.max_nesting_depth,
    ))
    for issue in issues:
        print(f"  {issue}")
    if has_errors(issues):
        errors = sum(1 for i in issues if i.severity == ValidationSeverity.ERROR)
        print(f"Validation failed with {errors} error(s)")
        return 1

    print(f"OK: {source_path.name} - {len(script)} statement(s), no errors")
    return 0


def cmd_life(args):
    """Print a resource whenever it changes, until Ctrl+C."""
    config, policy, provider = build_settings(args)
    interval = args.interval if args.interval is not None else policy.life_interval
    run_simple_monitor(args.target, interval, policy.output_mode, provider)
    return 0


def cmd_explain(args):
    """Explain a script file or a single statement."""
    path = Path(args.input)
    if path.exists() and path.suffix == SCRIPT_EXTENSION:
        script = read_script(path)
        print(f"Script: {path}")
        print(f"Statements: {len(script)}\n")
        for line in explain_script(script):
            print(line)

        issues = validate_script(script, ValidationOptions(
            allow_actions=True, allow_life_actions=True,
        ))
        if issues:
            print("\nValidation Notes:")
            for issue in issues:
                print(f"  - {issue}")
        return 0

    print(explain_command(parse_command(args.input)))
    return 0


def cmd_containers(args):
    """List the containers of a fresh session."""
    registry = ContainerRegistry()
    print("Containers:")
    print("-----------")
    for info in registry.list():
        active = " (active)" if info.is_active else ""
        print(f"  {info.name} - actions: {'yes' if info.allow_actions else 'no'}, "
              f"readonly: {'yes' if info.readonly else 'no'}{active}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='arta',
        description='Query your system with SQL-like commands',
    )
    parser.add_argument('--dry-run', action='store_true',
                        help='Preview actions without making changes')
    parser.add_argument('--allow-actions', action='store_true',
                        help='Enable destructive actions (DELETE, KILL)')
    parser.add_argument('--json', action='store_true', help='Output results as JSON')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')
    parser.add_argument('--config', metavar='FILE', help='Configuration file (YAML)')

    subparsers = parser.add_subparsers(dest='action', required=True)

    query_parser = subparsers.add_parser('query', help='Execute a single statement')
    query_parser.add_argument('query', help='Statement text, e.g. "SELECT CPU *"')

    run_parser = subparsers.add_parser('run', help='Run an .arta script')
    run_parser.add_argument('file', help='Script file')
    run_parser.add_argument('-a', '--arg', action='append', metavar='KEY=VALUE',
                            help='Script argument (can be repeated)')
    run_parser.add_argument('-c', '--container', metavar='NAME',
                            help='Run inside this container')

    check_parser = subparsers.add_parser('check', help='Validate a script without running it')
    check_parser.add_argument('file', help='Script file')

    life_parser = subparsers.add_parser('life', help='Monitor a resource for changes')
    life_parser.add_argument('target', help='battery, memory, cpu, disk, network or processes')
    life_parser.add_argument('-i', '--interval', type=float, default=None,
                             help='Seconds between samples')

    explain_parser = subparsers.add_parser('explain', help='Explain a statement or script')
    explain_parser.add_argument('input', help='Statement text or .arta file')

    subparsers.add_parser('containers', help='List containers')

    return parser


COMMANDS = {
    'query': cmd_query,
    'run': cmd_run,
    'check': cmd_check,
    'life': cmd_life,
    'explain': cmd_explain,
    'containers': cmd_containers,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.action](args)
    except ArtaError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

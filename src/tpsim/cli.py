"""
tpsim Command Line

Commands:
    capture     - Record, redact and save scenarios from a live service
    redact      - Redact an existing raw fixture file
    serve       - Serve fixtures through the simulation server
    validate    - Check fixtures for load errors, leaks and unreachable pairs

Examples:
    # Capture fixtures (credentials from TP_DOMAIN / TP_TOKEN)
    python3 tpsim-fixtures.py capture scenarios.yaml --output testdata/simulations

    # Serve a fixture directory
    python3 tpsim-fixtures.py serve testdata/simulations --port 8080 --admin
"""

import argparse
import logging
import sys

import yaml

from .capture import ScenarioRunner, load_scenarios
from .common import (
    CaptureConfig,
    ServerConfig,
    SimulationLoader,
    TpsimError,
    get_token_from_env,
    save_simulation,
)
from .common.config import DEFAULT_REPLACEMENT_DOMAIN, get_domain_from_env
from .mock import SimulationMatcher, SimulationServer
from .redact import RedactOptions, find_leaks, redact_simulation


def cmd_capture(args):
    """
    Capture scenarios from the live service.

    Args:
        args: Parsed command-line arguments
    """
    try:
        config = CaptureConfig.from_env(output_dir=args.output)
        scenarios = load_scenarios(args.scenarios)
    except (TpsimError, OSError, yaml.YAMLError) as e:
        print(f"❌ {e}")
        print("   Set credentials with: export TP_DOMAIN=your.tpondemand.com TP_TOKEN=your_token")
        sys.exit(1)

    print(f"📡 Capturing test data from {config.domain}")
    print(f"   Output directory: {config.output_dir}")
    print()

    runner = ScenarioRunner(config)
    failed = 0
    for scenario in scenarios:
        print(f"Capturing {scenario.name}... ", end="", flush=True)
        try:
            outcome = runner.run(scenario)
        except TpsimError as e:
            print(f"FAILED\n❌ {e}")
            sys.exit(1)

        if outcome.ok:
            print(f"OK ({outcome.pairs} pairs)")
        else:
            failed += 1
            print(f"FAILED: {outcome.error}")

    print(f"\nCapture complete. Review {config.output_dir} for redacted fixtures.")
    if failed:
        sys.exit(1)


def cmd_redact(args):
    """
    Redact a raw fixture file.

    Args:
        args: Parsed command-line arguments
    """
    domain = args.domain or get_domain_from_env()
    if not domain:
        print("❌ Real domain required: pass --domain or set TP_DOMAIN")
        sys.exit(1)

    options = RedactOptions(
        real_domain=domain,
        replacement_domain=args.replacement,
        token=get_token_from_env() or ""
    )

    try:
        simulation = SimulationLoader(args.input).load()
        save_simulation(args.output, redact_simulation(simulation, options))
    except TpsimError as e:
        print(f"❌ {e}")
        sys.exit(1)

    print(f"✅ Redacted {len(simulation)} pairs to {args.output}")


def cmd_serve(args):
    """
    Serve fixtures until interrupted.

    Args:
        args: Parsed command-line arguments
    """
    try:
        simulation = SimulationLoader(args.path).load()
    except TpsimError as e:
        print(f"❌ Failed to load fixtures: {e}")
        sys.exit(1)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        admin_enabled=args.admin
    )
    SimulationServer(simulation, config=config).serve_forever()


def cmd_validate(args):
    """
    Validate fixtures and report issues.

    Args:
        args: Parsed command-line arguments
    """
    print(f"✓ tpsim Fixture Validation")
    print(f"   Path: {args.path}")

    try:
        simulation = SimulationLoader(args.path).load()
    except TpsimError as e:
        print(f"❌ Failed to load fixtures: {e}")
        sys.exit(1)

    print(f"   Total pairs: {len(simulation)}")
    print()

    errors = []
    warnings = []

    token = get_token_from_env()
    domain = get_domain_from_env()
    for leaked in find_leaks(simulation, [token or '', domain or '']):
        if leaked == token:
            errors.append("Fixture contains the live TP_TOKEN value")
        else:
            errors.append(f"Fixture contains the live domain {leaked}")

    for shadowed, winner in SimulationMatcher(simulation).shadowed_pairs():
        warnings.append(f"Pair {shadowed} is unreachable: pair {winner} always matches first")

    error_count = sum(1 for p in simulation if p.response.effective_status >= 400)
    if error_count > 0:
        warnings.append(f"{error_count} pairs have error status codes (4xx/5xx)")

    if args.verbose:
        for i, pair in enumerate(simulation):
            query = '&'.join(f"{k}={v}" for k, v in pair.request.query.items())
            print(f"   [{i}] {pair.request.method} {pair.request.path}"
                  f"{'?' + query if query else ''} -> {pair.response.effective_status}"
                  f"{'  (' + pair.description + ')' if pair.description else ''}")
        print()

    if errors:
        print("❌ Errors found:")
        for error in errors:
            print(f"   • {error}")
        print()

    if warnings:
        print("⚠️  Warnings:")
        for warning in warnings:
            print(f"   • {warning}")
        print()

    if not errors and not warnings:
        print("✅ All validations passed!")

    if errors:
        sys.exit(1)


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='tpsim - record, redact and replay HTTP API fixtures',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Capture fixtures from the live service
  TP_DOMAIN=acme.tpondemand.com TP_TOKEN=... %(prog)s capture scenarios.yaml

  # Redact a raw capture
  %(prog)s redact raw.json clean.json --domain acme.tpondemand.com

  # Serve fixtures on port 8080 with the admin API
  %(prog)s serve testdata/simulations --port 8080 --admin

  # Validate fixtures
  %(prog)s validate testdata/simulations --verbose
        """
    )
    parser.add_argument('--debug', action='store_true', help='Debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- CAPTURE command ---
    capture_parser = subparsers.add_parser('capture', help='Capture scenarios from the live service')
    capture_parser.add_argument('scenarios', help='YAML scenario file')
    capture_parser.add_argument('-o', '--output', help='Output directory (default: testdata/simulations)')

    # --- REDACT command ---
    redact_parser = subparsers.add_parser('redact', help='Redact a raw fixture file')
    redact_parser.add_argument('input', help='Raw fixture file or directory')
    redact_parser.add_argument('output', help='Redacted fixture file to write')
    redact_parser.add_argument('--domain', help='Real domain to replace (default: TP_DOMAIN)')
    redact_parser.add_argument('--replacement', default=DEFAULT_REPLACEMENT_DOMAIN,
                               help=f'Replacement domain (default: {DEFAULT_REPLACEMENT_DOMAIN})')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Serve fixtures')
    serve_parser.add_argument('path', help='Fixture file or directory')
    serve_parser.add_argument('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
    serve_parser.add_argument('-p', '--port', type=int, default=8080, help='Port to bind (default: 8080)')
    serve_parser.add_argument('--admin', action='store_true', help='Enable admin API')
    serve_parser.add_argument('--log-level', default='info', choices=['debug', 'info', 'warning', 'error'],
                              help='Log level (default: info)')

    # --- VALIDATE command ---
    validate_parser = subparsers.add_parser('validate', help='Validate fixtures')
    validate_parser.add_argument('path', help='Fixture file or directory')
    validate_parser.add_argument('-v', '--verbose', action='store_true', help='List every pair')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s %(message)s'
    )

    if args.command == 'capture':
        cmd_capture(args)
    elif args.command == 'redact':
        cmd_redact(args)
    elif args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'validate':
        cmd_validate(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()

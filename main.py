#!/usr/bin/env python3
"""
P&L Rollup and Rendering Engine - Main Entry Point

Usage:
    python main.py render --month m.json --ytd y.json --accounts accounts.yaml
    python main.py bundle --month m.json --ytd y.json --accounts accounts.yaml --tree tree.yaml
    python main.py validate --accounts accounts.yaml
"""
import os
import sys
import json
import argparse
import logging
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

logger = logging.getLogger(__name__)


def setup_environment():
    """Load environment variables from .env file if present."""
    env_file = PROJECT_ROOT / '.env'
    if env_file.exists():
        logger.info("Loading environment from .env file")
        with open(env_file) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ.setdefault(key.strip(), value.strip())


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler()],
    )


def _load_sections(path):
    from pnl_engine.data.config_store import load_section_config

    return load_section_config(path) if path else None


def _print_text(document):
    from pnl_engine.tools.table_export import render_text

    print(render_text(document))


def cmd_render(args):
    """Render one entity's P&L."""
    from config.settings import get_config
    from pnl_engine.core.observability import Tracer
    from pnl_engine.core.report_assembler import generate_pnl_report
    from pnl_engine.data.config_store import load_account_config, load_document, load_ledger_table

    config = get_config()
    meta = load_document(args.meta) if args.meta else {}

    tracer = Tracer(export_dir=config.trace_export_dir)
    result = generate_pnl_report(
        load_ledger_table(args.month),
        load_ledger_table(args.ytd) if args.ytd else None,
        title_label=args.title,
        meta=meta,
        account_config=load_account_config(args.accounts),
        section_config=_load_sections(args.sections),
        settings=config.report,
        tracer=tracer,
    )

    if result.document is None:
        logger.info("No revenue for this entity; nothing to render")

    if args.format == 'json' or result.document is None:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        _print_text(result.document)


def cmd_bundle(args):
    """Render a summary-then-children bundle for an entity tree."""
    from config.settings import get_config
    from pnl_engine.core.report_bundle import EntityNode, ReportBundler
    from pnl_engine.data.config_store import load_account_config, load_document, load_ledger_table

    config = get_config()
    root = EntityNode.from_dict(load_document(args.tree))

    bundler = ReportBundler(
        load_account_config(args.accounts),
        section_config=_load_sections(args.sections),
        month_label=args.month_label,
        pl_type=args.pl_type,
        settings=config.report,
    )
    bundle = bundler.build(
        root,
        load_ledger_table(args.month),
        load_ledger_table(args.ytd) if args.ytd else None,
    )

    if args.format == 'json':
        print(json.dumps(bundle.to_dict(), indent=2))
        return

    for document in bundle.documents:
        _print_text(document)
        print("\n" + "=" * 60 + "\n")


def cmd_validate(args):
    """Check an account configuration for cycles."""
    from pnl_engine.data.config_store import load_account_config

    config = load_account_config(args.accounts)

    print("\n" + "=" * 60)
    print("ACCOUNT CONFIGURATION")
    print("=" * 60)
    print(f"  Accounts: {len(config)}")
    print(f"  Displayable (standard): {len(config.displayable_accounts(False))}")
    print(f"  Displayable (operational): {len(config.displayable_accounts(True))}")
    print("  ✅ Hierarchy is acyclic")


def main():
    setup_environment()

    from config.settings import get_config
    configure_logging(get_config().log_level)

    parser = argparse.ArgumentParser(
        description="P&L rollup and rendering engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py render --month m.json --ytd y.json --accounts accounts.yaml --format text
  python main.py validate --accounts accounts.yaml

Environment Variables:
  LOG_LEVEL                 Logging level (default: INFO)
  PNL_TRACE_EXPORT_DIR      Write report traces as JSON to this directory
  REPORT_INCOME_ACCOUNT     Percent-of-income denominator account (default: Income)
  REPORT_ORGANISATION_NAME  Subtitle of Region/District headers
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Render command
    render_parser = subparsers.add_parser('render', help='Render one report')
    render_parser.add_argument('--month', required=True, help='Month ledger file (JSON/YAML)')
    render_parser.add_argument('--ytd', help='YTD ledger file (JSON/YAML)')
    render_parser.add_argument('--accounts', required=True, help='Account configuration file')
    render_parser.add_argument('--sections', help='Section layout file')
    render_parser.add_argument('--meta', help='Entity metadata file')
    render_parser.add_argument('--title', default='Entity Total', help='Fallback report title')
    render_parser.add_argument('--format', choices=['json', 'text'], default='json')
    render_parser.set_defaults(func=cmd_render)

    # Bundle command
    bundle_parser = subparsers.add_parser('bundle', help='Render a multi-level bundle')
    bundle_parser.add_argument('--month', required=True, help='Combined customer-level month file')
    bundle_parser.add_argument('--ytd', help='Combined customer-level YTD file')
    bundle_parser.add_argument('--accounts', required=True, help='Account configuration file')
    bundle_parser.add_argument('--tree', required=True, help='Entity tree file')
    bundle_parser.add_argument('--sections', help='Section layout file')
    bundle_parser.add_argument('--month-label', help='Reporting month (YYYY-MM-DD)')
    bundle_parser.add_argument('--pl-type', default='Standard', choices=['Standard', 'Operational'])
    bundle_parser.add_argument('--format', choices=['json', 'text'], default='json')
    bundle_parser.set_defaults(func=cmd_bundle)

    # Validate command
    validate_parser = subparsers.add_parser('validate', help='Validate account configuration')
    validate_parser.add_argument('--accounts', required=True, help='Account configuration file')
    validate_parser.set_defaults(func=cmd_validate)

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except Exception as e:
        from pnl_engine.core.error_taxonomy import classify_error

        classified = classify_error(e, pipeline_phase=args.command)
        logger.error(f"{classified.category.name}: {classified.message}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

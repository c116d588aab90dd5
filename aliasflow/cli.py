"""Command-line interface for flow-sensitive points-to analysis."""

import argparse
import sys
import traceback
from pathlib import Path
from typing import List, Optional

from aliasflow import __version__
from aliasflow.alias.alias_driver import FlowSensitiveAliasAnalyzer, AnalysisConfig
from aliasflow.ir.loader import load_module
from aliasflow.monitor import AgentLogger, LogLevel
from aliasflow.utils import AliasFlowError


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser for points-to analysis."""
    parser = argparse.ArgumentParser(
        prog="aliasflow",
        description="Flow-sensitive points-to analysis of a JSON IR module",
        epilog="""Examples:
  aliasflow module.json
  aliasflow module.json --format json -o aliases.json
  aliasflow module.json --config my_analysis.json --format summary
        """
    )

    parser.add_argument("module", help="JSON IR module to analyze")
    parser.add_argument("--config", "-c", help="JSON file overriding analysis defaults")
    parser.add_argument("--output", "-o", help="Output file")
    parser.add_argument("--format", "-f", choices=["text", "json", "summary"],
                        default="text", help="Output format")
    parser.add_argument("--no-benchmark", action="store_true",
                        help="Do not evaluate alias annotations")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet mode")
    parser.add_argument("--version", action="version", version=f"aliasflow {__version__}")

    return parser


def setup_logging(args) -> AgentLogger:
    """Setup logging based on command line arguments."""
    level = LogLevel.OFF if args.quiet else (LogLevel.DEBUG if args.verbose else LogLevel.INFO)
    return AgentLogger(level=level)


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    logger = setup_logging(args)

    try:
        config = AnalysisConfig.load(args.config)
        if args.no_benchmark:
            config.enable_benchmark = False
        module = load_module(args.module, logger=logger)

        analyzer = FlowSensitiveAliasAnalyzer(config, logger=logger)
        analyzer.analyze_module(module)
        output = analyzer.export_results(args.format)

        if args.output:
            Path(args.output).parent.mkdir(parents=True, exist_ok=True)
            Path(args.output).write_text(output + "\n", encoding="utf-8")
            logger.log(f"Results written to {args.output}")
        else:
            print(output)
    except AliasFlowError as e:
        logger.log(f"Error: {e}", level=LogLevel.ERROR)
        return 1
    except KeyboardInterrupt:
        logger.log("Analysis interrupted by user", level=LogLevel.ERROR)
        return 130
    except Exception as e:
        logger.log(f"Error during analysis: {e}", level=LogLevel.ERROR)
        if args.verbose:
            logger.log(traceback.format_exc(), level=LogLevel.ERROR)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""Command-line interface for solgraph."""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from rich.console import Console

from solgraph import __version__
from solgraph.core.session import AnalysisSession
from solgraph.core.snapshot import JsonSnapshotProvider
from solgraph.ir.data_flow_graph import (
    get_domain_flow_summary,
    serialize_graph,
    trace_backward,
    trace_forward,
)
from solgraph.monitor import AgentLogger, LogLevel
from solgraph.utils import SolgraphError, UnknownTypeError, make_json_serializable


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="solgraph",
        description="Inheritance resolution and data flow graphs over contract snapshots",
        epilog="""Examples:
  solgraph impl snapshots/ IERC20 transfer --context Vault
  solgraph flow snapshots/ Vault withdraw --trace amount
  solgraph chains snapshots/ -f json
  solgraph calls snapshots/ Vault harvest""",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    # Output and logging
    parser.add_argument("--format", "-f", choices=["text", "json"], default="text", help="Output format")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="Increase verbosity")
    parser.add_argument("--quiet", "-q", action="store_true", help="Suppress all output except results")
    parser.add_argument("--version", action="version", version=f"solgraph {__version__}")

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    impl_parser = subparsers.add_parser("impl", help="Find implementations of an interface or library method")
    impl_parser.add_argument("snapshot", help="Snapshot directory or file")
    impl_parser.add_argument("interface", help="Interface, base contract or extended type name")
    impl_parser.add_argument("method", help="Method name")
    impl_parser.add_argument("--context", help="Type in which the call is made")

    flow_parser = subparsers.add_parser("flow", help="Build the data flow graph of a function")
    flow_parser.add_argument("snapshot", help="Snapshot directory or file")
    flow_parser.add_argument("type_name", metavar="type", help="Type declaring or inheriting the function")
    flow_parser.add_argument("function", help="Function name")
    flow_parser.add_argument("--trace", metavar="NAME", help="Trace a variable backward and forward")

    chains_parser = subparsers.add_parser("chains", help="Print inheritance chains and graph metrics")
    chains_parser.add_argument("snapshot", help="Snapshot directory or file")

    calls_parser = subparsers.add_parser("calls", help="Resolve the call sites of a function")
    calls_parser.add_argument("snapshot", help="Snapshot directory or file")
    calls_parser.add_argument("type_name", metavar="type", help="Type declaring or inheriting the function")
    calls_parser.add_argument("function", help="Function name")

    return parser


def setup_logging(args) -> AgentLogger:
    """Setup logging based on command line arguments."""
    level = LogLevel.OFF if args.quiet else (LogLevel.DEBUG if args.verbose > 0 else LogLevel.INFO)
    return AgentLogger(level=level)


def open_session(args, logger) -> AnalysisSession:
    snapshot = Path(args.snapshot)
    if not snapshot.exists():
        raise FileNotFoundError(f"Snapshot path does not exist: {snapshot}")

    session = AnalysisSession(JsonSnapshotProvider(snapshot, logger=logger), logger=logger)
    session.refresh()
    return session


def require_function(session: AnalysisSession, type_name: str, function_name: str, logger):
    if not session.resolver.has_type(type_name):
        raise UnknownTypeError(f"Unknown type: {type_name}", logger)
    contract, func = session.locate_function(type_name, function_name)
    if func is None:
        raise UnknownTypeError(f"{type_name} has no function {function_name}", logger)
    return contract, func


def emit_json(payload: Any) -> None:
    print(json.dumps(make_json_serializable(payload), indent=2))


def run_impl(args, session: AnalysisSession, console: Console) -> None:
    results = session.find_all_implementations(args.interface, args.method, args.context)

    if args.format == "json":
        emit_json(results)
        return

    if not results:
        console.print(f"No implementations of {args.interface}.{args.method}")
        return
    for impl in results:
        origin = f" (inherited, chain: {' -> '.join(impl.inheritance_chain)})" if impl.is_inherited else ""
        console.print(
            f"{impl.contract_name}.{impl.function.name}{impl.function.signature} "
            f"[{impl.contract_kind.value}] {impl.file_path}:{impl.function.location.start_line}{origin}"
        )


def run_flow(args, session: AnalysisSession, console: Console, logger) -> None:
    contract, func = require_function(session, args.type_name, args.function, logger)
    field_names = session.field_names_for(contract.name)

    graph = session.analyze_function(args.type_name, args.function)
    summary = get_domain_flow_summary(graph)
    reentrancy = session.analyzer.detect_reentrancy_patterns(func, field_names)
    balance_checks = session.analyzer.detect_balance_check_patterns(func)

    trace = None
    if args.trace:
        trace = {
            'backward': sorted(trace_backward(graph, args.trace)),
            'forward': trace_forward(graph, args.trace),
        }

    if args.format == "json":
        emit_json({
            'type': contract.name,
            'function': func.name,
            'graph': serialize_graph(graph),
            'summary': summary,
            'reentrancy_patterns': reentrancy,
            'balance_checks': balance_checks,
            'trace': trace,
        })
        return

    console.rule(f"{contract.name}.{func.name}{func.signature}")
    metrics = graph.get_metrics()
    console.print(f"{metrics['num_nodes']} nodes, {metrics['num_edges']} edges, {metrics['num_sinks']} sinks")

    for edge in graph.edges:
        suffix = f" ({edge.transformation})" if edge.transformation else ""
        console.print(f"  {edge.source.name}@{edge.source.line} -> {edge.target.name}@{edge.target.line} "
                      f"[{edge.kind.value}]{suffix}")

    if graph.sinks:
        console.print("Sinks:")
        for sink in graph.sinks:
            console.print(f"  line {sink.line} {sink.kind.value}: {sink.description} "
                          f"<- {', '.join(sink.input_vars) or '-'}")

    for pattern in reentrancy:
        console.print(f"External call on line {pattern.call_line} precedes write to "
                      f"{pattern.state_var} on line {pattern.state_write_line}", style="yellow")
    for check in balance_checks:
        console.print(f"Balance query on line {check.line}: {check.pattern}")

    if trace is not None:
        console.print(f"{args.trace} <- {', '.join(trace['backward'])}")
        console.print(f"{args.trace} -> {', '.join(f'{n.name}@{n.line}' for n in trace['forward']) or '-'}")


def run_chains(args, session: AnalysisSession, console: Console) -> None:
    resolver = session.resolver
    chains = {name: resolver.get_inheritance_chain(name) for name in resolver.contracts}
    metrics = resolver.get_graph_metrics()

    if args.format == "json":
        emit_json({'chains': chains, 'libraries': resolver.type_to_libraries, 'metrics': metrics})
        return

    for name, chain in chains.items():
        kind = resolver.contracts[name].kind.value
        console.print(f"{name} [{kind}]: {' -> '.join(chain)}")
    for type_name, libraries in resolver.type_to_libraries.items():
        console.print(f"using {', '.join(libraries)} for {type_name}")
    if metrics['cycles']:
        console.print(f"Inheritance cycles: {metrics['cycles']}", style="yellow")


def run_calls(args, session: AnalysisSession, console: Console, logger) -> None:
    require_function(session, args.type_name, args.function, logger)
    resolutions = session.resolve_call_sites(args.type_name, args.function)

    if args.format == "json":
        emit_json(resolutions)
        return

    for resolution in resolutions:
        targets = ", ".join(f"{impl.contract_name}.{impl.function.name}"
                            for impl in resolution.implementations) or "unresolved"
        console.print(f"line {resolution.line}: {resolution.receiver_type}.{resolution.method_name} -> {targets}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logger = setup_logging(args)
    console = Console(highlight=False, markup=False, soft_wrap=True)

    try:
        session = open_session(args, logger)

        if args.command == "impl":
            run_impl(args, session, console)
        elif args.command == "flow":
            run_flow(args, session, console, logger)
        elif args.command == "chains":
            run_chains(args, session, console)
        elif args.command == "calls":
            run_calls(args, session, console, logger)

    except UnknownTypeError:
        return 1
    except (SolgraphError, FileNotFoundError) as e:
        logger.log_error(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.log("Analysis interrupted by user", level=LogLevel.ERROR)
        return 130

    return 0


def cli_main():
    """Entry point for the console script."""
    return main()


if __name__ == "__main__":
    sys.exit(cli_main())

"""create-datadao - CLI entry point.

Provides the command-line interface for creating a DataDAO project record,
checking its deployment status and running deployment stages.

Commands:
    create <dir> --config <file>    Create the deployment record
    status [dir]                    Show deployment progress
    next [dir]                      Print the next command to run
    deploy [stage] [--all] [--with-optional] [--dir DIR]
                                    Run the next (or a named) stage
    serve [--dir DIR] [--http] [--host HOST] [--port N]
                                    Start the MCP server
"""

import sys
from pathlib import Path

USAGE = __doc__.split("Commands:")[1].rstrip()

# Exit codes
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_BLOCKED = 2
EXIT_LOCKED = 3
EXIT_NO_RECORD = 4

_ERROR_EXIT_CODES = {
    "Locked": EXIT_LOCKED,
    "NotFound": EXIT_NO_RECORD,
    "Corrupt": EXIT_NO_RECORD,
    "OutOfOrder": EXIT_BLOCKED,
    "MissingInput": EXIT_BLOCKED,
}


def exit_code_for(outcome) -> int:
    """Map a RunOutcome to a process exit code."""
    from deployment import RunStatus

    if outcome.status in (
        RunStatus.COMPLETED,
        RunStatus.SKIPPED,
        RunStatus.ALL_COMPLETE,
        RunStatus.READY,
    ):
        return EXIT_OK
    if outcome.status == RunStatus.FAILED:
        return EXIT_FAILED
    if outcome.error is not None:
        return _ERROR_EXIT_CODES.get(outcome.error.kind, EXIT_FAILED)
    if outcome.status == RunStatus.BLOCKED:
        return EXIT_BLOCKED
    return EXIT_FAILED


def _option(args: list[str], name: str) -> str | None:
    """Return the value following an option flag, removing both from args."""
    if name not in args:
        return None
    idx = args.index(name)
    if idx + 1 >= len(args):
        raise ValueError(f"Option {name} requires a value")
    value = args[idx + 1]
    del args[idx : idx + 2]
    return value


def _flag(args: list[str], name: str) -> bool:
    """Return whether a flag is present, removing it from args."""
    if name not in args:
        return False
    args.remove(name)
    return True


def _make_workflow(project_root: Path, operations=None, with_logger: bool = True):
    from config import load_project_settings
    from deployment import Workflow
    from observability import get_logger

    settings = load_project_settings(project_root)
    logger = None
    if with_logger:
        # Console output belongs to the CLI; the workflow only logs to files
        logger = get_logger(
            "datadao", settings.log_dir(project_root).resolve(), console_enabled=False
        )
    workflow = Workflow.for_project(
        project_root,
        filename=settings.record_filename,
        lock_timeout=settings.lock_timeout,
        operations=operations,
        timeouts=settings.timeouts,
        logger=logger,
    )
    return workflow, settings


def cmd_create(args: list[str], formatter) -> int:
    """Create the deployment record from a project config file."""
    from config import load_project_config
    from deployment import ConfigurationError

    config_path = _option(args, "--config")
    if not args or config_path is None:
        print("Usage: create-datadao create <dir> --config <file>")
        return EXIT_FAILED

    try:
        config = load_project_config(Path(config_path))
    except ConfigurationError as e:
        print(formatter.format_error(e))
        return EXIT_FAILED

    project_root = Path(args[0])
    project_root.mkdir(parents=True, exist_ok=True)

    workflow, _ = _make_workflow(project_root)
    outcome = workflow.create(config.dlp_name, config.owner_address, config.credentials)
    print(formatter.format_outcome(outcome))

    if outcome.record is not None:
        command = workflow.next_command(outcome.record)
        if command:
            print(f"\nNext: {command}")
    return exit_code_for(outcome)


def cmd_status(args: list[str], formatter) -> int:
    """Show deployment progress."""
    project_root = Path(args[0]) if args else Path.cwd()
    workflow, _ = _make_workflow(project_root, with_logger=False)

    outcome = workflow.load()
    if outcome.record is None:
        print(formatter.format_outcome(outcome))
        return exit_code_for(outcome)

    print(formatter.format_progress(workflow.get_progress(outcome.record)))
    return EXIT_OK


def cmd_next(args: list[str], formatter) -> int:
    """Print the single next command."""
    from deployment import RunStatus

    project_root = Path(args[0]) if args else Path.cwd()
    workflow, _ = _make_workflow(project_root, with_logger=False)

    outcome = workflow.load()
    if outcome.status == RunStatus.ERROR:
        print(formatter.format_outcome(outcome))
        return exit_code_for(outcome)

    if outcome.status == RunStatus.BLOCKED:
        print(outcome.blocked.reason)
        return EXIT_BLOCKED

    command = workflow.next_command(outcome.record)
    print(command or "All required stages completed.")
    return EXIT_OK


def cmd_deploy(args: list[str], formatter) -> int:
    """Run the next stage, a named stage, or all remaining stages."""
    from operations import default_registry

    project_root = Path(_option(args, "--dir") or Path.cwd())
    run_all = _flag(args, "--all")
    with_optional = _flag(args, "--with-optional")
    stage_id = args[0] if args else None

    workflow, settings = _make_workflow(project_root)
    workflow.operations = default_registry(project_root, settings)

    if run_all or (with_optional and stage_id is None):
        outcomes = workflow.run_all(include_optional=with_optional)
    else:
        outcomes = [workflow.run_one(stage_id)]

    for outcome in outcomes:
        print(formatter.format_outcome(outcome))

    last = outcomes[-1]
    if last.record is not None:
        command = workflow.next_command(last.record)
        if command:
            print(f"\nNext: {command}")
    return exit_code_for(last)


def cmd_serve(args: list[str], formatter) -> int:
    """Start the MCP server for a project."""
    from deploy_server import create_server
    from project import DataDAOProject

    host = _option(args, "--host") or "127.0.0.1"
    port = int(_option(args, "--port") or 8090)
    project_dir = _option(args, "--dir")
    http_mode = _flag(args, "--http")

    project = DataDAOProject.detect(Path(project_dir) if project_dir else None)
    is_valid, message = project.validate()

    print("=" * 60, file=sys.stderr)
    print("DataDAO Deployment MCP Server", file=sys.stderr)
    print("=" * 60, file=sys.stderr)
    if not is_valid:
        print("WARNING: Not in a DataDAO project directory", file=sys.stderr)
        print(f"Info: {message}", file=sys.stderr)
        print("\nSuggestions:", file=sys.stderr)
        for suggestion in project.get_error_suggestions():
            print(f"  - {suggestion}", file=sys.stderr)
        print("\nStarting server anyway (tools will report errors)", file=sys.stderr)
    else:
        print(f"DataDAO project detected: {project.root.name}", file=sys.stderr)
    print("=" * 60, file=sys.stderr)

    mcp = create_server(project=project, host=host, port=port)
    if http_mode:
        print(f"Starting HTTP server: http://{host}:{port}/mcp\n", file=sys.stderr)
        mcp.run(transport="streamable-http")
    else:
        mcp.run()
    return EXIT_OK


COMMANDS = {
    "create": cmd_create,
    "status": cmd_status,
    "next": cmd_next,
    "deploy": cmd_deploy,
    "serve": cmd_serve,
}


def run(argv: list[str]) -> int:
    """Dispatch a command and return its exit code.

    Args:
        argv: Arguments without the program name.

    Returns:
        Process exit code.
    """
    from deployment import DataDAOError
    from observability.formatters import OutputFormatter

    if not argv or argv[0] in ("-h", "--help", "help"):
        print(f"Usage: create-datadao <command> [options]\n\nCommands:{USAGE}")
        return EXIT_OK if argv else EXIT_FAILED

    command, args = argv[0], list(argv[1:])
    handler = COMMANDS.get(command)
    if handler is None:
        print(f"Unknown command: {command}\n\nCommands:{USAGE}")
        return EXIT_FAILED

    formatter = OutputFormatter(use_colors=sys.stdout.isatty())
    try:
        return handler(args, formatter)
    except ValueError as e:
        print(f"Error: {e}")
        return EXIT_FAILED
    except DataDAOError as e:
        # Settings and config problems raised outside the workflow core
        print(formatter.format_error(e))
        return EXIT_FAILED


def main() -> None:
    """Main entry point - called by the create-datadao command."""
    try:
        sys.exit(run(sys.argv[1:]))
    except KeyboardInterrupt:
        # Exit without traceback on Ctrl+C
        sys.exit(130)

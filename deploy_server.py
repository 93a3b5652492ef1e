"""DataDAO Deployment MCP Server.

Exposes the deployment workflow to MCP clients:
- Deployment status and progress
- The next stage and its command
- Running a stage, with operator answers supplied by the client
"""

from mcp.server.fastmcp import FastMCP

from config import DeploySettings, load_project_settings
from deployment import STAGE_TABLE, ConfigurationError, Workflow
from observability import get_logger
from observability.formatters import OutputFormatter, TableFormatter
from operations import default_registry


class AnswerQueue:
    """Prompt callable that replays answers supplied by the client.

    MCP stdio servers cannot read operator input from stdin, so interactive
    stages consume these answers in order.
    """

    def __init__(self, answers: list[str] | None = None):
        self.answers = list(answers or [])
        self.asked: list[str] = []

    def __call__(self, message: str) -> str:
        self.asked.append(message.strip())
        if not self.answers:
            # An empty answer fails the prompt's validation
            return ""
        return self.answers.pop(0)


def create_server(
    project,
    settings: DeploySettings | None = None,
    host: str = "127.0.0.1",
    port: int = 8090,
) -> FastMCP:
    """Create a DataDAO deployment MCP server.

    Args:
        project: DataDAOProject instance.
        settings: Optional deployment settings (loaded from the project if omitted).
        host: HTTP server host.
        port: HTTP server port.

    Returns:
        Configured FastMCP server with deployment tools.
    """
    settings_error = None
    if settings is None:
        try:
            settings = load_project_settings(project.root)
        except ConfigurationError as e:
            # Tools report the broken settings file instead of the server failing to start
            settings, settings_error = DeploySettings(), e
    mcp = FastMCP("DataDAO Deployment", host=host, port=port, stateless_http=True)
    formatter = OutputFormatter(use_colors=False)

    def make_workflow(operations=None) -> Workflow:
        logger = get_logger(
            "datadao", settings.log_dir(project.root).resolve(), console_enabled=False
        )
        return Workflow.for_project(
            project.root,
            filename=settings.record_filename,
            lock_timeout=settings.lock_timeout,
            operations=operations,
            timeouts=settings.timeouts,
            logger=logger,
        )

    @mcp.tool()
    def datadao_status() -> str:
        """Get current deployment status and progress.

        PURPOSE:
            Display the state of the DataDAO deployment.

        DESCRIPTION:
            Shows completed stages, the last error and the next command to run.
            Reads deployment.json only; nothing is executed.

        RETURNS:
            str: Formatted deployment progress or the error loading the record.
        """
        if settings_error is not None:
            return formatter.format_error(settings_error)
        workflow = make_workflow()
        outcome = workflow.load()
        if outcome.record is None:
            return formatter.format_outcome(outcome)
        return formatter.format_progress(workflow.get_progress(outcome.record))

    @mcp.tool()
    def datadao_next() -> str:
        """Get the next deployment stage.

        PURPOSE:
            Identify the single next step of the deployment.

        DESCRIPTION:
            Returns the next stage with its command, the reason the deployment
            is blocked, or a completion message.

        RETURNS:
            str: Next stage information.
        """
        if settings_error is not None:
            return formatter.format_error(settings_error)
        workflow = make_workflow()
        outcome = workflow.load()
        if outcome.record is None:
            return formatter.format_outcome(outcome)

        if outcome.blocked is not None:
            return f"Blocked at {outcome.blocked.stage}: {outcome.blocked.reason}"
        if outcome.stage is None:
            return "All required stages completed! Deployment finished."

        decision = workflow.next_stage(outcome.record)
        return "\n".join(
            [
                f"Next Stage: {decision.id}",
                f"Description: {decision.description}",
                f"Command: {decision.command}",
            ]
        )

    @mcp.tool()
    def datadao_deploy(stage: str | None = None, answers: list[str] | None = None) -> str:
        """Run one deployment stage.

        PURPOSE:
            Advance the deployment by one stage.

        DESCRIPTION:
            Runs the next stage, or the named stage, and saves the result to
            deployment.json. Interactive stages (register, deployProof,
            deployRefiner) read their answers from the answers list in the
            order they are asked; missing answers fail the stage.

        PARAMETERS:
            stage (str): Stage id to run
                - Examples: "deployContracts", "register", "configureUI", "testAll"
                - Default: the next stage
            answers (list[str]): Operator answers for interactive stages
                - register: [dlpId, refinementKey]
                - deployProof: [proofUrl]
                - deployRefiner: [schemaUrl, refinerUrl, refinerId]

        RETURNS:
            str: Stage outcome, operation output and the next command.
        """
        if settings_error is not None:
            return formatter.format_error(settings_error)

        output_lines: list[str] = []
        prompt = AnswerQueue(answers)
        operations = default_registry(
            project.root, settings, prompt=prompt, notify=output_lines.append
        )

        workflow = make_workflow(operations)
        outcome = workflow.run_one(stage)

        output = [formatter.format_outcome(outcome)]
        if output_lines:
            output.append("\nOperation output:")
            output.extend(f"  {line}" for line in output_lines)
        if outcome.record is not None:
            command = workflow.next_command(outcome.record)
            if command:
                output.append(f"\nNext: {command}")
        return "\n".join(output)

    @mcp.tool()
    def datadao_guide() -> str:
        """Get deployment usage guide.

        PURPOSE:
            Explain the DataDAO deployment stages and tools.

        RETURNS:
            str: Usage guide with the stage table.
        """
        return f"""DataDAO Deployment Guide

Deployment progresses through fixed stages. Each stage runs only after its
predecessors completed, and its result is saved to deployment.json.

Stages (* = optional):

{TableFormatter().format_stage_table(STAGE_TABLE)}

Tools:

  datadao_status()                     - Show progress and last error
  datadao_next()                       - Show the next stage
  datadao_deploy()                     - Run the next stage
  datadao_deploy(stage="testAll")      - Run a named stage
  datadao_deploy(answers=["42", "0x..."])
                                       - Run an interactive stage

Typical Workflow:

  1. datadao_status()
  2. datadao_deploy()                  - deployContracts
  3. datadao_deploy()                  - prints registration instructions
  4. datadao_deploy(answers=[dlpId, refinementKey])
  5. datadao_deploy(answers=[proofUrl])
  6. datadao_deploy(answers=[schemaUrl, refinerUrl, refinerId])
  7. datadao_deploy(stage="configureUI")  - optional, writes ui/.env
  8. datadao_deploy(stage="testAll")      - optional
"""

    return mcp

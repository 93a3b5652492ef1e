"""Output formatters for different audiences.

Provides formatting utilities for terminal output of deployment progress,
run outcomes and errors.
"""

from deployment import (
    DataDAOError,
    RunOutcome,
    RunStatus,
    StageTable,
    get_error_description,
    get_error_suggestion,
)


class OutputFormatter:
    """Format deployment output for humans.

    Provides consistent formatting for:
    - Deployment progress (status command)
    - Run outcomes (deploy command)
    - Errors with description and suggestion

    Example:
        formatter = OutputFormatter()

        progress = workflow.get_progress(record)
        print(formatter.format_progress(progress))
    """

    # ANSI color codes for terminal output
    COLORS = {
        "green": "\033[32m",
        "red": "\033[31m",
        "yellow": "\033[33m",
        "blue": "\033[34m",
        "bold": "\033[1m",
        "reset": "\033[0m",
    }

    def __init__(self, use_colors: bool = True):
        self.use_colors = use_colors

    def format_progress(self, progress: dict) -> str:
        """Format workflow progress with visual indicators.

        Args:
            progress: Progress dict from Workflow.get_progress().

        Returns:
            Formatted progress display.
        """
        total = progress.get("total_stages", 0)
        completed = progress.get("completed", 0)
        percent = progress.get("progress_percent", 0)

        lines = [
            self._colorize(f"DataDAO: {progress.get('project', 'unknown')}", "bold"),
            "=" * 60,
            "",
            f"Completed: {completed}/{total} ({percent:.0f}%)",
            "",
        ]

        # Progress bar
        bar_width = 40
        filled = int(bar_width * percent / 100)
        bar = "█" * filled + "░" * (bar_width - filled)
        lines.append(f"[{bar}]")
        lines.append("")

        for stage in progress.get("stages", []):
            status = stage.get("status", "pending")
            if status == "completed":
                indicator = self._colorize("✓", "green")
            elif status == "failed":
                indicator = self._colorize("✗", "red")
            else:
                indicator = "○"

            suffix = " (optional)" if stage.get("optional") else ""
            lines.append(f"  {indicator} {stage.get('name')}: {stage.get('description')}{suffix}")

        last_error = progress.get("last_error")
        if last_error:
            lines.append("")
            lines.append(
                f"{self._colorize('Last error:', 'red')} [{last_error['stage']}] "
                f"{last_error['message']}"
            )

        lines.append("")
        if progress.get("all_complete"):
            lines.append(self._colorize("All required stages completed.", "green"))
        elif progress.get("blocked"):
            lines.append(f"{self._colorize('Blocked:', 'yellow')} {progress['blocked']}")
        elif progress.get("next_command"):
            lines.append(f"{self._colorize('Next:', 'bold')} {progress['next_command']}")

        return "\n".join(lines)

    def format_outcome(self, outcome: RunOutcome) -> str:
        """Format a single orchestrator outcome.

        Args:
            outcome: RunOutcome from Workflow.run_one() or create().

        Returns:
            Formatted outcome string.
        """
        stage = outcome.stage or "-"

        if outcome.status == RunStatus.COMPLETED:
            duration = outcome.execution.duration_seconds if outcome.execution else 0.0
            return f"{self._colorize('✓ COMPLETED', 'green')} {stage} ({duration:.2f}s)"
        if outcome.status == RunStatus.SKIPPED:
            return f"{self._colorize('• SKIPPED', 'blue')} {stage} (already completed)"
        if outcome.status == RunStatus.ALL_COMPLETE:
            return self._colorize("✓ All required stages completed.", "green")
        if outcome.status == RunStatus.READY:
            return f"{self._colorize('READY', 'bold')} {stage}"
        if outcome.status == RunStatus.BLOCKED and outcome.blocked is not None:
            return f"{self._colorize('⚠ BLOCKED', 'yellow')} {stage}: {outcome.blocked.reason}"

        label = {
            RunStatus.BLOCKED: self._colorize("⚠ BLOCKED", "yellow"),
            RunStatus.FAILED: self._colorize("✗ FAILED", "red"),
        }.get(outcome.status, self._colorize("✗ ERROR", "red"))

        lines = [f"{label} {stage}"]
        if outcome.error is not None:
            lines.append(self.format_error(outcome.error))
        return "\n".join(lines)

    def format_error(self, error: DataDAOError) -> str:
        """Format an error with its description and suggestion.

        Args:
            error: Error to format.

        Returns:
            Formatted error report.
        """
        lines = [
            f"{self._colorize('Error:', 'bold')} {error}",
            f"{self._colorize('Kind:', 'bold')} {getattr(error, 'kind', type(error).__name__)}"
            f" ({get_error_description(error)})",
        ]

        suggestion = get_error_suggestion(error)
        if suggestion:
            lines.append(f"{self._colorize('Suggestion:', 'bold')} {suggestion}")

        return "\n".join(lines)

    def _colorize(self, text: str, color: str) -> str:
        """Apply ANSI color to text.

        Args:
            text: Text to colorize.
            color: Color name or style.

        Returns:
            Colorized text with reset code, or the text unchanged when colors are off.
        """
        if not self.use_colors:
            return text
        color_code = self.COLORS.get(color, "")
        reset_code = self.COLORS["reset"]
        return f"{color_code}{text}{reset_code}"


class TableFormatter:
    """Format tabular data for terminal display.

    Example:
        formatter = TableFormatter()
        print(formatter.format_stage_table(STAGE_TABLE))
    """

    def format_stage_table(self, table: StageTable) -> str:
        """Format the stage table with requirements and products.

        Args:
            table: Stage table.

        Returns:
            ASCII table of stages.
        """
        if not len(table):
            return "No stages defined."

        columns = ["Stage", "After", "Requires", "Produces"]
        col_widths = [16, 16, 40, 40]

        lines = [self._row(columns, col_widths)]
        lines.append("-" * sum(col_widths) + "-" * (len(col_widths) - 1) * 2)

        for stage in table:
            name = f"{stage.id}*" if stage.optional else stage.id
            cells = [
                name,
                ", ".join(stage.required_predecessors) or "-",
                ", ".join(stage.required_fields) or "-",
                ", ".join(stage.produced_fields) or "-",
            ]
            lines.append(self._row(cells, col_widths))

        return "\n".join(lines)

    def format_stage_progress_table(self, stages: list[dict]) -> str:
        """Format stage progress as table.

        Args:
            stages: List of stage dicts from Workflow.get_progress().

        Returns:
            ASCII table of stage progress.
        """
        if not stages:
            return "No stage information available."

        columns = ["Stage", "Status", "Description"]
        col_widths = [16, 12, 50]

        lines = [self._row(columns, col_widths)]
        lines.append("-" * sum(col_widths) + "-" * (len(col_widths) - 1) * 2)

        for stage in stages:
            cells = [
                stage.get("name", "unknown"),
                stage.get("status", "unknown"),
                stage.get("description", ""),
            ]
            lines.append(self._row(cells, col_widths))

        return "\n".join(lines)

    @staticmethod
    def _row(cells: list[str], widths: list[int]) -> str:
        return "  ".join(
            cell[:w].ljust(w) for cell, w in zip(cells, widths, strict=True)
        ).rstrip()

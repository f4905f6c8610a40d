from rich.table import Table
from rich.text import Text
from hbwatch.domain.models import JobStatus
from hbwatch.ui.state import SessionState

STATUS_STYLES = {
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "yellow",
    JobStatus.ERROR: "red",
    JobStatus.INTERRUPTED: "magenta",
}


def format_duration(seconds: float) -> str:
    seconds = int(seconds)
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def build_summary_table(state: SessionState) -> Table:
    """Session counters and the most recent jobs, printed when the service stops."""
    with state._lock:
        table = Table(title="hbwatch session", show_header=False, expand=False)
        table.add_column("Item", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Uptime", format_duration(state.uptime_seconds))
        table.add_row("Polls", str(state.polls_count))
        table.add_row("Files found", str(state.files_found))
        table.add_row("Skipped (unstable)", str(state.skipped_count))
        table.add_row("Jobs started", str(state.started_count))
        table.add_row("Completed", Text(str(state.completed_count), style="green"))
        table.add_row("Non-zero exit", Text(str(state.failed_count), style="yellow"))
        table.add_row("Errors", Text(str(state.error_count), style="red"))
        table.add_row("Interrupted", Text(str(state.interrupted_count), style="magenta"))

        for job in state.recent_jobs:
            label = job.status.value
            if job.exit_code is not None:
                label = f"{label} ({job.exit_code})"
            table.add_row(job.source_file.basename, Text(label, style=STATUS_STYLES.get(job.status, "")))
    return table

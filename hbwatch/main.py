import logging
import signal
import typer
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.console import Console
from hbwatch.config.loader import load_config, resolve_config_path
from hbwatch.config.models import WatcherConfig
from hbwatch.infrastructure.logging import setup_logging, open_log_file, close_log_files
from hbwatch.infrastructure.event_bus import EventBus
from hbwatch.infrastructure.file_scanner import FileScanner
from hbwatch.infrastructure.handbrake import HandBrakeAdapter
from hbwatch.infrastructure.housekeeping import HousekeepingService
from hbwatch.infrastructure.progress import ProgressBoard
from hbwatch.pipeline.dispatcher import Dispatcher
from hbwatch.pipeline.runner import TranscodeJobRunner
from hbwatch.pipeline.stability import StabilityDetector
from hbwatch.ui.manager import UIManager
from hbwatch.ui.state import SessionState
from hbwatch.ui.summary import build_summary_table

app = typer.Typer(help="hbwatch - transcode stable files dropped into a watched directory with HandBrakeCLI")


def build_dispatcher(config: WatcherConfig, bus: EventBus) -> Dispatcher:
    scanner = FileScanner(
        extensions=config.input_file,
        excluded_dirs=[config.output_path, config.move_path, config.handbrake_log],
    )
    detector = StabilityDetector(config.change_timeout_s, metric=config.stability_metric)
    adapter = HandBrakeAdapter(config.handbrake_cli, config.transcoding, terminate_timeout=config.terminate_timeout)
    runner = TranscodeJobRunner(config, adapter, ProgressBoard(config.progress_output))
    return Dispatcher(config=config, event_bus=bus, file_scanner=scanner, detector=detector, runner=runner)


@app.command()
def watch(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to YAML config (~ is expanded)"),
    fallback_log: bool = typer.Option(False, "--fallback-log", "-f", help="Continue with screen log only if the log file cannot be opened"),
    once: bool = typer.Option(False, "--once", help="Run a single poll/transcode cycle, then exit"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging"),
):
    """Watch input_path and transcode every file that stopped growing."""
    console = Console()
    logger = setup_logging(debug=debug, console=console)
    logger.info(f"---- ---> {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} <--- -----")

    state = SessionState()
    dispatcher: Optional[Dispatcher] = None
    previous_sigterm = None

    try:
        config = load_config(resolve_config_path(config_path))
        if config.debug and not debug:
            logging.getLogger().setLevel(logging.DEBUG)

        open_log_file(config.log_output, fallback=fallback_log)
        logger.info(
            f"Config: input={config.input_path}, output={config.output_path}, "
            f"extensions={','.join(config.input_file)}, concurrent={config.concurrent}, "
            f"loop_timeout={config.loop_timeout}ms, change_timeout={config.change_timeout}ms"
        )
        if not config.input_path.is_dir():
            raise FileNotFoundError(f"Input directory does not exist: {config.input_path}")

        housekeeper = HousekeepingService()
        housekeeper.ensure_directories(config.output_path, config.move_path, config.handbrake_log)
        housekeeper.cleanup_stale_progress(config.progress_output)

        bus = EventBus()
        UIManager(bus, state)
        dispatcher = build_dispatcher(config, bus)

        previous_sigterm = signal.signal(signal.SIGTERM, lambda _signum, _frame: dispatcher.stop())

        if once:
            try:
                dispatcher.run_cycle()
            finally:
                dispatcher.shutdown()
        else:
            dispatcher.run()
        logger.info("Service terminated.")

    except KeyboardInterrupt:
        if dispatcher is not None:
            dispatcher.shutdown()
        logger.info("Service terminated.")

    except Exception as e:
        logger.exception(f"Unexpected error. Message: {e}")
        logger.info("Service terminated.")
        typer.secho(f"Fatal Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    finally:
        if previous_sigterm is not None:
            signal.signal(signal.SIGTERM, previous_sigterm)
        if dispatcher is not None:
            console.print(build_summary_table(state))
        close_log_files()


if __name__ == "__main__":
    app()

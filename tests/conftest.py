import pytest
import yaml
from pathlib import Path
from hbwatch.config.models import WatcherConfig
from hbwatch.infrastructure.event_bus import EventBus

# ============================================================================
# Fake encoder
# ============================================================================

# Mimics HandBrakeCLI's stream contract: progress on stdout (carriage-return
# terminated), log on stderr. Records its argv and pid, copies input to output.
FAKE_ENCODER = """#!/bin/sh
printf '%s\\n' "$@" > "{args_file}"
echo $$ > "{args_file}.pid"
printf 'Encoding: task 1 of 1, 42.00 %%\\r'
printf 'hb log line one\\r\\nhb log line two\\n' >&2
cp "$2" "$4"
if [ -n "$FAKE_HB_SLEEP" ]; then exec sleep "$FAKE_HB_SLEEP"; fi
exit "${{FAKE_HB_EXIT:-0}}"
"""

# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_input_dir(tmp_path):
    """Creates a test input directory."""
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    return input_dir

@pytest.fixture
def test_output_dir(tmp_path):
    """Creates a test output directory."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir

@pytest.fixture
def fake_encoder(tmp_path):
    """Writes an executable fake HandBrakeCLI; returns (script, args_file)."""
    args_file = tmp_path / "encoder_args.txt"
    script = tmp_path / "fake_handbrake.sh"
    script.write_text(FAKE_ENCODER.format(args_file=args_file))
    script.chmod(0o755)
    return script, args_file

@pytest.fixture
def make_config(test_input_dir, test_output_dir, fake_encoder):
    """Factory for WatcherConfig with instant timers and the fake encoder."""
    script, _ = fake_encoder

    def _make(**overrides) -> WatcherConfig:
        values = {
            "input_path": test_input_dir,
            "output_path": test_output_dir,
            "loop_timeout": 0,
            "change_timeout": 0,
            "handbrake_cli": str(script),
            "transcoding": ["--preset", "Fast 1080p30"],
            "stability_metric": "size",
            "terminate_timeout": 2.0,
        }
        values.update(overrides)
        return WatcherConfig(**values)

    return _make

@pytest.fixture
def config_yaml_path(tmp_path, test_input_dir, test_output_dir):
    """Creates a temporary YAML config file."""
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "hbwatch.yaml"

    content = {
        'input_path': str(test_input_dir),
        'output_path': str(test_output_dir),
        'input_file': ['mkv', '.MP4'],
        'concurrent': 2,
        'change_timeout': 0,
        'loop_timeout': 0,
        'transcoding': ['--encoder', 'x264', '--quality', '22'],
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file

# ============================================================================
# EventBus Fixtures
# ============================================================================

@pytest.fixture
def event_bus():
    """Returns a fresh EventBus instance."""
    return EventBus()

@pytest.fixture
def recorded_events(event_bus):
    """Collects every event published on `event_bus`."""
    from hbwatch.domain.events import Event
    events = []
    event_bus.subscribe(Event, events.append)
    return events

# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (spawn the fake encoder)"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )

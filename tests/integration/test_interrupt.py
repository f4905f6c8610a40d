"""Ctrl+C against a running service, delivered the way a terminal does it."""
import os
import signal
import subprocess
import sys
import time
import pytest
import yaml
from pathlib import Path

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(sys.platform == "win32", reason="process groups are POSIX only"),
]

REPO_ROOT = Path(__file__).resolve().parents[2]


def test_ctrl_c_keeps_source_of_running_job(tmp_path, test_input_dir, test_output_dir, fake_encoder):
    script, args_file = fake_encoder
    source = test_input_dir / "a.mkv"
    source.write_bytes(b"movie")
    conf = tmp_path / "conf.yaml"
    conf.write_text(yaml.dump({
        "input_path": str(test_input_dir),
        "output_path": str(test_output_dir),
        "handbrake_cli": str(script),
        "change_timeout": 0,
        "loop_timeout": 60000,
        "stability_metric": "size",
        "terminate_timeout": 2.0,
    }))
    env = dict(os.environ, FAKE_HB_SLEEP="30", PYTHONPATH=str(REPO_ROOT))
    service = subprocess.Popen(
        [sys.executable, "-m", "hbwatch.main", "-c", str(conf)],
        cwd=tmp_path,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        start_new_session=True,
    )

    try:
        pid_file = Path(f"{args_file}.pid")
        deadline = time.monotonic() + 20
        while not (pid_file.exists() and pid_file.read_text().strip()):
            assert service.poll() is None, service.stdout.read().decode()
            assert time.monotonic() < deadline, "encoder was never started"
            time.sleep(0.05)

        os.killpg(service.pid, signal.SIGINT)
        output, _ = service.communicate(timeout=30)
    finally:
        if service.poll() is None:
            os.killpg(service.pid, signal.SIGKILL)
            service.wait()

    text = output.decode()
    assert service.returncode == 0, text
    assert source.read_bytes() == b"movie"
    assert "Service terminated." in text

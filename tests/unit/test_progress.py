from pathlib import Path
from hbwatch.infrastructure.progress import ProgressBoard

def test_progress_single_job_overwrites(tmp_path):
    progress_file = tmp_path / "progress.txt"
    board = ProgressBoard(progress_file)
    output = Path("/out/a.mkv")

    board.update(output, "Encoding: task 1 of 1, 10.00 %\r")
    board.update(output, "Encoding: task 1 of 1, 55.00 %\r")

    assert progress_file.read_text() == "File: /out/a.mkv\nEncoding: task 1 of 1, 55.00 %"

def test_progress_removed_with_last_entry(tmp_path):
    progress_file = tmp_path / "progress.txt"
    board = ProgressBoard(progress_file)

    board.update(Path("/out/a.mkv"), "50 %")
    board.remove(Path("/out/a.mkv"))

    assert not progress_file.exists()
    assert board.entries() == {}

def test_progress_multiple_jobs_keep_their_entries(tmp_path):
    progress_file = tmp_path / "progress.txt"
    board = ProgressBoard(progress_file)

    board.update(Path("/out/a.mkv"), "10 %")
    board.update(Path("/out/b.mkv"), "20 %")
    content = progress_file.read_text()
    assert "File: /out/a.mkv\n10 %" in content
    assert "File: /out/b.mkv\n20 %" in content

    board.remove(Path("/out/a.mkv"))
    assert progress_file.read_text() == "File: /out/b.mkv\n20 %"

def test_progress_remove_without_file(tmp_path):
    board = ProgressBoard(tmp_path / "never_written.txt")
    board.remove(Path("/out/a.mkv"))
    assert not (tmp_path / "never_written.txt").exists()

def test_progress_disabled():
    board = ProgressBoard(None)
    assert board.enabled is False
    board.update(Path("/out/a.mkv"), "10 %")
    board.remove(Path("/out/a.mkv"))
    assert board.entries() == {}

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from mimir_ingest.core import errors, fs, time


def test_ensure_dir_and_atomic_replace(tmp_path: Path) -> None:
    d = fs.ensure_dir(tmp_path / "a" / "b")
    assert d.is_dir()

    final = d / "file.bin"
    tmp = fs.tmp_path_for(final)
    assert tmp.parent == d and tmp.name.startswith(".file.bin.")
    tmp.write_bytes(b"\x00\x01")

    fs.atomic_replace(tmp, final)
    assert final.read_bytes() == b"\x00\x01"
    assert not tmp.exists()

    fs.safe_unlink(final)
    fs.safe_unlink(final)
    assert not final.exists()


def test_time_helpers() -> None:
    assert time.utc_now_iso().endswith("Z")
    assert time.utc_now().tzinfo is not None
    assert time.format_duration(timedelta(milliseconds=250)) == "250 ms"
    assert time.format_duration(timedelta(seconds=3, milliseconds=500)) == "3.50 s"


def test_command_error_keeps_stderr_verbatim() -> None:
    err = errors.CommandError(
        executable=Path("/opt/bin/osm2mimir"), returncode=1, stderr="ES refused\n"
    )
    assert str(err) == "osm2mimir exited with status 1 => ES refused"
    assert err.stderr == "ES refused\n"
    assert isinstance(err, errors.IngestError)

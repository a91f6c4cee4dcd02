import io
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass

import pytest

from habitflow import config, db


@dataclass
class CLIResult:
    exit_code: int
    stdout: str
    stderr: str


class FnCLIRunner:
    """Drive the habitflow command surface in-process and capture its output."""

    def invoke(self, args: list[str]) -> CLIResult:
        from habitflow.cli import run

        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            try:
                code = run(args)
            except SystemExit as e:
                code = e.code if isinstance(e.code, int) else 1
        return CLIResult(exit_code=code, stdout=out.getvalue(), stderr=err.getvalue())


@pytest.fixture
def tmp_habitflow_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("HABITFLOW_HOME", str(tmp_path))
    db.reset_store()
    config.reload()
    db.init()
    yield tmp_path
    db.reset_store()
    config.reload()

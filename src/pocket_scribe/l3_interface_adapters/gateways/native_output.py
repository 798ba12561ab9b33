"""C-level stdout/stderr suppression shared by the native model gateways."""

from __future__ import annotations

import contextlib
import os


@contextlib.contextmanager
def suppress_c_stdout():
    """Redirect C-level stdout and stderr to /dev/null.

    whisper.cpp and llama.cpp print init/progress messages directly via C
    fprintf, bypassing Python's sys.stdout. This corrupts CLI output.
    """
    devnull = os.open(os.devnull, os.O_WRONLY)
    old_stdout = os.dup(1)
    old_stderr = os.dup(2)
    try:
        os.dup2(devnull, 1)
        os.dup2(devnull, 2)
        yield
    finally:
        os.dup2(old_stdout, 1)
        os.dup2(old_stderr, 2)
        os.close(devnull)
        os.close(old_stdout)
        os.close(old_stderr)

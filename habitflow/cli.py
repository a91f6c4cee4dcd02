import logging
import sys
from pathlib import Path

import fncli

from . import config, db
from .core.errors import HabitflowError

_discovered = False


def _discover() -> None:
    global _discovered
    if not _discovered:
        fncli.autodiscover(Path(__file__).parent, "habitflow")
        _discovered = True


def run(args: list[str]) -> int:
    """
    Dispatch one command. Store errors become a message on stderr and exit
    status 1; this is the only error channel the UI shell sees.
    """
    _discover()
    try:
        db.init()
        return fncli.dispatch(["habitflow", *args]) or 0
    except HabitflowError as e:
        sys.stderr.write(f"{e}\n")
        return 1


def main():
    user_args = sys.argv[1:]
    verbose = any(a in ("-v", "--verbose") for a in user_args)
    user_args = [a for a in user_args if a not in ("-v", "--verbose")]
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(run(user_args))


if __name__ == "__main__":
    main()

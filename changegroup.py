#!/usr/bin/env python
"""
Thin wrapper script to invoke the vc_change_grouper CLI.

Running ``python changegroup.py`` is equivalent to running the
``changegroup`` console script installed via ``pyproject.toml``.
"""

from vc_change_grouper.cli import main


if __name__ == "__main__":
    main(prog_name="changegroup")

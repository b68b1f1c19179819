#!/usr/bin/env python3
"""
Run apple-cert-toolkit straight from a checkout of this repository.

A workflow can call the two lifecycle steps without `pip install`:
  python3 apple_cert_toolkit.py install --keychain temp
  python3 apple_cert_toolkit.py cleanup
"""

import os
import sys

_SRC = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

# A plain module beats a namespace package on sys.path, so when this file is
# what `import apple_cert_toolkit` finds it must expose the real submodules.
__path__ = [os.path.join(_SRC, "apple_cert_toolkit")]


def main(argv: list[str] | None = None) -> int:
    from apple_cert_toolkit import cli

    return cli.main(argv)


if __name__ == "__main__":
    raise SystemExit(main())

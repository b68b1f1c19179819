"""
`python -m apple_cert_toolkit` entrypoint.

The installed console script `apple-cert-toolkit` calls the same
`apple_cert_toolkit.cli:main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())

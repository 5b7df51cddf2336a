"""Single entry point: no arguments runs the server, arguments run the client."""

from __future__ import annotations

import sys
from typing import List

from . import client, server


def main(argv: List[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    if args:
        return client.main(args)
    return server.main([])


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

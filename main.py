from __future__ import annotations

import sys
from pathlib import Path


def _ensure_root_on_path() -> None:
    root = Path(__file__).resolve().parent
    if (root / "aingel").exists():
        # Append (not prepend) to avoid shadowing third-party packages.
        sys.path.append(str(root))


def main() -> int:
    _ensure_root_on_path()
    from aingel.core.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    raise SystemExit(main())

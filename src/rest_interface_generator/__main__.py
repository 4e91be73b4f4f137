"""Allow ``python -m rest_interface_generator``."""

from __future__ import annotations

from .cli import main

raise SystemExit(main())

"""Entry point for ``python -m guardrules``."""

from guardrules.main import main

raise SystemExit(main())

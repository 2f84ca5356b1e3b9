"""Console error sink for development/debugging."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass

from .base import ErrorSink


logger = logging.getLogger(__name__)


@dataclass
class ConsoleErrorSink(ErrorSink):
    """
    Error sink that writes failure reports to the console or the log.

    Used when the host does not supply its own error reporting.
    """
    # Output destination
    stream: str = "stderr"  # stdout | stderr | log

    # Output format
    format: str = "compact"  # compact | json

    # Prefix for each line
    prefix: str = "[ANALYTICS] "

    def post(self, error: Exception) -> None:
        line = self._format_error(error)

        if self.stream == "log":
            logger.error(line)
            return

        out = sys.stdout if self.stream == "stdout" else sys.stderr
        print(f"{self.prefix}{line}", file=out)

    def _format_error(self, error: Exception) -> str:
        if self.format == "json":
            return json.dumps(
                {
                    "type": type(error).__name__,
                    "message": str(error),
                    **{k: v for k, v in vars(error).items() if not k.startswith("_")},
                },
                default=str,
            )
        return f"{type(error).__name__}: {error}"

"""JSON renderer for scripting and export.

Emits results in the same shape the service's JSON responses use.
"""

import json
import sys
from typing import Any

from ..models import DiscoveryResult
from .base import BaseRenderer


class JSONRenderer(BaseRenderer):
    """Renders output to JSON format on stdout."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.results: list[dict[str, Any]] = []

    def render(self, result: DiscoveryResult) -> None:
        """
        Collect a result for JSON export.

        Args:
            result: Lookup result
        """
        self.results.append(result.to_dict())

    def render_summary(self) -> None:
        """Output JSON to stdout."""
        output = {
            "results": self.results,
            "summary": {
                "total_errors": len(self.all_errors),
                "errors": [{"url": url, "message": msg} for url, msg in self.all_errors],
            },
        }

        json.dump(output, sys.stdout, indent=2)
        print()  # Newline at end

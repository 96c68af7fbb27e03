"""Base renderer interface."""

from abc import ABC, abstractmethod

from ..models import DiscoveryResult
from ..utils.logger import VerbosityLevel


class BaseRenderer(ABC):
    """
    Base class for all output renderers.

    Renderers receive lookup results and failures one by one and print
    everything collected so far in render_summary().
    """

    def __init__(self, verbosity: VerbosityLevel = VerbosityLevel.NORMAL):
        """
        Initialize renderer.

        Args:
            verbosity: Output verbosity level
        """
        self.verbosity = verbosity
        self.all_errors: list[tuple[str, str]] = []  # (url, message)

    @abstractmethod
    def render(self, result: DiscoveryResult) -> None:
        """
        Render one lookup result.

        Args:
            result: Discovered icons and selected best icon
        """
        ...

    @abstractmethod
    def render_summary(self) -> None:
        """Render summary of all lookups (errors, totals)."""
        ...

    def add_error(self, url: str, message: str) -> None:
        """
        Record a failed lookup for the summary.

        Args:
            url: URL as given by the user
            message: Error description
        """
        self.all_errors.append((url, message))

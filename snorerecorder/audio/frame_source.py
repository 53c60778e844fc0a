"""Push-based audio frame source interface."""

from abc import ABC, abstractmethod
from typing import Callable

from ..models.events import AudioFrameEvent

FrameCallback = Callable[[AudioFrameEvent], None]


class FrameSource(ABC):
    """Delivers audio frames asynchronously to a callback."""

    @abstractmethod
    def open(self, callback: FrameCallback) -> None:
        """Acquire the input and start delivering frames.

        Raises:
            AcquisitionError: The input device or permission is unavailable
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop delivering frames and release the input."""
        pass

"""
Host channel: where the source image comes from and where the finished
image (or a cancellation) goes.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np

from .image_io import save_image

logger = logging.getLogger(__name__)


class HostContext(ABC):
    """The environment that shared an image with us."""

    @abstractmethod
    def load_item(self) -> Any:
        """
        Return the shared image payload.

        May return None when nothing usable was shared, or raise if the
        item cannot be read.
        """
        pass

    @abstractmethod
    def complete_request(self, image: np.ndarray):
        """Hand the finished image back to the host."""
        pass

    @abstractmethod
    def cancel_request(self, reason: str):
        """Tell the host the user abandoned the request."""
        pass


class FileHostContext(HostContext):
    """Host backed by the file system: reads one image, writes one image."""

    def __init__(self, input_path: str, output_path: str):
        self.input_path = input_path
        self.output_path = output_path
        self.cancel_reason: Optional[str] = None

    def load_item(self) -> Any:
        return self.input_path

    def complete_request(self, image: np.ndarray):
        save_image(image, self.output_path)

    def cancel_request(self, reason: str):
        self.cancel_reason = reason
        logger.info(f"Request cancelled: {reason}")

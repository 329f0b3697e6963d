"""Line-split document model consumed by the anchor patcher."""

from .document import Document

__all__ = ["Document"]

"""
Output component - image encoding of rendered charts.
"""

from .component import OutputEncoder
from .models import EncodedImage

__all__ = ["EncodedImage", "OutputEncoder"]

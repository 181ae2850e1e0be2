"""Statistics over chat interaction logs."""

from .engine import compute_analytics
from .models import Analytics

__all__ = ["Analytics", "compute_analytics"]

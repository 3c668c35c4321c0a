"""Versioned server API surfaces."""

from pipebomb.api.models import ServiceInfo
from pipebomb.api.v1 import V1

__all__ = ["ServiceInfo", "V1"]

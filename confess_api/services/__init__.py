from .confessions import ConfessionService, Overview

__all__ = ["ConfessionService", "Overview"]

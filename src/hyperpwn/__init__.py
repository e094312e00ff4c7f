"""hyperpwn — replay GEF/pwndbg context views across terminal panes."""

from hyperpwn.engine import NavigateDirection, ReplayEngine

__version__ = "0.1.0"

__all__ = ["NavigateDirection", "ReplayEngine", "__version__"]

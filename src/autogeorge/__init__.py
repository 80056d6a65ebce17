"""AutoGeorge - cron-driven RSS to WordPress content pipeline."""

from autogeorge.__version__ import __version__

__all__ = ["__version__"]

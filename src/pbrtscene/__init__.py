"""pbrtscene: parser for scene-description directive files."""

__version__ = "0.1.0"

from pbrtscene.models import Scene  # noqa: E402
from pbrtscene.parser import parse, parse_file  # noqa: E402

__all__ = ["Scene", "__version__", "parse", "parse_file"]

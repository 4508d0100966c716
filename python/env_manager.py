import os
from typing import Mapping, Optional

# Environment toggle selecting the release profile
RELEASE_TOGGLE = "RELEASE"


def get(name: str, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the value of name in environ (os.environ by default). None if absent."""
    if environ is None:
        environ = os.environ
    return environ.get(name)

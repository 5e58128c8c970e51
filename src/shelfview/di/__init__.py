from .container import Container, Registration
from .lifetime import Lifetime
from .bootstrap import bootstrap

__all__ = [
    "Container",
    "Lifetime",
    "Registration",
    "bootstrap",
]

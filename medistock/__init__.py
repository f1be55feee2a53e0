from medistock.config import Settings
from medistock.container import Container, build_container

__all__ = [
    "Container",
    "Settings",
    "build_container",
]
